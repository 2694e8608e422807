"""
Prometheus metrics endpoint.

Exposes application metrics in Prometheus format for scraping.

Metrics exposed:
- minierp_users_total: Registered users
- minierp_accounts_total: Accounts by currency and active flag
- minierp_transactions_total: Transactions by kind
- minierp_low_stock_items: Active products at or below their minimum stock
- minierp_ledger_mutations_total: Ledger commands by operation and outcome
- minierp_request_duration_seconds: HTTP request duration histogram
- minierp_active_requests: Requests currently being processed
"""
import logging
import re
import time

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db.models import Count
from django.http import HttpResponse
from django.views import View
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from finance.models import Account, Item, Transaction
from finance.queries import LOW_STOCK

logger = logging.getLogger(__name__)


_users_total = Gauge(
    "minierp_users_total",
    "Number of registered users",
)

_accounts_total = Gauge(
    "minierp_accounts_total",
    "Number of accounts",
    ["currency", "active"],
)

_transactions_total = Gauge(
    "minierp_transactions_total",
    "Number of transactions",
    ["kind"],
)

_low_stock_items = Gauge(
    "minierp_low_stock_items",
    "Active products at or below their minimum stock",
)

_ledger_mutations = Counter(
    "minierp_ledger_mutations",
    "Ledger commands by operation and outcome",
    ["operation", "outcome"],
)

_request_duration = Histogram(
    "minierp_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

_active_requests = Gauge(
    "minierp_active_requests",
    "Number of requests currently being processed",
)


def record_ledger_mutation(operation: str, outcome: str) -> None:
    """
    Count one ledger command.

    ``outcome`` is "ok" or the error code the command returned.
    """
    _ledger_mutations.labels(operation=operation, outcome=outcome).inc()


def collect_metrics():
    """Refresh the gauges from the database."""
    _users_total.set(get_user_model().objects.count())

    for row in Account.objects.values("currency", "is_active").annotate(count=Count("id")):
        _accounts_total.labels(
            currency=row["currency"],
            active="true" if row["is_active"] else "false",
        ).set(row["count"])

    counts = dict(Transaction.objects.values_list("kind").annotate(count=Count("id")))
    for kind in Transaction.Kind.values:
        _transactions_total.labels(kind=kind).set(counts.get(kind, 0))

    _low_stock_items.set(Item.objects.filter(LOW_STOCK, is_active=True).count())


def get_prometheus_response():
    """Generate Prometheus metrics response."""
    try:
        collect_metrics()
    except DatabaseError as e:
        logger.error("Error collecting metrics: %s", e)
        return HttpResponse(
            f"# Error collecting metrics: {e}\n",
            content_type="text/plain",
            status=500,
        )

    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)


class MetricsView(View):
    """
    Prometheus metrics endpoint.

    Exposes metrics in Prometheus format at /_metrics/.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        return get_prometheus_response()


def normalize_endpoint(path: str) -> str:
    """Collapse numeric ids so the endpoint label keeps a low cardinality."""
    endpoint = re.sub(r"/\d+(?=/|$)", "/{id}", path)
    return endpoint[:50]


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """

    def middleware(request):
        start = time.time()
        _active_requests.inc()
        status = 500

        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            _active_requests.dec()
            _request_duration.labels(
                method=request.method,
                endpoint=normalize_endpoint(request.path),
                status=f"{status // 100}xx",
            ).observe(time.time() - start)

    return middleware
