"""
Probes for /_health/.

live   process is up, touches nothing
ready  the default database answers a trivial query
full   every configured database plus the ledger cross-check; 503 unless all pass
"""
import logging
import time

from django.conf import settings
from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.views import View

from finance.queries import ledger_drift

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


def ping_database(alias: str = "default") -> dict:
    """Round-trip ``SELECT 1`` on one connection and time it."""
    started = time.monotonic()
    report = {"alias": alias}
    try:
        with connections[alias].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        report["status"] = HEALTHY
    except DatabaseError as e:
        logger.warning("database %s unreachable: %s", alias, e)
        report.update(status=UNHEALTHY, error=str(e))
    report["duration_ms"] = round((time.monotonic() - started) * 1000, 2)
    return report


def ledger_status() -> dict:
    """
    Accounts whose stored balance differs from the signed sum of their
    transactions. Only a write that bypassed finance.ledger can cause one.
    """
    try:
        drifted = ledger_drift()
    except DatabaseError as e:
        logger.warning("ledger check could not run: %s", e)
        return {"status": UNHEALTHY, "error": str(e)}

    if not drifted:
        return {"status": HEALTHY}
    logger.error("ledger drift", extra={"accounts": [row["account_id"] for row in drifted]})
    return {"status": UNHEALTHY, "drifted_accounts": drifted}


def health_report() -> dict:
    databases = {alias: ping_database(alias) for alias in settings.DATABASES}
    database_ok = all(db["status"] == HEALTHY for db in databases.values())
    checks = {
        "databases": {"status": HEALTHY if database_ok else UNHEALTHY, "databases": databases},
        "ledger": ledger_status(),
    }
    ok = all(check["status"] == HEALTHY for check in checks.values())

    return {
        "status": HEALTHY if ok else UNHEALTHY,
        "checks": checks,
        "version": settings.VERSION,
        "environment": "development" if settings.DEBUG else "production",
    }


class LivenessView(View):
    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    def get(self, request):
        database = ping_database()
        ready = database["status"] == HEALTHY
        return JsonResponse(
            {"status": "ready" if ready else "not_ready", "database": database},
            status=200 if ready else 503,
        )


class FullHealthView(View):
    """Diagnostic report; expose on the internal network only."""

    def get(self, request):
        report = health_report()
        return JsonResponse(report, status=200 if report["status"] == HEALTHY else 503)
