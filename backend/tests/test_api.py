# tests/test_api.py
"""
HTTP contract of the finance API.

Tests cover:
- Response envelope and status codes
- Transaction CRUD through the API
- List filters, pagination and the per-page summary
- Idempotent reads
- Ownership isolation (404, never 403)
- Accounts, categories, export and dashboard endpoints
"""

import pytest
from decimal import Decimal
from datetime import timedelta

from finance.commands import create_transaction
from finance.models import Account, Category, Transaction


def _payload(account, category, **overrides):
    payload = {
        "cuentaId": account.pk,
        "tipo": "GASTO",
        "monto": "300.00",
        "descripcion": "Supermercado",
        "categoriaId": category.pk,
        "fecha": "2026-03-15",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def seeded(actor, funded_account, usd_account, expense_category, product_category, today):
    """Three transactions on the ARS account and one on the USD account."""
    rows = [
        (funded_account, expense_category, "GASTO", "100.00", "Luz", today - timedelta(days=10)),
        (funded_account, product_category, "INGRESO", "400.00", "Venta mostrador", today - timedelta(days=5)),
        (funded_account, expense_category, "GASTO", "50.00", "Gas", today),
        (usd_account, product_category, "INGRESO", "20.00", "Venta exterior", today - timedelta(days=1)),
    ]
    created = []
    for account, category, kind, amount, description, day in rows:
        result = create_transaction(
            actor,
            account_id=account.pk,
            kind=kind,
            amount=Decimal(amount),
            description=description,
            category_id=category.pk,
            date=day,
        )
        assert result.success, result.error
        created.append(result.data)
    return created


# =============================================================================
# Envelope & auth
# =============================================================================

@pytest.mark.django_db
class TestEnvelope:
    def test_requires_token(self, anon_client):
        response = anon_client.get("/api/transacciones/")

        assert response.status_code == 401
        body = response.json()
        assert body["exito"] is False
        assert body["codigo"] == "NO_AUTENTICADO"

    def test_invalid_token(self, anon_client):
        anon_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")

        response = anon_client.get("/api/cuentas/")

        assert response.status_code == 401
        assert response.json()["exito"] is False

    def test_method_not_allowed(self, api_client):
        response = api_client.patch("/api/transacciones/", {}, format="json")

        assert response.status_code == 405
        body = response.json()
        assert body["exito"] is False
        assert body["codigo"] == "METODO_NO_PERMITIDO"
        assert set(body) == {"exito", "error", "codigo"}

    def test_trailing_slash_is_optional(self, api_client):
        assert api_client.get("/api/transacciones").status_code == 200
        assert api_client.get("/api/transacciones/").status_code == 200

    def test_validation_error_shape(self, api_client, funded_account, expense_category):
        response = api_client.post(
            "/api/transacciones/",
            _payload(funded_account, expense_category, monto="0"),
            format="json",
        )

        assert response.status_code == 400
        body = response.json()
        assert body["exito"] is False
        assert body["codigo"] == "VALIDACION"
        assert body["error"] == "Datos inválidos"
        assert body["detalles"]["monto"] == ["El monto debe ser mayor a 0"]

    def test_missing_fields(self, api_client):
        response = api_client.post("/api/transacciones/", {}, format="json")

        assert response.status_code == 400
        assert {"cuentaId", "tipo", "monto", "descripcion", "categoriaId", "fecha"} <= set(response.json()["detalles"])


# =============================================================================
# Transactions
# =============================================================================

@pytest.mark.django_db
class TestTransactionEndpoints:
    def test_create(self, api_client, funded_account, expense_category):
        response = api_client.post("/api/transacciones/", _payload(funded_account, expense_category), format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["exito"] is True
        assert body["mensaje"] == "Transacción creada exitosamente"
        datos = body["datos"]
        assert datos["tipo"] == "GASTO"
        assert datos["monto"] == 300
        assert datos["fecha"] == "2026-03-15"
        assert datos["cuenta"] == {
            "id": funded_account.pk,
            "nombre": "Caja",
            "tipo": "EFECTIVO",
            "moneda": "ARS",
            "color": "#1890ff",
        }
        assert datos["categoria"]["id"] == expense_category.pk
        assert datos["articulo"] is None

        funded_account.refresh_from_db()
        assert funded_account.balance == Decimal("700.00")

    def test_create_accepts_iso_datetime(self, api_client, funded_account, expense_category):
        response = api_client.post(
            "/api/transacciones/",
            _payload(funded_account, expense_category, fecha="2026-03-15T13:45:00.000Z"),
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["datos"]["fecha"] == "2026-03-15"

    def test_create_with_product_reports_stock(self, api_client, account, product_category, product):
        response = api_client.post(
            "/api/transacciones/",
            _payload(account, product_category, tipo="INGRESO", monto="150.00", articuloId=product.pk),
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["datos"]["articulo"]["stock"] == 4

    def test_insufficient_balance(self, api_client, account, expense_category):
        response = api_client.post("/api/transacciones/", _payload(account, expense_category), format="json")

        assert response.status_code == 400
        assert response.json() == {
            "exito": False,
            "error": "Saldo insuficiente en la cuenta",
            "codigo": "SALDO_INSUFICIENTE",
        }
        assert Transaction.objects.count() == 0

    def test_insufficient_stock(self, api_client, account, product_category, product, set_stock):
        set_stock(product, 0)

        response = api_client.post(
            "/api/transacciones/",
            _payload(account, product_category, tipo="INGRESO", articuloId=product.pk),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["codigo"] == "STOCK_INSUFICIENTE"

    def test_inactive_account_is_404(self, api_client, funded_account, expense_category):
        Account.objects.filter(pk=funded_account.pk).update(is_active=False)

        response = api_client.post("/api/transacciones/", _payload(funded_account, expense_category), format="json")

        assert response.status_code == 404
        assert response.json()["codigo"] == "REFERENCIA_INACTIVA"

    def test_retrieve(self, api_client, seeded):
        txn = seeded[0]

        response = api_client.get(f"/api/transacciones/{txn.pk}/")

        assert response.status_code == 200
        assert response.json()["datos"]["id"] == txn.pk
        assert response.json()["datos"]["descripcion"] == "Luz"

    def test_retrieve_unknown_and_malformed_ids(self, api_client):
        for path in ("/api/transacciones/999999/", "/api/transacciones/abc/"):
            response = api_client.get(path)
            assert response.status_code == 404
            assert response.json()["error"] == "Transacción no encontrada"

    def test_partial_update(self, api_client, seeded, funded_account):
        txn = seeded[0]  # GASTO 100

        response = api_client.put(f"/api/transacciones/{txn.pk}/", {"monto": "40.00"}, format="json")

        assert response.status_code == 200
        body = response.json()
        assert body["mensaje"] == "Transacción actualizada exitosamente"
        assert body["datos"]["monto"] == 40
        assert body["datos"]["descripcion"] == "Luz"
        funded_account.refresh_from_db()
        assert funded_account.balance == Decimal("1310.00")

    def test_delete(self, api_client, seeded, funded_account):
        txn = seeded[1]  # INGRESO 400

        response = api_client.delete(f"/api/transacciones/{txn.pk}/")

        assert response.status_code == 200
        assert response.json() == {
            "exito": True,
            "datos": None,
            "mensaje": "Transacción eliminada exitosamente",
        }
        funded_account.refresh_from_db()
        assert funded_account.balance == Decimal("850.00")

    def test_other_user_gets_404(self, other_client, seeded):
        txn = seeded[0]

        assert other_client.get(f"/api/transacciones/{txn.pk}/").status_code == 404
        assert other_client.put(f"/api/transacciones/{txn.pk}/", {"monto": "1.00"}, format="json").status_code == 404
        assert other_client.delete(f"/api/transacciones/{txn.pk}/").status_code == 404
        assert Transaction.objects.filter(pk=txn.pk).exists()

    def test_other_user_list_is_empty(self, other_client, seeded):
        body = other_client.get("/api/transacciones/").json()

        assert body["datos"] == []
        assert body["paginacion"]["total"] == 0


# =============================================================================
# Listing
# =============================================================================

@pytest.mark.django_db
class TestTransactionListing:
    def test_newest_first_with_summary(self, api_client, seeded):
        body = api_client.get("/api/transacciones/").json()

        assert [row["descripcion"] for row in body["datos"]] == [
            "Gas", "Venta exterior", "Venta mostrador", "Luz",
        ]
        assert body["resumen"] == {
            "totalIngresos": 420,
            "totalGastos": 150,
            "cantidadTransacciones": 4,
        }

    def test_pagination_metadata(self, api_client, seeded):
        body = api_client.get("/api/transacciones/", {"pagina": 2, "limite": 3}).json()

        assert len(body["datos"]) == 1
        assert body["paginacion"] == {
            "pagina": 2,
            "limite": 3,
            "total": 4,
            "totalPaginas": 2,
            "tieneAnterior": True,
            "tieneSiguiente": False,
        }
        assert body["resumen"]["cantidadTransacciones"] == 1

    def test_page_beyond_the_end(self, api_client, seeded):
        body = api_client.get("/api/transacciones/", {"pagina": 9}).json()

        assert body["datos"] == []
        assert body["paginacion"]["tieneSiguiente"] is False

    @pytest.mark.parametrize("params", [{"pagina": 0}, {"limite": 0}, {"limite": 101}, {"pagina": "x"}])
    def test_invalid_pagination(self, api_client, params):
        response = api_client.get("/api/transacciones/", params)

        assert response.status_code == 400
        assert response.json()["codigo"] == "VALIDACION"

    @pytest.mark.parametrize(
        "path, param",
        [
            ("/api/transacciones/", "cuentaId"),
            ("/api/transacciones/", "categoriaId"),
            ("/api/transacciones/", "articuloId"),
            ("/api/transacciones/export/", "cuentaId"),
            ("/api/articulos/", "categoriaId"),
        ],
    )
    def test_id_filter_beyond_64_bits(self, api_client, path, param):
        response = api_client.get(path, {param: "99999999999999999999999999"})

        assert response.status_code == 400
        body = response.json()
        assert body["codigo"] == "VALIDACION"
        assert param in body["detalles"]

    def test_filter_by_kind_and_account(self, api_client, seeded, funded_account):
        body = api_client.get("/api/transacciones/", {"tipo": "GASTO", "cuentaId": funded_account.pk}).json()

        assert {row["descripcion"] for row in body["datos"]} == {"Luz", "Gas"}

    def test_filter_by_currency(self, api_client, seeded):
        body = api_client.get("/api/transacciones/", {"moneda": "USD"}).json()

        assert [row["descripcion"] for row in body["datos"]] == ["Venta exterior"]

    def test_filter_by_date_and_amount_range(self, api_client, seeded, today):
        body = api_client.get(
            "/api/transacciones/",
            {
                "fechaDesde": (today - timedelta(days=6)).isoformat(),
                "fechaHasta": today.isoformat(),
                "montoMinimo": "30",
                "montoMaximo": "400",
            },
        ).json()

        assert {row["descripcion"] for row in body["datos"]} == {"Venta mostrador", "Gas"}

    def test_search(self, api_client, seeded):
        body = api_client.get("/api/transacciones/", {"busqueda": "venta"}).json()

        assert body["paginacion"]["total"] == 2

    def test_inverted_ranges_rejected(self, api_client):
        response = api_client.get("/api/transacciones/", {"montoMinimo": "10", "montoMaximo": "5"})

        assert response.status_code == 400
        assert "montoMaximo" in response.json()["detalles"]

    def test_identical_reads_are_identical(self, api_client, seeded):
        params = {"pagina": 1, "limite": 2, "tipo": "INGRESO"}

        first = api_client.get("/api/transacciones/", params).json()
        second = api_client.get("/api/transacciones/", params).json()

        assert first == second


# =============================================================================
# Accounts & categories
# =============================================================================

@pytest.mark.django_db
class TestAccountEndpoints:
    def test_create_with_initial_balance(self, api_client):
        response = api_client.post(
            "/api/cuentas/",
            {"nombre": "Banco Galicia", "tipo": "BANCO", "moneda": "ARS", "saldoInicial": "1000"},
            format="json",
        )

        assert response.status_code == 201
        datos = response.json()["datos"]
        assert datos["saldo"] == 1000
        assert datos["cantidadTransacciones"] == 1
        assert response.json()["mensaje"] == "Cuenta creada exitosamente"

    def test_duplicate_name_conflict(self, api_client, account):
        response = api_client.post(
            "/api/cuentas/",
            {"nombre": "Caja", "tipo": "EFECTIVO", "moneda": "ARS"},
            format="json",
        )

        assert response.status_code == 409
        assert response.json()["codigo"] == "CONFLICTO"

    def test_negative_initial_balance(self, api_client):
        response = api_client.post(
            "/api/cuentas/",
            {"nombre": "Mala", "tipo": "OTRO", "moneda": "USD", "saldoInicial": "-1"},
            format="json",
        )

        assert response.status_code == 400

    def test_update_never_touches_balance(self, api_client, funded_account):
        response = api_client.put(
            f"/api/cuentas/{funded_account.pk}/",
            {"nombre": "Caja fuerte", "saldo": "1"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["datos"]["nombre"] == "Caja fuerte"
        assert response.json()["datos"]["saldo"] == 1000

    def test_delete_with_transactions_is_business_rule(self, api_client, seeded, funded_account):
        response = api_client.delete(f"/api/cuentas/{funded_account.pk}/")

        assert response.status_code == 400
        assert response.json()["codigo"] == "REGLA_NEGOCIO"

    def test_list_filters(self, api_client, account, usd_account):
        body = api_client.get("/api/cuentas/", {"moneda": "USD"}).json()

        assert [row["nombre"] for row in body["datos"]] == ["Banco USD"]
        assert body["paginacion"]["total"] == 1

    def test_other_users_account(self, other_client, account):
        assert other_client.get(f"/api/cuentas/{account.pk}/").status_code == 404


@pytest.mark.django_db
class TestCategoryEndpoints:
    def test_list_is_grouped(self, api_client, product_category, service_category, expense_category):
        body = api_client.get("/api/categorias/").json()

        assert len(body["datos"]) == 3
        assert [row["nombre"] for row in body["agrupadas"]["PRODUCTO"]] == ["Electrónicos"]
        assert [row["nombre"] for row in body["agrupadas"]["GASTO"]] == ["Servicios públicos"]

    def test_create_defaults(self, api_client):
        response = api_client.post("/api/categorias/", {"nombre": "Librería", "tipo": "PRODUCTO"}, format="json")

        assert response.status_code == 201
        datos = response.json()["datos"]
        assert datos["color"] == "#1890ff"
        assert datos["icono"] == ""

    def test_duplicate_within_kind(self, api_client, product_category):
        response = api_client.post("/api/categorias/", {"nombre": "Electrónicos", "tipo": "PRODUCTO"}, format="json")

        assert response.status_code == 409

    def test_same_name_in_another_kind(self, api_client, product_category):
        response = api_client.post("/api/categorias/", {"nombre": "Electrónicos", "tipo": "SERVICIO"}, format="json")

        assert response.status_code == 201
        assert Category.objects.filter(name="Electrónicos").count() == 2

    def test_invalid_color(self, api_client):
        response = api_client.post(
            "/api/categorias/",
            {"nombre": "Varios", "tipo": "GASTO", "color": "rojo"},
            format="json",
        )

        assert response.status_code == 400
        assert "color" in response.json()["detalles"]


# =============================================================================
# Export & dashboard
# =============================================================================

@pytest.mark.django_db
class TestExportAndSummary:
    def test_csv_export(self, api_client, seeded):
        response = api_client.get("/api/transacciones/export/", {"formato": "csv", "moneda": "ARS"})

        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/csv")
        assert "attachment;" in response["Content-Disposition"]
        text = response.content.decode("utf-8-sig")
        lines = text.strip().splitlines()
        assert lines[0].startswith("Fecha,Tipo,Descripción")
        assert len(lines) == 4

    def test_xlsx_export(self, api_client, seeded):
        response = api_client.get("/api/transacciones/export/")

        assert response.status_code == 200
        assert response["Content-Disposition"].endswith('.xlsx"')
        assert response.content[:2] == b"PK"

    def test_summary(self, api_client, seeded, product, set_stock):
        set_stock(product, 1)

        body = api_client.get("/api/resumen/").json()
        datos = body["datos"]

        assert datos["saldosPorMoneda"] == {"ARS": 1250, "USD": 20}
        assert datos["cuentasActivas"] == 2
        assert datos["articulosStockBajo"] == 1
        assert len(datos["ultimasTransacciones"]) == 4
        assert datos["ultimasTransacciones"][0]["descripcion"] == "Gas"
