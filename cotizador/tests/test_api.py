"""
Tests: HTTP API — routes, status codes and response shapes.
Services are swapped through ``app.dependency_overrides``.

Run with:
    pytest cotizador/tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from cotizador.api import create_app
from cotizador.api.dependencies import (
    get_currency_service,
    get_history_repository,
    get_product_repository,
    get_profile_repository,
)
from cotizador.exceptions import CurrencyFetchError
from cotizador.persistence.history_repository import QuoteHistoryRepository
from cotizador.persistence.product_repository import ProductRepository
from cotizador.persistence.profile_repository import CostProfileRepository
from cotizador.services.currency_service import CACHE_KEY, CurrencyService

CALC_BODY = {
    "anoCotizacion": 2023,
    "anoEnCurso": 2025,
    "costoFabricaOriginalEUR": 10000,
    "tipoCambioEurUsdActual": 1.08,
}


class StaticClient:
    def fetch(self):
        return {"Valor_Dolar": "950,00", "Valor_Euro": "1.030,10", "Fecha": "2025-03-01"}


class FailingClient:
    def fetch(self):
        raise CurrencyFetchError("webhook down")


@pytest.fixture
def currency():
    return CurrencyService(client=StaticClient())


@pytest.fixture
def client(currency):
    app = create_app()
    profiles = CostProfileRepository()
    history = QuoteHistoryRepository()
    products = ProductRepository()
    app.dependency_overrides[get_currency_service] = lambda: currency
    app.dependency_overrides[get_profile_repository] = lambda: profiles
    app.dependency_overrides[get_history_repository] = lambda: history
    app.dependency_overrides[get_product_repository] = lambda: products
    return TestClient(app)


@pytest.fixture
def failing_client():
    app = create_app()
    app.dependency_overrides[get_currency_service] = lambda: CurrencyService(client=FailingClient())
    app.dependency_overrides[get_profile_repository] = lambda: CostProfileRepository()
    return TestClient(app)


def _create_profile(client, **fields):
    body = {"nombre_perfil": "Estándar", "margen_adicional_pct": 0.2, **fields}
    response = client.post("/api/costo-perfiles", json=body)
    assert response.status_code == 201
    return response.json()


class TestHealthAndCurrency:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_currency_values(self, client):
        body = client.get("/api/currency/values").json()
        assert body["success"] is True
        assert body["data"]["Valor_Dolar"] == "950,00"
        assert body["last_update"]

    def test_currency_unavailable(self, failing_client):
        assert failing_client.get("/api/currency/values").status_code == 502

    def test_exchange_rates(self, client):
        dollar = client.get("/api/currency/dollar").json()["data"]
        euro = client.get("/api/currency/euro").json()["data"]
        assert dollar["value"] == 950.0
        assert euro["value"] == pytest.approx(1030.10)
        assert dollar["fecha"] == "2025-03-01"

    def test_exchange_rate_unavailable(self, failing_client):
        assert failing_client.get("/api/currency/dollar").status_code == 502
        assert failing_client.get("/api/currency/euro").status_code == 502

    def test_cache_reset(self, client, currency):
        client.get("/api/currency/values")
        assert currency.cache.get(CACHE_KEY) is not None
        response = client.post("/api/currency/cache/reset")
        assert response.status_code == 200
        assert currency.cache.get(CACHE_KEY) is None


class TestProfileCrud:
    def test_create_list_get(self, client):
        created = _create_profile(client)
        assert created["_id"]
        assert "id" not in created
        assert created["iva_pct"] == 0.19

        listed = client.get("/api/costo-perfiles").json()
        assert [p["nombre_perfil"] for p in listed] == ["Estándar"]

        fetched = client.get(f"/api/costo-perfiles/{created['_id']}").json()
        assert fetched["margen_adicional_pct"] == 0.2

    def test_duplicate_name(self, client):
        _create_profile(client)
        response = client.post("/api/costo-perfiles", json={"nombre_perfil": "Estándar"})
        assert response.status_code == 400

    def test_invalid_body(self, client):
        response = client.post("/api/costo-perfiles", json={"nombre_perfil": "  "})
        assert response.status_code == 400
        assert response.json()["message"].startswith("Datos inválidos")

    def test_update_and_delete(self, client):
        created = _create_profile(client)
        url = f"/api/costo-perfiles/{created['_id']}"

        updated = client.put(url, json={"flete_maritimo_usd": 1500})
        assert updated.status_code == 200
        assert updated.json()["flete_maritimo_usd"] == 1500

        assert client.delete(url).json() == {"message": "Perfil eliminado correctamente"}
        assert client.get(url).status_code == 404
        assert client.put(url, json={"descripcion": "x"}).status_code == 404
        assert client.delete(url).status_code == 404


class TestCalculations:
    def test_trial_calculation(self, client):
        response = client.post(
            "/api/costo-perfiles/calcular-prueba",
            json={**CALC_BODY, "bufferEurUsd": 0.02, "descuentoFabrica": 0.1},
        )
        assert response.status_code == 200
        resultado = response.json()["resultado"]
        assert resultado["inputs"]["tipoCambioUsdClpActual"] == 950
        costo = resultado["calculados"]["costo_producto"]
        assert costo["costoFinalFabricaUSD_EXW"] == pytest.approx(10930.626)

    def test_trial_bad_parameters(self, client):
        response = client.post(
            "/api/costo-perfiles/calcular-prueba",
            json={**CALC_BODY, "costoFabricaOriginalEUR": 0, "bufferEurUsd": 0, "descuentoFabrica": 0},
        )
        assert response.status_code == 400

    def test_trial_infinite_cost(self, client):
        raw = (
            '{"anoCotizacion": 2023, "anoEnCurso": 2025, "costoFabricaOriginalEUR": 1e400,'
            ' "tipoCambioEurUsdActual": 1.08, "bufferEurUsd": 0, "descuentoFabrica": 0}'
        )
        response = client.post(
            "/api/costo-perfiles/calcular-prueba",
            content=raw,
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_trial_year_span_too_large(self, client):
        response = client.post(
            "/api/costo-perfiles/calcular-prueba",
            json={**CALC_BODY, "anoEnCurso": 20000, "bufferEurUsd": 0, "descuentoFabrica": 0},
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Error en el cálculo de prueba")

    def test_trial_currency_down(self, failing_client):
        response = failing_client.post(
            "/api/costo-perfiles/calcular-prueba",
            json={**CALC_BODY, "bufferEurUsd": 0, "descuentoFabrica": 0},
        )
        assert response.status_code == 502

    def test_profile_calculation(self, client):
        profile = _create_profile(client, transporte_nacional_clp=50000)
        response = client.post(
            "/api/costo-perfiles/calcular-producto", json={**CALC_BODY, "profileId": profile["_id"]}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["perfilUsado"] == {"_id": profile["_id"], "nombre": "Estándar"}
        landed = body["resultado"]["calculados"]["landed_cost"]
        assert landed["transporteNacionalUSD"] == pytest.approx(50000 / 950)
        assert body["resultado"]["inputs"]["margenAdicionalPct_fromProfile"] == 0.2

    def test_profile_calculation_unknown_profile(self, client):
        response = client.post(
            "/api/costo-perfiles/calcular-producto",
            json={**CALC_BODY, "profileId": "000000000000000000000000"},
        )
        assert response.status_code == 404

    def test_profile_calculation_missing_id(self, client):
        response = client.post("/api/costo-perfiles/calcular-producto", json=CALC_BODY)
        assert response.status_code == 400


class TestHistory:
    def _save(self, client, cliente="ACME"):
        body = {
            "itemsParaCotizar": [{"codigo": "EQ-1"}, {"codigo": "EQ-2"}],
            "resultadosCalculados": {"EQ-1": {"total": 1}},
            "cotizacionDetails": {"clienteNombre": cliente},
            "nombreReferencia": "Bomba",
            "nombrePerfil": "Estándar",
        }
        response = client.post("/api/calculo-historial/guardar", json=body)
        assert response.status_code == 201
        return response.json()["data"]

    def test_save_get_delete(self, client):
        saved = self._save(client)
        assert saved["numeroConfiguracion"] == 1
        url = f"/api/calculo-historial/{saved['_id']}"

        fetched = client.get(url).json()
        assert len(fetched["itemsParaCotizar"]) == 2

        assert client.delete(url).status_code == 200
        assert client.get(url).status_code == 404
        assert client.delete(url).status_code == 404

    def test_save_requires_items(self, client):
        response = client.post(
            "/api/calculo-historial/guardar",
            json={"itemsParaCotizar": [], "resultadosCalculados": {}},
        )
        assert response.status_code == 400

    def test_list_with_search(self, client):
        self._save(client, "Minera Norte")
        self._save(client, "Agrícola Sur")
        body = client.get(
            "/api/calculo-historial",
            params={"search": "norte", "sortBy": "numeroConfiguracion", "sortOrder": "asc"},
        ).json()
        assert body["total"] == 1
        assert body["limit"] == 10
        assert body["search"] == {"term": "norte", "sortBy": "numeroConfiguracion", "sortOrder": "asc"}
        assert len(body["data"][0]["itemsParaCotizar"]) == 1


def _product_body(code, modelo="CH150", producto="Chipeadora Motor", **fields):
    body = {
        "Codigo_Producto": code,
        "peso_kg": 850,
        "caracteristicas": {"nombre_del_producto": f"Equipo {code}", "modelo": modelo},
        "dimensiones": {"largo_mm": 3200, "ancho_mm": 1500, "alto_mm": 2100},
        "producto": producto,
    }
    body.update(fields)
    return body


class TestProducts:
    def _create(self, client, code="CH-150", **fields):
        response = client.post("/api/products", json=_product_body(code, **fields))
        assert response.status_code == 201
        return response.json()["data"]

    def test_create_list_get(self, client):
        created = self._create(client)
        assert created["_id"]
        assert created["Codigo_Producto"] == "CH-150"

        listed = client.get("/api/products").json()
        assert [p["codigo_producto"] for p in listed] == ["CH-150"]
        assert listed[0]["Modelo"] == "CH150"
        assert listed[0]["categoria"] == "-"

        body = client.get("/api/products/CH-150").json()
        assert body["success"] is True
        assert body["data"]["nombre_del_producto"] == "Equipo CH-150"

    def test_get_missing(self, client):
        assert client.get("/api/products/NOPE").status_code == 404

    def test_duplicate_code(self, client):
        self._create(client)
        response = client.post("/api/products", json=_product_body("CH-150"))
        assert response.status_code == 409

    def test_invalid_body(self, client):
        body = _product_body("CH-150")
        del body["caracteristicas"]["modelo"]
        assert client.post("/api/products", json=body).status_code == 400

    def test_update_by_code(self, client):
        self._create(client)
        response = client.put(
            "/api/products/code/CH-150",
            json={"peso_kg": 900, "Codigo_Producto": "OTRO", "caracteristicas.modelo": "CH150X"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["peso_kg"] == 900
        assert data["Codigo_Producto"] == "CH-150"
        assert data["Modelo"] == "CH150X"

    def test_update_empty_body(self, client):
        self._create(client)
        assert client.put("/api/products/code/CH-150", json={}).status_code == 400

    def test_update_missing(self, client):
        assert client.put("/api/products/code/NOPE", json={"peso_kg": 1}).status_code == 404

    def test_toggle_discontinued(self, client):
        self._create(client)
        url = "/api/products/code/CH-150/toggle-discontinued"
        first = client.put(url).json()
        assert first["data"]["descontinuado"] is True
        assert "descontinuado" in first["message"]
        assert client.put(url).json()["data"]["descontinuado"] is False
        assert client.put("/api/products/code/NOPE/toggle-discontinued").status_code == 404

    def test_optionals(self, client):
        self._create(client, "MAIN", modelo="CH150 Turbo")
        self._create(client, "OPT-1", producto="Kit Motor", tipo="opcional")
        self._create(client, "OPT-2", producto="Kit PTO", tipo="opcional")
        body = client.get("/api/products/opcionales", params={"codigo": "MAIN"}).json()
        assert body["success"] is True
        assert body["data"]["total"] == 1
        assert body["data"]["products"][0]["codigo_producto"] == "OPT-1"
        assert "timestamp" in body

    def test_optionals_errors(self, client):
        assert client.get("/api/products/opcionales").status_code == 400
        assert client.get("/api/products/opcionales", params={"codigo": "NOPE"}).status_code == 404
        self._create(client, "BARE", producto=None)
        assert client.get("/api/products/opcionales", params={"codigo": "BARE"}).status_code == 400
