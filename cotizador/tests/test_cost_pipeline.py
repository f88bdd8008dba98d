"""
Tests: Cost pipeline — stage values, guards and pricing properties.

Run with:
    pytest cotizador/tests/test_cost_pipeline.py -v
"""

import math

import pytest

from cotizador.models.enums import PricingErrorCode
from cotizador.models.schemas import CostProfile, PricingRequest
from cotizador.pricing.cost_pipeline import (
    ERROR_INVALID_INPUT,
    ERROR_INVALID_PROFILE_VALUE,
    compute_product_cost,
)


def _request(**overrides) -> PricingRequest:
    values = {
        "ano_cotizacion": 2023,
        "ano_en_curso": 2025,
        "costo_fabrica_original_eur": 10000,
        "tipo_cambio_eur_usd_actual": 1.08,
        "tipo_cambio_usd_clp_actual": 950,
    }
    values.update(overrides)
    return PricingRequest(**values)


def _profile(**overrides) -> dict:
    profile = {
        "descuento_fabrica_pct": 0.10,
        "buffer_eur_usd_pct": 0.02,
        "buffer_usd_clp_pct": 0,
        "tasa_seguro_pct": 0.005,
        "margen_adicional_pct": 0.20,
        "descuento_cliente_pct": 0,
        "costo_logistica_origen_eur": 200,
        "flete_maritimo_usd": 1500,
        "recargos_destino_usd": 300,
        "costo_agente_aduana_usd": 150,
        "gastos_portuarios_otros_usd": 100,
        "transporte_nacional_clp": 50000,
    }
    profile.update(overrides)
    return profile


def _approx(value):
    return pytest.approx(value, rel=1e-7)


class TestWorkedQuote:
    """2023 quote at 10,000 EUR, evaluated in 2025."""

    def setup_method(self):
        self.result = compute_product_cost(_request(), _profile())
        assert self.result.ok
        self.c = self.result.calculados

    def test_costo_producto(self):
        s = self.c.costo_producto
        assert s.factor_actualizacion == _approx(1.1025)
        assert s.costo_fabrica_actualizado_eur == _approx(11025)
        assert s.costo_fabrica_descontado_eur_exw == _approx(9922.5)
        assert s.tipo_cambio_eur_usd_aplicado == _approx(1.1016)
        assert s.costo_final_fabrica_usd_exw == _approx(10930.626)

    def test_logistica_seguro(self):
        s = self.c.logistica_seguro
        assert s.costos_origen_usd == _approx(220.32)
        assert s.costo_total_flete_manejos_usd == _approx(1800)
        assert s.base_para_seguro_usd == _approx(12730.626)
        assert s.prima_seguro_usd == _approx(70.018443)
        assert s.total_transporte_seguro_exw_usd == _approx(1870.018443)

    def test_importacion(self):
        s = self.c.importacion
        assert s.valor_cif_usd == _approx(12800.644443)
        assert s.derecho_advalorem_usd == _approx(768.03866658)
        assert s.base_iva_importacion_usd == _approx(13568.68310958)
        assert s.iva_importacion_usd == _approx(2578.04979082)
        # Import VAT stays out of the duty/fees total
        assert s.total_costos_importacion_duty_fees_usd == _approx(1018.03866658)

    def test_landed_cost(self):
        s = self.c.landed_cost
        assert s.transporte_nacional_usd == _approx(50000 / 950)
        assert s.precio_neto_compra_base_usd_landed_cost == _approx(13871.31468852737)

    def test_conversion_margen(self):
        s = self.c.conversion_margen
        assert s.tipo_cambio_usd_clp_aplicado == _approx(950)
        assert s.precio_neto_compra_base_clp == _approx(13177748.9541014)
        assert s.margen_clp == _approx(2635549.79082028)
        assert s.precio_venta_neto_clp == _approx(15813298.7449217)

    def test_precios_cliente(self):
        s = self.c.precios_cliente
        assert s.precio_neto_venta_final_clp == _approx(15813298.7449217)
        assert s.iva_venta_clp == _approx(3004526.76153512)
        assert s.precio_venta_total_cliente_clp == _approx(18817825.5064568)

    def test_inputs_echo_profile_values(self):
        inputs = self.result.to_response()["inputs"]
        assert inputs["anoCotizacion"] == 2023
        assert inputs["tipoCambioUsdClpActual"] == 950
        assert inputs["bufferEurUsd_fromProfile"] == 0.02
        assert inputs["descuentoFabrica_fromProfile"] == 0.10
        assert inputs["costoOrigenEUR_fromProfile"] == 200
        assert inputs["transporteNacionalCLP_fromProfile"] == 50000
        assert inputs["margenAdicionalPct_fromProfile"] == 0.20

    def test_wire_shape(self):
        body = self.result.to_response()
        assert set(body) == {"inputs", "calculados"}
        assert set(body["calculados"]) == {
            "costo_producto",
            "logistica_seguro",
            "importacion",
            "landed_cost",
            "conversion_margen",
            "precios_cliente",
        }
        assert set(body["calculados"]["costo_producto"]) == {
            "factorActualizacion",
            "costoFabricaActualizadoEUR",
            "costoFabricaDescontadoEUR_EXW",
            "tipoCambioEurUsdAplicado",
            "costoFinalFabricaUSD_EXW",
        }
        assert set(body["calculados"]["landed_cost"]) == {
            "transporteNacionalUSD",
            "precioNetoCompraBaseUSD_LandedCost",
        }
        assert "error_code" not in body


class TestGuards:
    @pytest.mark.parametrize("field", [
        "costo_fabrica_original_eur",
        "tipo_cambio_eur_usd_actual",
        "tipo_cambio_usd_clp_actual",
    ])
    @pytest.mark.parametrize("value", [0, -1, float("nan")])
    def test_non_positive_inputs(self, field, value):
        result = compute_product_cost(_request(**{field: value}), _profile())
        assert result.error == ERROR_INVALID_INPUT
        assert result.error_code is PricingErrorCode.INVALID_INPUT
        assert result.inputs is None
        assert result.calculados is None
        assert result.to_response() == {"error": ERROR_INVALID_INPUT}

    def test_missing_profile(self):
        result = compute_product_cost(_request(), None)
        assert result.error == ERROR_INVALID_INPUT

    def test_empty_profile_is_not_missing(self):
        result = compute_product_cost(_request(), {})
        assert result.ok

    def test_request_as_wire_mapping(self):
        body = {
            "anoCotizacion": 2023,
            "anoEnCurso": 2025,
            "costoFabricaOriginalEUR": 10000,
            "tipoCambioEurUsdActual": 1.08,
            "tipoCambioUsdClpActual": 950,
        }
        from_mapping = compute_product_cost(body, _profile())
        from_model = compute_product_cost(_request(), _profile())
        assert from_mapping == from_model

    def test_malformed_request_mapping(self):
        result = compute_product_cost({"anoCotizacion": "x"}, _profile())
        assert result.error_code is PricingErrorCode.INVALID_INPUT

    @pytest.mark.parametrize("bad", ["0.1", True, float("inf"), float("nan"), [0.1]])
    def test_non_numeric_profile_value(self, bad):
        result = compute_product_cost(_request(), _profile(margen_adicional_pct=bad))
        assert result.error == ERROR_INVALID_PROFILE_VALUE
        assert result.error_code is PricingErrorCode.INVALID_PROFILE_VALUE
        assert result.calculados is None

    def test_absent_and_null_fields_default_to_zero(self):
        result = compute_product_cost(_request(), {"margen_adicional_pct": None})
        assert result.ok
        assert result.inputs.margen_adicional_pct == 0
        assert result.inputs.flete_maritimo_usd == 0

    def test_accepts_cost_profile_model(self):
        profile = CostProfile(nombre_perfil="Estándar", **_profile())
        from_model = compute_product_cost(_request(), profile)
        from_dict = compute_product_cost(_request(), _profile())
        assert from_model.to_response() == from_dict.to_response()

    def test_profile_tax_fields_are_ignored(self):
        custom = compute_product_cost(_request(), _profile(derecho_advalorem_pct=0.5, iva_pct=0.5))
        default = compute_product_cost(_request(), _profile())
        assert custom.calculados == default.calculados
        assert custom.unused_profile_tax_rates == {"derecho_advalorem_pct": 0.5, "iva_pct": 0.5}

    @pytest.mark.parametrize("field", [
        "costo_fabrica_original_eur",
        "tipo_cambio_eur_usd_actual",
        "tipo_cambio_usd_clp_actual",
    ])
    def test_infinite_inputs(self, field):
        result = compute_product_cost(_request(**{field: float("inf")}), _profile())
        assert result.error_code is PricingErrorCode.INVALID_INPUT
        assert result.to_response() == {"error": ERROR_INVALID_INPUT}

    def test_year_span_overflow_is_a_result_error(self):
        result = compute_product_cost(_request(ano_cotizacion=2023, ano_en_curso=20000), {})
        assert result.error_code is PricingErrorCode.INVALID_INPUT
        assert result.calculados is None

    def test_year_span_underflow_still_computes(self):
        result = compute_product_cost(_request(ano_cotizacion=20000, ano_en_curso=2023), {})
        assert result.ok
        assert result.calculados.costo_producto.factor_actualizacion == 0.0

    def test_stage_overflow_is_a_result_error(self):
        result = compute_product_cost(
            _request(costo_fabrica_original_eur=1e308, tipo_cambio_usd_clp_actual=1e10), {}
        )
        assert result.error_code is PricingErrorCode.INVALID_INPUT
        assert result.calculados is None


class TestProperties:
    def test_deterministic(self):
        first = compute_product_cost(_request(), _profile())
        second = compute_product_cost(_request(), _profile())
        assert first.to_response() == second.to_response()

    def test_margin_is_monotonic(self):
        totals = [
            compute_product_cost(_request(), _profile(margen_adicional_pct=m))
            .calculados.precios_cliente.precio_venta_total_cliente_clp
            for m in (0.0, 0.1, 0.2, 0.35)
        ]
        assert totals == sorted(totals)
        assert len(set(totals)) == len(totals)

    def test_identity_buffers(self):
        zero = {k: 0 for k in _profile()}
        result = compute_product_cost(_request(), zero)
        c = result.calculados
        assert c.costo_producto.tipo_cambio_eur_usd_aplicado == 1.08
        assert c.conversion_margen.tipo_cambio_usd_clp_aplicado == 950
        assert c.landed_cost.transporte_nacional_usd == 0

    @pytest.mark.parametrize("profile", [
        {},
        {"descuento_cliente_pct": 0.15, "margen_adicional_pct": 0.3},
        {"buffer_usd_clp_pct": 0.03, "transporte_nacional_clp": 120000},
    ])
    def test_sales_vat_is_fixed_rate(self, profile):
        p = compute_product_cost(_request(), profile).calculados.precios_cliente
        assert p.iva_venta_clp == p.precio_neto_venta_final_clp * 0.19
        assert p.precio_venta_total_cliente_clp == p.precio_neto_venta_final_clp + p.iva_venta_clp

    def test_year_factor_compounds_backwards(self):
        result = compute_product_cost(_request(ano_cotizacion=2026, ano_en_curso=2025), {})
        assert result.calculados.costo_producto.factor_actualizacion == pytest.approx(1 / 1.05)

    def test_no_rounding(self):
        result = compute_product_cost(_request(), _profile())
        transporte = result.calculados.landed_cost.transporte_nacional_usd
        assert transporte == 50000 / 950
        assert transporte != round(transporte, 2)

    def test_domestic_transport_guard_inert_for_valid_rates(self):
        result = compute_product_cost(
            _request(tipo_cambio_usd_clp_actual=800), _profile(transporte_nacional_clp=80000)
        )
        assert result.calculados.landed_cost.transporte_nacional_usd == 100

    def test_no_nan_leaks_into_results(self):
        body = compute_product_cost(_request(), _profile()).to_response()
        for stage in body["calculados"].values():
            assert all(math.isfinite(v) for v in stage.values())
