"""
Cost Pipeline — landed cost and client price for a single product.

Takes a factory cost in EUR, the quote/reference years, the market
EUR/USD and USD/CLP rates and a cost profile, and evaluates six chained
stages:

  1. costo_producto     factory cost updated, discounted, converted to USD (EXW)
  2. logistica_seguro   origin costs, freight and insurance premium (USD)
  3. importacion        CIF value, ad valorem duty, import VAT (USD)
  4. landed_cost        warehouse cost including domestic transport (USD)
  5. conversion_margen  conversion to CLP with buffer, plus margin
  6. precios_cliente    client discount and sales VAT (CLP)

Invalid inputs come back as a result with ``error`` set; nothing is
raised.  No rounding is applied anywhere.
"""

from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from cotizador.models.enums import PricingErrorCode
from cotizador.models.schemas import (
    CalculatedBreakdown,
    ConversionMargen,
    CostoProducto,
    Importacion,
    LandedCost,
    LogisticaSeguro,
    PreciosCliente,
    PricingInputs,
    PricingRequest,
    PricingResult,
)

logger = logging.getLogger(__name__)

INFLATION_RATE = 0.05
DERECHO_ADVALOREM_FIJO = 0.06
IVA_FIJO = 0.19
INSURANCE_LOAD_FACTOR = 1.1

ERROR_INVALID_INPUT = "Inputs inválidos o perfil de costo faltante para el cálculo."
ERROR_INVALID_PROFILE_VALUE = "Valores numéricos inválidos encontrados en el perfil de costo."

# Profile fields read by the pipeline, in evaluation order
PROFILE_FIELDS = (
    "buffer_eur_usd_pct",
    "descuento_fabrica_pct",
    "costo_logistica_origen_eur",
    "flete_maritimo_usd",
    "recargos_destino_usd",
    "tasa_seguro_pct",
    "costo_agente_aduana_usd",
    "gastos_portuarios_otros_usd",
    "transporte_nacional_clp",
    "buffer_usd_clp_pct",
    "margen_adicional_pct",
    "descuento_cliente_pct",
)

# Present on stored profiles but not applied (fixed legal rates are used)
UNUSED_TAX_FIELDS = {
    "derecho_advalorem_pct": DERECHO_ADVALOREM_FIJO,
    "iva_pct": IVA_FIJO,
}

ProfileLike = Union[BaseModel, Mapping[str, Any], None]


def _profile_get(profile: Any, field: str) -> Any:
    if isinstance(profile, Mapping):
        return profile.get(field)
    return getattr(profile, field, None)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _invalid_input(detail: dict[str, Any]) -> PricingResult:
    logger.error(f"Invalid pricing inputs or missing profile: {detail}")
    return PricingResult(error=ERROR_INVALID_INPUT, error_code=PricingErrorCode.INVALID_INPUT)


def _coerce_request(request: Union[PricingRequest, Mapping[str, Any]]) -> Optional[PricingRequest]:
    if isinstance(request, PricingRequest):
        return request
    try:
        return PricingRequest.model_validate(request)
    except ValidationError as e:
        logger.debug(f"Pricing request failed validation: {e}")
        return None


def extract_profile_values(profile: Any) -> dict[str, Any]:
    """Read the pipeline's profile fields, absent or null ones default to 0."""
    values: dict[str, Any] = {}
    for field in PROFILE_FIELDS:
        value = _profile_get(profile, field)
        values[field] = 0 if value is None else value
    return values


def _non_finite_values(calculados: CalculatedBreakdown) -> list[str]:
    return [
        f"{stage}.{field}"
        for stage, values in calculados.model_dump().items()
        for field, value in values.items()
        if not math.isfinite(value)
    ]


def _unused_tax_rates(profile: Any) -> dict[str, float]:
    rates: dict[str, float] = {}
    for field, fixed in UNUSED_TAX_FIELDS.items():
        value = _profile_get(profile, field)
        if _is_number(value):
            rates[field] = float(value)
            if value != fixed:
                logger.debug(
                    f"Profile {field}={value} ignored, fixed rate {fixed} applied"
                )
    return rates


def compute_product_cost(
    request: Union[PricingRequest, Mapping[str, Any]],
    profile: ProfileLike,
) -> PricingResult:
    """Run the six pricing stages for one product against one cost profile."""
    req = _coerce_request(request)
    if req is None or profile is None:
        return _invalid_input({"request_valid": req is not None, "profile_exists": profile is not None})

    costo_fabrica_original_eur = req.costo_fabrica_original_eur
    tipo_cambio_eur_usd_actual = req.tipo_cambio_eur_usd_actual
    tipo_cambio_usd_clp_actual = req.tipo_cambio_usd_clp_actual

    scalars = (costo_fabrica_original_eur, tipo_cambio_eur_usd_actual, tipo_cambio_usd_clp_actual)
    if not all(_is_number(v) and v > 0 for v in scalars):
        return _invalid_input({
            "costoFabricaOriginalEUR": costo_fabrica_original_eur,
            "tipoCambioEurUsdActual": tipo_cambio_eur_usd_actual,
            "tipoCambioUsdClpActual": tipo_cambio_usd_clp_actual,
        })

    values = extract_profile_values(profile)
    invalid = {k: v for k, v in values.items() if not _is_number(v)}
    if invalid:
        logger.error(f"Invalid cost profile values: {invalid}")
        return PricingResult(
            error=ERROR_INVALID_PROFILE_VALUE,
            error_code=PricingErrorCode.INVALID_PROFILE_VALUE,
        )

    p = {k: float(v) for k, v in values.items()}
    buffer_eur_usd = p["buffer_eur_usd_pct"]
    descuento_fabrica = p["descuento_fabrica_pct"]
    costo_origen_eur = p["costo_logistica_origen_eur"]
    flete_maritimo_usd = p["flete_maritimo_usd"]
    recargos_destino_usd = p["recargos_destino_usd"]
    tasa_seguro_pct = p["tasa_seguro_pct"]
    costo_agente_aduana_usd = p["costo_agente_aduana_usd"]
    gastos_portuarios_otros_usd = p["gastos_portuarios_otros_usd"]
    transporte_nacional_clp = p["transporte_nacional_clp"]
    buffer_usd_clp_pct = p["buffer_usd_clp_pct"]
    margen_adicional_pct = p["margen_adicional_pct"]
    descuento_cliente_pct = p["descuento_cliente_pct"]

    # ── 1. Costo de producto ─────────────────────────────
    try:
        factor_actualizacion = (1 + INFLATION_RATE) ** (req.ano_en_curso - req.ano_cotizacion)
    except OverflowError:
        return _invalid_input({"anoCotizacion": req.ano_cotizacion, "anoEnCurso": req.ano_en_curso})
    costo_fabrica_actualizado_eur = costo_fabrica_original_eur * factor_actualizacion
    costo_fabrica_descontado_eur_exw = costo_fabrica_actualizado_eur * (1 - descuento_fabrica)
    tipo_cambio_eur_usd_aplicado = tipo_cambio_eur_usd_actual * (1 + buffer_eur_usd)
    costo_final_fabrica_usd_exw = costo_fabrica_descontado_eur_exw * tipo_cambio_eur_usd_aplicado

    # ── 2. Logística y seguro ────────────────────────────
    costos_origen_usd = costo_origen_eur * tipo_cambio_eur_usd_aplicado
    costo_total_flete_manejos_usd = flete_maritimo_usd + recargos_destino_usd
    base_para_seguro_usd = costo_final_fabrica_usd_exw + costo_total_flete_manejos_usd
    prima_seguro_usd = base_para_seguro_usd * INSURANCE_LOAD_FACTOR * tasa_seguro_pct
    total_transporte_seguro_exw_usd = costo_total_flete_manejos_usd + prima_seguro_usd

    # ── 3. Importación ───────────────────────────────────
    valor_cif_usd = costo_final_fabrica_usd_exw + total_transporte_seguro_exw_usd
    derecho_advalorem_usd = valor_cif_usd * DERECHO_ADVALOREM_FIJO
    base_iva_importacion_usd = valor_cif_usd + derecho_advalorem_usd
    # Import VAT is creditable: reported, but kept out of the landed cost
    iva_importacion_usd = base_iva_importacion_usd * IVA_FIJO
    total_costos_importacion_duty_fees_usd = (
        derecho_advalorem_usd + costo_agente_aduana_usd + gastos_portuarios_otros_usd
    )

    # ── 4. Landed cost ───────────────────────────────────
    transporte_nacional_usd = (
        transporte_nacional_clp / tipo_cambio_usd_clp_actual
        if tipo_cambio_usd_clp_actual != 0
        else 0.0
    )
    precio_neto_compra_base_usd_landed_cost = (
        valor_cif_usd + total_costos_importacion_duty_fees_usd + transporte_nacional_usd
    )

    # ── 5. Conversión y margen ───────────────────────────
    tipo_cambio_usd_clp_aplicado = tipo_cambio_usd_clp_actual * (1 + buffer_usd_clp_pct)
    precio_neto_compra_base_clp = precio_neto_compra_base_usd_landed_cost * tipo_cambio_usd_clp_aplicado
    margen_clp = precio_neto_compra_base_clp * margen_adicional_pct
    precio_venta_neto_clp = margen_clp + precio_neto_compra_base_clp

    # ── 6. Precios cliente ───────────────────────────────
    precio_neto_venta_final_clp = precio_venta_neto_clp * (1 - descuento_cliente_pct)
    iva_venta_clp = precio_neto_venta_final_clp * IVA_FIJO
    precio_venta_total_cliente_clp = precio_neto_venta_final_clp + iva_venta_clp

    calculados = CalculatedBreakdown(
        costo_producto=CostoProducto(
            factor_actualizacion=factor_actualizacion,
            costo_fabrica_actualizado_eur=costo_fabrica_actualizado_eur,
            costo_fabrica_descontado_eur_exw=costo_fabrica_descontado_eur_exw,
            tipo_cambio_eur_usd_aplicado=tipo_cambio_eur_usd_aplicado,
            costo_final_fabrica_usd_exw=costo_final_fabrica_usd_exw,
        ),
        logistica_seguro=LogisticaSeguro(
            costos_origen_usd=costos_origen_usd,
            costo_total_flete_manejos_usd=costo_total_flete_manejos_usd,
            base_para_seguro_usd=base_para_seguro_usd,
            prima_seguro_usd=prima_seguro_usd,
            total_transporte_seguro_exw_usd=total_transporte_seguro_exw_usd,
        ),
        importacion=Importacion(
            valor_cif_usd=valor_cif_usd,
            derecho_advalorem_usd=derecho_advalorem_usd,
            base_iva_importacion_usd=base_iva_importacion_usd,
            iva_importacion_usd=iva_importacion_usd,
            total_costos_importacion_duty_fees_usd=total_costos_importacion_duty_fees_usd,
        ),
        landed_cost=LandedCost(
            transporte_nacional_usd=transporte_nacional_usd,
            precio_neto_compra_base_usd_landed_cost=precio_neto_compra_base_usd_landed_cost,
        ),
        conversion_margen=ConversionMargen(
            tipo_cambio_usd_clp_aplicado=tipo_cambio_usd_clp_aplicado,
            precio_neto_compra_base_clp=precio_neto_compra_base_clp,
            margen_clp=margen_clp,
            precio_venta_neto_clp=precio_venta_neto_clp,
        ),
        precios_cliente=PreciosCliente(
            precio_neto_venta_final_clp=precio_neto_venta_final_clp,
            iva_venta_clp=iva_venta_clp,
            precio_venta_total_cliente_clp=precio_venta_total_cliente_clp,
        ),
    )
    # Finite inputs can still overflow to inf further down the chain
    overflowed = _non_finite_values(calculados)
    if overflowed:
        return _invalid_input({"non_finite": overflowed})

    return PricingResult(
        inputs=PricingInputs(
            ano_cotizacion=req.ano_cotizacion,
            ano_en_curso=req.ano_en_curso,
            costo_fabrica_original_eur=costo_fabrica_original_eur,
            tipo_cambio_eur_usd_actual=tipo_cambio_eur_usd_actual,
            tipo_cambio_usd_clp_actual=tipo_cambio_usd_clp_actual,
            buffer_eur_usd=buffer_eur_usd,
            descuento_fabrica=descuento_fabrica,
            costo_origen_eur=costo_origen_eur,
            flete_maritimo_usd=flete_maritimo_usd,
            recargos_destino_usd=recargos_destino_usd,
            tasa_seguro_pct=tasa_seguro_pct,
            costo_agente_aduana_usd=costo_agente_aduana_usd,
            gastos_portuarios_otros_usd=gastos_portuarios_otros_usd,
            transporte_nacional_clp=transporte_nacional_clp,
            buffer_usd_clp_pct=buffer_usd_clp_pct,
            margen_adicional_pct=margen_adicional_pct,
            descuento_cliente_pct=descuento_cliente_pct,
        ),
        calculados=calculados,
        unused_profile_tax_rates=_unused_tax_rates(profile),
    )
