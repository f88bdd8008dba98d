"""
Quote Service — the two calculation entry points used by the API.

  calculate_test()          ad-hoc profile built from request parameters
  calculate_from_profile()  stored cost profile loaded by id

Both resolve the live USD/CLP rate before running the cost pipeline.
A pipeline error is returned inside the PricingResult, not raised.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from cotizador.exceptions import InvalidQuoteParametersError, ProfileNotFoundError
from cotizador.models.schemas import PricingRequest, PricingResult
from cotizador.persistence.profile_repository import CostProfileRepository
from cotizador.pricing.cost_pipeline import compute_product_cost
from cotizador.services.currency_service import CurrencyService

logger = logging.getLogger(__name__)


def _as_number(value: Any, name: str) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidQuoteParametersError(f"Falta el parámetro '{name}'.")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidQuoteParametersError(f"Parámetro '{name}' no es numérico.") from None
    if not math.isfinite(number):
        raise InvalidQuoteParametersError(f"Parámetro '{name}' no es numérico.")
    return number


def _as_year(value: Any, name: str) -> int:
    number = _as_number(value, name)
    if not number.is_integer():
        raise InvalidQuoteParametersError(f"Parámetro '{name}' debe ser un año entero.")
    return int(number)


class QuoteService:
    """Glue between the currency webhook, stored profiles and the pipeline."""

    def __init__(self, currency: CurrencyService, profiles: CostProfileRepository):
        self.currency = currency
        self.profiles = profiles

    def _build_request(
        self,
        ano_cotizacion: Any,
        ano_en_curso: Any,
        costo_fabrica_original_eur: Any,
        tipo_cambio_eur_usd_actual: Any,
    ) -> dict[str, Any]:
        params = {
            "ano_cotizacion": _as_year(ano_cotizacion, "anoCotizacion"),
            "ano_en_curso": _as_year(ano_en_curso, "anoEnCurso"),
            "costo_fabrica_original_eur": _as_number(costo_fabrica_original_eur, "costoFabricaOriginalEUR"),
            "tipo_cambio_eur_usd_actual": _as_number(tipo_cambio_eur_usd_actual, "tipoCambioEurUsdActual"),
        }
        if params["costo_fabrica_original_eur"] <= 0 or params["tipo_cambio_eur_usd_actual"] <= 0:
            raise InvalidQuoteParametersError("Parámetros numéricos inválidos.")
        return params

    def calculate_test(
        self,
        ano_cotizacion: Any,
        ano_en_curso: Any,
        costo_fabrica_original_eur: Any,
        tipo_cambio_eur_usd_actual: Any,
        buffer_eur_usd: Any,
        descuento_fabrica: Any,
    ) -> PricingResult:
        """Run the pipeline with a minimal profile built from the parameters."""
        params = self._build_request(
            ano_cotizacion, ano_en_curso, costo_fabrica_original_eur, tipo_cambio_eur_usd_actual
        )
        buffer = _as_number(buffer_eur_usd, "bufferEurUsd")
        descuento = _as_number(descuento_fabrica, "descuentoFabrica")
        if buffer < 0 or not 0 <= descuento < 1:
            raise InvalidQuoteParametersError(
                "Parámetros numéricos inválidos para el cálculo de prueba."
            )

        request = PricingRequest(
            **params, tipo_cambio_usd_clp_actual=self.currency.get_usd_clp_rate()
        )
        profile = {
            "buffer_eur_usd_pct": buffer,
            "descuento_fabrica_pct": descuento,
            "transporte_nacional_clp": 0,
        }
        result = compute_product_cost(request, profile)
        logger.info(f"Test calculation done (ok={result.ok})")
        return result

    def calculate_from_profile(
        self,
        profile_id: Optional[str],
        ano_cotizacion: Any,
        ano_en_curso: Any,
        costo_fabrica_original_eur: Any,
        tipo_cambio_eur_usd_actual: Any,
    ) -> tuple[dict[str, Any], PricingResult]:
        """Run the pipeline with a stored profile. Returns (profile_doc, result)."""
        if not profile_id:
            raise InvalidQuoteParametersError("Faltan parámetros requeridos para el cálculo.")
        params = self._build_request(
            ano_cotizacion, ano_en_curso, costo_fabrica_original_eur, tipo_cambio_eur_usd_actual
        )

        request = PricingRequest(
            **params, tipo_cambio_usd_clp_actual=self.currency.get_usd_clp_rate()
        )
        # Raw document: invalid stored values must reach the pipeline's checks
        profile = self.profiles.get_document(profile_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id)

        result = compute_product_cost(request, profile)
        logger.info(
            f"Calculation with profile '{profile.get('nombre_perfil', profile_id)}' "
            f"done (ok={result.ok})"
        )
        return profile, result
