"""
API routes — thin HTTP layer over the services.

Routes:
  GET    /health                                  → API health check
  GET    /api/currency/values                     → Cached USD/EUR values
  GET    /api/currency/dollar                     → Parsed USD/CLP rate
  GET    /api/currency/euro                       → Parsed EUR/CLP rate
  POST   /api/currency/cache/reset                → Drop the cached snapshot
  POST   /api/costo-perfiles                      → Create a cost profile
  GET    /api/costo-perfiles                      → List cost profiles
  POST   /api/costo-perfiles/calcular-prueba      → Test calculation (ad-hoc profile)
  POST   /api/costo-perfiles/calcular-producto    → Calculation with a stored profile
  GET    /api/costo-perfiles/{profile_id}         → Get one profile
  PUT    /api/costo-perfiles/{profile_id}         → Update a profile
  DELETE /api/costo-perfiles/{profile_id}         → Delete a profile
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from cotizador.api.dependencies import (
    get_currency_service,
    get_profile_repository,
    get_quote_service,
)
from cotizador.exceptions import (
    CurrencyFetchError,
    DuplicateProfileError,
    InvalidQuoteParametersError,
    ProfileNotFoundError,
)
from cotizador.models.schemas import CostProfileCreate, CostProfileUpdate
from cotizador.persistence.profile_repository import CostProfileRepository
from cotizador.services.currency_service import CurrencyService
from cotizador.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
currency_router = APIRouter()
profile_router = APIRouter()


# ── Request schemas ──────────────────────────────────────
# Values are validated by QuoteService so bad input answers 400.

class TrialCalculationRequest(BaseModel):
    model_config = {"populate_by_name": True}

    ano_cotizacion: Any = Field(default=None, alias="anoCotizacion")
    ano_en_curso: Any = Field(default=None, alias="anoEnCurso")
    costo_fabrica_original_eur: Any = Field(default=None, alias="costoFabricaOriginalEUR")
    tipo_cambio_eur_usd_actual: Any = Field(default=None, alias="tipoCambioEurUsdActual")
    buffer_eur_usd: Any = Field(default=None, alias="bufferEurUsd")
    descuento_fabrica: Any = Field(default=None, alias="descuentoFabrica")


class ProfileCalculationRequest(BaseModel):
    model_config = {"populate_by_name": True}

    profile_id: str = Field(default="", alias="profileId")
    ano_cotizacion: Any = Field(default=None, alias="anoCotizacion")
    ano_en_curso: Any = Field(default=None, alias="anoEnCurso")
    costo_fabrica_original_eur: Any = Field(default=None, alias="costoFabricaOriginalEUR")
    tipo_cambio_eur_usd_actual: Any = Field(default=None, alias="tipoCambioEurUsdActual")


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Currency ─────────────────────────────────────────────

@currency_router.get("/values")
def get_currency_values(currency: CurrencyService = Depends(get_currency_service)):
    try:
        snapshot = currency.get_snapshot()
    except CurrencyFetchError as e:
        logger.error(f"Currency values unavailable: {e}")
        raise HTTPException(status_code=502, detail="Error al obtener valores de divisas")

    return {
        "success": True,
        "data": snapshot.model_dump(by_alias=True, mode="json"),
        "last_update": snapshot.last_update.isoformat(),
    }


def _rate_response(currency: CurrencyService, rate_getter) -> dict:
    try:
        rate = rate_getter()
        snapshot = currency.get_snapshot()
    except CurrencyFetchError as e:
        logger.error(f"Exchange rate unavailable: {e}")
        raise HTTPException(status_code=502, detail="Error al obtener valores de divisas")
    return {
        "success": True,
        "data": {
            "value": rate,
            "fecha": snapshot.fecha,
            "last_update": snapshot.last_update.isoformat(),
        },
    }


@currency_router.get("/dollar")
def get_dollar_value(currency: CurrencyService = Depends(get_currency_service)):
    return _rate_response(currency, currency.get_usd_clp_rate)


@currency_router.get("/euro")
def get_euro_value(currency: CurrencyService = Depends(get_currency_service)):
    return _rate_response(currency, currency.get_eur_clp_rate)


@currency_router.post("/cache/reset")
def reset_currency_cache(currency: CurrencyService = Depends(get_currency_service)):
    currency.invalidate()
    return {"success": True, "message": "Caché de divisas reiniciado."}


# ── Calculations ─────────────────────────────────────────

@profile_router.post("/calcular-prueba")
def calculate_test(body: TrialCalculationRequest, quotes: QuoteService = Depends(get_quote_service)):
    try:
        result = quotes.calculate_test(
            ano_cotizacion=body.ano_cotizacion,
            ano_en_curso=body.ano_en_curso,
            costo_fabrica_original_eur=body.costo_fabrica_original_eur,
            tipo_cambio_eur_usd_actual=body.tipo_cambio_eur_usd_actual,
            buffer_eur_usd=body.buffer_eur_usd,
            descuento_fabrica=body.descuento_fabrica,
        )
    except InvalidQuoteParametersError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CurrencyFetchError as e:
        logger.error(f"USD/CLP rate unavailable for test calculation: {e}")
        raise HTTPException(
            status_code=502, detail=f"No se pudo obtener el tipo de cambio USD/CLP actual: {e}"
        )

    if not result.ok:
        raise HTTPException(status_code=400, detail=f"Error en el cálculo de prueba: {result.error}")

    return {
        "message": "Cálculo de prueba realizado exitosamente.",
        "resultado": result.to_response(),
    }


@profile_router.post("/calcular-producto")
def calculate_from_profile(
    body: ProfileCalculationRequest, quotes: QuoteService = Depends(get_quote_service)
):
    try:
        profile, result = quotes.calculate_from_profile(
            profile_id=body.profile_id,
            ano_cotizacion=body.ano_cotizacion,
            ano_en_curso=body.ano_en_curso,
            costo_fabrica_original_eur=body.costo_fabrica_original_eur,
            tipo_cambio_eur_usd_actual=body.tipo_cambio_eur_usd_actual,
        )
    except InvalidQuoteParametersError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CurrencyFetchError as e:
        logger.error(f"USD/CLP rate unavailable: {e}")
        raise HTTPException(
            status_code=502, detail=f"No se pudo obtener el tipo de cambio USD/CLP actual: {e}"
        )
    except ProfileNotFoundError:
        raise HTTPException(status_code=404, detail="Perfil de costo no encontrado.")

    profile_name = profile.get("nombre_perfil") or body.profile_id
    if not result.ok:
        raise HTTPException(
            status_code=400,
            detail={"message": f"Error en el cálculo: {result.error}", "perfilUsado": profile_name},
        )

    return {
        "perfilUsado": {"_id": str(profile["_id"]), "nombre": profile_name},
        "resultado": result.to_response(),
    }


# ── Cost profile CRUD ────────────────────────────────────

@profile_router.post("", status_code=201)
def create_profile(
    body: CostProfileCreate, profiles: CostProfileRepository = Depends(get_profile_repository)
):
    try:
        profile = profiles.create(body)
    except DuplicateProfileError:
        raise HTTPException(
            status_code=400, detail="Error: Ya existe un perfil con ese valor para 'nombre_perfil'."
        )
    return profile.model_dump(by_alias=True, mode="json")


@profile_router.get("")
def list_profiles(profiles: CostProfileRepository = Depends(get_profile_repository)):
    return [p.model_dump(by_alias=True, mode="json") for p in profiles.list_all()]


@profile_router.get("/{profile_id}")
def get_profile(profile_id: str, profiles: CostProfileRepository = Depends(get_profile_repository)):
    profile = profiles.get(profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Perfil no encontrado")
    return profile.model_dump(by_alias=True, mode="json")


@profile_router.put("/{profile_id}")
def update_profile(
    profile_id: str,
    body: CostProfileUpdate,
    profiles: CostProfileRepository = Depends(get_profile_repository),
):
    try:
        profile = profiles.update(profile_id, body)
    except DuplicateProfileError:
        raise HTTPException(
            status_code=400, detail="Error: Ya existe un perfil con ese valor para 'nombre_perfil'."
        )
    if profile is None:
        raise HTTPException(status_code=404, detail="Perfil no encontrado para actualizar")
    return profile.model_dump(by_alias=True, mode="json")


@profile_router.delete("/{profile_id}")
def delete_profile(profile_id: str, profiles: CostProfileRepository = Depends(get_profile_repository)):
    if not profiles.delete(profile_id):
        raise HTTPException(status_code=404, detail="Perfil no encontrado para eliminar")
    return {"message": "Perfil eliminado correctamente"}
