"""
Quote history API routes.

Routes:
  POST   /api/calculo-historial/guardar   → Save a calculation
  GET    /api/calculo-historial           → Paginated, searchable list
  GET    /api/calculo-historial/{id}      → One saved calculation
  DELETE /api/calculo-historial/{id}      → Delete a saved calculation
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from cotizador.api.dependencies import get_history_repository
from cotizador.config import get_settings
from cotizador.models.enums import SortOrder
from cotizador.models.schemas import QuoteHistoryCreate
from cotizador.persistence.history_repository import QuoteHistoryRepository

logger = logging.getLogger(__name__)

history_router = APIRouter()


@history_router.post("/guardar", status_code=201)
def save_history(
    body: QuoteHistoryCreate, history: QuoteHistoryRepository = Depends(get_history_repository)
):
    record = history.save(body)
    return {
        "message": "Historial de cálculo guardado exitosamente.",
        "data": record.model_dump(by_alias=True, mode="json"),
    }


@history_router.get("")
def list_history(
    page: int = Query(1, ge=1),
    limit: int = Query(0, ge=0),
    search: str = "",
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    history: QuoteHistoryRepository = Depends(get_history_repository),
):
    return history.list(
        page=page,
        limit=limit or get_settings().history_page_size,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@history_router.get("/{record_id}")
def get_history(record_id: str, history: QuoteHistoryRepository = Depends(get_history_repository)):
    record = history.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Historial de cálculo no encontrado.")
    return record.model_dump(by_alias=True, mode="json")


@history_router.delete("/{record_id}")
def delete_history(record_id: str, history: QuoteHistoryRepository = Depends(get_history_repository)):
    if not history.delete(record_id):
        raise HTTPException(status_code=404, detail="Historial de cálculo no encontrado.")
    return {"message": "Historial de cálculo eliminado exitosamente.", "id": record_id}
