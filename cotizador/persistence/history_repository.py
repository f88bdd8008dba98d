"""
Quote History Repository — saved calculations ("cálculos") with a
sequential configuration number.

Documents are stored with the frontend's camelCase keys.  In mock mode
everything lives in memory, including the sequence counter.
"""

from __future__ import annotations

import logging
import math
import re
from copy import deepcopy
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from cotizador.models.enums import SortOrder
from cotizador.models.schemas import QuoteHistoryCreate, QuoteHistoryRecord
from cotizador.persistence.mongo_client import MongoClient

logger = logging.getLogger(__name__)

COLLECTION = "calculo_historial"
COUNTER_COLLECTION = "contador_configuracion"
COUNTER_ID = "calculoHistorialCounter"

SEARCH_FIELDS = (
    "cotizacionDetails.clienteNombre",
    "cotizacionDetails.emisorNombre",
    "cotizacionDetails.empresaQueCotiza",
    "nombreReferencia",
    "nombrePerfil",
)
SORTABLE_FIELDS = ("createdAt", "numeroConfiguracion", "nombreReferencia", "nombrePerfil")


def _dotted_get(doc: dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _summary(doc: dict[str, Any]) -> dict[str, Any]:
    """Listing projection: identifying fields and only the first item."""
    details = doc.get("cotizacionDetails") or {}
    return {
        "_id": str(doc["_id"]),
        "numeroConfiguracion": doc.get("numeroConfiguracion"),
        "createdAt": doc.get("createdAt"),
        "nombreReferencia": doc.get("nombreReferencia"),
        "nombrePerfil": doc.get("nombrePerfil"),
        "cotizacionDetails": {"clienteNombre": details.get("clienteNombre")},
        "itemsParaCotizar": (doc.get("itemsParaCotizar") or [])[:1],
    }


class QuoteHistoryRepository:
    """Save, list, load and delete quote history records."""

    def __init__(self, mongo: Optional[MongoClient] = None):
        self.mongo = mongo or MongoClient()
        self._memory_store: dict[str, dict[str, Any]] = {}
        self._counters: dict[str, int] = {}

    def _db(self) -> Any:
        return self.mongo.get_database()

    # ── Sequence ─────────────────────────────────────────

    def next_sequence(self, counter_id: str = COUNTER_ID) -> int:
        """Atomically increment and return the named counter."""
        db = self._db()
        if db is None:
            self._counters[counter_id] = self._counters.get(counter_id, 0) + 1
            return self._counters[counter_id]

        counter = db[COUNTER_COLLECTION].find_one_and_update(
            {"_id": counter_id},
            {"$inc": {"secuencia": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["secuencia"]

    # ── CRUD ─────────────────────────────────────────────

    def save(self, data: QuoteHistoryCreate) -> QuoteHistoryRecord:
        record = QuoteHistoryRecord(
            **data.model_dump(),
            numero_configuracion=self.next_sequence(),
        )
        doc = record.model_dump(by_alias=True, exclude={"id"})

        db = self._db()
        if db is None:
            doc["_id"] = str(ObjectId())
            self._memory_store[doc["_id"]] = doc
        else:
            doc["_id"] = db[COLLECTION].insert_one(doc).inserted_id

        logger.info(
            f"Saved quote history #{record.numero_configuracion} ({doc['_id']})"
        )
        return self._to_model(doc)

    def get(self, record_id: str) -> Optional[QuoteHistoryRecord]:
        db = self._db()
        if db is None:
            doc = self._memory_store.get(record_id)
            return self._to_model(deepcopy(doc)) if doc else None
        try:
            doc = db[COLLECTION].find_one({"_id": ObjectId(record_id)})
        except InvalidId:
            return None
        return self._to_model(doc) if doc else None

    def delete(self, record_id: str) -> bool:
        db = self._db()
        if db is None:
            deleted = self._memory_store.pop(record_id, None) is not None
        else:
            try:
                deleted = db[COLLECTION].delete_one({"_id": ObjectId(record_id)}).deleted_count > 0
            except InvalidId:
                deleted = False
        if deleted:
            logger.info(f"Deleted quote history {record_id}")
        return deleted

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        sort_by: str = "createdAt",
        sort_order: SortOrder = SortOrder.DESC,
    ) -> dict[str, Any]:
        """Paginated, searchable listing with navigation metadata."""
        page = max(page, 1)
        limit = max(limit, 1)
        if sort_by not in SORTABLE_FIELDS:
            sort_by = "createdAt"
        skip = (page - 1) * limit
        term = search.strip()

        db = self._db()
        if db is None:
            docs = [d for d in self._memory_store.values() if self._matches(d, term)]
            # Missing values sort as lowest, like MongoDB does
            docs.sort(
                key=lambda d: (d.get(sort_by) is not None, d.get(sort_by) or ""),
                reverse=sort_order is SortOrder.DESC,
            )
            total = len(docs)
            page_docs = docs[skip:skip + limit]
        else:
            query = self._build_query(term)
            collection = db[COLLECTION]
            total = collection.count_documents(query)
            page_docs = list(
                collection.find(query)
                .sort(sort_by, 1 if sort_order is SortOrder.ASC else -1)
                .skip(skip)
                .limit(limit)
            )

        total_pages = math.ceil(total / limit)
        return {
            "data": [_summary(d) for d in page_docs],
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": total_pages,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
            "nextPage": page + 1 if page < total_pages else None,
            "prevPage": page - 1 if page > 1 else None,
            "search": {"term": term, "sortBy": sort_by, "sortOrder": sort_order.value},
        }

    # ── Helpers ──────────────────────────────────────────

    @staticmethod
    def _to_model(doc: dict[str, Any]) -> QuoteHistoryRecord:
        data = dict(doc)
        data["_id"] = str(data["_id"])
        return QuoteHistoryRecord.model_validate(data)

    @staticmethod
    def _matches(doc: dict[str, Any], term: str) -> bool:
        if not term:
            return True
        if term.isdigit() and doc.get("numeroConfiguracion") == int(term):
            return True
        needle = term.lower()
        return any(
            needle in str(_dotted_get(doc, field) or "").lower()
            for field in SEARCH_FIELDS
        )

    @staticmethod
    def _build_query(term: str) -> dict[str, Any]:
        if not term:
            return {}
        pattern = {"$regex": re.escape(term), "$options": "i"}
        clauses: list[dict[str, Any]] = [{field: pattern} for field in SEARCH_FIELDS]
        if term.isdigit():
            clauses.append({"numeroConfiguracion": int(term)})
        return {"$or": clauses}
