"""
Product Repository — the equipment catalog, keyed by ``Codigo_Producto``.
Uses the ``Productos`` collection, or an in-memory dict in mock mode.
"""

from __future__ import annotations

import logging
import re
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from cotizador.exceptions import DuplicateProductError
from cotizador.models.schemas import ProductCreate
from cotizador.persistence.mongo_client import MongoClient

logger = logging.getLogger(__name__)

COLLECTION = "Productos"
CODE_FIELD = "Codigo_Producto"

# Fields a partial update may never touch
IMMUTABLE_FIELDS = ("_id", CODE_FIELD, "createdAt")

OPTIONAL_NAME_PATTERN = re.compile("opcional", re.IGNORECASE)
OPTIONAL_TYPE_PATTERN = re.compile(r"^opcional$", re.IGNORECASE)


def _set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    """In-memory equivalent of a MongoDB ``$set`` on a dotted path."""
    target = doc
    *parents, leaf = path.split(".")
    for part in parents:
        child = target.get(part)
        if not isinstance(child, dict):
            child = target[part] = {}
        target = child
    target[leaf] = value


def _is_optional_candidate(doc: dict[str, Any]) -> bool:
    nombre = (doc.get("caracteristicas") or {}).get("nombre_del_producto") or ""
    return (
        bool(OPTIONAL_TYPE_PATTERN.match(doc.get("tipo") or ""))
        or bool(OPTIONAL_NAME_PATTERN.search(nombre))
        or doc.get("es_opcional") is True
    )


class ProductRepository:
    """Create, read and update catalog products."""

    def __init__(self, mongo: Optional[MongoClient] = None):
        self.mongo = mongo or MongoClient()
        self._memory_store: dict[str, dict[str, Any]] = {}
        self._indexed = False

    def _collection(self) -> Any:
        db = self.mongo.get_database()
        if db is None:
            return None
        collection = db[COLLECTION]
        if not self._indexed:
            collection.create_index(CODE_FIELD, unique=True)
            self._indexed = True
        return collection

    @staticmethod
    def _clean(doc: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        if doc is None:
            return None
        doc = deepcopy(doc)
        doc["_id"] = str(doc["_id"])
        return doc

    def create(self, data: ProductCreate) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        doc = data.model_dump(by_alias=True, exclude_none=True)
        doc.update({"createdAt": now, "updatedAt": now})
        code = doc[CODE_FIELD]

        collection = self._collection()
        if collection is None:
            if code in self._memory_store:
                raise DuplicateProductError(code)
            doc["_id"] = str(ObjectId())
            self._memory_store[code] = doc
        else:
            try:
                doc["_id"] = collection.insert_one(doc).inserted_id
            except DuplicateKeyError as e:
                raise DuplicateProductError(code) from e

        logger.info(f"Created product {code}")
        return self._clean(doc)

    def list_all(self) -> list[dict[str, Any]]:
        collection = self._collection()
        if collection is None:
            docs = sorted(self._memory_store.values(), key=lambda d: d[CODE_FIELD])
        else:
            docs = list(collection.find().sort(CODE_FIELD, 1))
        return [self._clean(d) for d in docs]

    def get_by_code(self, code: str) -> Optional[dict[str, Any]]:
        collection = self._collection()
        if collection is None:
            return self._clean(self._memory_store.get(code))
        return self._clean(collection.find_one({CODE_FIELD: code}))

    def update(self, code: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Apply a ``$set`` of *changes* (dotted paths allowed). None when missing."""
        fields = {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
        fields["updatedAt"] = datetime.now(timezone.utc)

        collection = self._collection()
        if collection is None:
            doc = self._memory_store.get(code)
            if doc is None:
                return None
            for path, value in fields.items():
                _set_path(doc, path, value)
        else:
            result = collection.update_one({CODE_FIELD: code}, {"$set": fields})
            if result.matched_count == 0:
                return None

        logger.info(f"Updated product {code}: {sorted(fields)}")
        return self.get_by_code(code)

    def find_optional_candidates(self, exclude_code: str) -> list[dict[str, Any]]:
        """Products flagged or named as optional accessories, except *exclude_code*."""
        collection = self._collection()
        if collection is None:
            docs = [
                d for d in self._memory_store.values()
                if d[CODE_FIELD] != exclude_code and _is_optional_candidate(d)
            ]
        else:
            docs = list(collection.find({
                CODE_FIELD: {"$ne": exclude_code},
                "$or": [
                    {"tipo": {"$regex": OPTIONAL_TYPE_PATTERN.pattern, "$options": "i"}},
                    {"caracteristicas.nombre_del_producto": {"$regex": "opcional", "$options": "i"}},
                    {"es_opcional": True},
                ],
            }))
        return [self._clean(d) for d in docs]
