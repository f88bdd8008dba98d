"""
Cost Profile Repository — CRUD for cost profiles.
Uses the ``costo_perfiles`` collection, or an in-memory dict in mock mode.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from cotizador.exceptions import DuplicateProfileError
from cotizador.models.schemas import CostProfile, CostProfileCreate, CostProfileUpdate
from cotizador.persistence.mongo_client import MongoClient

logger = logging.getLogger(__name__)

COLLECTION = "costo_perfiles"


def _to_object_id(profile_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(profile_id)
    except (InvalidId, TypeError):
        return None


class CostProfileRepository:
    """Save/load cost profiles."""

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
            collection.create_index("nombre_perfil", unique=True)
            self._indexed = True
        return collection

    @staticmethod
    def _to_model(doc: dict[str, Any]) -> CostProfile:
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return CostProfile(**data)

    def _name_taken(self, name: str, exclude_id: str = "") -> bool:
        return any(
            doc["nombre_perfil"] == name and pid != exclude_id
            for pid, doc in self._memory_store.items()
        )

    def create(self, data: CostProfileCreate) -> CostProfile:
        now = datetime.now(timezone.utc)
        doc = data.model_dump()
        doc.update({"created_at": now, "updated_at": now})

        collection = self._collection()
        if collection is None:
            if self._name_taken(doc["nombre_perfil"]):
                raise DuplicateProfileError(doc["nombre_perfil"])
            doc["_id"] = str(ObjectId())
            self._memory_store[doc["_id"]] = doc
        else:
            try:
                doc["_id"] = collection.insert_one(doc).inserted_id
            except DuplicateKeyError as e:
                raise DuplicateProfileError(doc["nombre_perfil"]) from e

        logger.info(f"Created cost profile '{doc['nombre_perfil']}' ({doc['_id']})")
        return self._to_model(doc)

    def list_all(self) -> list[CostProfile]:
        collection = self._collection()
        if collection is None:
            docs = sorted(
                (deepcopy(d) for d in self._memory_store.values()),
                key=lambda d: d["nombre_perfil"],
            )
        else:
            docs = list(collection.find().sort("nombre_perfil", 1))
        return [self._to_model(d) for d in docs]

    def get_document(self, profile_id: str) -> Optional[dict[str, Any]]:
        """Return the stored profile document as-is, or None."""
        collection = self._collection()
        if collection is None:
            doc = self._memory_store.get(profile_id)
            return deepcopy(doc) if doc else None
        oid = _to_object_id(profile_id)
        if oid is None:
            return None
        return collection.find_one({"_id": oid})

    def get(self, profile_id: str) -> Optional[CostProfile]:
        doc = self.get_document(profile_id)
        return self._to_model(doc) if doc else None

    def update(self, profile_id: str, changes: CostProfileUpdate) -> Optional[CostProfile]:
        fields = changes.model_dump(exclude_none=True)
        if "nombre_perfil" in fields:
            fields["nombre_perfil"] = fields["nombre_perfil"].strip()
        fields["updated_at"] = datetime.now(timezone.utc)

        collection = self._collection()
        if collection is None:
            doc = self._memory_store.get(profile_id)
            if doc is None:
                return None
            if "nombre_perfil" in fields and self._name_taken(fields["nombre_perfil"], profile_id):
                raise DuplicateProfileError(fields["nombre_perfil"])
            doc.update(fields)
            logger.info(f"Updated cost profile {profile_id}")
            return self._to_model(deepcopy(doc))

        oid = _to_object_id(profile_id)
        if oid is None:
            return None
        try:
            result = collection.update_one({"_id": oid}, {"$set": fields})
        except DuplicateKeyError as e:
            raise DuplicateProfileError(fields.get("nombre_perfil", "")) from e
        if result.matched_count == 0:
            return None
        logger.info(f"Updated cost profile {profile_id}")
        return self.get(profile_id)

    def delete(self, profile_id: str) -> bool:
        collection = self._collection()
        if collection is None:
            deleted = self._memory_store.pop(profile_id, None) is not None
        else:
            oid = _to_object_id(profile_id)
            deleted = oid is not None and collection.delete_one({"_id": oid}).deleted_count > 0
        if deleted:
            logger.info(f"Deleted cost profile {profile_id}")
        return deleted
