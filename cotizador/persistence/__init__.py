"""Persistence — MongoClient, CostProfileRepository, QuoteHistoryRepository, ProductRepository."""

from cotizador.persistence.mongo_client import MongoClient
from cotizador.persistence.profile_repository import CostProfileRepository
from cotizador.persistence.history_repository import QuoteHistoryRepository
from cotizador.persistence.product_repository import ProductRepository

__all__ = ["MongoClient", "CostProfileRepository", "QuoteHistoryRepository", "ProductRepository"]
