"""
Dependency providers for the routes.

One shared instance of each service per process; tests swap them
through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from cotizador.persistence.history_repository import QuoteHistoryRepository
from cotizador.persistence.mongo_client import MongoClient
from cotizador.persistence.product_repository import ProductRepository
from cotizador.persistence.profile_repository import CostProfileRepository
from cotizador.services.cache_service import InMemoryCacheService
from cotizador.services.currency_service import CurrencyService
from cotizador.services.product_service import ProductService
from cotizador.services.quote_service import QuoteService


@lru_cache()
def get_mongo_client() -> MongoClient:
    return MongoClient()


@lru_cache()
def get_currency_service() -> CurrencyService:
    return CurrencyService(cache=InMemoryCacheService())


@lru_cache()
def get_profile_repository() -> CostProfileRepository:
    return CostProfileRepository(get_mongo_client())


@lru_cache()
def get_history_repository() -> QuoteHistoryRepository:
    return QuoteHistoryRepository(get_mongo_client())


def get_quote_service(
    currency: CurrencyService = Depends(get_currency_service),
    profiles: CostProfileRepository = Depends(get_profile_repository),
) -> QuoteService:
    return QuoteService(currency=currency, profiles=profiles)


@lru_cache()
def get_product_repository() -> ProductRepository:
    return ProductRepository(get_mongo_client())


def get_product_service(
    products: ProductRepository = Depends(get_product_repository),
) -> ProductService:
    return ProductService(products)
