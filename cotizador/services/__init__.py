"""Services — CurrencyService, QuoteService, ProductService, CacheService."""

from cotizador.services.cache_service import CacheService, InMemoryCacheService
from cotizador.services.currency_service import CurrencyService, CurrencyWebhookClient
from cotizador.services.product_service import ProductService
from cotizador.services.quote_service import QuoteService

__all__ = [
    "CacheService",
    "InMemoryCacheService",
    "CurrencyService",
    "CurrencyWebhookClient",
    "ProductService",
    "QuoteService",
]
