"""
Currency Service — current USD/CLP and EUR/CLP values.

The values come from an external webhook answering
``{"Valor_Dolar": "...", "Valor_Euro": "...", "Fecha": "..."}`` with
Chilean-formatted numbers.  Snapshots are kept in the injected cache
for ``currency_cache_ttl_hours``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from requests import RequestException

from cotizador.config import get_settings
from cotizador.exceptions import CurrencyFetchError
from cotizador.models.schemas import CurrencySnapshot
from cotizador.services.cache_service import CacheService, InMemoryCacheService
from cotizador.utils.numbers import parse_locale_number

logger = logging.getLogger(__name__)

CACHE_KEY = "currency:snapshot"
REQUIRED_FIELDS = ("Valor_Dolar", "Valor_Euro", "Fecha")


class CurrencyWebhookClient:
    """HTTP client for the currency webhook."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.url = url or settings.currency_webhook_url
        self.timeout = timeout if timeout is not None else settings.currency_request_timeout

    def fetch(self) -> dict[str, Any]:
        logger.info(f"Fetching currency values from {self.url}")
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except RequestException as e:
            raise CurrencyFetchError(f"Failed to fetch currency values: {e}") from e
        except ValueError as e:
            raise CurrencyFetchError("Currency webhook returned invalid JSON") from e

        if not isinstance(data, dict):
            raise CurrencyFetchError(f"Unexpected currency payload: {data!r}")

        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            logger.error(f"Missing currency fields {missing} in response: {data}")
            raise CurrencyFetchError("Missing required currency fields in response")

        return data


class CurrencyService:
    """Serves cached currency snapshots and parsed exchange rates."""

    def __init__(
        self,
        client: Optional[CurrencyWebhookClient] = None,
        cache: Optional[CacheService] = None,
        ttl_hours: Optional[float] = None,
    ):
        settings = get_settings()
        self.client = client or CurrencyWebhookClient()
        self.cache = cache or InMemoryCacheService()
        self.ttl_seconds = (
            ttl_hours if ttl_hours is not None else settings.currency_cache_ttl_hours
        ) * 3600

    def get_snapshot(self, force_refresh: bool = False) -> CurrencySnapshot:
        if not force_refresh:
            cached = self.cache.get(CACHE_KEY)
            if cached is not None:
                return cached

        data = self.client.fetch()
        snapshot = CurrencySnapshot(
            valor_dolar=str(data["Valor_Dolar"]),
            valor_euro=str(data["Valor_Euro"]),
            fecha=str(data["Fecha"]),
        )
        self.cache.set(CACHE_KEY, snapshot, ttl_seconds=self.ttl_seconds)
        logger.info(
            f"Currency snapshot updated: USD={snapshot.valor_dolar} "
            f"EUR={snapshot.valor_euro} ({snapshot.fecha})"
        )
        return snapshot

    def invalidate(self) -> None:
        self.cache.invalidate(CACHE_KEY)

    def get_usd_clp_rate(self) -> float:
        """Current USD/CLP market rate (no buffer)."""
        return self._parse_rate(self.get_snapshot().valor_dolar, "Valor_Dolar")

    def get_eur_clp_rate(self) -> float:
        """Current EUR/CLP market rate (no buffer)."""
        return self._parse_rate(self.get_snapshot().valor_euro, "Valor_Euro")

    @staticmethod
    def _parse_rate(raw: str, field: str) -> float:
        try:
            rate = parse_locale_number(raw)
        except ValueError as e:
            raise CurrencyFetchError(
                f"{field} '{raw}' no pudo ser convertido a número válido."
            ) from e
        if rate <= 0:
            raise CurrencyFetchError(f"{field} '{raw}' no es un tipo de cambio válido.")
        return rate
