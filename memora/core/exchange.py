"""
USD -> CAD exchange rate lookup.

A failed lookup never blocks pricing: every failure path falls back to
FALLBACK_EXCHANGE_RATE.
"""

import asyncio
import logging
import math
import threading
import time
from typing import Optional

import requests

from .models import ExchangeConfig

logger = logging.getLogger("Memora.Exchange")

EXCHANGE_RATE_API = "https://api.exchangerate-api.com/v4/latest/USD"
FALLBACK_EXCHANGE_RATE = 1.35


def _request_rate(api_url: str, currency: str, timeout: float) -> Optional[float]:
    """Returns the quoted rate, or None if the lookup failed for any reason."""
    try:
        response = requests.get(api_url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
        rate = float(data["rates"][currency])
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError(f"Invalid {currency} rate in response: {rate}")
        return rate
    except Exception as e:
        logger.warning(f"Error fetching exchange rate from {api_url}: {e}")
        return None


def fetch_exchange_rate(
    api_url: str = EXCHANGE_RATE_API,
    currency: str = "CAD",
    fallback: float = FALLBACK_EXCHANGE_RATE,
    timeout: float = 10.0,
) -> float:
    """
    Fetch the USD based rate for `currency`.

    Returns `fallback` on network errors, non-2xx responses, unparseable
    bodies and missing, zero, negative or non-finite rates.
    """
    rate = _request_rate(api_url, currency, timeout)
    if rate is None:
        logger.warning(f"Using fallback exchange rate {fallback}")
        return fallback
    return rate


class ExchangeRateService:
    """
    Exchange rate lookups with an optional short-lived cache.

    Only rates actually returned by the service are cached, so an outage
    never pins the fallback value.
    """

    def __init__(self, config: Optional[ExchangeConfig] = None):
        self.config = config or ExchangeConfig()
        self._lock = threading.Lock()
        self._cached_rate: Optional[float] = None
        self._cached_at = 0.0

    def _cache_valid(self) -> bool:
        ttl = self.config.cache_ttl_seconds
        return (
            ttl > 0
            and self._cached_rate is not None
            and time.monotonic() - self._cached_at < ttl
        )

    def fetch_rate(self) -> float:
        """Blocking lookup."""
        with self._lock:
            if self._cache_valid():
                return self._cached_rate

        rate = _request_rate(self.config.api_url, self.config.currency, self.config.timeout_seconds)
        if rate is None:
            logger.warning(f"Using fallback exchange rate {self.config.fallback_rate}")
            return self.config.fallback_rate

        if self.config.cache_ttl_seconds > 0:
            with self._lock:
                self._cached_rate = rate
                self._cached_at = time.monotonic()
        return rate

    async def get_rate(self) -> float:
        return await asyncio.to_thread(self.fetch_rate)

    def clear_cache(self) -> None:
        with self._lock:
            self._cached_rate = None
            self._cached_at = 0.0


async def get_exchange_rate(config: Optional[ExchangeConfig] = None) -> float:
    """Asynchronously fetch the current USD -> CAD rate, falling back to 1.35."""
    return await ExchangeRateService(config).get_rate()
