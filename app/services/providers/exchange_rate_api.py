from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

import httpx

from app.core.config import get_settings
from app.core.logging import get_logger
from app.services.providers.http_client import CircuitBreaker, get_json

logger = get_logger()


@dataclass
class RateSource:
    base_url: str
    breaker: CircuitBreaker = field(default_factory=CircuitBreaker)

    @property
    def name(self) -> str:
        return urlparse(self.base_url).netloc.removeprefix("api.") or self.base_url


@dataclass
class FetchedRate:
    rate: Decimal
    source: str


def parse_rate(payload: dict, quote: str) -> Decimal | None:
    try:
        rate = Decimal(str(payload["rates"][quote]))
    except (KeyError, TypeError, InvalidOperation):
        return None
    if not rate.is_finite() or rate <= 0:
        return None
    return rate


class ExchangeRateProvider:
    """Queries the configured public rate APIs in order and returns the first usable quote."""

    def __init__(self, sources: list[RateSource] | None = None) -> None:
        if sources is None:
            settings = get_settings()
            sources = [
                RateSource(settings.exchange_rate_api_base),
                RateSource(settings.exchange_rate_fallback_api_base),
            ]
        self.sources = sources

    async def fetch(self, base: str, quote: str) -> FetchedRate | None:
        for source in self.sources:
            if not source.breaker.allow():
                logger.info("exchange_rate_source_skipped", source=source.name)
                continue
            try:
                payload = await get_json(f"{source.base_url.rstrip('/')}/{base}")
            except (httpx.HTTPError, ValueError) as exc:
                source.breaker.record_failure()
                logger.warning("exchange_rate_fetch_failed", source=source.name, error=str(exc))
                continue
            rate = parse_rate(payload, quote)
            if rate is None:
                source.breaker.record_failure()
                logger.warning("exchange_rate_missing_quote", source=source.name, quote=quote)
                continue
            source.breaker.record_success()
            logger.info("exchange_rate_fetched", source=source.name, rate=str(rate))
            return FetchedRate(rate=rate, source=source.name)
        return None


_default_provider: ExchangeRateProvider | None = None


def get_exchange_rate_provider() -> ExchangeRateProvider:
    global _default_provider
    if _default_provider is None:
        _default_provider = ExchangeRateProvider()
    return _default_provider
