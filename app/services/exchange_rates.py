from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import BadRequestError
from app.core.logging import get_logger
from app.core.redis import RedisClient, redis_client
from app.models.exchange_rate import ExchangeRateCache
from app.repositories.exchange_rate_repo import ExchangeRateRepository
from app.services.providers.exchange_rate_api import ExchangeRateProvider, get_exchange_rate_provider

logger = get_logger()

CURRENCY_PAIR = "USD/ZAR"


@dataclass
class ExchangeRateQuote:
    rate: Decimal
    source: str
    fetched_at: datetime
    is_stale: bool

    def to_cache(self) -> dict[str, str]:
        return {"rate": str(self.rate), "source": self.source, "fetched_at": self.fetched_at.isoformat()}

    @classmethod
    def from_cache(cls, payload: dict) -> "ExchangeRateQuote":
        return cls(
            rate=Decimal(payload["rate"]),
            source=payload.get("source") or "cache",
            fetched_at=datetime.fromisoformat(payload["fetched_at"]),
            is_stale=False,
        )

    @classmethod
    def from_row(cls, row: ExchangeRateCache, is_stale: bool) -> "ExchangeRateQuote":
        return cls(rate=Decimal(row.rate), source=row.source or "cache", fetched_at=row.fetched_at, is_stale=is_stale)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ExchangeRateService:
    """USD/ZAR lookup: Redis, then a fresh DB row, then the public APIs, then a stale row, then a constant."""

    def __init__(
        self,
        session: AsyncSession,
        provider: ExchangeRateProvider | None = None,
        cache: RedisClient | None = None,
    ) -> None:
        self.session = session
        self.settings = get_settings()
        self.repo = ExchangeRateRepository(session)
        self.provider = provider or get_exchange_rate_provider()
        self.cache = cache or redis_client
        self.pair = CURRENCY_PAIR
        self.base, self.quote = CURRENCY_PAIR.split("/")

    @property
    def cache_key(self) -> str:
        return f"fx:{self.base}:{self.quote}"

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.settings.exchange_rate_cache_seconds)

    async def _cache_get(self) -> ExchangeRateQuote | None:
        try:
            payload = await self.cache.get_json(self.cache_key)
        except RedisError as exc:
            logger.warning("exchange_rate_cache_unavailable", error=str(exc))
            return None
        return ExchangeRateQuote.from_cache(payload) if payload else None

    async def _cache_set(self, quote: ExchangeRateQuote) -> None:
        try:
            await self.cache.set_json(self.cache_key, quote.to_cache(), self.settings.exchange_rate_cache_seconds)
        except RedisError as exc:
            logger.warning("exchange_rate_cache_unavailable", error=str(exc))

    def _is_fresh(self, row: ExchangeRateCache) -> bool:
        fetched_at = row.fetched_at
        if fetched_at is None:
            return False
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return _now() - fetched_at < self.max_age

    async def _store(self, rate: Decimal, source: str) -> ExchangeRateQuote:
        row = await self.repo.upsert(self.pair, rate, source)
        quote = ExchangeRateQuote.from_row(row, is_stale=False)
        await self._cache_set(quote)
        return quote

    async def _fetch_and_store(self) -> ExchangeRateQuote | None:
        fetched = await self.provider.fetch(self.base, self.quote)
        if fetched is None:
            return None
        return await self._store(fetched.rate, fetched.source)

    def _fallback(self) -> ExchangeRateQuote:
        logger.info("exchange_rate_fallback", pair=self.pair, rate=self.settings.exchange_rate_fallback)
        return ExchangeRateQuote(
            rate=Decimal(self.settings.exchange_rate_fallback),
            source="fallback",
            fetched_at=_now(),
            is_stale=True,
        )

    async def get_current_rate(self) -> ExchangeRateQuote:
        cached = await self._cache_get()
        if cached:
            return cached

        row = await self.repo.get(self.pair)
        if row is not None and self._is_fresh(row):
            quote = ExchangeRateQuote.from_row(row, is_stale=False)
            await self._cache_set(quote)
            return quote

        fresh = await self._fetch_and_store()
        if fresh:
            return fresh

        if row is not None:
            logger.warning("exchange_rate_stale", pair=self.pair, fetched_at=str(row.fetched_at))
            return ExchangeRateQuote.from_row(row, is_stale=True)
        return self._fallback()

    async def refresh_rate(self) -> ExchangeRateQuote:
        fresh = await self._fetch_and_store()
        if fresh:
            return fresh
        return await self.get_current_rate()

    async def set_manual_rate(self, rate: Decimal) -> ExchangeRateQuote:
        if not rate.is_finite() or rate <= 0:
            raise BadRequestError("Exchange rate must be a positive number")
        quote = await self._store(rate, "manual")
        logger.info("exchange_rate_manual", pair=self.pair, rate=str(rate))
        return quote
