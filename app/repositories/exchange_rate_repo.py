from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.exchange_rate import ExchangeRateCache


class ExchangeRateRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, currency_pair: str) -> ExchangeRateCache | None:
        result = await self.session.execute(
            select(ExchangeRateCache).where(ExchangeRateCache.currency_pair == currency_pair)
        )
        return result.scalar_one_or_none()

    async def upsert(self, currency_pair: str, rate: Decimal, source: str) -> ExchangeRateCache:
        stmt = pg_insert(ExchangeRateCache).values(currency_pair=currency_pair, rate=rate, source=source)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ExchangeRateCache.currency_pair],
            set_={"rate": stmt.excluded.rate, "source": stmt.excluded.source, "fetched_at": func.now()},
        ).returning(ExchangeRateCache)
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        cached = result.scalar_one()
        await self.session.commit()
        return cached
