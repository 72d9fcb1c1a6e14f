from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ExchangeRateCache(Base):
    __tablename__ = "exchange_rate_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    currency_pair: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 6), nullable=False)
    source: Mapped[str | None] = mapped_column(String(100))
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
