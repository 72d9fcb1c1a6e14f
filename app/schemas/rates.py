from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from app.schemas.common import BaseSchema


class ExchangeRateResponse(BaseSchema):
    rate: Decimal
    source: str
    fetched_at: datetime
    is_stale: bool


class ManualRateRequest(BaseModel):
    rate: Decimal = Field(gt=0)
