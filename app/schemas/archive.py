from __future__ import annotations

from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field

from app.schemas.common import BaseSchema


class ArchiveSummary(BaseSchema):
    file_name: str
    archived_at: datetime | None
    total_shipments: int


class ArchiveDetail(ArchiveSummary):
    data: list[dict[str, Any]] = Field(default_factory=list)


class ManualArchiveRequest(BaseModel):
    shipment_ids: list[str] = Field(min_length=1)


class ManualArchiveResponse(BaseModel):
    archived_count: int
    remaining_count: int
    archive_file_name: str
