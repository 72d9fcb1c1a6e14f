from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from pydantic import BaseModel, Field, field_validator

from app.models.enums import InspectionStatus, ReceivingStatus, ShipmentStatus
from app.schemas.common import BaseSchema, Pagination


class ShipmentCreate(BaseModel):
    supplier: str = Field(min_length=1)
    order_ref: str | None = None
    product_name: str | None = None
    quantity: Decimal | None = Field(default=None, ge=0)
    week_number: int | None = Field(default=None, ge=1, le=53)
    final_pod: str | None = None
    receiving_warehouse: str | None = None
    forwarding_agent: str | None = None
    vessel_name: str | None = None
    incoterm: str | None = None
    notes: str | None = None
    latest_status: ShipmentStatus = ShipmentStatus.PLANNED_AIRFREIGHT

    @field_validator("supplier", "order_ref", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("incoterm", mode="before")
    @classmethod
    def normalize_incoterm(cls, value: str | None):
        return value.upper() if isinstance(value, str) else value


class ShipmentImport(ShipmentCreate):
    id: str | None = None


class ShipmentUpdate(BaseModel):
    supplier: str | None = None
    order_ref: str | None = None
    product_name: str | None = None
    quantity: Decimal | None = Field(default=None, ge=0)
    week_number: int | None = Field(default=None, ge=1, le=53)
    final_pod: str | None = None
    receiving_warehouse: str | None = None
    forwarding_agent: str | None = None
    vessel_name: str | None = None
    incoterm: str | None = None
    notes: str | None = None

    @field_validator("incoterm", mode="before")
    @classmethod
    def normalize_incoterm(cls, value: str | None):
        return value.upper() if isinstance(value, str) else value


class ShipmentRead(BaseSchema):
    id: str
    supplier: str
    order_ref: str | None
    product_name: str | None
    quantity: Decimal | None
    week_number: int | None
    final_pod: str | None = None
    receiving_warehouse: str | None = None
    forwarding_agent: str | None = None
    vessel_name: str | None = None
    incoterm: str | None = None
    notes: str | None = None
    latest_status: ShipmentStatus

    unloading_start_date: datetime | None = None
    unloading_completed_date: datetime | None = None
    inspection_date: datetime | None = None
    inspection_status: InspectionStatus | None = None
    inspection_notes: str | None = None
    inspected_by: str | None = None
    receiving_date: datetime | None = None
    receiving_status: ReceivingStatus | None = None
    receiving_notes: str | None = None
    received_by: str | None = None
    received_quantity: Decimal | None = None
    discrepancies: list[Any] = Field(default_factory=list)
    rejection_date: datetime | None = None
    rejection_reason: str | None = None
    rejected_by: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("discrepancies", mode="before")
    @classmethod
    def default_discrepancies(cls, value):
        return value or []


class ShipmentList(BaseModel):
    shipments: list[ShipmentRead]
    pagination: Pagination


class ShipmentStats(BaseModel):
    total: int
    stored: int
    in_transit: int
    arrived: int


class BulkImportResponse(BaseModel):
    count: int
    archive_file_name: str | None = None


class StatusAmend(BaseModel):
    status: ShipmentStatus
    notes: str | None = None


class StartInspection(BaseModel):
    inspected_by: str | None = None


class CompleteInspection(BaseModel):
    passed: bool
    notes: str | None = None
    inspected_by: str | None = None


class StartReceiving(BaseModel):
    received_by: str | None = None


class Discrepancy(BaseModel):
    description: str
    expected: Decimal | None = None
    actual: Decimal | None = None
    item: str | None = None


class CompleteReceiving(BaseModel):
    received_quantity: Decimal = Field(ge=0)
    notes: str | None = None
    received_by: str | None = None
    discrepancies: list[Discrepancy] = Field(default_factory=list)


class RejectShipment(BaseModel):
    rejection_reason: str = ""
    rejected_by: str | None = None
    archive: bool = True


class RejectionResult(BaseModel):
    shipment_id: str
    archived: bool
    archive_file_name: str | None = None
    shipment: ShipmentRead | None = None
