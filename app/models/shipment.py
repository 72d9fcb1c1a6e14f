from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import DateTime, Enum, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import InspectionStatus, ReceivingStatus, ShipmentStatus


def new_shipment_id() -> str:
    return f"ship_{uuid.uuid4().hex}"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class Shipment(Base):
    __tablename__ = "shipments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_shipment_id)

    supplier: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    order_ref: Mapped[str | None] = mapped_column(String(100), unique=True)
    product_name: Mapped[str | None] = mapped_column(String(255))
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    week_number: Mapped[int | None] = mapped_column(Integer)
    final_pod: Mapped[str | None] = mapped_column(String(100))
    receiving_warehouse: Mapped[str | None] = mapped_column(String(100))
    forwarding_agent: Mapped[str | None] = mapped_column(String(255))
    vessel_name: Mapped[str | None] = mapped_column(String(255))
    incoterm: Mapped[str | None] = mapped_column(String(8))
    notes: Mapped[str | None] = mapped_column(Text)

    latest_status: Mapped[ShipmentStatus] = mapped_column(
        Enum(ShipmentStatus, native_enum=False, length=32, values_callable=_values),
        nullable=False,
        default=ShipmentStatus.PLANNED_AIRFREIGHT,
        index=True,
    )

    unloading_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    unloading_completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    inspection_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    inspection_status: Mapped[InspectionStatus | None] = mapped_column(
        Enum(InspectionStatus, native_enum=False, length=32, values_callable=_values)
    )
    inspection_notes: Mapped[str | None] = mapped_column(Text)
    inspected_by: Mapped[str | None] = mapped_column(String(255))

    receiving_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    receiving_status: Mapped[ReceivingStatus | None] = mapped_column(
        Enum(ReceivingStatus, native_enum=False, length=32, values_callable=_values)
    )
    receiving_notes: Mapped[str | None] = mapped_column(Text)
    received_by: Mapped[str | None] = mapped_column(String(255))
    received_quantity: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    discrepancies: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    rejection_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    rejected_by: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    cost_estimates = relationship("ImportCostEstimate", back_populates="shipment", passive_deletes=True)
