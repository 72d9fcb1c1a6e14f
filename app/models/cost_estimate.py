from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import CostEstimateStatus


class ImportCostEstimate(Base):
    __tablename__ = "import_cost_estimates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    shipment_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("shipments.id", ondelete="SET NULL"), index=True
    )
    supplier_id: Mapped[str | None] = mapped_column(String(64), index=True)
    supplier_name: Mapped[str | None] = mapped_column(String(255))
    reference_number: Mapped[str | None] = mapped_column(String(100))
    country_of_destination: Mapped[str] = mapped_column(String(100), nullable=False, default="South Africa")
    port_of_discharge: Mapped[str | None] = mapped_column(String(50))
    shipping_line: Mapped[str | None] = mapped_column(String(100))
    container_type: Mapped[str | None] = mapped_column(String(50))
    inco_terms: Mapped[str | None] = mapped_column(String(20))
    commodity: Mapped[str | None] = mapped_column(String(255))
    hs_code: Mapped[str | None] = mapped_column(String(50))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    costing_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    status: Mapped[CostEstimateStatus] = mapped_column(
        Enum(
            CostEstimateStatus,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=CostEstimateStatus.DRAFT,
        index=True,
    )
    schedule: Mapped[str] = mapped_column(String(32), nullable=False, default="standard")
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(String(255))

    roe_origin: Mapped[Decimal | None] = mapped_column(Numeric(12, 6))
    roe_eur: Mapped[Decimal | None] = mapped_column(Numeric(12, 6))
    invoice_value_usd: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    invoice_value_eur: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    origin_charge_usd: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    origin_charge_eur: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    total_gross_weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    customs_duty_not_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    duties_zar: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    customs_vat_zar: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    customs_declaration_zar: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    line_items: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    customs_value_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    origin_charge_usd_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    origin_charge_eur_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    origin_charge_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_origin_charges_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    local_charges_subtotal_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    destination_charges_subtotal_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    agency_fee_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    customs_subtotal_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_shipping_cost_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_in_warehouse_cost_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    cost_per_kg_zar: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    shipment = relationship("Shipment", back_populates="cost_estimates")
