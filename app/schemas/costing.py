from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.enums import CostEstimateStatus
from app.schemas.common import BaseSchema, Pagination
from app.services.costing import LINE_ITEM_NAMES, to_decimal

AMOUNT_FIELDS = (
    "roe_origin",
    "roe_eur",
    "invoice_value_usd",
    "invoice_value_eur",
    "origin_charge_usd",
    "origin_charge_eur",
    "total_gross_weight_kg",
    "duties_zar",
    "customs_vat_zar",
    "customs_declaration_zar",
)


def coerce_amount(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


class CostInputs(BaseModel):
    """Raw charge inputs. Unusable amounts count as zero instead of failing validation."""

    roe_origin: Decimal | None = None
    roe_eur: Decimal | None = None
    invoice_value_usd: Decimal | None = None
    invoice_value_eur: Decimal | None = None
    origin_charge_usd: Decimal | None = None
    origin_charge_eur: Decimal | None = None
    total_gross_weight_kg: Decimal | None = None
    customs_duty_not_applicable: bool | None = None
    duties_zar: Decimal | None = None
    customs_vat_zar: Decimal | None = None
    customs_declaration_zar: Decimal | None = None
    line_items: dict[str, Decimal | None] | None = None
    schedule: str | None = None

    @model_validator(mode="before")
    @classmethod
    def collect_line_items(cls, data: Any):
        # Line items may arrive as top-level keys; explicit line_items entries win.
        if not isinstance(data, dict):
            return data
        flat = {name: data[name] for name in LINE_ITEM_NAMES if name in data}
        nested = data.get("line_items")
        if not flat or not (nested is None or isinstance(nested, dict)):
            return data
        data = {key: value for key, value in data.items() if key not in flat}
        data["line_items"] = {**flat, **(nested or {})}
        return data

    @field_validator(*AMOUNT_FIELDS, mode="before")
    @classmethod
    def coerce_amounts(cls, value: Any):
        return coerce_amount(value)

    @field_validator("line_items", mode="before")
    @classmethod
    def coerce_line_items(cls, value: Any):
        if isinstance(value, dict):
            return {name: coerce_amount(amount) for name, amount in value.items()}
        return value


class CostEstimateCreate(CostInputs):
    shipment_id: str | None = None
    supplier_id: str | None = None
    supplier_name: str | None = None
    reference_number: str | None = None
    country_of_destination: str | None = None
    port_of_discharge: str | None = None
    shipping_line: str | None = None
    container_type: str | None = None
    inco_terms: str | None = None
    commodity: str | None = None
    hs_code: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    costing_date: date | None = None
    status: CostEstimateStatus | None = None
    notes: str | None = None
    created_by: str | None = None

    @field_validator("inco_terms", mode="before")
    @classmethod
    def normalize_inco_terms(cls, value: str | None):
        return value.strip().upper() if isinstance(value, str) else value


class CostEstimateUpdate(CostEstimateCreate):
    pass


class CostTotals(BaseSchema):
    customs_value_zar: Decimal
    origin_charge_usd_zar: Decimal
    origin_charge_eur_zar: Decimal
    origin_charge_zar: Decimal
    total_origin_charges_zar: Decimal
    local_charges_subtotal_zar: Decimal
    destination_charges_subtotal_zar: Decimal
    agency_fee_zar: Decimal
    customs_subtotal_zar: Decimal
    total_shipping_cost_zar: Decimal
    total_in_warehouse_cost_zar: Decimal
    cost_per_kg_zar: Decimal


class CalculateRequest(CostInputs):
    customs_value_zar: Decimal | None = None
    roe_customs: Decimal | None = None

    @field_validator("customs_value_zar", "roe_customs", mode="before")
    @classmethod
    def coerce_fallbacks(cls, value: Any):
        return coerce_amount(value)


class CostEstimateRead(CostTotals):
    id: str
    shipment_id: str | None
    supplier_id: str | None = None
    supplier_name: str | None = None
    reference_number: str | None = None
    country_of_destination: str
    port_of_discharge: str | None = None
    shipping_line: str | None = None
    container_type: str | None = None
    inco_terms: str | None = None
    commodity: str | None = None
    hs_code: str | None = None
    quantity: int
    costing_date: date | None = None
    status: CostEstimateStatus
    schedule: str
    notes: str | None = None
    created_by: str | None = None

    roe_origin: Decimal | None = None
    roe_eur: Decimal | None = None
    invoice_value_usd: Decimal | None = None
    invoice_value_eur: Decimal | None = None
    origin_charge_usd: Decimal | None = None
    origin_charge_eur: Decimal | None = None
    total_gross_weight_kg: Decimal | None = None
    customs_duty_not_applicable: bool = False
    duties_zar: Decimal | None = None
    customs_vat_zar: Decimal | None = None
    customs_declaration_zar: Decimal | None = None
    line_items: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("line_items", mode="before")
    @classmethod
    def default_line_items(cls, value):
        return value or {}


class CostEstimateList(BaseModel):
    estimates: list[CostEstimateRead]
    pagination: Pagination


class LinkShipmentRequest(BaseModel):
    shipment_id: str = Field(min_length=1)
