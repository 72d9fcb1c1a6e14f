from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import BadRequestError, NotFoundError
from app.core.logging import get_logger
from app.models.cost_estimate import ImportCostEstimate
from app.models.enums import CostEstimateStatus
from app.repositories.cost_estimate_repo import CostEstimateRepository
from app.repositories.shipment_repo import ShipmentRepository

logger = get_logger()

ZERO = Decimal("0")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class FeeSchedule:
    name: str
    rate: Decimal
    minimum: Decimal


@dataclass(frozen=True)
class CostingSchedule:
    name: str
    fee: FeeSchedule
    local_items: tuple[str, ...]
    destination_items: tuple[str, ...]

    @property
    def line_items(self) -> tuple[str, ...]:
        return self.local_items + self.destination_items


AGENCY_FEE = FeeSchedule(name="agency", rate=Decimal("0.035"), minimum=Decimal("1187"))
DAVIF_FEE = FeeSchedule(name="davif", rate=Decimal("0.0325"), minimum=Decimal("125"))

STANDARD_SCHEDULE = CostingSchedule(
    name="standard",
    fee=AGENCY_FEE,
    local_items=(
        "local_cartage_cpt_klapmuts_zar",
        "transport_dbn_to_pretoria_zar",
        "transport_to_warehouse_zar",
        "unpack_reload_zar",
        "storage_zar",
        "outlying_depot_surcharge_zar",
    ),
    destination_items=(
        "shipping_line_charges_zar",
        "cargo_dues_zar",
        "cto_fee_zar",
        "port_health_inspection_zar",
        "sars_inspection_zar",
        "state_vet_fee_zar",
        "inb_turn_in_zar",
    ),
)

RATE_SHEET_SCHEDULE = CostingSchedule(
    name="rate_sheet",
    fee=DAVIF_FEE,
    local_items=(
        "local_cartage_cpt_klapmuts_20ton_zar",
        "local_cartage_cpt_klapmuts_28ton_zar",
        "transport_dbn_to_pretoria_20ft_zar",
        "transport_dbn_to_pretoria_40ft_zar",
        "transport_dbn_to_whs_zar",
        "unpack_reload_zar",
        "storage_zar",
        "outlying_depot_surcharge_zar",
        "local_cartage_dbn_whs_pretoria_opt_a_zar",
        "local_cartage_dbn_whs_pretoria_opt_b_zar",
        "local_cartage_dbn_whs_pretoria_6m_zar",
        "local_cartage_dbn_whs_pretoria_12m_zar",
        "transport_pe_coega_to_pretoria_zar",
    ),
    destination_items=(
        "shipping_line_charges_zar",
        "cargo_dues_20ft_zar",
        "cargo_dues_40ft_zar",
        "cto_fee_zar",
        "port_health_inspection_zar",
        "daff_inspection_zar",
        "state_vet_cancellation_fee_zar",
        "jnb_turn_in_zar",
    ),
)

SCHEDULES: dict[str, CostingSchedule] = {
    STANDARD_SCHEDULE.name: STANDARD_SCHEDULE,
    RATE_SHEET_SCHEDULE.name: RATE_SHEET_SCHEDULE,
}

LINE_ITEM_NAMES = frozenset(name for schedule in SCHEDULES.values() for name in schedule.line_items)

# Fields a client may set on an estimate; derived totals are always engine-owned.
INPUT_FIELDS = (
    "shipment_id",
    "supplier_id",
    "supplier_name",
    "reference_number",
    "country_of_destination",
    "port_of_discharge",
    "shipping_line",
    "container_type",
    "inco_terms",
    "commodity",
    "hs_code",
    "quantity",
    "costing_date",
    "status",
    "schedule",
    "notes",
    "created_by",
    "roe_origin",
    "roe_eur",
    "invoice_value_usd",
    "invoice_value_eur",
    "origin_charge_usd",
    "origin_charge_eur",
    "total_gross_weight_kg",
    "customs_duty_not_applicable",
    "duties_zar",
    "customs_vat_zar",
    "customs_declaration_zar",
    "line_items",
)

NON_NULLABLE_FIELDS = frozenset(
    {
        "country_of_destination",
        "quantity",
        "costing_date",
        "status",
        "schedule",
        "customs_duty_not_applicable",
        "line_items",
    }
)


def get_schedule(name: str | None = None) -> CostingSchedule:
    key = name or get_settings().costing_schedule
    try:
        return SCHEDULES[key]
    except KeyError as exc:
        raise BadRequestError(f"Unknown costing schedule '{key}'", details={"schedules": sorted(SCHEDULES)}) from exc


def to_decimal(value: Any) -> Decimal:
    """Coerce a loosely typed charge input to Decimal; anything unusable counts as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not number.is_finite():
        return ZERO
    return number


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_fee(customs_value: Any, fee: FeeSchedule = AGENCY_FEE) -> Decimal:
    value = to_decimal(customs_value)
    if value <= 0:
        return ZERO
    return max(value * fee.rate, fee.minimum)


def calculate_customs_value(data: Mapping[str, Any]) -> Decimal:
    roe_origin = to_decimal(data.get("roe_origin"))
    roe_eur = to_decimal(data.get("roe_eur") or data.get("roe_customs"))
    from_invoices = to_decimal(data.get("invoice_value_usd")) * roe_origin + to_decimal(
        data.get("invoice_value_eur")
    ) * roe_eur
    if from_invoices:
        return from_invoices
    return to_decimal(data.get("customs_value_zar"))


def _line_item(data: Mapping[str, Any], name: str) -> Decimal:
    line_items = data.get("line_items") or {}
    if isinstance(line_items, Mapping) and name in line_items:
        return to_decimal(line_items[name])
    return to_decimal(data.get(name))


def calculate_all_totals(data: Mapping[str, Any], schedule: CostingSchedule | None = None) -> dict[str, Decimal]:
    """Compute every derived costing field from raw charge inputs.

    Line items are read from ``data["line_items"]`` first and then from top-level keys, so both
    stored estimates and flat request payloads work. Intermediates stay unrounded; each output is
    rounded half-up to cents.
    """
    schedule = schedule or get_schedule(data.get("schedule"))

    roe_origin = to_decimal(data.get("roe_origin"))
    roe_eur = to_decimal(data.get("roe_eur") or data.get("roe_customs"))
    weight = to_decimal(data.get("total_gross_weight_kg"))

    customs_value = calculate_customs_value(data)

    origin_usd_zar = to_decimal(data.get("origin_charge_usd")) * roe_origin
    origin_eur_zar = to_decimal(data.get("origin_charge_eur")) * roe_eur
    origin_zar = origin_usd_zar + origin_eur_zar

    local_subtotal = sum((_line_item(data, name) for name in schedule.local_items), ZERO)
    destination_subtotal = sum((_line_item(data, name) for name in schedule.destination_items), ZERO)

    fee = calculate_fee(customs_value, schedule.fee)

    duties = ZERO if data.get("customs_duty_not_applicable") else to_decimal(data.get("duties_zar"))
    customs_subtotal = (
        duties
        + to_decimal(data.get("customs_vat_zar"))
        + to_decimal(data.get("customs_declaration_zar"))
        + fee
    )

    total_shipping = origin_zar + local_subtotal + destination_subtotal
    total_in_warehouse = total_shipping + customs_subtotal
    cost_per_kg = total_in_warehouse / weight if weight > 0 else ZERO

    return {
        "customs_value_zar": round_money(customs_value),
        "origin_charge_usd_zar": round_money(origin_usd_zar),
        "origin_charge_eur_zar": round_money(origin_eur_zar),
        "origin_charge_zar": round_money(origin_zar),
        "total_origin_charges_zar": round_money(origin_zar),
        "local_charges_subtotal_zar": round_money(local_subtotal),
        "destination_charges_subtotal_zar": round_money(destination_subtotal),
        "agency_fee_zar": round_money(fee),
        "customs_subtotal_zar": round_money(customs_subtotal),
        "total_shipping_cost_zar": round_money(total_shipping),
        "total_in_warehouse_cost_zar": round_money(total_in_warehouse),
        "cost_per_kg_zar": round_money(cost_per_kg),
    }


def normalize_line_items(line_items: Mapping[str, Any] | None) -> dict[str, str]:
    # JSONB holds the amounts as strings so Decimal precision survives the round trip.
    return {str(name): str(to_decimal(value)) for name, value in (line_items or {}).items()}


def estimate_inputs(estimate: ImportCostEstimate) -> dict[str, Any]:
    return {field: getattr(estimate, field, None) for field in INPUT_FIELDS}


class CostingService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = CostEstimateRepository(session)
        self.shipment_repo = ShipmentRepository(session)

    async def list(self, status=None, supplier_id=None, shipment_id=None, page: int = 1, limit: int = 20):
        return await self.repo.list(
            status=status, supplier_id=supplier_id, shipment_id=shipment_id, page=page, limit=limit
        )

    async def get(self, estimate_id: str) -> ImportCostEstimate:
        estimate = await self.repo.get(estimate_id)
        if not estimate:
            raise NotFoundError("Cost estimate not found")
        return estimate

    async def list_by_shipment(self, shipment_id: str) -> list[ImportCostEstimate]:
        return await self.repo.list_by_shipment(shipment_id)

    async def create(self, data: Mapping[str, Any]) -> ImportCostEstimate:
        inputs = {key: value for key, value in data.items() if key in INPUT_FIELDS and value is not None}
        inputs["line_items"] = normalize_line_items(inputs.get("line_items"))
        inputs.setdefault("schedule", get_schedule(inputs.get("schedule")).name)
        totals = calculate_all_totals(inputs)
        estimate = await self.repo.create(ImportCostEstimate(**inputs, **totals))
        logger.info(
            "cost_estimate_created",
            estimate_id=estimate.id,
            schedule=estimate.schedule,
            total_in_warehouse_cost_zar=str(estimate.total_in_warehouse_cost_zar),
        )
        return estimate

    async def update(self, estimate_id: str, data: Mapping[str, Any]) -> ImportCostEstimate:
        estimate = await self.get(estimate_id)
        changes = {
            key: value
            for key, value in data.items()
            if key in INPUT_FIELDS and not (value is None and key in NON_NULLABLE_FIELDS)
        }
        if "line_items" in changes:
            changes["line_items"] = {**(estimate.line_items or {}), **normalize_line_items(changes["line_items"])}
        merged = {**estimate_inputs(estimate), **changes}
        totals = calculate_all_totals(merged)
        for key, value in {**changes, **totals}.items():
            setattr(estimate, key, value)
        estimate = await self.repo.update(estimate)
        logger.info("cost_estimate_updated", estimate_id=estimate.id, fields=sorted(changes))
        return estimate

    async def delete(self, estimate_id: str) -> None:
        estimate = await self.get(estimate_id)
        await self.repo.delete(estimate)
        logger.info("cost_estimate_deleted", estimate_id=estimate_id)

    async def duplicate(self, estimate_id: str) -> ImportCostEstimate:
        original = await self.get(estimate_id)
        inputs = estimate_inputs(original)
        if original.reference_number:
            inputs["reference_number"] = f"{original.reference_number}-COPY"
        inputs["status"] = CostEstimateStatus.DRAFT
        inputs["line_items"] = dict(original.line_items or {})
        copy = await self.create(inputs)
        logger.info("cost_estimate_duplicated", source_id=estimate_id, estimate_id=copy.id)
        return copy

    async def link_to_shipment(self, estimate_id: str, shipment_id: str) -> ImportCostEstimate:
        estimate = await self.get(estimate_id)
        if not await self.shipment_repo.get(shipment_id):
            raise NotFoundError(f"Shipment with ID {shipment_id} not found")
        estimate.shipment_id = shipment_id
        return await self.repo.update(estimate)

    async def unlink_from_shipment(self, estimate_id: str) -> ImportCostEstimate:
        estimate = await self.get(estimate_id)
        estimate.shipment_id = None
        return await self.repo.update(estimate)
