from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.errors import BadRequestError, NotFoundError
from app.models.cost_estimate import ImportCostEstimate
from app.models.enums import CostEstimateStatus
from app.schemas.costing import CostEstimateCreate, CostEstimateUpdate
from app.services.costing import CostingService


class FakeEstimateRepo:
    def __init__(self, *estimates):
        self.rows = {estimate.id: estimate for estimate in estimates}
        self.created = []
        self.deleted = []

    async def get(self, estimate_id):
        return self.rows.get(estimate_id)

    async def create(self, estimate):
        estimate.id = estimate.id or f"est_{len(self.rows) + 1}"
        self.rows[estimate.id] = estimate
        self.created.append(estimate)
        return estimate

    async def update(self, estimate):
        return estimate

    async def delete(self, estimate):
        self.rows.pop(estimate.id)
        self.deleted.append(estimate.id)


class FakeShipmentRepo:
    def __init__(self, *shipment_ids):
        self.ids = set(shipment_ids)

    async def get(self, shipment_id):
        return SimpleNamespace(id=shipment_id) if shipment_id in self.ids else None


def make_service(*estimates, shipments=()):
    service = CostingService(session=None)
    service.repo = FakeEstimateRepo(*estimates)
    service.shipment_repo = FakeShipmentRepo(*shipments)
    return service


def make_estimate(**overrides):
    fields = dict(
        id="est_1",
        reference_number="IMP-001",
        schedule="standard",
        status=CostEstimateStatus.FINAL,
        roe_origin=Decimal("18"),
        origin_charge_usd=Decimal("100"),
        line_items={"storage_zar": "200"},
    )
    fields.update(overrides)
    return ImportCostEstimate(**fields)


@pytest.mark.asyncio
async def test_create_computes_totals():
    service = make_service()
    estimate = await service.create(
        {
            "reference_number": "IMP-002",
            "roe_origin": Decimal("18"),
            "origin_charge_usd": Decimal("100"),
            "total_gross_weight_kg": Decimal("100"),
            "line_items": {"cto_fee_zar": Decimal("200.50")},
            "notes": None,
        }
    )
    assert estimate.schedule == "standard"
    assert estimate.origin_charge_zar == Decimal("1800.00")
    assert estimate.destination_charges_subtotal_zar == Decimal("200.50")
    assert estimate.total_in_warehouse_cost_zar == Decimal("2000.50")
    assert estimate.cost_per_kg_zar == Decimal("20.01")
    assert estimate.line_items == {"cto_fee_zar": "200.50"}


@pytest.mark.asyncio
async def test_create_rejects_unknown_schedule():
    service = make_service()
    with pytest.raises(BadRequestError):
        await service.create({"schedule": "express"})
    assert service.repo.created == []


@pytest.mark.asyncio
async def test_update_merges_line_items_and_recomputes():
    service = make_service(make_estimate())
    estimate = await service.update("est_1", {"line_items": {"cto_fee_zar": 300}, "roe_origin": Decimal("20")})

    assert estimate.line_items == {"storage_zar": "200", "cto_fee_zar": "300"}
    assert estimate.origin_charge_zar == Decimal("2000.00")
    assert estimate.local_charges_subtotal_zar == Decimal("200.00")
    assert estimate.destination_charges_subtotal_zar == Decimal("300.00")
    assert estimate.total_shipping_cost_zar == Decimal("2500.00")


@pytest.mark.asyncio
async def test_update_ignores_null_for_required_fields():
    service = make_service(make_estimate())
    estimate = await service.update("est_1", {"status": None, "line_items": None, "notes": None})
    assert estimate.status == CostEstimateStatus.FINAL
    assert estimate.line_items == {"storage_zar": "200"}


@pytest.mark.asyncio
async def test_missing_estimate_is_not_found():
    service = make_service()
    with pytest.raises(NotFoundError, match="Cost estimate not found"):
        await service.update("nope", {"notes": "x"})
    with pytest.raises(NotFoundError):
        await service.delete("nope")


@pytest.mark.asyncio
async def test_duplicate_resets_status_and_marks_reference():
    service = make_service(make_estimate())
    copy = await service.duplicate("est_1")

    assert copy.id != "est_1"
    assert copy.reference_number == "IMP-001-COPY"
    assert copy.status == CostEstimateStatus.DRAFT
    assert copy.line_items == {"storage_zar": "200"}
    assert copy.total_shipping_cost_zar == Decimal("2000.00")


@pytest.mark.asyncio
async def test_link_and_unlink_shipment():
    service = make_service(make_estimate(), shipments=["ship_1"])

    estimate = await service.link_to_shipment("est_1", "ship_1")
    assert estimate.shipment_id == "ship_1"

    with pytest.raises(NotFoundError):
        await service.link_to_shipment("est_1", "ship_missing")

    estimate = await service.unlink_from_shipment("est_1")
    assert estimate.shipment_id is None


@pytest.mark.asyncio
async def test_delete_estimate():
    service = make_service(make_estimate())
    await service.delete("est_1")
    assert service.repo.deleted == ["est_1"]


@pytest.mark.asyncio
async def test_flat_and_nested_line_items_store_the_same_totals():
    service = make_service()
    flat = {"storage_zar": 500, "cto_fee_zar": 250, "total_gross_weight_kg": 10}
    nested = {"line_items": {"storage_zar": 500, "cto_fee_zar": 250}, "total_gross_weight_kg": 10}

    from_flat = await service.create(CostEstimateCreate(**flat).model_dump(exclude_none=True))
    from_nested = await service.create(CostEstimateCreate(**nested).model_dump(exclude_none=True))

    assert from_flat.line_items == from_nested.line_items == {"storage_zar": "500", "cto_fee_zar": "250"}
    assert from_flat.local_charges_subtotal_zar == Decimal("500.00")
    assert from_flat.destination_charges_subtotal_zar == Decimal("250.00")
    assert from_flat.total_in_warehouse_cost_zar == from_nested.total_in_warehouse_cost_zar == Decimal("750.00")
    assert from_flat.cost_per_kg_zar == from_nested.cost_per_kg_zar == Decimal("75.00")


def test_nested_line_item_wins_over_flat_key():
    payload = CostEstimateCreate(storage_zar=100, line_items={"storage_zar": 200})
    assert payload.line_items == {"storage_zar": Decimal("200")}


@pytest.mark.asyncio
async def test_update_accepts_flat_line_items():
    service = make_service(make_estimate())
    payload = CostEstimateUpdate(cto_fee_zar=300, notes="Quoted")

    estimate = await service.update("est_1", payload.model_dump(exclude_unset=True))

    assert estimate.line_items == {"storage_zar": "200", "cto_fee_zar": "300"}
    assert estimate.destination_charges_subtotal_zar == Decimal("300.00")
    assert estimate.notes == "Quoted"


@pytest.mark.asyncio
@pytest.mark.parametrize("charge", ["", "abc", "NaN"])
async def test_unusable_charge_inputs_count_as_zero(charge):
    service = make_service()
    payload = CostEstimateCreate(origin_charge_usd=charge, roe_origin=18, storage_zar=charge)

    estimate = await service.create(payload.model_dump(exclude_none=True))

    assert estimate.origin_charge_usd == Decimal("0")
    assert estimate.origin_charge_zar == Decimal("0.00")
    assert estimate.line_items == {"storage_zar": "0"}
    assert estimate.total_in_warehouse_cost_zar == Decimal("0.00")
