from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.errors import BadRequestError, InvalidStateTransitionError, NotFoundError
from app.models.enums import InspectionStatus, ReceivingStatus, ShipmentStatus
from app.services.workflow import ShipmentWorkflowService, available_actions, resolve_receiving_outcome
from tests.support import FakeSession, make_shipment


class FakeShipmentRepo:
    """Mimics the conditional UPDATE: values land only when the current status matches."""

    def __init__(self, *shipments):
        self.rows = {shipment.id: shipment for shipment in shipments}
        self.deleted = []

    async def get(self, shipment_id):
        return self.rows.get(shipment_id)

    async def transition(self, shipment_id, from_statuses, values, commit=True):
        row = self.rows.get(shipment_id)
        if row is None or row.latest_status not in from_statuses:
            return None
        for key, value in values.items():
            setattr(row, key, value)
        return row

    async def update(self, shipment):
        return shipment

    async def delete(self, shipment, commit=True):
        self.rows.pop(shipment.id)
        self.deleted.append(shipment.id)

    async def list_by_statuses(self, statuses):
        return [row for row in self.rows.values() if row.latest_status in statuses]


class FakeArchiveService:
    def __init__(self) -> None:
        self.archived = []

    async def archive_snapshots(self, snapshots, commit=True):
        self.archived.extend(snapshots)
        return SimpleNamespace(file_name="shipments_2024-01-01T00-00-00-000000.json", data=snapshots)


def make_service(*shipments):
    session = FakeSession()
    service = ShipmentWorkflowService(session)
    service.repo = FakeShipmentRepo(*shipments)
    service.archive_service = FakeArchiveService()
    return service, session


@pytest.mark.asyncio
async def test_full_chain_reaches_stored():
    shipment = make_shipment()
    service, _ = make_service(shipment)

    await service.start_unloading("ship_1")
    assert shipment.latest_status == ShipmentStatus.UNLOADING
    assert shipment.unloading_start_date is not None

    await service.complete_unloading("ship_1")
    assert shipment.latest_status == ShipmentStatus.INSPECTION_PENDING
    assert shipment.unloading_completed_date is not None

    await service.start_inspection("ship_1", "Inspector Jane")
    assert shipment.latest_status == ShipmentStatus.INSPECTING
    assert shipment.inspection_status == InspectionStatus.IN_PROGRESS
    assert shipment.inspected_by == "Inspector Jane"

    await service.complete_inspection("ship_1", passed=True, notes="All good")
    assert shipment.latest_status == ShipmentStatus.INSPECTION_PASSED
    assert shipment.inspection_status == InspectionStatus.PASSED
    assert shipment.inspected_by == "Inspector Jane"

    await service.start_receiving("ship_1", "Clerk")
    assert shipment.latest_status == ShipmentStatus.RECEIVING
    assert shipment.receiving_status == ReceivingStatus.IN_PROGRESS

    await service.complete_receiving("ship_1", Decimal("100"), notes="Counted")
    assert shipment.latest_status == ShipmentStatus.RECEIVED
    assert shipment.receiving_status == ReceivingStatus.COMPLETED
    assert shipment.received_quantity == Decimal("100")

    await service.mark_as_stored("ship_1")
    assert shipment.latest_status == ShipmentStatus.STORED


@pytest.mark.asyncio
async def test_skipping_a_step_fails_and_leaves_record_unchanged():
    shipment = make_shipment()
    service, _ = make_service(shipment)
    before = dict(vars(shipment))

    with pytest.raises(InvalidStateTransitionError) as exc_info:
        await service.start_inspection("ship_1", "Inspector Jane")

    assert vars(shipment) == before
    error = exc_info.value
    assert error.status_code == 409
    assert error.code == "INVALID_STATE_TRANSITION"
    assert error.details["expected"] == ["inspection_pending"]
    assert error.details["actual"] == "arrived_pta"
    assert error.details["allowed_actions"] == ["start_unloading"]


@pytest.mark.asyncio
async def test_repeating_a_transition_fails():
    shipment = make_shipment()
    service, _ = make_service(shipment)

    await service.start_unloading("ship_1")
    with pytest.raises(InvalidStateTransitionError) as exc_info:
        await service.start_unloading("ship_1")
    assert exc_info.value.details["expected"] == ["arrived_klm", "arrived_offsite", "arrived_pta"]
    assert exc_info.value.details["actual"] == "unloading"
    assert exc_info.value.details["allowed_actions"] == ["complete_unloading"]


@pytest.mark.asyncio
async def test_unknown_shipment_is_not_found():
    service, _ = make_service()
    with pytest.raises(NotFoundError):
        await service.start_unloading("missing")
    with pytest.raises(NotFoundError):
        await service.complete_receiving("missing", Decimal("1"))


@pytest.mark.asyncio
async def test_failed_inspection_can_be_reinspected():
    shipment = make_shipment(status=ShipmentStatus.INSPECTING)
    shipment.inspected_by = "First"
    service, _ = make_service(shipment)

    await service.complete_inspection("ship_1", passed=False, notes="Damaged pallets")
    assert shipment.latest_status == ShipmentStatus.INSPECTION_FAILED
    assert shipment.inspection_status == InspectionStatus.FAILED
    assert shipment.inspection_notes == "Damaged pallets"

    await service.reinspect("ship_1", "Second")
    assert shipment.latest_status == ShipmentStatus.INSPECTING
    assert shipment.inspected_by == "Second"


@pytest.mark.asyncio
async def test_partial_receipt_stays_in_receiving():
    shipment = make_shipment(status=ShipmentStatus.RECEIVING)
    service, _ = make_service(shipment)

    await service.complete_receiving("ship_1", Decimal("90"))
    assert shipment.receiving_status == ReceivingStatus.PARTIAL
    assert shipment.latest_status == ShipmentStatus.RECEIVING

    await service.complete_receiving("ship_1", Decimal("100"))
    assert shipment.receiving_status == ReceivingStatus.COMPLETED
    assert shipment.latest_status == ShipmentStatus.RECEIVED


@pytest.mark.asyncio
async def test_discrepancies_take_priority_over_full_quantity():
    shipment = make_shipment(status=ShipmentStatus.RECEIVING)
    service, _ = make_service(shipment)
    discrepancies = [{"description": "Two cartons crushed"}]

    await service.complete_receiving("ship_1", Decimal("100"), discrepancies=discrepancies)
    assert shipment.receiving_status == ReceivingStatus.DISCREPANCY
    assert shipment.latest_status == ShipmentStatus.RECEIVING
    assert shipment.discrepancies == discrepancies


@pytest.mark.asyncio
async def test_complete_receiving_requires_receiving_state():
    shipment = make_shipment(status=ShipmentStatus.INSPECTION_PASSED)
    service, _ = make_service(shipment)
    with pytest.raises(InvalidStateTransitionError):
        await service.complete_receiving("ship_1", Decimal("100"))
    assert shipment.received_quantity is None


def test_resolve_receiving_outcome():
    assert resolve_receiving_outcome(Decimal("10"), Decimal("10"), []) == (
        ReceivingStatus.COMPLETED,
        ShipmentStatus.RECEIVED,
    )
    assert resolve_receiving_outcome(Decimal("10"), Decimal("12"), None)[0] == ReceivingStatus.COMPLETED
    assert resolve_receiving_outcome(Decimal("10"), Decimal("4"), [])[0] == ReceivingStatus.PARTIAL
    assert resolve_receiving_outcome(Decimal("10"), Decimal("4"), [{"description": "x"}])[0] == (
        ReceivingStatus.DISCREPANCY
    )
    assert resolve_receiving_outcome(None, Decimal("4"), [])[0] == ReceivingStatus.COMPLETED


def test_available_actions():
    assert available_actions(ShipmentStatus.ARRIVED_KLM) == ["start_unloading"]
    assert available_actions(ShipmentStatus.INSPECTION_FAILED) == ["reinspect", "reject"]
    assert available_actions(ShipmentStatus.STORED) == []


@pytest.mark.asyncio
async def test_reject_requires_reason():
    shipment = make_shipment(status=ShipmentStatus.INSPECTION_FAILED)
    service, _ = make_service(shipment)
    with pytest.raises(BadRequestError):
        await service.reject_shipment("ship_1", "   ")
    assert shipment.latest_status == ShipmentStatus.INSPECTION_FAILED


@pytest.mark.asyncio
async def test_reject_and_archive_removes_shipment():
    shipment = make_shipment(status=ShipmentStatus.INSPECTION_FAILED)
    service, session = make_service(shipment)

    outcome = await service.reject_shipment("ship_1", "Contaminated", "QA Lead")

    assert outcome.archived is True
    assert outcome.archive_file_name.startswith("shipments_")
    assert service.repo.deleted == ["ship_1"]
    snapshot = service.archive_service.archived[0]
    assert snapshot["latest_status"] == "rejected"
    assert snapshot["rejection_reason"] == "Contaminated"
    assert snapshot["rejected_by"] == "QA Lead"
    assert session.commits == 1


@pytest.mark.asyncio
async def test_reject_without_archive_keeps_row():
    shipment = make_shipment(status=ShipmentStatus.INSPECTION_FAILED)
    service, _ = make_service(shipment)

    outcome = await service.reject_shipment("ship_1", "Wrong product", archive=False)

    assert outcome.archived is False
    assert outcome.shipment is shipment
    assert shipment.latest_status == ShipmentStatus.REJECTED
    assert shipment.rejected_by == "Unknown"
    assert service.repo.deleted == []


@pytest.mark.asyncio
async def test_reject_from_wrong_state_rolls_back():
    shipment = make_shipment(status=ShipmentStatus.INSPECTING)
    service, session = make_service(shipment)

    with pytest.raises(InvalidStateTransitionError):
        await service.reject_shipment("ship_1", "Contaminated")
    assert session.rollbacks == 1
    assert service.archive_service.archived == []
    assert "ship_1" in service.repo.rows


@pytest.mark.asyncio
async def test_amend_status_allows_pre_arrival_targets():
    shipment = make_shipment(status=ShipmentStatus.IN_TRANSIT_SEAWAY)
    service, _ = make_service(shipment)

    await service.amend_status("ship_1", ShipmentStatus.ARRIVED_OFFSITE, notes="Diverted")
    assert shipment.latest_status == ShipmentStatus.ARRIVED_OFFSITE
    assert shipment.notes == "Diverted"

    with pytest.raises(BadRequestError):
        await service.amend_status("ship_1", ShipmentStatus.STORED)
    assert shipment.latest_status == ShipmentStatus.ARRIVED_OFFSITE


@pytest.mark.asyncio
async def test_list_post_arrival():
    service, _ = make_service(
        make_shipment("a", ShipmentStatus.ARRIVED_PTA),
        make_shipment("b", ShipmentStatus.RECEIVING),
        make_shipment("c", ShipmentStatus.STORED),
        make_shipment("d", ShipmentStatus.PLANNED_SEAFREIGHT),
    )
    shipments = await service.list_post_arrival()
    assert sorted(s.id for s in shipments) == ["a", "b"]
