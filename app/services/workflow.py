from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import BadRequestError, InvalidStateTransitionError, NotFoundError
from app.core.logging import get_logger
from app.db.transaction import atomic
from app.models.enums import (
    ARRIVED_STATUSES,
    POST_ARRIVAL_STATUSES,
    PRE_ARRIVAL_STATUSES,
    InspectionStatus,
    ReceivingStatus,
    ShipmentStatus,
)
from app.models.shipment import Shipment
from app.repositories.shipment_repo import ShipmentRepository
from app.services.archive import ArchiveService, shipment_snapshot

logger = get_logger()


@dataclass(frozen=True)
class Transition:
    action: str
    from_statuses: frozenset[ShipmentStatus]
    to_status: ShipmentStatus


TRANSITIONS: dict[str, Transition] = {
    t.action: t
    for t in (
        Transition("start_unloading", ARRIVED_STATUSES, ShipmentStatus.UNLOADING),
        Transition("complete_unloading", frozenset({ShipmentStatus.UNLOADING}), ShipmentStatus.INSPECTION_PENDING),
        Transition("start_inspection", frozenset({ShipmentStatus.INSPECTION_PENDING}), ShipmentStatus.INSPECTING),
        Transition("reinspect", frozenset({ShipmentStatus.INSPECTION_FAILED}), ShipmentStatus.INSPECTING),
        Transition("pass_inspection", frozenset({ShipmentStatus.INSPECTING}), ShipmentStatus.INSPECTION_PASSED),
        Transition("fail_inspection", frozenset({ShipmentStatus.INSPECTING}), ShipmentStatus.INSPECTION_FAILED),
        Transition("start_receiving", frozenset({ShipmentStatus.INSPECTION_PASSED}), ShipmentStatus.RECEIVING),
        Transition("complete_receiving", frozenset({ShipmentStatus.RECEIVING}), ShipmentStatus.RECEIVED),
        Transition("mark_as_stored", frozenset({ShipmentStatus.RECEIVED}), ShipmentStatus.STORED),
        Transition("reject", frozenset({ShipmentStatus.INSPECTION_FAILED}), ShipmentStatus.REJECTED),
    )
}

AMENDABLE_STATUSES = PRE_ARRIVAL_STATUSES | ARRIVED_STATUSES


def available_actions(status: ShipmentStatus) -> list[str]:
    return [t.action for t in TRANSITIONS.values() if status in t.from_statuses]


def resolve_receiving_outcome(
    expected_quantity: Decimal | None,
    received_quantity: Decimal | None,
    discrepancies: Sequence[Any] | None,
) -> tuple[ReceivingStatus, ShipmentStatus]:
    """Decide the receiving result; discrepancies win over a short count.

    Only a clean, complete receipt moves the shipment on to ``received``; partial and
    discrepancy outcomes leave it in ``receiving`` for review.
    """
    if discrepancies:
        return ReceivingStatus.DISCREPANCY, ShipmentStatus.RECEIVING
    if expected_quantity is not None and received_quantity is not None and received_quantity < expected_quantity:
        return ReceivingStatus.PARTIAL, ShipmentStatus.RECEIVING
    return ReceivingStatus.COMPLETED, ShipmentStatus.RECEIVED


@dataclass
class RejectionOutcome:
    shipment_id: str
    archived: bool
    archive_file_name: str | None = None
    shipment: Shipment | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ShipmentWorkflowService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = ShipmentRepository(session)
        self.archive_service = ArchiveService(session)

    async def _reject_precondition(self, shipment_id: str, rule: Transition) -> None:
        current = await self.repo.get(shipment_id)
        if current is None:
            raise NotFoundError(f"Shipment with ID {shipment_id} not found")
        actual = ShipmentStatus(current.latest_status)
        raise InvalidStateTransitionError(
            shipment_id,
            expected=sorted(status.value for status in rule.from_statuses),
            actual=actual.value,
            action=rule.action,
            allowed_actions=available_actions(actual),
        )

    async def _apply(
        self,
        shipment_id: str,
        action: str,
        values: dict[str, Any] | None = None,
        commit: bool = True,
    ) -> Shipment:
        rule = TRANSITIONS[action]
        values = {"latest_status": rule.to_status, **(values or {})}
        shipment = await self.repo.transition(shipment_id, rule.from_statuses, values, commit=commit)
        if shipment is None:
            await self._reject_precondition(shipment_id, rule)
        logger.info(
            "shipment_transition",
            shipment_id=shipment_id,
            action=action,
            status=ShipmentStatus(values["latest_status"]).value,
        )
        return shipment

    async def start_unloading(self, shipment_id: str) -> Shipment:
        return await self._apply(shipment_id, "start_unloading", {"unloading_start_date": _now()})

    async def complete_unloading(self, shipment_id: str) -> Shipment:
        return await self._apply(shipment_id, "complete_unloading", {"unloading_completed_date": _now()})

    async def start_inspection(self, shipment_id: str, inspected_by: str | None = None) -> Shipment:
        return await self._apply(
            shipment_id,
            "start_inspection",
            {
                "inspection_status": InspectionStatus.IN_PROGRESS,
                "inspected_by": inspected_by or "",
                "inspection_date": _now(),
            },
        )

    async def reinspect(self, shipment_id: str, inspected_by: str | None = None) -> Shipment:
        values: dict[str, Any] = {"inspection_status": InspectionStatus.IN_PROGRESS, "inspection_date": _now()}
        if inspected_by:
            values["inspected_by"] = inspected_by
        return await self._apply(shipment_id, "reinspect", values)

    async def complete_inspection(
        self,
        shipment_id: str,
        passed: bool,
        notes: str | None = None,
        inspected_by: str | None = None,
    ) -> Shipment:
        values: dict[str, Any] = {
            "inspection_status": InspectionStatus.PASSED if passed else InspectionStatus.FAILED,
            "inspection_notes": notes or "",
        }
        if inspected_by:
            values["inspected_by"] = inspected_by
        return await self._apply(shipment_id, "pass_inspection" if passed else "fail_inspection", values)

    async def start_receiving(self, shipment_id: str, received_by: str | None = None) -> Shipment:
        return await self._apply(
            shipment_id,
            "start_receiving",
            {
                "receiving_status": ReceivingStatus.IN_PROGRESS,
                "received_by": received_by or "",
                "receiving_date": _now(),
            },
        )

    async def complete_receiving(
        self,
        shipment_id: str,
        received_quantity: Decimal,
        notes: str | None = None,
        received_by: str | None = None,
        discrepancies: list[dict[str, Any]] | None = None,
    ) -> Shipment:
        rule = TRANSITIONS["complete_receiving"]
        current = await self.repo.get(shipment_id)
        if current is None or current.latest_status not in rule.from_statuses:
            await self._reject_precondition(shipment_id, rule)

        receiving_status, next_status = resolve_receiving_outcome(
            current.quantity, received_quantity, discrepancies
        )
        values: dict[str, Any] = {
            "latest_status": next_status,
            "receiving_status": receiving_status,
            "received_quantity": received_quantity,
            "receiving_notes": notes or "",
            "discrepancies": list(discrepancies or []),
        }
        if received_by:
            values["received_by"] = received_by
        shipment = await self._apply(shipment_id, "complete_receiving", values)
        logger.info(
            "shipment_received",
            shipment_id=shipment_id,
            receiving_status=receiving_status.value,
            received_quantity=str(received_quantity),
        )
        return shipment

    async def mark_as_stored(self, shipment_id: str) -> Shipment:
        return await self._apply(shipment_id, "mark_as_stored")

    async def reject_shipment(
        self,
        shipment_id: str,
        reason: str | None,
        rejected_by: str | None = None,
        archive: bool = True,
    ) -> RejectionOutcome:
        reason = (reason or "").strip()
        if not reason:
            raise BadRequestError("Rejection reason is required")
        values = {
            "rejection_date": _now(),
            "rejection_reason": reason,
            "rejected_by": rejected_by or "Unknown",
        }

        if not archive:
            shipment = await self._apply(shipment_id, "reject", values)
            return RejectionOutcome(shipment_id=shipment_id, archived=False, shipment=shipment)

        async with atomic(self.session):
            shipment = await self._apply(shipment_id, "reject", values, commit=False)
            record = await self.archive_service.archive_snapshots([shipment_snapshot(shipment)], commit=False)
            await self.repo.delete(shipment, commit=False)
        return RejectionOutcome(shipment_id=shipment_id, archived=True, archive_file_name=record.file_name)

    async def amend_status(self, shipment_id: str, status: ShipmentStatus, notes: str | None = None) -> Shipment:
        """Administrative override that moves a shipment back to a planning, transit or arrival status."""
        if status not in AMENDABLE_STATUSES:
            raise BadRequestError(
                f"Status '{status.value}' cannot be set directly",
                details={"allowed": sorted(s.value for s in AMENDABLE_STATUSES)},
            )
        shipment = await self.repo.get(shipment_id)
        if shipment is None:
            raise NotFoundError(f"Shipment with ID {shipment_id} not found")
        previous = ShipmentStatus(shipment.latest_status)
        shipment.latest_status = status
        if notes:
            shipment.notes = notes
        shipment = await self.repo.update(shipment)
        logger.info("shipment_status_amended", shipment_id=shipment_id, previous=previous.value, status=status.value)
        return shipment

    async def list_post_arrival(self) -> list[Shipment]:
        return await self.repo.list_by_statuses(POST_ARRIVAL_STATUSES)
