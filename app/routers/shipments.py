from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError

from app.core.deps import get_db_session
from app.core.errors import BadRequestError, ConflictError, NotFoundError
from app.core.logging import get_logger
from app.models.enums import ShipmentStatus
from app.models.shipment import Shipment, new_shipment_id
from app.repositories.shipment_repo import ShipmentRepository
from app.schemas.common import Pagination
from app.schemas.shipment import (
    BulkImportResponse,
    CompleteInspection,
    CompleteReceiving,
    RejectionResult,
    RejectShipment,
    ShipmentCreate,
    ShipmentImport,
    ShipmentList,
    ShipmentRead,
    ShipmentStats,
    ShipmentUpdate,
    StartInspection,
    StartReceiving,
    StatusAmend,
)
from app.services.archive import ArchiveService
from app.services.workflow import ShipmentWorkflowService

router = APIRouter(prefix="/shipments", tags=["shipments"])
logger = get_logger()


async def _get_or_404(repo: ShipmentRepository, shipment_id: str) -> Shipment:
    shipment = await repo.get(shipment_id)
    if not shipment:
        raise NotFoundError(f"Shipment with ID {shipment_id} not found")
    return shipment


@router.get("", response_model=ShipmentList)
async def list_shipments(
    status_filter: ShipmentStatus | None = Query(default=None, alias="status"),
    supplier: str | None = None,
    week_number: int | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    session=Depends(get_db_session),
):
    repo = ShipmentRepository(session)
    shipments, total = await repo.list(
        status=status_filter, supplier=supplier, week_number=week_number, search=search, page=page, limit=limit
    )
    return ShipmentList(shipments=shipments, pagination=Pagination.build(page, limit, total))


@router.post("", response_model=ShipmentRead, status_code=status.HTTP_201_CREATED)
async def create_shipment(payload: ShipmentCreate, session=Depends(get_db_session)):
    repo = ShipmentRepository(session)
    if payload.order_ref and await repo.get_by_order_ref(payload.order_ref):
        raise ConflictError(f"Shipment with order reference {payload.order_ref} already exists")
    shipment = Shipment(id=new_shipment_id(), **payload.model_dump())
    try:
        shipment = await repo.create(shipment)
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(f"Shipment with order reference {payload.order_ref} already exists") from exc
    logger.info("shipment_created", shipment_id=shipment.id, order_ref=shipment.order_ref)
    return shipment


@router.get("/stats", response_model=ShipmentStats)
async def shipment_stats(session=Depends(get_db_session)):
    return ShipmentStats(**await ShipmentRepository(session).statistics())


@router.get("/post-arrival", response_model=list[ShipmentRead])
async def post_arrival_shipments(session=Depends(get_db_session)):
    return await ShipmentWorkflowService(session).list_post_arrival()


@router.post("/bulk-import", response_model=BulkImportResponse)
async def bulk_import(payload: list[ShipmentImport], session=Depends(get_db_session)):
    order_refs = [item.order_ref for item in payload if item.order_ref]
    if len(order_refs) != len(set(order_refs)):
        raise BadRequestError("Duplicate order references in import")
    shipments = [
        Shipment(**item.model_dump(exclude={"id"}), id=item.id or new_shipment_id()) for item in payload
    ]
    count, archive = await ArchiveService(session).bulk_import(shipments)
    return BulkImportResponse(count=count, archive_file_name=archive.file_name if archive else None)


@router.get("/{shipment_id}", response_model=ShipmentRead)
async def get_shipment(shipment_id: str, session=Depends(get_db_session)):
    return await _get_or_404(ShipmentRepository(session), shipment_id)


@router.put("/{shipment_id}", response_model=ShipmentRead)
async def update_shipment(shipment_id: str, payload: ShipmentUpdate, session=Depends(get_db_session)):
    repo = ShipmentRepository(session)
    shipment = await _get_or_404(repo, shipment_id)

    data = payload.model_dump(exclude_unset=True)
    order_ref = data.get("order_ref")
    if order_ref and order_ref != shipment.order_ref and await repo.get_by_order_ref(order_ref):
        raise ConflictError(f"Shipment with order reference {order_ref} already exists")
    if "supplier" in data and not data["supplier"]:
        raise BadRequestError("Supplier is required")
    for key, value in data.items():
        setattr(shipment, key, value)
    return await repo.update(shipment)


@router.delete("/{shipment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shipment(shipment_id: str, session=Depends(get_db_session)):
    repo = ShipmentRepository(session)
    shipment = await _get_or_404(repo, shipment_id)
    await repo.delete(shipment)
    logger.info("shipment_deleted", shipment_id=shipment_id)


@router.patch("/{shipment_id}/status", response_model=ShipmentRead)
async def amend_status(shipment_id: str, payload: StatusAmend, session=Depends(get_db_session)):
    return await ShipmentWorkflowService(session).amend_status(shipment_id, payload.status, payload.notes)


@router.post("/{shipment_id}/start-unloading", response_model=ShipmentRead)
async def start_unloading(shipment_id: str, session=Depends(get_db_session)):
    return await ShipmentWorkflowService(session).start_unloading(shipment_id)


@router.post("/{shipment_id}/complete-unloading", response_model=ShipmentRead)
async def complete_unloading(shipment_id: str, session=Depends(get_db_session)):
    return await ShipmentWorkflowService(session).complete_unloading(shipment_id)


@router.post("/{shipment_id}/start-inspection", response_model=ShipmentRead)
async def start_inspection(
    shipment_id: str, payload: StartInspection | None = None, session=Depends(get_db_session)
):
    inspected_by = payload.inspected_by if payload else None
    return await ShipmentWorkflowService(session).start_inspection(shipment_id, inspected_by)


@router.post("/{shipment_id}/reinspect", response_model=ShipmentRead)
async def reinspect(shipment_id: str, payload: StartInspection | None = None, session=Depends(get_db_session)):
    inspected_by = payload.inspected_by if payload else None
    return await ShipmentWorkflowService(session).reinspect(shipment_id, inspected_by)


@router.post("/{shipment_id}/complete-inspection", response_model=ShipmentRead)
async def complete_inspection(shipment_id: str, payload: CompleteInspection, session=Depends(get_db_session)):
    return await ShipmentWorkflowService(session).complete_inspection(
        shipment_id, payload.passed, payload.notes, payload.inspected_by
    )


@router.post("/{shipment_id}/start-receiving", response_model=ShipmentRead)
async def start_receiving(
    shipment_id: str, payload: StartReceiving | None = None, session=Depends(get_db_session)
):
    received_by = payload.received_by if payload else None
    return await ShipmentWorkflowService(session).start_receiving(shipment_id, received_by)


@router.post("/{shipment_id}/complete-receiving", response_model=ShipmentRead)
async def complete_receiving(shipment_id: str, payload: CompleteReceiving, session=Depends(get_db_session)):
    return await ShipmentWorkflowService(session).complete_receiving(
        shipment_id,
        payload.received_quantity,
        notes=payload.notes,
        received_by=payload.received_by,
        discrepancies=[d.model_dump(mode="json") for d in payload.discrepancies],
    )


@router.post("/{shipment_id}/mark-stored", response_model=ShipmentRead)
async def mark_stored(shipment_id: str, session=Depends(get_db_session)):
    return await ShipmentWorkflowService(session).mark_as_stored(shipment_id)


@router.post("/{shipment_id}/reject-shipment", response_model=RejectionResult)
async def reject_shipment(shipment_id: str, payload: RejectShipment, session=Depends(get_db_session)):
    outcome = await ShipmentWorkflowService(session).reject_shipment(
        shipment_id, payload.rejection_reason, payload.rejected_by, archive=payload.archive
    )
    return RejectionResult(
        shipment_id=outcome.shipment_id,
        archived=outcome.archived,
        archive_file_name=outcome.archive_file_name,
        shipment=ShipmentRead.model_validate(outcome.shipment) if outcome.shipment else None,
    )
