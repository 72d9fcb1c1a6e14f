from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import BadRequestError, NotFoundError
from app.core.logging import get_logger
from app.db.transaction import atomic
from app.models.archive import ShipmentArchive
from app.models.enums import ARRIVED_STATUSES, ShipmentStatus
from app.models.shipment import Shipment
from app.repositories.archive_repo import ArchiveRepository
from app.repositories.shipment_repo import ShipmentRepository
from app.schemas.shipment import ShipmentRead

logger = get_logger()

MANUAL_ARCHIVE_STATUSES = ARRIVED_STATUSES | {ShipmentStatus.STORED}


def shipment_snapshot(shipment: Shipment, **overrides: Any) -> dict[str, Any]:
    snapshot = ShipmentRead.model_validate(shipment).model_dump(mode="json")
    snapshot.update(overrides)
    return snapshot


def archive_file_name(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"shipments_{now.strftime('%Y-%m-%dT%H-%M-%S-%f')}.json"


class ArchiveService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = ArchiveRepository(session)
        self.shipment_repo = ShipmentRepository(session)

    async def archive_snapshots(self, snapshots: list[dict[str, Any]], commit: bool = True) -> ShipmentArchive:
        archive = ShipmentArchive(file_name=archive_file_name(), total_shipments=len(snapshots), data=snapshots)
        archive = await self.repo.create(archive, commit=commit)
        logger.info("shipments_archived", file_name=archive.file_name, total_shipments=len(snapshots))
        return archive

    async def list_archives(self) -> list[ShipmentArchive]:
        return await self.repo.list()

    async def get_archive(self, file_name: str) -> ShipmentArchive:
        archive = await self.repo.get_by_file_name(file_name)
        if not archive:
            raise NotFoundError("Archive not found")
        return archive

    async def archive_shipments(self, shipment_ids: Iterable[str]) -> tuple[ShipmentArchive, int, int]:
        """Archive and remove the given shipments that are arrived or stored.

        Returns the archive, the number archived and the number of shipments left.
        """
        shipment_ids = list(shipment_ids)
        if not shipment_ids:
            raise BadRequestError("No shipment IDs provided")

        async with atomic(self.session):
            eligible = await self.shipment_repo.list_by_ids(shipment_ids, MANUAL_ARCHIVE_STATUSES)
            if not eligible:
                raise BadRequestError("No valid ARRIVED or STORED shipments found to archive")
            archive = await self.archive_snapshots([shipment_snapshot(s) for s in eligible], commit=False)
            await self.shipment_repo.delete_ids([s.id for s in eligible], commit=False)
            remaining = await self.shipment_repo.count()
        return archive, len(eligible), remaining

    async def bulk_import(self, shipments: list[Shipment]) -> tuple[int, ShipmentArchive | None]:
        """Replace every shipment with ``shipments``, archiving the current set first."""
        archive = None
        async with atomic(self.session):
            existing = await self.shipment_repo.list_all()
            if existing:
                archive = await self.archive_snapshots([shipment_snapshot(s) for s in existing], commit=False)
            await self.shipment_repo.delete_all(commit=False)
            await self.shipment_repo.add_all(shipments, commit=False)
        logger.info("shipments_bulk_imported", count=len(shipments), replaced=len(existing))
        return len(shipments), archive
