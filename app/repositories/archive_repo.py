from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.archive import ShipmentArchive


class ArchiveRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, archive: ShipmentArchive, commit: bool = True) -> ShipmentArchive:
        self.session.add(archive)
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()
        return archive

    async def list(self) -> list[ShipmentArchive]:
        result = await self.session.execute(select(ShipmentArchive).order_by(ShipmentArchive.archived_at.desc()))
        return list(result.scalars().all())

    async def get_by_file_name(self, file_name: str) -> ShipmentArchive | None:
        result = await self.session.execute(select(ShipmentArchive).where(ShipmentArchive.file_name == file_name))
        return result.scalar_one_or_none()
