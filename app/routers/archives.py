from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.deps import get_db_session
from app.schemas.archive import ArchiveDetail, ArchiveSummary, ManualArchiveRequest, ManualArchiveResponse
from app.services.archive import ArchiveService

router = APIRouter(prefix="/archives", tags=["archives"])


@router.get("", response_model=list[ArchiveSummary])
async def list_archives(session=Depends(get_db_session)):
    return await ArchiveService(session).list_archives()


@router.post("/manual", response_model=ManualArchiveResponse)
async def manual_archive(payload: ManualArchiveRequest, session=Depends(get_db_session)):
    archive, archived, remaining = await ArchiveService(session).archive_shipments(payload.shipment_ids)
    return ManualArchiveResponse(
        archived_count=archived, remaining_count=remaining, archive_file_name=archive.file_name
    )


@router.get("/{file_name}", response_model=ArchiveDetail)
async def get_archive(file_name: str, session=Depends(get_db_session)):
    return await ArchiveService(session).get_archive(file_name)
