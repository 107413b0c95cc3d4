# workorders/routers/archive_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from workorders.core.container import get_archive_service
from workorders.schemas.archive_schemas import ArchivedDocumentOut
from workorders.services.archive_service import ArchiveService
from workorders.utils.get_user import get_current_actor

router = APIRouter(prefix="/archive", tags=["Document Archive"])


@router.get("/", response_model=List[ArchivedDocumentOut])
async def list_archived_documents(
    document_id: Optional[str] = Query(None),
    document_type: Optional[str] = Query(None),
    archive: ArchiveService = Depends(get_archive_service),
    _actor=Depends(get_current_actor),
):
    return await archive.get_archived_documents(document_id, document_type)
