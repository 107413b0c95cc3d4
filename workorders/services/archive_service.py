# workorders/services/archive_service.py
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.future import select

from workorders.models.archive_models import ArchivedDocument


class ArchiveService:
    """Archive sink: keeps full snapshots of archived or deleted documents."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def archive_document(
        self,
        kind: str,
        snapshot: Dict[str, Any],
        general_number: str,
        document_number: str,
        journey: List[Dict[str, Any]],
        activities: List[Dict[str, Any]],
        actor_id: str,
        actor_name: str,
        reason: Optional[str] = None,
    ) -> None:
        async with self._session_factory() as db:
            db.add(ArchivedDocument(
                document_id=snapshot["id"],
                document_type=kind,
                general_number=general_number,
                document_number=document_number,
                document_data=snapshot,
                journey=journey or [],
                activities=activities or [],
                archived_by=actor_id,
                archived_by_name=actor_name,
                archive_reason=reason,
            ))
            await db.commit()

    async def get_archived_documents(self, document_id: Optional[str] = None, kind: Optional[str] = None):
        async with self._session_factory() as db:
            stmt = select(ArchivedDocument)
            if document_id:
                stmt = stmt.where(ArchivedDocument.document_id == document_id)
            if kind:
                stmt = stmt.where(ArchivedDocument.document_type == kind)
            result = await db.execute(stmt.order_by(desc(ArchivedDocument.archived_at)))
            return result.scalars().all()
