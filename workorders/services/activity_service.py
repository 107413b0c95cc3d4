# workorders/services/activity_service.py
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import asc, desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from workorders.models.activity_models import ActivityLog
from workorders.schemas.activity_schemas import ActivityOut

ALLOWED_SORT_FIELDS = {"id", "user_id", "user_name", "activity_type", "created_at"}


class ActivityService:
    """Activity log sink shared by every mutating work order operation."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def log_activity(
        self,
        event_type: str,
        entity_kind: str,
        entity_id: str,
        action: str,
        message: str,
        actor_id: str,
        actor_name: str,
        actor_email: str,
        entity_label: Optional[str] = None,
        field_diffs: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        async with self._session_factory() as db:
            db.add(ActivityLog(
                user_id=actor_id,
                user_name=actor_name,
                user_email=actor_email,
                activity_type=event_type,
                entity_type=entity_kind,
                entity_id=entity_id,
                entity_name=entity_label,
                action=action,
                message=message,
                changes=field_diffs or None,
                extra=metadata or None,
            ))
            await db.commit()

    async def get_entity_activities(self, entity_kind: str, entity_id: str) -> List[Dict[str, Any]]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(ActivityLog)
                .where(ActivityLog.entity_type == entity_kind, ActivityLog.entity_id == entity_id)
                .order_by(asc(ActivityLog.created_at), asc(ActivityLog.id))
            )
            return [ActivityOut.model_validate(a).model_dump(mode="json") for a in result.scalars().all()]


async def get_activities(
    db: AsyncSession,
    user_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    activity_type: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    order: str = "desc"
) -> Tuple[int, List[ActivityLog]]:
    """
    Fetch paginated activity logs with optional filters and sorting.
    Returns total count and list of activities.
    """
    # Validate sort field
    if sort_by not in ALLOWED_SORT_FIELDS:
        sort_by = "created_at"

    sort_column = getattr(ActivityLog, sort_by)
    sort_order = desc(sort_column) if order.lower() == "desc" else asc(sort_column)

    # Build filters
    filters = []
    if user_id:
        filters.append(ActivityLog.user_id == user_id)
    if entity_type:
        filters.append(ActivityLog.entity_type == entity_type)
    if entity_id:
        filters.append(ActivityLog.entity_id == entity_id)
    if activity_type:
        filters.append(ActivityLog.activity_type == activity_type)
    if search:
        filters.append(ActivityLog.message.ilike(f"%{search}%"))

    stmt = select(ActivityLog)
    count_stmt = select(func.count(ActivityLog.id))
    if filters:
        stmt = stmt.where(*filters)
        count_stmt = count_stmt.where(*filters)

    total_result = await db.execute(count_stmt)
    total = total_result.scalar() or 0

    # Pagination + sorting
    stmt = stmt.order_by(sort_order).offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(stmt)
    return total, result.scalars().all()
