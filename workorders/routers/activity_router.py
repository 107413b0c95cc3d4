# workorders/routers/activity_router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from workorders.core.db import get_db
from workorders.services.activity_service import get_activities
from workorders.schemas.activity_schemas import ActivityOut, ActivityListResponse
from workorders.utils.get_user import get_current_actor

router = APIRouter(prefix="/activities", tags=["Activity Log"])


@router.get("/", response_model=ActivityListResponse)
async def list_activities(
    db: AsyncSession = Depends(get_db),
    _actor=Depends(get_current_actor),
    user_id: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    activity_type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc")
):
    """
    Fetch activity logs with pagination, filtering, and sorting.
    """
    total, activities = await get_activities(
        db=db,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        activity_type=activity_type,
        search=search,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order
    )

    return ActivityListResponse(
        message="Activities fetched successfully",
        total=total,
        data=[ActivityOut.model_validate(a) for a in activities]
    )
