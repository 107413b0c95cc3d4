# workorders/routers/work_orders_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from workorders.core.container import get_lifecycle_engine
from workorders.schemas.actor_schemas import Actor
from workorders.schemas.response_schemas import ResponseMessage
from workorders.schemas.work_order_schemas import (
    ArchiveRequest,
    AutoArchiveResult,
    HistoryEntry,
    JourneyEntry,
    ReopenRequest,
    SourceType,
    WorkOrder,
    WorkOrderCreate,
    WorkOrderStatus,
    WorkOrderUpdate,
)
from workorders.services.work_order_services.auto_archive import run_auto_archive
from workorders.services.work_order_services.lifecycle import WorkOrderLifecycleEngine
from workorders.utils.get_user import get_current_actor

router = APIRouter(prefix="/work-orders", tags=["Work Orders"])


# GET all work orders
@router.get("/", response_model=List[WorkOrder])
async def list_work_orders(
    status: Optional[WorkOrderStatus] = Query(None),
    is_archived: Optional[bool] = Query(None),
    assigned_to: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine),
):
    return await engine.list(status=status, is_archived=is_archived, assigned_to=assigned_to, customer_id=customer_id)


# POST run the auto-archive sweep on demand
@router.post("/auto-archive", response_model=AutoArchiveResult)
async def auto_archive(
    engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine),
    _actor: Actor = Depends(get_current_actor),
):
    return await run_auto_archive(engine)


# GET work order by ID
@router.get("/{order_id}", response_model=WorkOrder)
async def get_work_order(order_id: str, engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine)):
    return await engine.get(order_id)


# GET audit trail
@router.get("/{order_id}/history", response_model=List[HistoryEntry])
async def get_history(order_id: str, engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine)):
    return (await engine.get(order_id)).history


# GET customer-facing journey
@router.get("/{order_id}/journey", response_model=List[JourneyEntry])
async def get_journey(order_id: str, engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine)):
    return (await engine.get(order_id)).journey


# POST create (manually or converted from a quote / invoice)
@router.post("/", response_model=ResponseMessage[WorkOrder], status_code=201)
async def create_work_order(
    data: WorkOrderCreate,
    source_type: Optional[SourceType] = Query(None),
    engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine),
    actor: Actor = Depends(get_current_actor),
):
    order = await engine.create(data, actor, source_type)
    return ResponseMessage(message="Work order created successfully", data=order)


# PUT update
@router.put("/{order_id}", response_model=ResponseMessage[WorkOrder])
async def update_work_order(
    order_id: str,
    data: WorkOrderUpdate,
    create_invoice: bool = Query(True),
    engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine),
    actor: Actor = Depends(get_current_actor),
):
    order = await engine.update(order_id, data, actor, create_invoice=create_invoice)
    return ResponseMessage(message="Work order updated successfully", data=order)


# POST reopen
@router.post("/{order_id}/reopen", response_model=ResponseMessage[WorkOrder])
async def reopen_work_order(
    order_id: str,
    data: ReopenRequest,
    engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine),
    actor: Actor = Depends(get_current_actor),
):
    order = await engine.reopen(order_id, data.reason, actor)
    return ResponseMessage(message="Work order reopened", data=order)


# POST archive
@router.post("/{order_id}/archive", response_model=ResponseMessage[WorkOrder])
async def archive_work_order(
    order_id: str,
    data: ArchiveRequest,
    engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine),
    actor: Actor = Depends(get_current_actor),
):
    order = await engine.archive(order_id, data.archive_reason, actor)
    return ResponseMessage(message="Work order archived", data=order)


# DELETE work order (snapshot to archive first)
@router.delete("/{order_id}", status_code=204)
async def delete_work_order(
    order_id: str,
    reason: Optional[str] = Query(None),
    engine: WorkOrderLifecycleEngine = Depends(get_lifecycle_engine),
    actor: Actor = Depends(get_current_actor),
):
    await engine.delete(order_id, actor, reason)
    return Response(status_code=204)
