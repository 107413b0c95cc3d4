# workorders/routers/inventory_router.py
from typing import List

from fastapi import APIRouter, Depends

from workorders.core.container import get_inventory_service
from workorders.schemas.actor_schemas import Actor
from workorders.schemas.inventory_schemas import InventoryItemCreate, InventoryItemOut
from workorders.schemas.response_schemas import ResponseMessage
from workorders.services.inventory_service import InventoryService
from workorders.utils.get_user import get_current_actor

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/", response_model=List[InventoryItemOut])
async def list_items(inventory: InventoryService = Depends(get_inventory_service)):
    return await inventory.get_items()


@router.get("/{item_id}", response_model=InventoryItemOut)
async def get_item(item_id: int, inventory: InventoryService = Depends(get_inventory_service)):
    return await inventory.get_item(item_id)


@router.post("/", response_model=ResponseMessage[InventoryItemOut], status_code=201)
async def create_item(
    data: InventoryItemCreate,
    inventory: InventoryService = Depends(get_inventory_service),
    _actor: Actor = Depends(get_current_actor),
):
    item = await inventory.create_item(data)
    return ResponseMessage(message="Inventory item created successfully", data=item)
