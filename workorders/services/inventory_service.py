# workorders/services/inventory_service.py
from typing import Any, Dict, List

from sqlalchemy.future import select

from workorders.core.exceptions import NotFoundError
from workorders.models.inventory_models import InventoryItem
from workorders.schemas.inventory_schemas import InventoryItemCreate, InventoryItemOut

UPDATABLE_FIELDS = {"name", "sku", "unit", "price", "quantity", "min_stock_threshold"}


class InventoryService:
    """Inventory capability used by completion side effects."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def create_item(self, data: InventoryItemCreate) -> InventoryItemOut:
        async with self._session_factory() as db:
            item = InventoryItem(**data.model_dump())
            db.add(item)
            await db.commit()
            await db.refresh(item)
            return InventoryItemOut.model_validate(item)

    async def get_items(self) -> List[InventoryItemOut]:
        """Fetch all non-deleted items."""
        async with self._session_factory() as db:
            result = await db.execute(select(InventoryItem).where(InventoryItem.is_deleted == False))
            return [InventoryItemOut.model_validate(i) for i in result.scalars().all()]

    async def get_item(self, item_id: int) -> InventoryItemOut:
        async with self._session_factory() as db:
            item = await db.get(InventoryItem, item_id)
            if not item or item.is_deleted:
                raise NotFoundError(str(item_id), "inventory item")
            return InventoryItemOut.model_validate(item)

    async def update_item(self, item_id: int, changes: Dict[str, Any]) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update inventory fields: {', '.join(sorted(unknown))}")
        if changes.get("quantity") is not None and changes["quantity"] < 0:
            raise ValueError("Quantity must be non-negative")

        async with self._session_factory() as db:
            item = await db.get(InventoryItem, item_id)
            if not item or item.is_deleted:
                raise NotFoundError(str(item_id), "inventory item")
            for key, value in changes.items():
                setattr(item, key, value)
            await db.commit()
