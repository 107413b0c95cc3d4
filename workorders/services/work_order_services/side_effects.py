# workorders/services/work_order_services/side_effects.py
"""
Consequences of completing a work order: inventory deduction and invoice
creation. Both are best effort. A failure is written to the order's history
(``metadata.error = True``) and logged, never raised, so the completion
itself always commits.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional, Tuple

from workorders.core.config import SIDE_EFFECT_TIMEOUT_SECONDS
from workorders.schemas.actor_schemas import Actor
from workorders.schemas.inventory_schemas import InventoryItemOut
from workorders.schemas.work_order_schemas import HistoryAction, Material, WorkOrder
from workorders.services.ports import InventoryPort, InvoicingPort
from workorders.services.work_order_services.history import HistoryLog
from workorders.utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)


def _reason(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    return str(exc) or type(exc).__name__


class CompletionSideEffects:

    def __init__(
        self,
        inventory: InventoryPort,
        invoicing: InvoicingPort,
        timeout: Optional[float] = SIDE_EFFECT_TIMEOUT_SECONDS,
    ):
        self._inventory = inventory
        self._invoicing = invoicing
        self._timeout = timeout
        # stock is read then written back; one writer per item at a time
        self._stock_locks = KeyedLock()

    async def _call(self, awaitable):
        if self._timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    async def run(
        self,
        order: WorkOrder,
        history: HistoryLog,
        actor: Actor,
        timestamp: datetime,
        create_invoice: bool = True,
    ) -> Optional[str]:
        """Deduct inventory, then create the invoice. Returns the new invoice id, if any."""
        await self.deduct_inventory(order, history, actor, timestamp)
        if create_invoice and not order.invoice_id:
            return await self.create_invoice(order, history, actor, timestamp)
        return None

    # --------------------------
    # Inventory
    # --------------------------
    def _record_deduction_failure(self, order, history, actor, timestamp, material: Material, reason: str):
        logger.warning(
            "Inventory deduction failed for work order %s (%s), item %s: %s",
            order.id, order.work_order_number, material.inventory_item_id, reason,
        )
        history.append(
            HistoryAction.UPDATED,
            actor,
            f"Inventory deduction failed for {material.name} ({material.quantity} {material.unit}): {reason}",
            timestamp,
            metadata={
                "error": True,
                "sideEffect": "inventory",
                "inventoryItemId": material.inventory_item_id,
                "quantity": material.quantity,
                "reason": reason,
            },
        )

    async def _deduct_line(self, material: Material) -> Tuple[InventoryItemOut, float]:
        """Re-read the item and write its new stock under the item's lock."""
        async with self._stock_locks.hold(str(material.inventory_item_id)):
            items = await self._call(self._inventory.get_items())
            item = next((i for i in items if i.id == material.inventory_item_id), None)
            if item is None:
                raise LookupError(f"inventory item {material.inventory_item_id} not found")
            new_quantity = max(0.0, item.quantity - material.quantity)
            await self._call(self._inventory.update_item(item.id, {"quantity": new_quantity}))
            return item, new_quantity

    async def deduct_inventory(self, order: WorkOrder, history: HistoryLog, actor: Actor, timestamp: datetime) -> None:
        for material in order.materials:
            if material.inventory_item_id is None:
                continue
            try:
                item, new_quantity = await self._deduct_line(material)
            except Exception as exc:
                self._record_deduction_failure(order, history, actor, timestamp, material, _reason(exc))
                continue

            previous = item.quantity
            deducted = previous - new_quantity
            metadata = {
                "inventoryItemId": item.id,
                "itemName": item.name,
                "requestedQuantity": material.quantity,
                "quantityDeducted": deducted,
                "previousQuantity": previous,
                "newQuantity": new_quantity,
            }
            details = (f"Deducted {deducted:g} {material.unit} of {item.name} from inventory "
                       f"(stock {previous:g} → {new_quantity:g})")
            shortfall = material.quantity - deducted
            if shortfall > 0:
                metadata["shortfall"] = shortfall
                details += f"; short by {shortfall:g} {material.unit}"
                logger.warning(
                    "Work order %s used %g %s of %s but only %g was in stock",
                    order.work_order_number, material.quantity, material.unit, item.name, previous,
                )
            history.append(HistoryAction.MATERIAL_UPDATED, actor, details, timestamp, metadata=metadata)

    # --------------------------
    # Invoice
    # --------------------------
    async def create_invoice(self, order: WorkOrder, history: HistoryLog, actor: Actor, timestamp: datetime) -> Optional[str]:
        snapshot = order.model_dump(mode="json")
        try:
            invoice = await self._call(self._invoicing.convert_work_order_to_invoice(order.id, snapshot))
        except Exception as exc:
            reason = _reason(exc)
            logger.error(
                "Automatic invoice creation failed for work order %s (%s), actor %s: %s",
                order.id, order.work_order_number, actor.id, reason,
            )
            history.append(
                HistoryAction.UPDATED,
                actor,
                f"Automatic invoice creation failed: {reason}",
                timestamp,
                metadata={"error": True, "sideEffect": "invoice", "reason": reason},
            )
            return None

        history.append(
            HistoryAction.UPDATED,
            actor,
            f"Invoice {invoice.invoice_number} created from work order {order.work_order_number}",
            timestamp,
            metadata={"invoiceId": invoice.id, "invoiceNumber": invoice.invoice_number},
        )
        return invoice.id
