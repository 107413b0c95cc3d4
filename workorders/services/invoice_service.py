# workorders/services/invoice_service.py
import datetime
import logging
import random
import string
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select

from workorders.core.config import DEFAULT_HOURLY_RATE
from workorders.core.exceptions import NotFoundError
from workorders.models.inventory_models import InventoryItem
from workorders.models.invoice_models import Invoice, InvoiceStatus
from workorders.schemas.invoice_schemas import InvoiceOut

logger = logging.getLogger(__name__)


def _to_decimal(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _generate_invoice_number(prefix="INV") -> str:
    # quick generator, small random suffix; collisions handled by retry
    ts = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d%H%M%S")
    suffix = ''.join(random.choices(string.digits, k=4))
    return f"{prefix}-{ts}-{suffix}"


class InvoiceService:
    """Invoicing capability: turns a completed work order snapshot into an invoice."""

    def __init__(self, session_factory, hourly_rate: float = DEFAULT_HOURLY_RATE):
        self._session_factory = session_factory
        self._hourly_rate = hourly_rate

    async def _build_lines(self, db, snapshot: Dict[str, Any]) -> List[Dict[str, Any]]:
        hours = float(snapshot.get("hours_spent") or 0)
        if hours > 0:
            labour_total = _to_decimal(hours * self._hourly_rate)
            labour = {"description": f"Labour: {snapshot.get('title', '')}", "quantity": hours,
                      "unit_price": str(_to_decimal(self._hourly_rate)), "total": str(labour_total)}
        else:
            labour_total = _to_decimal(snapshot.get("estimated_cost"))
            labour = {"description": snapshot.get("title", ""), "quantity": 1,
                      "unit_price": str(labour_total), "total": str(labour_total)}
        lines = [labour]

        item_ids = [m["inventory_item_id"] for m in snapshot.get("materials", []) if m.get("inventory_item_id")]
        prices = {}
        if item_ids:
            result = await db.execute(select(InventoryItem).where(InventoryItem.id.in_(item_ids)))
            prices = {item.id: item.price for item in result.scalars().all()}

        for material in snapshot.get("materials", []):
            unit_price = _to_decimal(prices.get(material.get("inventory_item_id"), 0))
            lines.append({
                "description": material["name"],
                "quantity": material["quantity"],
                "unit": material.get("unit"),
                "unit_price": str(unit_price),
                "total": str(_to_decimal(unit_price * Decimal(str(material["quantity"])))),
            })
        return lines

    async def convert_work_order_to_invoice(self, order_id: str, snapshot: Dict[str, Any]) -> InvoiceOut:
        async with self._session_factory() as db:
            result = await db.execute(select(Invoice).where(Invoice.work_order_id == order_id))
            existing = result.scalars().first()
            if existing:
                # a completion retried after a failed save gets its earlier invoice back
                logger.info("Invoice %s already exists for work order %s", existing.invoice_number, order_id)
                return InvoiceOut.model_validate(existing)

            lines = await self._build_lines(db, snapshot)
            total_amount = sum((Decimal(line["total"]) for line in lines), Decimal("0.00"))

            # try generating unique invoice number
            for _ in range(5):
                invoice = Invoice(
                    invoice_number=_generate_invoice_number(),
                    work_order_id=order_id,
                    work_order_number=snapshot.get("work_order_number"),
                    customer_id=snapshot.get("customer_id"),
                    customer_name=snapshot.get("customer_name"),
                    line_items=lines,
                    total_amount=total_amount,
                    total_paid=Decimal("0.00"),
                    balance_due=total_amount,
                    status=InvoiceStatus.PENDING,
                )
                db.add(invoice)
                try:
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    continue
                await db.refresh(invoice)
                logger.info("Invoice %s created for work order %s", invoice.invoice_number, order_id)
                return InvoiceOut.model_validate(invoice)

        raise RuntimeError("Could not generate unique invoice number after retries")

    async def get_invoice(self, invoice_id: str) -> InvoiceOut:
        async with self._session_factory() as db:
            invoice = await db.get(Invoice, invoice_id)
            if not invoice:
                raise NotFoundError(invoice_id, "invoice")
            return InvoiceOut.model_validate(invoice)

    async def get_invoice_status(self, invoice_id: str) -> Optional[str]:
        async with self._session_factory() as db:
            invoice = await db.get(Invoice, invoice_id)
            return invoice.status.value if invoice else None

    async def set_status(self, invoice_id: str, status: InvoiceStatus) -> InvoiceOut:
        async with self._session_factory() as db:
            invoice = await db.get(Invoice, invoice_id)
            if not invoice:
                raise NotFoundError(invoice_id, "invoice")
            invoice.status = status
            if status == InvoiceStatus.PAID:
                invoice.total_paid = invoice.total_amount
                invoice.balance_due = Decimal("0.00")
            await db.commit()
            await db.refresh(invoice)
            return InvoiceOut.model_validate(invoice)
