# workorders/schemas/invoice_schemas.py
from pydantic import BaseModel
from decimal import Decimal
from typing import Any, Dict, List, Optional
from workorders.models.invoice_models import InvoiceStatus


class InvoiceOut(BaseModel):
    id: str
    invoice_number: str
    work_order_id: Optional[str] = None
    work_order_number: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    line_items: List[Dict[str, Any]] = []
    total_amount: Decimal
    total_paid: Decimal
    balance_due: Decimal
    status: InvoiceStatus

    class Config:
        from_attributes = True


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus
