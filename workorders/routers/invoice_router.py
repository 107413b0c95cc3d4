# workorders/routers/invoice_router.py
from fastapi import APIRouter, Depends

from workorders.core.container import get_invoice_service
from workorders.schemas.actor_schemas import Actor
from workorders.schemas.invoice_schemas import InvoiceOut, InvoiceStatusUpdate
from workorders.schemas.response_schemas import ResponseMessage
from workorders.services.invoice_service import InvoiceService
from workorders.utils.get_user import get_current_actor

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.get("/{invoice_id}", response_model=InvoiceOut)
async def get_invoice(invoice_id: str, invoicing: InvoiceService = Depends(get_invoice_service)):
    return await invoicing.get_invoice(invoice_id)


# PUT status (payments are recorded elsewhere; this only moves the status)
@router.put("/{invoice_id}/status", response_model=ResponseMessage[InvoiceOut])
async def update_invoice_status(
    invoice_id: str,
    data: InvoiceStatusUpdate,
    invoicing: InvoiceService = Depends(get_invoice_service),
    _actor: Actor = Depends(get_current_actor),
):
    invoice = await invoicing.set_status(invoice_id, data.status)
    return ResponseMessage(message=f"Invoice marked {data.status.value}", data=invoice)
