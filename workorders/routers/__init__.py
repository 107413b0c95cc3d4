from fastapi import APIRouter

from .work_orders_router import router as work_orders_router
from .activity_router import router as activity_router
from .inventory_router import router as inventory_router
from .invoice_router import router as invoice_router
from .archive_router import router as archive_router

router = APIRouter()

router.include_router(work_orders_router)
router.include_router(activity_router)
router.include_router(inventory_router)
router.include_router(invoice_router)
router.include_router(archive_router)
