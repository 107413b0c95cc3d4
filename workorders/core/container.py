# workorders/core/container.py
from functools import lru_cache

from fastapi import Depends

from workorders.core.db import AsyncSessionLocal
from workorders.services.activity_service import ActivityService
from workorders.services.archive_service import ArchiveService
from workorders.services.inventory_service import InventoryService
from workorders.services.invoice_service import InvoiceService
from workorders.services.work_order_services.lifecycle import WorkOrderLifecycleEngine
from workorders.services.work_order_services.numbering import NumberAllocator
from workorders.services.work_order_services.store import WorkOrderStore


def build_lifecycle_engine(session_factory, **options) -> WorkOrderLifecycleEngine:
    """Wire the engine to the SQLAlchemy-backed collaborators."""
    return WorkOrderLifecycleEngine(
        store=WorkOrderStore(session_factory),
        numbers=NumberAllocator(session_factory),
        inventory=InventoryService(session_factory),
        invoicing=InvoiceService(session_factory),
        archive=ArchiveService(session_factory),
        activity=ActivityService(session_factory),
        **options,
    )


@lru_cache(maxsize=1)
def get_lifecycle_engine() -> WorkOrderLifecycleEngine:
    # one instance per process: the per-order locks live on it
    return build_lifecycle_engine(AsyncSessionLocal)


# --------------------------
# Collaborator services for the HTTP layer
# --------------------------
def get_session_factory():
    return AsyncSessionLocal


def get_inventory_service(session_factory=Depends(get_session_factory)) -> InventoryService:
    return InventoryService(session_factory)


def get_invoice_service(session_factory=Depends(get_session_factory)) -> InvoiceService:
    return InvoiceService(session_factory)


def get_archive_service(session_factory=Depends(get_session_factory)) -> ArchiveService:
    return ArchiveService(session_factory)
