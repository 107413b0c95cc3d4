# workorders/services/ports.py
"""
Capabilities the lifecycle engine consumes from sibling modules.

The engine only depends on these protocols; the SQLAlchemy-backed services in
this package implement them, and tests substitute in-memory fakes.
"""
from typing import Any, Dict, List, Optional, Protocol

from workorders.schemas.inventory_schemas import InventoryItemOut
from workorders.schemas.invoice_schemas import InvoiceOut


class InventoryPort(Protocol):
    async def get_items(self) -> List[InventoryItemOut]: ...

    async def update_item(self, item_id: int, changes: Dict[str, Any]) -> None: ...


class InvoicingPort(Protocol):
    async def convert_work_order_to_invoice(self, order_id: str, snapshot: Dict[str, Any]) -> InvoiceOut: ...

    async def get_invoice_status(self, invoice_id: str) -> Optional[str]: ...


class ArchivePort(Protocol):
    async def archive_document(
        self,
        kind: str,
        snapshot: Dict[str, Any],
        general_number: str,
        document_number: str,
        journey: List[Dict[str, Any]],
        activities: List[Dict[str, Any]],
        actor_id: str,
        actor_name: str,
        reason: Optional[str] = None,
    ) -> None: ...


class ActivityPort(Protocol):
    async def log_activity(
        self,
        event_type: str,
        entity_kind: str,
        entity_id: str,
        action: str,
        message: str,
        actor_id: str,
        actor_name: str,
        actor_email: str,
        entity_label: Optional[str] = None,
        field_diffs: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None: ...

    async def get_entity_activities(self, entity_kind: str, entity_id: str) -> List[Dict[str, Any]]: ...
