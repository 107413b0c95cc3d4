"""
Shared fixtures for the work order test suite.

Every test gets its own SQLite file, a frozen clock and in-memory fakes for
the inventory, invoicing, archive and activity collaborators. Tests that need
the real SQLAlchemy-backed collaborators use ``db_lifecycle`` instead.
"""
import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

# config is read at import time
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AUTO_ARCHIVE_ENABLED", "false")
os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'workorders-test.db')}"
)

import pytest

from workorders.core.container import build_lifecycle_engine
from workorders.core.db import create_engine_for, create_session_factory, init_models
from workorders.models.invoice_models import InvoiceStatus
from workorders.schemas.actor_schemas import Actor
from workorders.schemas.inventory_schemas import InventoryItemOut
from workorders.schemas.invoice_schemas import InvoiceOut
from workorders.schemas.work_order_schemas import WorkOrderCreate
from workorders.services.work_order_services.lifecycle import WorkOrderLifecycleEngine
from workorders.services.work_order_services.numbering import NumberAllocator
from workorders.services.work_order_services.store import WorkOrderStore

START = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


# --------------------------
# Collaborator fakes
# --------------------------
class FakeInventory:
    def __init__(self, items: Optional[List[InventoryItemOut]] = None):
        self.items = {item.id: item for item in (items or [])}
        self.updates: List[tuple] = []

    def add(self, item_id: int, name: str, quantity: float, price: float = 10.0) -> InventoryItemOut:
        item = InventoryItemOut(id=item_id, name=name, unit="pcs", price=price, quantity=quantity, min_stock_threshold=0)
        self.items[item_id] = item
        return item

    async def get_items(self) -> List[InventoryItemOut]:
        return list(self.items.values())

    async def update_item(self, item_id: int, changes: Dict[str, Any]) -> None:
        self.updates.append((item_id, changes))
        self.items[item_id] = self.items[item_id].model_copy(update=changes)


class BrokenInventory(FakeInventory):
    async def get_items(self):
        raise ConnectionError("inventory service unavailable")


class FakeInvoicing:
    def __init__(self, delay: float = 0.0, fail_with: Optional[Exception] = None):
        self.delay = delay
        self.fail_with = fail_with
        self.calls: List[tuple] = []
        self.statuses: Dict[str, str] = {}

    async def convert_work_order_to_invoice(self, order_id: str, snapshot: Dict[str, Any]) -> InvoiceOut:
        self.calls.append((order_id, snapshot))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        invoice_id = f"inv-{len(self.calls)}"
        self.statuses[invoice_id] = InvoiceStatus.PENDING.value
        return InvoiceOut(
            id=invoice_id,
            invoice_number=f"INV-TEST-{len(self.calls):04d}",
            work_order_id=order_id,
            work_order_number=snapshot.get("work_order_number"),
            total_amount=Decimal("100.00"),
            total_paid=Decimal("0.00"),
            balance_due=Decimal("100.00"),
            status=InvoiceStatus.PENDING,
        )

    async def get_invoice_status(self, invoice_id: str) -> Optional[str]:
        return self.statuses.get(invoice_id)


class FakeArchive:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.documents: List[Dict[str, Any]] = []

    async def archive_document(self, kind, snapshot, general_number, document_number, journey, activities,
                               actor_id, actor_name, reason=None):
        if self.fail:
            raise RuntimeError("archive sink unavailable")
        self.documents.append({
            "kind": kind,
            "snapshot": snapshot,
            "general_number": general_number,
            "document_number": document_number,
            "journey": journey,
            "activities": activities,
            "actor_id": actor_id,
            "actor_name": actor_name,
            "reason": reason,
        })


class FakeActivity:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[Dict[str, Any]] = []

    async def log_activity(self, event_type, entity_kind, entity_id, action, message, actor_id, actor_name,
                           actor_email, entity_label=None, field_diffs=None, metadata=None):
        if self.fail:
            raise RuntimeError("activity log unavailable")
        self.events.append({
            "event_type": event_type,
            "entity_kind": entity_kind,
            "entity_id": entity_id,
            "action": action,
            "message": message,
            "actor_id": actor_id,
            "changes": field_diffs,
            "metadata": metadata,
        })

    async def get_entity_activities(self, entity_kind, entity_id):
        return [e for e in self.events if e["entity_kind"] == entity_kind and e["entity_id"] == entity_id]


# --------------------------
# Fixtures
# --------------------------
@pytest.fixture
async def session_factory(tmp_path):
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(bind=engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def inventory():
    return FakeInventory()


@pytest.fixture
def invoicing():
    return FakeInvoicing()


@pytest.fixture
def archive():
    return FakeArchive()


@pytest.fixture
def activity():
    return FakeActivity()


@pytest.fixture
def make_lifecycle(session_factory, clock, inventory, invoicing, archive, activity):
    def _make(**overrides) -> WorkOrderLifecycleEngine:
        options = dict(
            store=WorkOrderStore(session_factory),
            numbers=NumberAllocator(session_factory),
            inventory=inventory,
            invoicing=invoicing,
            archive=archive,
            activity=activity,
            clock=clock,
            side_effect_timeout=1.0,
            auto_create_invoice=True,
        )
        options.update(overrides)
        return WorkOrderLifecycleEngine(**options)
    return _make


@pytest.fixture
def lifecycle(make_lifecycle):
    return make_lifecycle()


@pytest.fixture
def db_lifecycle(session_factory, clock):
    return build_lifecycle_engine(session_factory, clock=clock, side_effect_timeout=5.0)


@pytest.fixture
def alice():
    return Actor(id="u-alice", name="Alice Carter", email="alice@example.com")


@pytest.fixture
def bob():
    return Actor(id="u-bob", name="Bob Nguyen", email="bob@example.com")


@pytest.fixture
def new_order():
    def _new(**fields) -> WorkOrderCreate:
        fields.setdefault("title", "Replace boiler valve")
        return WorkOrderCreate(**fields)
    return _new
