# workorders/schemas/work_order_schemas.py
import enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from typing_extensions import Annotated
from pydantic import AfterValidator, BaseModel, Field


def _ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything we write is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


# --------------------------
# Enums
# --------------------------
class WorkOrderStatus(str, enum.Enum):
    TODO = "todo"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class HistoryAction(str, enum.Enum):
    CREATED = "created"
    CONVERTED = "converted"
    ASSIGNED = "assigned"
    REASSIGNED = "reassigned"
    STATUS_CHANGED = "status_changed"
    UPDATED = "updated"
    COMPLETED = "completed"
    MATERIAL_UPDATED = "material_updated"
    HOURS_UPDATED = "hours_updated"
    ARCHIVED = "archived"
    DELETED = "deleted"


class JourneyStage(str, enum.Enum):
    CREATED = "created"
    CONVERTED = "converted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SourceType(str, enum.Enum):
    MANUAL = "manual"
    QUOTE = "quote"
    INVOICE = "invoice"


# --------------------------
# Audit trail
# --------------------------
class HistoryEntry(BaseModel):
    id: str
    action_type: HistoryAction
    performed_by: str
    performed_by_name: str
    timestamp: UtcDatetime
    details: str
    from_status: Optional[WorkOrderStatus] = None
    to_status: Optional[WorkOrderStatus] = None
    from_assigned_to: Optional[str] = None
    to_assigned_to: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True


class JourneyEntry(BaseModel):
    id: str
    stage: JourneyStage
    performed_by: str
    performed_by_name: str
    label: str
    details: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: UtcDatetime

    class Config:
        frozen = True


# --------------------------
# Work Order
# --------------------------
class Material(BaseModel):
    inventory_item_id: Optional[int] = None
    name: str
    quantity: float = Field(ge=0)
    unit: str = "pcs"


class WorkOrder(BaseModel):
    id: str
    general_number: str
    work_order_number: str

    title: str
    description: str = ""
    location: Optional[str] = None
    notes: Optional[str] = None
    pending_reason: Optional[str] = None

    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    quote_id: Optional[str] = None
    invoice_id: Optional[str] = None

    status: WorkOrderStatus = WorkOrderStatus.TODO
    is_archived: bool = False
    scheduled_date: Optional[UtcDatetime] = None
    completed_date: Optional[UtcDatetime] = None
    archived_at: Optional[UtcDatetime] = None
    archived_by: Optional[str] = None
    archive_reason: Optional[str] = None

    estimated_hours: float = 0.0
    hours_spent: float = 0.0
    estimated_cost: float = 0.0

    materials: List[Material] = []
    history: List[HistoryEntry] = []
    journey: List[JourneyEntry] = []

    created_at: UtcDatetime
    updated_at: UtcDatetime
    created_by: Optional[str] = None
    created_by_name: Optional[str] = None

    class Config:
        from_attributes = True


class WorkOrderCreate(BaseModel):
    title: str = Field(min_length=1)                  # Mandatory
    description: str = ""
    location: Optional[str] = None
    notes: Optional[str] = None
    pending_reason: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    quote_id: Optional[str] = None
    invoice_id: Optional[str] = None
    status: WorkOrderStatus = WorkOrderStatus.TODO
    scheduled_date: Optional[UtcDatetime] = None
    estimated_hours: float = Field(default=0.0, ge=0)
    hours_spent: float = Field(default=0.0, ge=0)
    estimated_cost: float = Field(default=0.0, ge=0)
    materials: List[Material] = []


class WorkOrderUpdate(BaseModel):
    """Partial update; only the fields that are explicitly set are applied."""
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    pending_reason: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    quote_id: Optional[str] = None
    invoice_id: Optional[str] = None
    status: Optional[WorkOrderStatus] = None
    scheduled_date: Optional[UtcDatetime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    hours_spent: Optional[float] = Field(default=None, ge=0)
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    materials: Optional[List[Material]] = None


class ReopenRequest(BaseModel):
    reason: str


class ArchiveRequest(BaseModel):
    archive_reason: Optional[str] = None


# --------------------------
# Auto archival
# --------------------------
class Notification(BaseModel):
    type: Literal["success", "warning"]
    title: str
    message: str
    link: str


class AutoArchiveResult(BaseModel):
    auto_archived: List[WorkOrder] = []
    needs_invoice: List[WorkOrder] = []
    notifications: List[Notification] = []
