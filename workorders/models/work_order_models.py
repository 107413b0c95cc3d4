# workorders/models/work_order_models.py
from sqlalchemy import (
    Column, String, Text, Float, Boolean, DateTime, JSON, Index, UniqueConstraint
)
from sqlalchemy.ext.mutable import MutableList
from workorders.core.db import Base


class WorkOrderRecord(Base):
    __tablename__ = "work_orders"

    id = Column(String(64), primary_key=True)
    general_number = Column(String(32), nullable=False, index=True)
    work_order_number = Column(String(32), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    pending_reason = Column(Text, nullable=True)

    # Weak references (lookup only)
    assigned_to = Column(String(64), nullable=True, index=True)
    assigned_to_name = Column(String(255), nullable=True)
    customer_id = Column(String(64), nullable=True, index=True)
    customer_name = Column(String(255), nullable=True)
    quote_id = Column(String(64), nullable=True)
    invoice_id = Column(String(64), nullable=True)

    # Workflow
    status = Column(String(32), nullable=False, default="todo", index=True)
    is_archived = Column(Boolean, nullable=False, default=False, index=True)
    scheduled_date = Column(DateTime(timezone=True), nullable=True)
    completed_date = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(String(64), nullable=True)
    archive_reason = Column(Text, nullable=True)

    estimated_hours = Column(Float, nullable=False, default=0.0)
    hours_spent = Column(Float, nullable=False, default=0.0)
    estimated_cost = Column(Float, nullable=False, default=0.0)

    materials = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    history = Column(MutableList.as_mutable(JSON), nullable=False, default=list)     # append-only
    journey = Column(MutableList.as_mutable(JSON), nullable=False, default=list)     # append-only

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(String(64), nullable=True)
    created_by_name = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("general_number", name="uq_work_order_general_number"),
        UniqueConstraint("work_order_number", name="uq_work_order_number"),
        Index("ix_work_order_status_archived", "status", "is_archived"),
    )

    def __repr__(self):
        return f"<WorkOrderRecord(id={self.id}, number='{self.work_order_number}', status='{self.status}')>"
