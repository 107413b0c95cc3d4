# workorders/models/invoice_models.py
import enum
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, DateTime, Enum, JSON, Index
from sqlalchemy.sql import func
from workorders.core.db import Base


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    CANCELLED = "cancelled"


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    invoice_number = Column(String, unique=True, nullable=False, index=True)

    # Source document (weak reference, no FK: the order may be deleted later)
    work_order_id = Column(String(64), nullable=True, index=True)
    work_order_number = Column(String(32), nullable=True)
    customer_id = Column(String(64), nullable=True, index=True)
    customer_name = Column(String(255), nullable=True)

    line_items = Column(JSON, nullable=False, default=list)

    # Financial fields
    total_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_paid = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    balance_due = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    status = Column(Enum(InvoiceStatus, name="invoice_status"), default=InvoiceStatus.PENDING, nullable=False)

    # Audit fields
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
    created_by = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_invoice_status", "status"),
    )
