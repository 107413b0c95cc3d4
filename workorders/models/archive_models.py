# workorders/models/archive_models.py
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Index
from workorders.core.db import Base


class ArchivedDocument(Base):
    """Snapshot of a document taken when it is archived or deleted."""
    __tablename__ = "archived_documents"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(64), nullable=False, index=True)
    document_type = Column(String(32), nullable=False)      # work_order, invoice, quote
    general_number = Column(String(32), nullable=False)
    document_number = Column(String(32), nullable=False)

    document_data = Column(JSON, nullable=False)
    journey = Column(JSON, nullable=False, default=list)
    activities = Column(JSON, nullable=False, default=list)

    archived_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    archived_by = Column(String(64), nullable=False)
    archived_by_name = Column(String(255), nullable=False)
    archive_reason = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_archived_document_type_number", "document_type", "document_number"),
    )
