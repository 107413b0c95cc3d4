# workorders/models/activity_models.py
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from workorders.core.db import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True)
    user_name = Column(String, nullable=False)
    user_email = Column(String, nullable=True)

    activity_type = Column(String(64), nullable=False, index=True)   # e.g. work_order_created
    entity_type = Column(String(32), nullable=False)                 # e.g. work_order
    entity_id = Column(String(64), nullable=False)
    entity_name = Column(String, nullable=True)
    action = Column(String(32), nullable=False)

    message = Column(String, nullable=False)
    changes = Column(JSON, nullable=True)                    # [{"field", "old_value", "new_value"}]
    extra = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_activity_entity", "entity_type", "entity_id"),
    )
