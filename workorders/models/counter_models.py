# workorders/models/counter_models.py
from sqlalchemy import Column, Integer, String
from workorders.core.db import Base


class DocumentCounter(Base):
    """Per-year sequence counters. The ``general`` kind is shared by all document kinds."""
    __tablename__ = "document_counters"

    year = Column(Integer, primary_key=True)
    kind = Column(String(32), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
