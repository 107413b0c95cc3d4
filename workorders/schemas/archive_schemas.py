from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, List, Optional


class ArchivedDocumentOut(BaseModel):
    id: int
    document_id: str
    document_type: str
    general_number: str
    document_number: str
    document_data: Dict[str, Any]
    journey: List[Dict[str, Any]] = []
    activities: List[Dict[str, Any]] = []
    archived_at: datetime
    archived_by: str
    archived_by_name: str
    archive_reason: Optional[str] = None

    class Config:
        from_attributes = True
