# workorders/schemas/activity_schemas.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional


class FieldChange(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class ActivityOut(BaseModel):
    id: int
    user_id: Optional[str]
    user_name: str
    user_email: Optional[str] = None
    activity_type: str
    entity_type: str
    entity_id: str
    entity_name: Optional[str] = None
    action: str
    message: str
    changes: Optional[List[Dict[str, Any]]] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra")
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityListResponse(BaseModel):
    message: str
    total: int
    data: List[ActivityOut]
