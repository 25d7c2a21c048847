"""
Audit trail schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, Optional


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    before: Optional[Dict[str, Any]]
    after: Optional[Dict[str, Any]]
    meta_data: Optional[Dict[str, Any]]
    timestamp: datetime

    class Config:
        from_attributes = True
