"""
Reversal schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from coldstore_ledger.app.models.enums import ReversibleEntity


class ReversalResponse(BaseModel):
    """status is 'reversed', or 'noop' when the record was already reversed."""
    entity_type: ReversibleEntity
    entity_id: int
    status: str
    reversed_at: Optional[datetime]
    message: str
