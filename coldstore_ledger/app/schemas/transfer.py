"""
Transfer schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from coldstore_ledger.app.models.enums import TransferKind, LegDirection


class TransferCreate(BaseModel):
    """
    Buyer-to-buyer transfers name the source sale; farmer-to-buyer transfers
    name the farmer. The receivable/self-sale breakdown is derived FIFO.
    """
    kind: TransferKind
    to_buyer_name: str = Field(..., min_length=1, max_length=200)
    amount: float
    sale_id: Optional[int] = None
    farmer_name: Optional[str] = Field(None, max_length=200)
    village: str = ""
    contact_number: str = ""
    remarks: Optional[str] = Field(None, max_length=500)
    transferred_at: Optional[datetime] = None


class TransferLegResponse(BaseModel):
    direction: LegDirection
    party_key: str
    amount: float
    due_balance_after: float

    class Config:
        from_attributes = True


class TransferResponse(BaseModel):
    id: int
    transaction_id: str
    transfer_group_id: str
    kind: TransferKind
    from_party_key: str
    to_party_key: str
    from_name: str
    to_buyer_name: str
    sale_id: Optional[int]
    amount: float
    receivables_transferred: float
    self_sales_transferred: float
    transferred_at: datetime
    is_reversed: bool
    reversed_at: Optional[datetime]
    legs: List[TransferLegResponse] = []

    class Config:
        from_attributes = True
