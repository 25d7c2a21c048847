"""
Cash book schemas: receipts, expenses, cash transfers, discounts and
farmer receivables.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from coldstore_ledger.app.models.enums import PayerType, PaymentMode, ExpenseClass


class ReceiptCreate(BaseModel):
    payer_type: PayerType
    buyer_name: Optional[str] = Field(None, max_length=200)
    farmer_name: Optional[str] = Field(None, max_length=200)
    village: Optional[str] = ""
    contact_number: Optional[str] = ""
    receipt_type: PaymentMode = PaymentMode.CASH
    amount: float
    notes: Optional[str] = Field(None, max_length=500)
    received_at: Optional[datetime] = None


class ReceiptResponse(BaseModel):
    id: int
    transaction_id: str
    payer_type: PayerType
    buyer_name: Optional[str]
    farmer_name: Optional[str]
    party_key: Optional[str]
    receipt_type: PaymentMode
    amount: float
    applied_amount: float
    unapplied_amount: float
    received_at: datetime
    is_reversed: bool
    reversed_at: Optional[datetime]

    class Config:
        from_attributes = True


class ExpenseCreate(BaseModel):
    expense_type: str = Field(..., min_length=1, max_length=100)
    expense_class: ExpenseClass = ExpenseClass.REVENUE
    receiver_name: Optional[str] = Field(None, max_length=200)
    payment_mode: PaymentMode = PaymentMode.CASH
    amount: float
    remarks: Optional[str] = Field(None, max_length=500)
    paid_at: Optional[datetime] = None


class ExpenseResponse(BaseModel):
    id: int
    transaction_id: str
    expense_type: str
    expense_class: ExpenseClass
    receiver_name: Optional[str]
    payment_mode: PaymentMode
    amount: float
    paid_at: datetime
    is_reversed: bool
    reversed_at: Optional[datetime]

    class Config:
        from_attributes = True


class CashTransferCreate(BaseModel):
    from_account: str = Field(..., min_length=1, max_length=100)
    to_account: str = Field(..., min_length=1, max_length=100)
    amount: float
    remarks: Optional[str] = Field(None, max_length=500)
    transferred_at: Optional[datetime] = None


class CashTransferResponse(BaseModel):
    id: int
    transaction_id: str
    from_account: str
    to_account: str
    amount: float
    transferred_at: datetime
    is_reversed: bool
    reversed_at: Optional[datetime]

    class Config:
        from_attributes = True


class DiscountAllocationIn(BaseModel):
    buyer_name: str = Field(..., min_length=1, max_length=200)
    amount: float


class DiscountCreate(BaseModel):
    farmer_name: str = Field(..., min_length=1, max_length=200)
    village: str = ""
    contact_number: str = ""
    total_amount: float
    allocations: List[DiscountAllocationIn]
    remarks: Optional[str] = Field(None, max_length=500)
    discount_date: Optional[datetime] = None


class DiscountAllocationResponse(BaseModel):
    buyer_name: str
    party_key: str
    amount: float

    class Config:
        from_attributes = True


class DiscountResponse(BaseModel):
    id: int
    transaction_id: str
    farmer_name: str
    total_amount: float
    discount_date: datetime
    is_reversed: bool
    reversed_at: Optional[datetime]
    allocations: List[DiscountAllocationResponse] = []

    class Config:
        from_attributes = True


class FarmerReceivableCreate(BaseModel):
    farmer_name: str = Field(..., min_length=1, max_length=200)
    village: str = ""
    contact_number: str = ""
    amount: float
    description: Optional[str] = Field(None, max_length=300)
    financial_year: Optional[str] = None
    recorded_at: Optional[datetime] = None


class FarmerReceivableResponse(BaseModel):
    id: int
    farmer_name: str
    party_key: str
    description: Optional[str]
    financial_year: Optional[str]
    amount: float
    paid_amount: float
    due_amount: float
    recorded_at: datetime

    class Config:
        from_attributes = True


class PartyDuesResponse(BaseModel):
    party_key: str
    name: Optional[str]
    sales_due: float
    transferred_due: float
    receivable_due: float
    total_due: float
    open_items: int
