"""
Sale, exit and bill-number schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from coldstore_ledger.app.models.enums import (
    BagType, SaleType, ChargeBasis, ChargeUnit, PaymentStatus, PaymentMode, ClearanceType, BillType
)


class SaleResponse(BaseModel):
    id: int
    lot_id: Optional[int]
    lot_no: str
    farmer_name: str
    village: str
    bag_type: BagType
    sale_type: SaleType
    quantity_sold: int
    remaining_size_at_sale: int
    price_per_kg: Optional[float]
    cold_charge: float
    hammali: float
    price_per_bag: float
    charge_basis: ChargeBasis
    charge_unit_at_sale: ChargeUnit
    base_charge_amount: float
    kata_charges: float
    extra_hammali: float
    grading_charges: float
    entry_deduction_amount: float
    cold_storage_charge: float
    initial_paid_amount: float
    paid_amount: float
    due_amount: float
    discount_amount: float
    transferred_amount: float
    payment_status: PaymentStatus
    payment_mode: Optional[PaymentMode]
    clearance_type: Optional[ClearanceType]
    buyer_name: Optional[str]
    is_self_sale: bool
    party_key: str
    transfer_to_buyer_name: Optional[str]
    transfer_group_id: Optional[str]
    transfer_transaction_id: Optional[str]
    transfer_date: Optional[datetime]
    extra_due_hammali_merchant: float
    extra_due_grading_merchant: float
    extra_due_other_merchant: float
    extra_due_to_merchant: float
    cold_storage_bill_number: Optional[int]
    sales_bill_number: Optional[int]
    is_reversed: bool
    reversed_at: Optional[datetime]
    sold_at: datetime

    class Config:
        from_attributes = True


class SaleUpdate(BaseModel):
    """Correctable sale fields. Each change is recorded in the sale's edit history."""
    buyer_name: Optional[str] = Field(None, max_length=200)
    price_per_kg: Optional[float] = Field(None, ge=0)
    net_weight_kg: Optional[float] = Field(None, gt=0)
    payment_mode: Optional[PaymentMode] = None
    extra_due_hammali_merchant: Optional[float] = Field(None, ge=0)
    extra_due_grading_merchant: Optional[float] = Field(None, ge=0)
    extra_due_other_merchant: Optional[float] = Field(None, ge=0)


class SaleEditHistoryResponse(BaseModel):
    id: int
    sale_id: int
    field_changed: str
    old_value: Optional[str]
    new_value: Optional[str]
    changed_by: Optional[int]
    changed_at: datetime

    class Config:
        from_attributes = True


class BillNumberRequest(BaseModel):
    bill_type: BillType


class BillNumberResponse(BaseModel):
    sale_id: int
    bill_type: BillType
    bill_number: int


class ExitCreate(BaseModel):
    bags_exited: int
    exit_date: Optional[datetime] = None


class ExitResponse(BaseModel):
    id: int
    sale_id: int
    lot_id: Optional[int]
    bags_exited: int
    bill_number: int
    exit_date: datetime
    is_reversed: bool
    reversed_at: Optional[datetime]

    class Config:
        from_attributes = True


class ExitListResponse(BaseModel):
    sale_id: int
    quantity_sold: int
    total_exited: int
    exits: List[ExitResponse]
