"""
Lot and sale-entry Pydantic schemas.

Defines request and response models for the lot state machine.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional
from coldstore_ledger.app.models.enums import (
    BagType, SaleStatus, ChargeBasis, PaymentStatus, PaymentMode, LotChangeType
)


class LotCreate(BaseModel):
    """Schema for recording a new lot at entry."""
    lot_no: Optional[str] = Field(None, max_length=50, description="Assigned from the lot counter when omitted")
    farmer_name: str = Field(..., min_length=1, max_length=200)
    contact_number: str = Field("", max_length=20)
    village: str = Field("", max_length=100)
    tehsil: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    chamber_id: int
    floor: int = Field(0, ge=0)
    position: Optional[str] = None
    original_size: int = Field(..., gt=0, description="Bags at entry")
    bag_type: BagType
    quality: Optional[str] = None
    potato_size: Optional[str] = None
    potato_type: Optional[str] = None
    net_weight_kg: Optional[float] = Field(None, gt=0)
    remarks: Optional[str] = Field(None, max_length=500)
    advance_deduction: float = Field(0.0, ge=0)
    freight_deduction: float = Field(0.0, ge=0)
    other_deduction: float = Field(0.0, ge=0)


class LotUpdate(BaseModel):
    """
    Schema for editing a lot's non-financial fields.

    Unknown keys are kept so the service can reject financial fields
    explicitly instead of silently dropping them.
    """
    contact_number: Optional[str] = Field(None, max_length=20)
    village: Optional[str] = None
    tehsil: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    chamber_id: Optional[int] = None
    floor: Optional[int] = Field(None, ge=0)
    position: Optional[str] = None
    bag_type: Optional[BagType] = None
    quality: Optional[str] = None
    potato_size: Optional[str] = None
    potato_type: Optional[str] = None
    remarks: Optional[str] = Field(None, max_length=500)

    class Config:
        extra = "allow"


class LotResponse(BaseModel):
    id: int
    lot_no: str
    farmer_name: str
    contact_number: str
    village: str
    chamber_id: int
    floor: int
    position: Optional[str]
    original_size: int
    remaining_size: int
    bag_type: BagType
    quality: Optional[str]
    potato_size: Optional[str]
    net_weight_kg: Optional[float]
    remarks: Optional[str]
    total_paid_charge: float
    total_due_charge: float
    sale_status: SaleStatus
    up_for_sale: bool
    base_cold_charges_billed: int
    advance_deduction: float
    freight_deduction: float
    other_deduction: float
    entry_bill_number: Optional[int]
    sold_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class UpForSaleRequest(BaseModel):
    up_for_sale: bool


class LotHistoryResponse(BaseModel):
    id: int
    lot_id: Optional[int]
    sale_id: Optional[int]
    change_type: LotChangeType
    quantity: Optional[int]
    previous_data: Optional[Dict[str, Any]]
    new_data: Optional[Dict[str, Any]]
    changed_by: Optional[int]
    changed_at: datetime

    class Config:
        from_attributes = True


class SaleEntryBase(BaseModel):
    """
    Common fields of a partial or final sale.

    Charge components are validated by the sale calculator so that negative
    values surface as ledger validation errors.
    """
    payment_status: PaymentStatus
    paid_amount: Optional[float] = Field(None, description="Required for partial payment")
    payment_mode: Optional[PaymentMode] = None
    buyer_name: Optional[str] = Field(None, max_length=200)
    is_self_sale: bool = False
    price_per_kg: Optional[float] = None
    custom_cold_charge: Optional[float] = None
    custom_hammali: Optional[float] = None
    kata_charges: float = 0.0
    extra_hammali: float = 0.0
    grading_charges: float = 0.0
    extra_due_hammali_merchant: float = 0.0
    extra_due_grading_merchant: float = 0.0
    extra_due_other_merchant: float = 0.0
    sold_at: Optional[datetime] = None


class PartialSaleCreate(SaleEntryBase):
    quantity: int
    charge_basis: ChargeBasis = ChargeBasis.ACTUAL


class FinalizeSaleCreate(SaleEntryBase):
    charge_basis: ChargeBasis = ChargeBasis.ACTUAL


class ResetCheckResponse(BaseModel):
    can_reset: bool
    total_lots: int
    lots_with_stock: int
    remaining_bags: int


class ResetResponse(BaseModel):
    lots_deleted: int
    chambers_cleared: int
