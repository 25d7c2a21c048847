"""
Financial statement and register schemas.
"""

from pydantic import BaseModel, Field
from datetime import date
from typing import Dict, List, Optional
from coldstore_ledger.app.models.enums import AssetCategory, LiabilityType


class AssetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: AssetCategory
    original_cost: float = Field(..., gt=0)
    purchase_date: date
    depreciation_rate: Optional[float] = Field(None, ge=0, le=100)
    disposal_date: Optional[date] = None


class AssetResponse(AssetCreate):
    id: int

    class Config:
        from_attributes = True


class LiabilityCreate(BaseModel):
    liability_type: LiabilityType
    party_name: str = Field(..., min_length=1, max_length=200)
    original_amount: float = Field(..., gt=0)
    outstanding_amount: float = Field(..., ge=0)
    interest_rate: float = Field(0.0, ge=0)
    start_date: date
    due_date: Optional[date] = None
    settled_date: Optional[date] = None


class LiabilityResponse(LiabilityCreate):
    id: int

    class Config:
        from_attributes = True


class AssetCategoryLine(BaseModel):
    category: AssetCategory
    items: int
    value: float


class LiabilityLine(BaseModel):
    id: int
    liability_type: LiabilityType
    party_name: str
    amount: float


class BalanceSheetReport(BaseModel):
    financial_year: str
    as_of_date: date
    fixed_assets: List[AssetCategoryLine]
    total_assets: float
    current_liabilities: List[LiabilityLine]
    long_term_liabilities: List[LiabilityLine]
    total_current_liabilities: float
    total_long_term_liabilities: float
    total_liabilities: float
    owners_equity: float
    total_liabilities_and_equity: float
    is_balanced: bool
    warning: Optional[str] = None


class ProfitAndLossReport(BaseModel):
    financial_year: str
    period_start: date
    period_end: date
    cold_storage_charges: float
    merchant_extras: float
    other_income: Dict[str, float]
    total_income: float
    expenses_by_type: Dict[str, float]
    depreciation: float
    interest: float
    total_expenses: float
    net_profit_or_loss: float
