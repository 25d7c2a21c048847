"""
Enumerations for the cold storage ledger.
"""

import enum


class AccessType(str, enum.Enum):
    """Caller access level carried in the token."""
    VIEW = "view"
    EDIT = "edit"


class ChargeUnit(str, enum.Enum):
    """Billing basis configured per cold storage."""
    BAG = "bag"
    QUINTAL = "quintal"


class ChargeBasis(str, enum.Enum):
    """Which quantity a sale's base charge is computed on."""
    ACTUAL = "actual"  # the bags sold in this sale
    TOTAL_REMAINING = "totalRemaining"  # everything still in the lot, billed once


class BagType(str, enum.Enum):
    WAFER = "wafer"
    SEED = "seed"
    RATION = "ration"


class SaleStatus(str, enum.Enum):
    """Lot sale status. STORED and PARTIAL are both 'available'."""
    STORED = "stored"
    PARTIAL = "partial"
    SOLD = "sold"


class SaleType(str, enum.Enum):
    PARTIAL = "partial"
    FULL = "full"


class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    DUE = "due"
    PARTIAL = "partial"


class PaymentMode(str, enum.Enum):
    CASH = "cash"
    ACCOUNT = "account"


class ClearanceType(str, enum.Enum):
    """The kind of credit that last settled part of a sale."""
    RECEIPT = "receipt"
    DISCOUNT = "discount"
    TRANSFER = "transfer"


class PayerType(str, enum.Enum):
    COLD_MERCHANT = "cold_merchant"
    FARMER = "farmer"
    SALES_GOODS = "sales_goods"
    KATA = "kata"
    OTHERS = "others"


class ExpenseClass(str, enum.Enum):
    REVENUE = "revenue"
    CAPITAL = "capital"
    ADVANCE = "advance"


class TransferKind(str, enum.Enum):
    BUYER_TO_BUYER = "buyer_to_buyer"
    FARMER_TO_BUYER = "farmer_to_buyer"


class LegDirection(str, enum.Enum):
    OUT = "out"
    IN = "in"


class LotChangeType(str, enum.Enum):
    """LotEditHistory change types."""
    EDIT = "edit"
    PARTIAL_SALE = "partial_sale"
    FINAL_SALE = "final_sale"
    SALE_REVERSED = "sale_reversed"
    UP_FOR_SALE = "up_for_sale"


class CreditType(str, enum.Enum):
    """Sources of settlement credit applied during a party replay."""
    RECEIPT = "receipt"
    DISCOUNT = "discount"
    TRANSFER = "transfer"


class TargetType(str, enum.Enum):
    """Debit rows a credit can be allocated against."""
    SALE = "sale"
    TRANSFERRED_DUE = "transferred_due"
    RECEIVABLE = "receivable"


class ReversibleEntity(str, enum.Enum):
    """Entity types accepted by the uniform reversal entry point."""
    EXIT = "exit"
    RECEIPT = "receipt"
    EXPENSE = "expense"
    CASH_TRANSFER = "cash_transfer"
    DISCOUNT = "discount"
    TRANSFER = "transfer"
    SALE = "sale"


class BillType(str, enum.Enum):
    COLD_STORAGE = "cold_storage"
    SALES = "sales"


class AssetCategory(str, enum.Enum):
    BUILDING = "building"
    PLANT_MACHINERY = "plant_machinery"
    FURNITURE = "furniture"
    VEHICLES = "vehicles"
    COMPUTERS = "computers"
    ELECTRICAL_FITTINGS = "electrical_fittings"
    OTHER = "other"


class LiabilityType(str, enum.Enum):
    BANK_LOAN = "bank_loan"
    EQUIPMENT_LOAN = "equipment_loan"
    CREDIT_LINE = "credit_line"
    OUTSTANDING_PAYABLE = "outstanding_payable"
    OTHER = "other"
