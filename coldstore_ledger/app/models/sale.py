"""
Sale (sales history) database model.

A snapshot of a quantity sold from a lot plus its mutable settlement fields.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, Boolean
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import (
    BagType, SaleType, ChargeBasis, ChargeUnit, PaymentStatus, PaymentMode, ClearanceType
)
from coldstore_ledger.app.core.timeutil import utcnow


class Sale(Base):
    """
    Sale model.

    Invariant: paid_amount + due_amount == cold_storage_charge (within 0.01).
    paid_amount counts every settlement of the sale: the counter payment
    (initial_paid_amount), FIFO receipts, discounts and transfer clearance.
    discount_amount and transferred_amount are portions of paid_amount.

    Sales are never deleted. Reversal flips is_reversed.
    """
    __tablename__ = "sales_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    lot_id = Column(Integer, ForeignKey("lots.id", ondelete="SET NULL"), nullable=True, index=True)

    # Lot snapshot
    lot_no = Column(String(50), nullable=False)
    farmer_name = Column(String(200), nullable=False)
    contact_number = Column(String(20), nullable=False, default="")
    village = Column(String(100), nullable=False, default="")
    tehsil = Column(String(100), nullable=True)
    district = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    chamber_name = Column(String(100), nullable=True)
    floor = Column(Integer, nullable=True)
    position = Column(String(50), nullable=True)
    bag_type = Column(Enum(BagType), nullable=False)
    quality = Column(String(50), nullable=True)
    potato_size = Column(String(50), nullable=True)
    original_lot_size = Column(Integer, nullable=False)
    net_weight_kg = Column(Float, nullable=True)

    # Sale details
    sale_type = Column(Enum(SaleType), nullable=False)
    quantity_sold = Column(Integer, nullable=False)
    remaining_size_at_sale = Column(Integer, nullable=False)
    price_per_kg = Column(Float, nullable=True)
    cold_charge = Column(Float, nullable=False, default=0.0)
    hammali = Column(Float, nullable=False, default=0.0)
    price_per_bag = Column(Float, nullable=False, default=0.0)
    charge_basis = Column(Enum(ChargeBasis), nullable=False, default=ChargeBasis.ACTUAL)
    charge_unit_at_sale = Column(Enum(ChargeUnit), nullable=False, default=ChargeUnit.BAG)

    # Charge breakdown
    base_charge_amount = Column(Float, nullable=False, default=0.0)
    kata_charges = Column(Float, nullable=False, default=0.0)
    extra_hammali = Column(Float, nullable=False, default=0.0)
    grading_charges = Column(Float, nullable=False, default=0.0)
    entry_deduction_amount = Column(Float, nullable=False, default=0.0)
    cold_storage_charge = Column(Float, nullable=False)

    # Settlement
    initial_paid_amount = Column(Float, nullable=False, default=0.0)
    paid_amount = Column(Float, nullable=False, default=0.0)
    due_amount = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    transferred_amount = Column(Float, nullable=False, default=0.0)
    payment_status = Column(Enum(PaymentStatus), nullable=False)
    payment_mode = Column(Enum(PaymentMode), nullable=True)
    clearance_type = Column(Enum(ClearanceType), nullable=True)

    # Parties
    buyer_name = Column(String(200), nullable=True, index=True)
    is_self_sale = Column(Boolean, nullable=False, default=False)
    party_key = Column(String(400), nullable=False, index=True)
    farmer_key = Column(String(400), nullable=False, index=True)

    # Transfer tracking (latest transfer out of this sale)
    transfer_to_buyer_name = Column(String(200), nullable=True)
    transfer_group_id = Column(String(36), nullable=True, index=True)
    transfer_transaction_id = Column(String(30), nullable=True)
    transfer_date = Column(DateTime, nullable=True)

    # Extra dues owed by the merchant, outside the farmer-side charge
    extra_due_hammali_merchant = Column(Float, nullable=False, default=0.0)
    extra_due_grading_merchant = Column(Float, nullable=False, default=0.0)
    extra_due_other_merchant = Column(Float, nullable=False, default=0.0)
    extra_due_to_merchant = Column(Float, nullable=False, default=0.0)

    cold_storage_bill_number = Column(Integer, nullable=True)
    sales_bill_number = Column(Integer, nullable=True)

    is_reversed = Column(Boolean, nullable=False, default=False, index=True)
    reversed_at = Column(DateTime, nullable=True)
    sold_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Sale(id={self.id}, lot_id={self.lot_id}, qty={self.quantity_sold}, charge={self.cold_storage_charge}, due={self.due_amount})>"
