"""
Lot database model.

A farmer's batch of bags placed in storage at a chamber/floor/position.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, Boolean, CheckConstraint
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import BagType, SaleStatus
from coldstore_ledger.app.core.timeutil import utcnow


class Lot(Base):
    """
    Lot model.

    Invariant: 0 <= remaining_size <= original_size. original_size never
    changes after entry; only sales (and sale reversals) move remaining_size.
    Lots are hard-deleted only by a season reset.
    """
    __tablename__ = "lots"
    __table_args__ = (
        CheckConstraint("remaining_size >= 0", name="ck_lots_remaining_non_negative"),
        CheckConstraint("remaining_size <= original_size", name="ck_lots_remaining_le_original"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    lot_no = Column(String(50), nullable=False, index=True)

    # Farmer identity
    farmer_name = Column(String(200), nullable=False, index=True)
    contact_number = Column(String(20), nullable=False, default="")
    village = Column(String(100), nullable=False, default="")
    tehsil = Column(String(100), nullable=True)
    district = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)

    # Location
    chamber_id = Column(Integer, ForeignKey("chambers.id"), nullable=False, index=True)
    floor = Column(Integer, nullable=False, default=0)
    position = Column(String(50), nullable=True)

    # Quantity and classification
    original_size = Column(Integer, nullable=False)
    remaining_size = Column(Integer, nullable=False)
    bag_type = Column(Enum(BagType), nullable=False)
    quality = Column(String(50), nullable=True)
    potato_size = Column(String(50), nullable=True)
    potato_type = Column(String(100), nullable=True)
    net_weight_kg = Column(Float, nullable=True)
    remarks = Column(String(500), nullable=True)

    # Running totals across this lot's active sales
    total_paid_charge = Column(Float, nullable=False, default=0.0)
    total_due_charge = Column(Float, nullable=False, default=0.0)

    sale_status = Column(Enum(SaleStatus), nullable=False, default=SaleStatus.STORED)
    up_for_sale = Column(Boolean, nullable=False, default=False)
    base_cold_charges_billed = Column(Integer, nullable=False, default=0)

    # Entry-time deductions, fixed at entry
    advance_deduction = Column(Float, nullable=False, default=0.0)
    freight_deduction = Column(Float, nullable=False, default=0.0)
    other_deduction = Column(Float, nullable=False, default=0.0)

    entry_bill_number = Column(Integer, nullable=True)
    sold_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Lot(id={self.id}, lot_no='{self.lot_no}', remaining={self.remaining_size}/{self.original_size}, status={self.sale_status})>"
