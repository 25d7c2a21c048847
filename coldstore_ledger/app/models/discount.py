"""
Discount database models.

A discount reduces a farmer's dues, split across one or more buyers.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Boolean
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.core.timeutil import utcnow


class Discount(Base):
    """Discount model. Sum of allocation amounts == total_amount."""
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    transaction_id = Column(String(30), nullable=False, unique=True, index=True)

    farmer_name = Column(String(200), nullable=False)
    village = Column(String(100), nullable=False, default="")
    contact_number = Column(String(20), nullable=False, default="")
    farmer_key = Column(String(400), nullable=False, index=True)
    total_amount = Column(Float, nullable=False)
    remarks = Column(String(500), nullable=True)

    discount_date = Column(DateTime, default=utcnow, nullable=False)
    is_reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Discount(id={self.id}, farmer='{self.farmer_name}', total={self.total_amount})>"


class DiscountAllocation(Base):
    """
    One buyer's share of a discount.

    party_key is the party holding the discounted sales (the buyer, or the
    farmer for self-sales).
    """
    __tablename__ = "discount_allocations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    discount_id = Column(Integer, ForeignKey("discounts.id"), nullable=False, index=True)
    buyer_name = Column(String(200), nullable=False)
    party_key = Column(String(400), nullable=False, index=True)
    amount = Column(Float, nullable=False)

    def __repr__(self):
        return f"<DiscountAllocation(discount_id={self.discount_id}, buyer='{self.buyer_name}', amount={self.amount})>"
