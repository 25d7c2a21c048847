"""
Payment allocation database model.

Derived rows produced by the FIFO replay. A party's rows are deleted and
rewritten on every replay, so they always mirror the current ledger.
"""

from sqlalchemy import Column, Integer, String, Float, Enum, ForeignKey
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import CreditType, TargetType


class PaymentAllocation(Base):
    __tablename__ = "payment_allocations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    party_key = Column(String(400), nullable=False, index=True)
    credit_type = Column(Enum(CreditType), nullable=False)
    credit_id = Column(Integer, nullable=False)
    target_type = Column(Enum(TargetType), nullable=False)
    target_id = Column(Integer, nullable=False)
    amount = Column(Float, nullable=False)

    def __repr__(self):
        return f"<PaymentAllocation({self.credit_type}:{self.credit_id} -> {self.target_type}:{self.target_id}, {self.amount})>"
