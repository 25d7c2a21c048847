"""
Cash receipt database model.

Inbound money. Merchant and farmer receipts settle dues FIFO; other payer
types are recorded as income only.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, Boolean
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import PayerType, PaymentMode
from coldstore_ledger.app.core.timeutil import utcnow


class CashReceipt(Base):
    """
    Cash receipt model.

    Invariant: applied_amount + unapplied_amount == amount.
    """
    __tablename__ = "cash_receipts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    transaction_id = Column(String(30), nullable=False, unique=True, index=True)

    payer_type = Column(Enum(PayerType), nullable=False)
    buyer_name = Column(String(200), nullable=True)
    farmer_name = Column(String(200), nullable=True)
    village = Column(String(100), nullable=True)
    contact_number = Column(String(20), nullable=True)
    party_key = Column(String(400), nullable=True, index=True)

    receipt_type = Column(Enum(PaymentMode), nullable=False, default=PaymentMode.CASH)
    amount = Column(Float, nullable=False)
    applied_amount = Column(Float, nullable=False, default=0.0)
    unapplied_amount = Column(Float, nullable=False, default=0.0)
    notes = Column(String(500), nullable=True)

    received_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    is_reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<CashReceipt(id={self.id}, txn='{self.transaction_id}', amount={self.amount}, applied={self.applied_amount})>"
