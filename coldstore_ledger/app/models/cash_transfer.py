"""
Cash transfer database model (internal account movement).
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Boolean
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.core.timeutil import utcnow


class CashTransfer(Base):
    __tablename__ = "cash_transfers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    transaction_id = Column(String(30), nullable=False, unique=True, index=True)

    from_account = Column(String(100), nullable=False)
    to_account = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    remarks = Column(String(500), nullable=True)

    transferred_at = Column(DateTime, default=utcnow, nullable=False)
    is_reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<CashTransfer(id={self.id}, {self.from_account}->{self.to_account}, amount={self.amount})>"
