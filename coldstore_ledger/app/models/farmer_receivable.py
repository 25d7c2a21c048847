"""
Farmer receivable database model.

Opening dues a farmer owes the cold storage, outside any sale.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.core.timeutil import utcnow


class FarmerReceivable(Base):
    __tablename__ = "farmer_receivables"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    farmer_name = Column(String(200), nullable=False)
    village = Column(String(100), nullable=False, default="")
    contact_number = Column(String(20), nullable=False, default="")
    party_key = Column(String(400), nullable=False, index=True)
    description = Column(String(300), nullable=True)
    financial_year = Column(String(7), nullable=True)
    amount = Column(Float, nullable=False)
    paid_amount = Column(Float, nullable=False, default=0.0)
    due_amount = Column(Float, nullable=False, default=0.0)
    recorded_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<FarmerReceivable(id={self.id}, farmer='{self.farmer_name}', due={self.due_amount})>"
