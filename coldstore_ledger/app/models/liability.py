"""
Liability register model.
"""

from sqlalchemy import Column, Integer, String, Float, Date, Enum, ForeignKey
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import LiabilityType


class Liability(Base):
    __tablename__ = "liabilities"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    liability_type = Column(Enum(LiabilityType), nullable=False)
    party_name = Column(String(200), nullable=False)
    original_amount = Column(Float, nullable=False)
    outstanding_amount = Column(Float, nullable=False)
    interest_rate = Column(Float, nullable=False, default=0.0)  # percent per year
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    settled_date = Column(Date, nullable=True)

    def __repr__(self):
        return f"<Liability(id={self.id}, type={self.liability_type}, outstanding={self.outstanding_amount})>"
