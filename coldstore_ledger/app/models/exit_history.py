"""
Exit history database model.

Physical removal of already-sold bags, independent of payment status.
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Boolean, UniqueConstraint
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.core.timeutil import utcnow


class ExitHistory(Base):
    """Exit model. bill_number is unique and sequential per cold storage."""
    __tablename__ = "exit_history"
    __table_args__ = (
        UniqueConstraint("cold_storage_id", "bill_number", name="uq_exit_bill_number"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    sale_id = Column(Integer, ForeignKey("sales_history.id"), nullable=False, index=True)
    lot_id = Column(Integer, ForeignKey("lots.id", ondelete="SET NULL"), nullable=True)
    bags_exited = Column(Integer, nullable=False)
    bill_number = Column(Integer, nullable=False)
    exit_date = Column(DateTime, default=utcnow, nullable=False)
    is_reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<ExitHistory(id={self.id}, sale_id={self.sale_id}, bags={self.bags_exited}, bill={self.bill_number})>"
