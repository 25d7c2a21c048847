"""
Expense database model.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, Boolean
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import ExpenseClass, PaymentMode
from coldstore_ledger.app.core.timeutil import utcnow


class Expense(Base):
    """Outbound money. Only REVENUE class expenses reach the P&L."""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    transaction_id = Column(String(30), nullable=False, unique=True, index=True)

    expense_type = Column(String(100), nullable=False)
    expense_class = Column(Enum(ExpenseClass), nullable=False, default=ExpenseClass.REVENUE)
    receiver_name = Column(String(200), nullable=True)
    payment_mode = Column(Enum(PaymentMode), nullable=False, default=PaymentMode.CASH)
    amount = Column(Float, nullable=False)
    remarks = Column(String(500), nullable=True)

    paid_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    is_reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Expense(id={self.id}, type='{self.expense_type}', amount={self.amount})>"
