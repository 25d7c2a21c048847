"""
Lot and sale edit history models.

Append-only: rows are never updated or deleted.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, JSON
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import LotChangeType
from coldstore_ledger.app.core.timeutil import utcnow


class LotEditHistory(Base):
    """Full previous/new lot snapshots for every lot transition."""
    __tablename__ = "lot_edit_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    lot_id = Column(Integer, ForeignKey("lots.id", ondelete="SET NULL"), nullable=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales_history.id"), nullable=True)
    change_type = Column(Enum(LotChangeType), nullable=False)
    quantity = Column(Integer, nullable=True)
    previous_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    changed_by = Column(Integer, nullable=True)
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<LotEditHistory(id={self.id}, lot_id={self.lot_id}, change={self.change_type})>"


class SaleEditHistory(Base):
    """One row per changed field on a sale correction."""
    __tablename__ = "sale_edit_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey("sales_history.id"), nullable=False, index=True)
    field_changed = Column(String(100), nullable=False)
    old_value = Column(String(500), nullable=True)
    new_value = Column(String(500), nullable=True)
    changed_by = Column(Integer, nullable=True)
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<SaleEditHistory(sale_id={self.sale_id}, field='{self.field_changed}')>"
