"""
Cold storage configuration and chamber models.

Rates, the billing unit and bill counters are read at calculation time.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import ChargeUnit
from coldstore_ledger.app.core.timeutil import utcnow


class ColdStorage(Base):
    """
    A cold storage facility (the tenant).

    Bill counters hold the *next* number to hand out and are only advanced
    under a row lock.
    """
    __tablename__ = "cold_storages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    total_capacity = Column(Integer, nullable=False, default=0)
    charge_unit = Column(Enum(ChargeUnit), nullable=False, default=ChargeUnit.BAG)

    # Rates (per bag, or per quintal when charge_unit is QUINTAL)
    wafer_cold_charge = Column(Float, nullable=False, default=0.0)
    wafer_hammali = Column(Float, nullable=False, default=0.0)
    seed_cold_charge = Column(Float, nullable=False, default=0.0)
    seed_hammali = Column(Float, nullable=False, default=0.0)

    # Numbering
    starting_lot_number = Column(Integer, nullable=False, default=1)
    next_lot_number = Column(Integer, nullable=False, default=1)
    next_entry_bill_number = Column(Integer, nullable=False, default=1)
    next_exit_bill_number = Column(Integer, nullable=False, default=1)
    next_cold_storage_bill_number = Column(Integer, nullable=False, default=1)
    next_sales_bill_number = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<ColdStorage(id={self.id}, name='{self.name}', unit={self.charge_unit})>"


class Chamber(Base):
    """Storage chamber; current_fill counts bags physically held."""
    __tablename__ = "chambers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False, default=0)
    current_fill = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Chamber(id={self.id}, name='{self.name}', fill={self.current_fill}/{self.capacity})>"
