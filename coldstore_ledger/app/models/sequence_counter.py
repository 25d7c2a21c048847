"""
Sequence counter model for per-day transaction ids.
"""

from sqlalchemy import Column, Integer, String, UniqueConstraint
from coldstore_ledger.app.db.session import Base


class SequenceCounter(Base):
    """Last issued value for (cold storage, sequence name, day)."""
    __tablename__ = "sequence_counters"
    __table_args__ = (
        UniqueConstraint("cold_storage_id", "name", "day", name="uq_sequence_counter"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    cold_storage_id = Column(Integer, nullable=False)
    name = Column(String(50), nullable=False)
    day = Column(String(8), nullable=False)  # YYYYMMDD
    value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<SequenceCounter({self.name}/{self.day}={self.value})>"
