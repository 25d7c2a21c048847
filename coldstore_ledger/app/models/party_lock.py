"""
Party lock model.

One row per (cold storage, party key). Every replay of a party first takes
this row FOR UPDATE, so a party is locked even before it has any debit rows.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from coldstore_ledger.app.db.session import Base


class PartyLock(Base):
    __tablename__ = "party_locks"
    __table_args__ = (
        UniqueConstraint("cold_storage_id", "party_key", name="uq_party_lock"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False)
    party_key = Column(String(400), nullable=False)

    def __repr__(self):
        return f"<PartyLock({self.cold_storage_id}:{self.party_key})>"
