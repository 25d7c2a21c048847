"""
Audit Log Database Model.

Before/after snapshots for every ledger mutation.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.core.timeutil import utcnow


class AuditLog(Base):
    """
    Audit log model.

    Events logged include LOT_CREATED, SALE_RECORDED, RECEIPT_RECORDED,
    TRANSFER_RECORDED, EXIT_RECORDED, ENTITY_REVERSED and SEASON_RESET
    (see AuditAction). Rows are append-only.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, index=True, nullable=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)

    # What action was performed, and on what
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True)

    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
