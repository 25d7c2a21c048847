"""
Transfer database models.

Transfers move outstanding debt between parties without moving goods.
Each transfer has an OUT leg on the source party and an IN leg on the
destination party, linked by transfer_group_id.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey, Boolean
from coldstore_ledger.app.db.session import Base
from coldstore_ledger.app.models.enums import TransferKind, LegDirection
from coldstore_ledger.app.core.timeutil import utcnow


class Transfer(Base):
    """
    Transfer header.

    Farmer-to-buyer: amount == receivables_transferred + self_sales_transferred.
    """
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    transaction_id = Column(String(30), nullable=False, unique=True, index=True)
    transfer_group_id = Column(String(36), nullable=False, unique=True, index=True)
    kind = Column(Enum(TransferKind), nullable=False)

    from_party_key = Column(String(400), nullable=False, index=True)
    to_party_key = Column(String(400), nullable=False, index=True)
    from_name = Column(String(200), nullable=False)
    to_buyer_name = Column(String(200), nullable=False)
    sale_id = Column(Integer, ForeignKey("sales_history.id"), nullable=True)

    amount = Column(Float, nullable=False)
    receivables_transferred = Column(Float, nullable=False, default=0.0)
    self_sales_transferred = Column(Float, nullable=False, default=0.0)
    remarks = Column(String(500), nullable=True)

    transferred_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    is_reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Transfer(id={self.id}, kind={self.kind}, amount={self.amount}, group='{self.transfer_group_id}')>"


class TransferLeg(Base):
    """
    One side of a transfer.

    due_balance_after is the party's net balance right after the transfer.
    It is refreshed every time the party is replayed.
    """
    __tablename__ = "transfer_legs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    transfer_id = Column(Integer, ForeignKey("transfers.id"), nullable=False, index=True)
    transfer_group_id = Column(String(36), nullable=False, index=True)
    direction = Column(Enum(LegDirection), nullable=False)
    party_key = Column(String(400), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    due_balance_after = Column(Float, nullable=False, default=0.0)

    def __repr__(self):
        return f"<TransferLeg(transfer_id={self.transfer_id}, {self.direction}, party='{self.party_key}', after={self.due_balance_after})>"


class TransferredDue(Base):
    """Receivable created on the destination buyer by a transfer's IN leg."""
    __tablename__ = "transferred_dues"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cold_storage_id = Column(Integer, ForeignKey("cold_storages.id"), nullable=False, index=True)
    transfer_id = Column(Integer, ForeignKey("transfers.id"), nullable=False, unique=True)
    party_key = Column(String(400), nullable=False, index=True)
    buyer_name = Column(String(200), nullable=False)
    from_name = Column(String(200), nullable=False)
    amount = Column(Float, nullable=False)
    paid_amount = Column(Float, nullable=False, default=0.0)
    due_amount = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    is_reversed = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<TransferredDue(id={self.id}, buyer='{self.buyer_name}', due={self.due_amount})>"
