"""
Reversal Service.

Uniform reversal entry point for exits, receipts, expenses, cash transfers,
discounts, transfers and sales. A reversal never deletes: it flags the
record, stamps reversed_at, replays every affected party as though the
record had never applied, and appends an audit entry.

Reversing an already reversed record is a no-op reported as NoOpWarning.
"""

import logging
import warnings
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.exceptions import NoOpWarning, ResourceNotFoundError
from coldstore_ledger.app.core.timeutil import utcnow
from coldstore_ledger.app.domain.ledger.exit_service import ExitService
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.domain.ledger.transfer_service import TransferService
from coldstore_ledger.app.models.cash_receipt import CashReceipt
from coldstore_ledger.app.models.cash_transfer import CashTransfer
from coldstore_ledger.app.models.discount import Discount, DiscountAllocation
from coldstore_ledger.app.models.enums import ReversibleEntity
from coldstore_ledger.app.models.exit_history import ExitHistory
from coldstore_ledger.app.models.expense import Expense
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.models.transfer import Transfer
from coldstore_ledger.app.services.audit import AuditAction, log_event, snapshot
from coldstore_ledger.app.services.locking import lock_parties

logger = logging.getLogger("coldstore.reversals")

MODELS = {
    ReversibleEntity.EXIT: ExitHistory,
    ReversibleEntity.RECEIPT: CashReceipt,
    ReversibleEntity.EXPENSE: Expense,
    ReversibleEntity.CASH_TRANSFER: CashTransfer,
    ReversibleEntity.DISCOUNT: Discount,
    ReversibleEntity.TRANSFER: Transfer,
    ReversibleEntity.SALE: Sale,
}


@dataclass
class ReversalResult:
    entity_type: ReversibleEntity
    entity_id: int
    status: str
    reversed_at: Optional[datetime]
    message: str


class ReversalService:

    @staticmethod
    async def reverse(db: AsyncSession, caller, entity_type: ReversibleEntity, entity_id: int) -> ReversalResult:
        """
        Reverse a ledger record.

        Raises:
            ResourceNotFoundError: no such record in the caller's cold storage
            PreconditionError: a sale reversal is blocked by dependent records
            ConsistencyError: a replay no longer balances
        """
        model = MODELS[entity_type]
        record = (await db.execute(
            select(model)
            .where(model.id == entity_id, model.cold_storage_id == caller.cold_storage_id)
            .with_for_update()
        )).scalar_one_or_none()
        if record is None:
            raise ResourceNotFoundError(entity_type.value.replace("_", " ").capitalize(), entity_id)

        if record.is_reversed:
            message = f"{entity_type.value} {entity_id} is already reversed"
            warnings.warn(message, NoOpWarning)
            logger.info("No-op reversal: %s", message)
            return ReversalResult(entity_type, entity_id, "noop", record.reversed_at, message)

        before = snapshot(record)
        parties: List[str] = []

        if entity_type == ReversibleEntity.SALE:
            await LotService.reverse_sale(db, caller, record)
        elif entity_type == ReversibleEntity.TRANSFER:
            await lock_parties(db, caller.cold_storage_id, [record.from_party_key, record.to_party_key])
            parties = await TransferService.reverse(db, caller, record)
        elif entity_type == ReversibleEntity.EXIT:
            ExitService.reverse(record)
        else:
            if entity_type == ReversibleEntity.RECEIPT and record.party_key:
                parties = [record.party_key]
            elif entity_type == ReversibleEntity.DISCOUNT:
                parties = list((await db.execute(
                    select(DiscountAllocation.party_key).where(DiscountAllocation.discount_id == record.id)
                )).scalars().all())
            await lock_parties(db, caller.cold_storage_id, parties)
            record.is_reversed = True
            record.reversed_at = utcnow()

        await db.flush()
        await SettlementService.recompute_parties(db, caller.cold_storage_id, parties)

        await log_event(
            db, AuditAction.ENTITY_REVERSED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type=entity_type.value, entity_id=entity_id,
            before=before, after=snapshot(record),
        )
        logger.info("Reversed %s %s (replayed %s)", entity_type.value, entity_id, sorted(set(parties)))
        return ReversalResult(entity_type, entity_id, "reversed", record.reversed_at, f"{entity_type.value} {entity_id} reversed")
