"""
Exit Service.

Physical removal of sold bags. Exits never exceed the quantity sold and
each takes the next exit bill number of the cold storage.
"""

import logging
import warnings
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.exceptions import (
    ValidationError, PreconditionError, NoOpWarning, ResourceNotFoundError
)
from coldstore_ledger.app.core.timeutil import utcnow, to_naive_utc
from coldstore_ledger.app.models.exit_history import ExitHistory
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.services import sequences
from coldstore_ledger.app.services.audit import AuditAction, log_event, snapshot
from coldstore_ledger.app.services.locking import lock_sale

logger = logging.getLogger("coldstore.exits")


async def total_exited(db: AsyncSession, sale_id: int) -> int:
    return (await db.execute(
        select(func.coalesce(func.sum(ExitHistory.bags_exited), 0)).where(
            ExitHistory.sale_id == sale_id, ExitHistory.is_reversed == False  # noqa: E712
        )
    )).scalar_one()


class ExitService:

    @staticmethod
    async def record_exit(db: AsyncSession, caller, sale_id: int, bags_exited: int, exit_date=None) -> ExitHistory:
        """
        Raises:
            ValidationError: bags_exited is not positive or exceeds what is left to exit
            PreconditionError: the sale has been reversed
        """
        sale = await lock_sale(db, caller.cold_storage_id, sale_id)
        if sale.is_reversed:
            raise PreconditionError("Cannot exit bags of a reversed sale", details={"sale_id": sale.id})
        if bags_exited is None or bags_exited <= 0:
            raise ValidationError("Bags exited must be greater than zero", details={"bags_exited": bags_exited})

        already = await total_exited(db, sale.id)
        available = sale.quantity_sold - already
        if bags_exited > available:
            raise ValidationError(
                "Bags exited exceed bags sold and not yet exited",
                details={"bags_exited": bags_exited, "available": available}
            )

        exit_row = ExitHistory(
            cold_storage_id=caller.cold_storage_id,
            sale_id=sale.id,
            lot_id=sale.lot_id,
            bags_exited=bags_exited,
            bill_number=await sequences.next_bill_number(db, caller.cold_storage_id, "exit"),
            exit_date=to_naive_utc(exit_date) or utcnow(),
        )
        db.add(exit_row)
        await db.flush()

        await log_event(
            db, AuditAction.EXIT_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="exit", entity_id=exit_row.id, after=snapshot(exit_row),
        )
        logger.info("Exit bill %s: %d bags from sale %s", exit_row.bill_number, bags_exited, sale.id)
        return exit_row

    @staticmethod
    def reverse(exit_row: ExitHistory) -> None:
        exit_row.is_reversed = True
        exit_row.reversed_at = utcnow()

    @staticmethod
    async def reverse_latest_exit(db: AsyncSession, caller, sale_id: int) -> Optional[ExitHistory]:
        """
        Reverse the most recent active exit of a sale.

        Returns None (with a NoOpWarning) when there is nothing to reverse.
        """
        sale = await lock_sale(db, caller.cold_storage_id, sale_id)
        latest = (await db.execute(
            select(ExitHistory)
            .where(ExitHistory.sale_id == sale.id, ExitHistory.is_reversed == False)  # noqa: E712
            .order_by(ExitHistory.id.desc())
            .limit(1)
            .with_for_update()
        )).scalar_one_or_none()

        if latest is None:
            warnings.warn(f"Sale {sale.id} has no exit to reverse", NoOpWarning)
            return None

        before = snapshot(latest)
        ExitService.reverse(latest)
        await db.flush()
        await log_event(
            db, AuditAction.ENTITY_REVERSED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="exit", entity_id=latest.id, before=before, after=snapshot(latest),
        )
        return latest

    @staticmethod
    async def list_exits(db: AsyncSession, cold_storage_id: int, sale_id: int) -> Tuple[Sale, List[ExitHistory], int]:
        sale = (await db.execute(
            select(Sale).where(Sale.id == sale_id, Sale.cold_storage_id == cold_storage_id)
        )).scalar_one_or_none()
        if sale is None:
            raise ResourceNotFoundError("Sale", sale_id)
        exits = (await db.execute(
            select(ExitHistory).where(ExitHistory.sale_id == sale_id).order_by(ExitHistory.id)
        )).scalars().all()
        return sale, exits, await total_exited(db, sale_id)
