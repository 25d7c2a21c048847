"""
Sequence Generator.

Transaction ids are `CF` + `YYYYMMDD` + a per-day counter, issued through an
atomic upsert on sequence_counters so concurrent writers on the same day
never collide. Bill numbers come from the cold storage row's counters,
advanced under a row lock.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.core.timeutil import utcnow
from coldstore_ledger.app.db.session import dialect_insert
from coldstore_ledger.app.domain.ledger.rate_resolver import RateResolver
from coldstore_ledger.app.models.sequence_counter import SequenceCounter

TRANSACTION_SEQUENCE = "transaction"

BILL_COUNTERS = {
    "entry": "next_entry_bill_number",
    "exit": "next_exit_bill_number",
    "cold_storage": "next_cold_storage_bill_number",
    "sales": "next_sales_bill_number",
}


async def next_value(db: AsyncSession, cold_storage_id: int, name: str, day: str) -> int:
    """Increment and return the counter for (cold storage, name, day)."""
    table = SequenceCounter.__table__
    stmt = dialect_insert(db)(table).values(
        cold_storage_id=cold_storage_id, name=name, day=day, value=1
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.cold_storage_id, table.c.name, table.c.day],
        set_={"value": table.c.value + 1},
    ).returning(table.c.value)
    result = await db.execute(stmt)
    return result.scalar_one()


def format_transaction_id(day: str, counter: int) -> str:
    return f"{settings.transaction_id_prefix}{day}{counter:0{settings.transaction_counter_width}d}"


async def next_transaction_id(db: AsyncSession, cold_storage_id: int, at: Optional[datetime] = None) -> str:
    day = (at or utcnow()).strftime("%Y%m%d")
    counter = await next_value(db, cold_storage_id, TRANSACTION_SEQUENCE, day)
    return format_transaction_id(day, counter)


async def next_bill_number(db: AsyncSession, cold_storage_id: int, kind: str) -> int:
    """Take the next bill number of `kind` from the locked cold storage row."""
    attribute = BILL_COUNTERS[kind]
    cold_storage = await RateResolver.load_cold_storage(db, cold_storage_id, for_update=True)
    number = getattr(cold_storage, attribute) or 1
    setattr(cold_storage, attribute, number + 1)
    await db.flush()
    return number
