"""
Row locking helpers.

Rows are locked with SELECT ... FOR UPDATE inside the caller's transaction.
A party is locked through its party_locks row, created on first use, so a
party with no debits yet is still serialized. Parties touched together are
always locked in lexicographic key order.
"""

from typing import Iterable, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coldstore_ledger.app.core.exceptions import ResourceNotFoundError
from coldstore_ledger.app.db.session import dialect_insert
from coldstore_ledger.app.models.cash_receipt import CashReceipt
from coldstore_ledger.app.models.farmer_receivable import FarmerReceivable
from coldstore_ledger.app.models.lot import Lot
from coldstore_ledger.app.models.party_lock import PartyLock
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.models.transfer import TransferredDue


async def lock_lot(db: AsyncSession, cold_storage_id: int, lot_id: int) -> Lot:
    result = await db.execute(
        select(Lot)
        .where(Lot.id == lot_id, Lot.cold_storage_id == cold_storage_id)
        .with_for_update()
    )
    lot = result.scalar_one_or_none()
    if not lot:
        raise ResourceNotFoundError("Lot", lot_id)
    return lot


async def lock_sale(db: AsyncSession, cold_storage_id: int, sale_id: int) -> Sale:
    result = await db.execute(
        select(Sale)
        .where(Sale.id == sale_id, Sale.cold_storage_id == cold_storage_id)
        .with_for_update()
    )
    sale = result.scalar_one_or_none()
    if not sale:
        raise ResourceNotFoundError("Sale", sale_id)
    return sale


async def lock_party(db: AsyncSession, cold_storage_id: int, party_key: str) -> PartyLock:
    """Take the party's lock row, creating it if this is the party's first entry."""
    table = PartyLock.__table__
    await db.execute(
        dialect_insert(db)(table)
        .values(cold_storage_id=cold_storage_id, party_key=party_key)
        .on_conflict_do_nothing(index_elements=[table.c.cold_storage_id, table.c.party_key])
    )
    result = await db.execute(
        select(PartyLock)
        .where(PartyLock.cold_storage_id == cold_storage_id, PartyLock.party_key == party_key)
        .with_for_update()
    )
    return result.scalar_one()


async def lock_parties(db: AsyncSession, cold_storage_id: int, party_keys: Iterable[str]) -> List[str]:
    """Lock each party and its ledger rows, one party at a time in key order."""
    ordered = sorted({key for key in party_keys if key})
    for key in ordered:
        await lock_party(db, cold_storage_id, key)
        for model in (Sale, TransferredDue, FarmerReceivable, CashReceipt):
            await db.execute(
                select(model.id)
                .where(model.cold_storage_id == cold_storage_id, model.party_key == key)
                .with_for_update()
            )
    return ordered
