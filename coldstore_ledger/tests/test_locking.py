"""
Party locking tests.

SQLite ignores FOR UPDATE, so these check which lock rows are taken and in
what order rather than blocking behaviour.
"""

import pytest
from sqlalchemy import select, func

from coldstore_ledger.app.domain.ledger.cashbook_service import CashbookService
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.enums import PayerType
from coldstore_ledger.app.models.party_lock import PartyLock
from coldstore_ledger.app.schemas.cash import FarmerReceivableCreate, ReceiptCreate
from coldstore_ledger.app.services import locking


async def _lock_rows(db_session):
    result = await db_session.execute(select(PartyLock.party_key).order_by(PartyLock.party_key))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_advance_receipt_locks_buyer_without_sales(db_session, caller):
    await SettlementService.record_receipt(
        db_session, caller,
        ReceiptCreate(payer_type=PayerType.COLD_MERCHANT, buyer_name="Mahesh Traders", amount=100.0),
    )

    assert await _lock_rows(db_session) == ["buyer:mahesh traders"]


@pytest.mark.asyncio
async def test_receivable_only_farmer_is_locked(db_session, caller):
    await CashbookService.record_farmer_receivable(
        db_session, caller,
        FarmerReceivableCreate(farmer_name="Ramesh Patel", village="Deesa", contact_number="9800000001", amount=80.0),
    )

    assert await _lock_rows(db_session) == ["farmer:ramesh patel|deesa|9800000001"]


@pytest.mark.asyncio
async def test_lock_row_is_created_once(db_session, caller):
    for _ in range(3):
        await locking.lock_parties(db_session, caller.cold_storage_id, ["buyer:mahesh traders"])

    count = await db_session.scalar(select(func.count(PartyLock.id)))
    assert count == 1


@pytest.mark.asyncio
async def test_parties_are_locked_in_key_order(db_session, caller, mocker):
    spy = mocker.spy(locking, "lock_party")

    ordered = await locking.lock_parties(
        db_session, caller.cold_storage_id, ["buyer:zeta", None, "buyer:alpha", "buyer:zeta"]
    )

    assert ordered == ["buyer:alpha", "buyer:zeta"]
    assert [c.args[2] for c in spy.call_args_list] == ["buyer:alpha", "buyer:zeta"]
