"""
Exit tests: bags leaving the store against a sale.
"""

import pytest

from coldstore_ledger.app.core.exceptions import NoOpWarning, ValidationError
from coldstore_ledger.app.domain.ledger.exit_service import ExitService
from coldstore_ledger.app.domain.ledger.lot_service import LotService


@pytest.fixture
async def sale(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    return await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=5))


@pytest.mark.asyncio
async def test_exits_never_exceed_quantity_sold(db_session, caller, sale):
    first = await ExitService.record_exit(db_session, caller, sale.id, 3)
    second = await ExitService.record_exit(db_session, caller, sale.id, 2)

    assert first.bill_number == 1
    assert second.bill_number == 2
    assert first.lot_id == sale.lot_id

    with pytest.raises(ValidationError):
        await ExitService.record_exit(db_session, caller, sale.id, 1)

    _, exits, total = await ExitService.list_exits(db_session, caller.cold_storage_id, sale.id)
    assert total == 5
    assert len(exits) == 2


@pytest.mark.asyncio
async def test_exit_quantity_must_be_positive(db_session, caller, sale):
    with pytest.raises(ValidationError):
        await ExitService.record_exit(db_session, caller, sale.id, 0)


@pytest.mark.asyncio
async def test_reverse_latest_exit_frees_bags(db_session, caller, sale):
    await ExitService.record_exit(db_session, caller, sale.id, 3)
    latest = await ExitService.record_exit(db_session, caller, sale.id, 2)

    reversed_exit = await ExitService.reverse_latest_exit(db_session, caller, sale.id)

    assert reversed_exit.id == latest.id
    assert reversed_exit.is_reversed is True
    assert reversed_exit.reversed_at is not None

    again = await ExitService.record_exit(db_session, caller, sale.id, 2)
    assert again.bill_number == 3

    _, _, total = await ExitService.list_exits(db_session, caller.cold_storage_id, sale.id)
    assert total == 5


@pytest.mark.asyncio
async def test_reverse_latest_exit_without_exits_is_noop(db_session, caller, sale):
    with pytest.warns(NoOpWarning):
        result = await ExitService.reverse_latest_exit(db_session, caller, sale.id)
    assert result is None
