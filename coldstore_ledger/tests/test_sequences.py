"""
Transaction id and bill counter tests.
"""

from datetime import datetime

import pytest

from coldstore_ledger.app.services import sequences


def test_transaction_id_format():
    assert sequences.format_transaction_id("20250101", 7) == "CF20250101007"
    assert sequences.format_transaction_id("20250101", 1234) == "CF202501011234"


@pytest.mark.asyncio
async def test_transaction_counter_restarts_each_day(db_session, cold_storage):
    day_one = datetime(2025, 3, 1, 10, 0)
    day_two = datetime(2025, 3, 2, 9, 0)

    assert await sequences.next_transaction_id(db_session, cold_storage.id, day_one) == "CF20250301001"
    assert await sequences.next_transaction_id(db_session, cold_storage.id, day_one) == "CF20250301002"
    assert await sequences.next_transaction_id(db_session, cold_storage.id, day_two) == "CF20250302001"


@pytest.mark.asyncio
async def test_bill_counters_are_independent(db_session, cold_storage):
    assert await sequences.next_bill_number(db_session, cold_storage.id, "exit") == 1
    assert await sequences.next_bill_number(db_session, cold_storage.id, "exit") == 2
    assert await sequences.next_bill_number(db_session, cold_storage.id, "entry") == 1
    assert cold_storage.next_exit_bill_number == 3
