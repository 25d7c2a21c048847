"""
FIFO allocation tests.
"""

from datetime import datetime

from coldstore_ledger.app.domain.ledger.allocation import OpenDue, allocate, balance_as_of, fifo
from coldstore_ledger.app.domain.ledger.parties import buyer_key, farmer_key, sale_party_key, same_buyer


def test_receipt_settles_oldest_due_first():
    dues = [OpenDue("A", 100.0, (1,)), OpenDue("B", 50.0, (2,))]
    applied, leftover = allocate(120.0, dues)
    assert applied == [("A", 100.0), ("B", 20.0)]
    assert leftover == 0.0


def test_overpayment_leaves_leftover():
    applied, leftover = allocate(200.0, [OpenDue("A", 100.0), OpenDue("B", 50.0)])
    assert sum(portion for _, portion in applied) == 150.0
    assert leftover == 50.0


def test_settled_dues_are_skipped():
    applied, _ = allocate(30.0, [OpenDue("A", 0.0), OpenDue("B", 0.005), OpenDue("C", 40.0)])
    assert applied == [("C", 30.0)]


def test_fifo_orders_by_age():
    dues = fifo([
        OpenDue("new", 10.0, (datetime(2025, 2, 1), 1)),
        OpenDue("old", 10.0, (datetime(2025, 1, 1), 1)),
    ])
    assert [d.key for d in dues] == ["old", "new"]


def test_balance_as_of_counts_only_earlier_entries():
    debits = [(datetime(2025, 1, 1), 100.0), (datetime(2025, 3, 1), 50.0)]
    credits = [(datetime(2025, 2, 1), 30.0)]
    assert balance_as_of(debits, credits, datetime(2025, 2, 15)) == 70.0
    assert balance_as_of(debits, credits, datetime(2025, 3, 1)) == 120.0


def test_party_keys_normalize_names():
    assert buyer_key("  Mahesh   Traders ") == buyer_key("mahesh traders")
    assert same_buyer("Mahesh Traders", "MAHESH  traders")
    farmer = farmer_key("Ramesh", "Deesa", "98")
    assert sale_party_key(farmer, "Mahesh Traders", False) == "buyer:mahesh traders"
    assert sale_party_key(farmer, "Mahesh Traders", True) == farmer
    assert sale_party_key(farmer, None, False) == farmer
