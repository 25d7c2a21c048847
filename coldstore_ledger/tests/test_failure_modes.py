"""
Failure mode tests: aborted mutations leave nothing behind.
"""

from datetime import datetime

import pytest
from sqlalchemy import update

from coldstore_ledger.app.core.exceptions import ConsistencyError
from coldstore_ledger.app.domain.ledger.cashbook_service import CashbookService
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.discount import DiscountAllocation
from coldstore_ledger.app.models.enums import PayerType, PaymentStatus
from coldstore_ledger.app.schemas.cash import DiscountAllocationIn, DiscountCreate, ReceiptCreate


@pytest.mark.asyncio
async def test_consistency_failure_rolls_back_receipt(client, auth_headers, mocker):
    """A replay failure aborts the whole request; the receipt is never stored."""
    mocker.patch.object(
        SettlementService, "recompute_party",
        side_effect=ConsistencyError("Sale due would go negative", details={"sale_id": 1}),
    )

    response = await client.post(
        "/v1/receipts",
        json={"payer_type": "cold_merchant", "buyer_name": "Mahesh Traders", "amount": 100.0},
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_CONSISTENCY_001"

    mocker.stopall()
    response = await client.get("/v1/receipts/1", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_income_receipts_do_not_replay_parties(db_session, caller, mocker):
    spy = mocker.spy(SettlementService, "recompute_party")

    receipt = await SettlementService.record_receipt(
        db_session, caller, ReceiptCreate(payer_type=PayerType.KATA, amount=40.0)
    )

    assert spy.call_count == 0
    assert receipt.party_key is None
    assert receipt.unapplied_amount == 40.0


@pytest.mark.asyncio
async def test_discount_that_no_longer_fits_aborts_replay(client, auth_headers, db_session, caller, new_lot, sale_payload):
    """A corrupted discount row makes the next replay fail; the request leaves balances as they were."""
    lot = await new_lot()
    sale = await LotService.record_partial_sale(
        db_session, caller, lot.id,
        sale_payload(payment_status=PaymentStatus.DUE, sold_at=datetime(2025, 1, 1)),
    )
    discount, _ = await CashbookService.record_discount(db_session, caller, DiscountCreate(
        farmer_name="Ramesh Patel", village="Deesa", contact_number="9800000001", total_amount=100.0,
        allocations=[DiscountAllocationIn(buyer_name="Mahesh Traders", amount=100.0)],
    ))
    await db_session.execute(
        update(DiscountAllocation).where(DiscountAllocation.discount_id == discount.id).values(amount=600.0)
    )
    await db_session.commit()

    response = await client.post(
        "/v1/receipts",
        json={"payer_type": "cold_merchant", "buyer_name": "Mahesh Traders", "amount": 100.0},
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_CONSISTENCY_001"
    assert response.json()["details"]["credit_id"] == discount.id

    response = await client.get("/v1/receipts/1", headers=auth_headers)
    assert response.status_code == 404

    response = await client.get("/v1/buyers/dues", headers=auth_headers)
    assert [(d["party_key"], d["total_due"]) for d in response.json()] == [("buyer:mahesh traders", 450.0)]

    response = await client.get(f"/v1/sales/{sale.id}", headers=auth_headers)
    assert response.json()["due_amount"] == 450.0
    assert response.json()["discount_amount"] == 100.0
