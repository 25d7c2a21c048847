"""
Sale correction and bill numbering tests.
"""

import pytest

from coldstore_ledger.app.core.exceptions import PreconditionError, ValidationError
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.domain.ledger.sale_service import SaleService
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.domain.ledger.reversal_service import ReversalService
from coldstore_ledger.app.models.enums import BillType, PayerType, PaymentStatus, ReversibleEntity
from coldstore_ledger.app.schemas.cash import ReceiptCreate


@pytest.fixture
def due_sale(db_session, caller, new_lot, sale_payload):
    async def make(**overrides):
        lot = await new_lot()
        data = {
            "quantity": 1,
            "payment_status": PaymentStatus.DUE,
            "custom_cold_charge": 100.0,
            "custom_hammali": 0.0,
        }
        data.update(overrides)
        return await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(**data))

    return make


@pytest.mark.asyncio
async def test_changing_buyer_moves_the_due(db_session, caller, due_sale):
    sale = await due_sale()
    receipt = await SettlementService.record_receipt(
        db_session, caller,
        ReceiptCreate(payer_type=PayerType.COLD_MERCHANT, buyer_name="Ganesh Traders", amount=100.0),
    )
    assert receipt.unapplied_amount == 100.0

    await SaleService.update_sale(db_session, caller, sale.id, {"buyer_name": "  Ganesh Traders "})

    assert sale.buyer_name == "Ganesh Traders"
    assert sale.party_key == "buyer:ganesh traders"
    assert sale.due_amount == 0.0
    assert sale.payment_status == PaymentStatus.PAID
    assert receipt.applied_amount == 100.0

    mahesh = [d for d in await SettlementService.buyer_dues(db_session, caller.cold_storage_id)
              if d["party_key"] == "buyer:mahesh traders"]
    assert mahesh == []


@pytest.mark.asyncio
async def test_extra_due_total_follows_its_parts(db_session, caller, due_sale):
    sale = await due_sale(extra_due_hammali_merchant=20.0, extra_due_grading_merchant=5.0)
    assert sale.extra_due_to_merchant == 25.0

    await SaleService.update_sale(db_session, caller, sale.id, {"extra_due_other_merchant": 12.5})

    assert sale.extra_due_to_merchant == 37.5
    history = await SaleService.get_edit_history(db_session, caller.cold_storage_id, sale.id)
    assert [(h.field_changed, h.old_value, h.new_value) for h in history] == [
        ("extra_due_other_merchant", "0.0", "12.5"),
        ("extra_due_to_merchant", "25.0", "37.5"),
    ]


@pytest.mark.asyncio
async def test_unchanged_values_write_no_history(db_session, caller, due_sale):
    sale = await due_sale(price_per_kg=12.0)

    await SaleService.update_sale(db_session, caller, sale.id, {"price_per_kg": 12.0})

    assert await SaleService.get_edit_history(db_session, caller.cold_storage_id, sale.id) == []


@pytest.mark.asyncio
async def test_financial_fields_are_not_correctable(db_session, caller, due_sale):
    sale = await due_sale()

    with pytest.raises(ValidationError) as exc:
        await SaleService.update_sale(db_session, caller, sale.id, {"due_amount": 0.0, "quantity_sold": 2})

    assert exc.value.details["fields"] == ["due_amount", "quantity_sold"]


@pytest.mark.asyncio
async def test_reversed_sale_cannot_be_edited(db_session, caller, due_sale):
    sale = await due_sale()
    await ReversalService.reverse(db_session, caller, ReversibleEntity.SALE, sale.id)

    with pytest.raises(PreconditionError):
        await SaleService.update_sale(db_session, caller, sale.id, {"price_per_kg": 9.0})


@pytest.mark.asyncio
async def test_bill_numbers_are_assigned_once_per_type(db_session, caller, due_sale):
    first = await due_sale()
    second = await due_sale()

    assert await SaleService.assign_bill_number(db_session, caller, first.id, BillType.COLD_STORAGE) == 1
    assert await SaleService.assign_bill_number(db_session, caller, first.id, BillType.COLD_STORAGE) == 1
    assert await SaleService.assign_bill_number(db_session, caller, second.id, BillType.COLD_STORAGE) == 2
    assert await SaleService.assign_bill_number(db_session, caller, second.id, BillType.SALES) == 1

    assert first.cold_storage_bill_number == 1
    assert first.sales_bill_number is None
    assert second.sales_bill_number == 1
