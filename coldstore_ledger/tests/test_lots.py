"""
Lot state machine tests: entry, partial and final sales, edits and history.
"""

import pytest

from coldstore_ledger.app.core.exceptions import MissingDataError, PreconditionError, ValidationError
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.models.enums import (
    BagType, ChargeUnit, LotChangeType, PaymentStatus, SaleStatus, SaleType
)
from coldstore_ledger.app.schemas.lot import FinalizeSaleCreate


@pytest.mark.asyncio
async def test_create_lot_assigns_number_and_fills_chamber(new_lot, cold_storage, chamber):
    first = await new_lot()
    second = await new_lot(original_size=30)

    assert first.lot_no == "1"
    assert second.lot_no == "2"
    assert first.remaining_size == 20
    assert first.sale_status == SaleStatus.STORED
    assert cold_storage.next_lot_number == 3
    assert chamber.current_fill == 50


@pytest.mark.asyncio
async def test_explicit_lot_number_is_kept(new_lot, cold_storage):
    lot = await new_lot(lot_no="A-77")
    assert lot.lot_no == "A-77"
    assert cold_storage.next_lot_number == 1


@pytest.mark.asyncio
async def test_partial_sale_updates_lot_and_chamber(db_session, caller, new_lot, sale_payload, chamber):
    lot = await new_lot()

    sale = await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=5))

    assert sale.sale_type == SaleType.PARTIAL
    assert sale.quantity_sold == 5
    assert sale.remaining_size_at_sale == 20
    assert sale.cold_storage_charge == 550.0
    assert sale.paid_amount == 550.0
    assert sale.due_amount == 0.0
    assert sale.payment_status == PaymentStatus.PAID
    assert sale.party_key == "buyer:mahesh traders"
    assert lot.remaining_size == 15
    assert lot.sale_status == SaleStatus.PARTIAL
    assert lot.total_paid_charge == 550.0
    assert chamber.current_fill == 15


@pytest.mark.asyncio
async def test_partial_sale_carries_entry_deductions(db_session, caller, new_lot, sale_payload):
    lot = await new_lot(advance_deduction=400.0, freight_deduction=200.0)

    sale = await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=5))

    assert sale.entry_deduction_amount == 150.0
    assert sale.cold_storage_charge == 700.0


@pytest.mark.asyncio
async def test_quantity_exceeding_remaining_is_rejected(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()

    with pytest.raises(ValidationError):
        await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=21))

    assert lot.remaining_size == 20
    assert lot.sale_status == SaleStatus.STORED


@pytest.mark.asyncio
async def test_partial_payment_splits_paid_and_due(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()

    sale = await LotService.record_partial_sale(
        db_session, caller, lot.id,
        sale_payload(payment_status=PaymentStatus.PARTIAL, paid_amount=300.0),
    )

    assert sale.paid_amount == 300.0
    assert sale.due_amount == 250.0
    assert sale.payment_status == PaymentStatus.PARTIAL
    assert lot.total_paid_charge == 300.0
    assert lot.total_due_charge == 250.0


@pytest.mark.asyncio
async def test_partial_payment_above_total_is_rejected(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    with pytest.raises(ValidationError):
        await LotService.record_partial_sale(
            db_session, caller, lot.id,
            sale_payload(payment_status=PaymentStatus.PARTIAL, paid_amount=551.0),
        )


@pytest.mark.asyncio
async def test_seed_lot_uses_seed_rates(db_session, caller, new_lot, sale_payload):
    lot = await new_lot(bag_type=BagType.SEED)

    sale = await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=1))

    assert sale.cold_charge == 120.0
    assert sale.hammali == 12.0
    assert sale.cold_storage_charge == 132.0


@pytest.mark.asyncio
async def test_custom_rates_override_cold_storage_rates(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()

    sale = await LotService.record_partial_sale(
        db_session, caller, lot.id,
        sale_payload(quantity=2, custom_cold_charge=50.0, custom_hammali=0.0),
    )

    assert sale.cold_storage_charge == 100.0
    assert sale.price_per_bag == 50.0


@pytest.mark.asyncio
async def test_quintal_billing_without_net_weight(db_session, caller, cold_storage, new_lot, sale_payload):
    cold_storage.charge_unit = ChargeUnit.QUINTAL
    lot = await new_lot()

    with pytest.raises(MissingDataError):
        await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload())


@pytest.mark.asyncio
async def test_quintal_billing_with_net_weight(db_session, caller, cold_storage, new_lot, sale_payload):
    cold_storage.charge_unit = ChargeUnit.QUINTAL
    lot = await new_lot(net_weight_kg=1000.0)

    # 5 of 20 bags of 1000 kg = 2.5 quintals at 100, plus 5 bags of hammali at 10
    sale = await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=5))

    assert sale.cold_storage_charge == 300.0


@pytest.mark.asyncio
async def test_finalize_sale_sells_everything_left(db_session, caller, new_lot, sale_payload, chamber):
    lot = await new_lot()
    await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=5))

    final = await LotService.finalize_sale(
        db_session, caller, lot.id,
        FinalizeSaleCreate(payment_status=PaymentStatus.DUE, buyer_name="Mahesh Traders"),
    )

    assert final.sale_type == SaleType.FULL
    assert final.quantity_sold == 15
    assert final.due_amount == 1650.0
    assert lot.remaining_size == 0
    assert lot.sale_status == SaleStatus.SOLD
    assert lot.sold_at is not None
    assert lot.up_for_sale is False
    assert chamber.current_fill == 0

    with pytest.raises(PreconditionError):
        await LotService.finalize_sale(
            db_session, caller, lot.id, FinalizeSaleCreate(payment_status=PaymentStatus.PAID)
        )
    with pytest.raises(PreconditionError):
        await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=1))


@pytest.mark.asyncio
async def test_edit_lot_rejects_financial_fields(db_session, caller, new_lot):
    lot = await new_lot()

    with pytest.raises(ValidationError):
        await LotService.edit_lot(db_session, caller, lot.id, {"original_size": 30})
    with pytest.raises(ValidationError):
        await LotService.edit_lot(db_session, caller, lot.id, {"advance_deduction": 10.0})

    assert lot.original_size == 20


@pytest.mark.asyncio
async def test_edit_lot_records_history(db_session, caller, new_lot):
    lot = await new_lot()

    await LotService.edit_lot(db_session, caller, lot.id, {"position": "B-3", "quality": "Good"})
    history = await LotService.get_history(db_session, caller.cold_storage_id, lot.id)

    assert lot.position == "B-3"
    assert len(history) == 1
    assert history[0].change_type == LotChangeType.EDIT
    assert history[0].previous_data["position"] == "A-12"
    assert history[0].new_data["position"] == "B-3"


@pytest.mark.asyncio
async def test_up_for_sale_toggle(db_session, caller, new_lot):
    lot = await new_lot()

    await LotService.set_up_for_sale(db_session, caller, lot.id, True)
    assert lot.up_for_sale is True

    history = await LotService.get_history(db_session, caller.cold_storage_id, lot.id)
    assert history[-1].change_type == LotChangeType.UP_FOR_SALE


@pytest.mark.asyncio
async def test_sale_history_entries(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    sale = await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=4))

    history = await LotService.get_history(db_session, caller.cold_storage_id, lot.id)

    assert [h.change_type for h in history] == [LotChangeType.PARTIAL_SALE]
    assert history[0].sale_id == sale.id
    assert history[0].quantity == 4
    assert history[0].previous_data["remaining_size"] == 20
    assert history[0].new_data["remaining_size"] == 16


@pytest.mark.asyncio
async def test_entry_bill_number_is_assigned_once(db_session, caller, new_lot):
    first = await new_lot()
    second = await new_lot()

    await LotService.assign_entry_bill_number(db_session, caller, first.id)
    await LotService.assign_entry_bill_number(db_session, caller, second.id)
    await LotService.assign_entry_bill_number(db_session, caller, first.id)

    assert first.entry_bill_number == 1
    assert second.entry_bill_number == 2
