"""
Reversal tests: every reversible record type, idempotency and the
preconditions on sale reversal.
"""

from datetime import datetime

import pytest
from sqlalchemy import select

from coldstore_ledger.app.core.exceptions import NoOpWarning, PreconditionError, ResourceNotFoundError
from coldstore_ledger.app.domain.ledger.cashbook_service import CashbookService
from coldstore_ledger.app.domain.ledger.exit_service import ExitService
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.domain.ledger.reversal_service import ReversalService
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.models.audit_log import AuditLog
from coldstore_ledger.app.models.enums import (
    ChargeBasis, LotChangeType, PayerType, PaymentStatus, ReversibleEntity, SaleStatus
)
from coldstore_ledger.app.schemas.cash import CashTransferCreate, ExpenseCreate, ReceiptCreate


@pytest.mark.asyncio
async def test_reversing_receipt_restores_dues(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    sale = await LotService.record_partial_sale(
        db_session, caller, lot.id,
        sale_payload(quantity=1, payment_status=PaymentStatus.DUE, custom_cold_charge=100.0, custom_hammali=0.0),
    )
    receipt = await SettlementService.record_receipt(
        db_session, caller,
        ReceiptCreate(payer_type=PayerType.COLD_MERCHANT, buyer_name="Mahesh Traders", amount=100.0),
    )
    assert sale.due_amount == 0.0

    result = await ReversalService.reverse(db_session, caller, ReversibleEntity.RECEIPT, receipt.id)

    assert result.status == "reversed"
    assert receipt.is_reversed is True
    assert receipt.reversed_at is not None
    assert sale.due_amount == 100.0
    assert sale.paid_amount == 0.0
    assert sale.payment_status == PaymentStatus.DUE
    assert lot.total_due_charge == 100.0


@pytest.mark.asyncio
async def test_reversal_is_idempotent(db_session, caller):
    receipt = await SettlementService.record_receipt(
        db_session, caller, ReceiptCreate(payer_type=PayerType.OTHERS, amount=25.0)
    )
    await ReversalService.reverse(db_session, caller, ReversibleEntity.RECEIPT, receipt.id)
    first_stamp = receipt.reversed_at

    with pytest.warns(NoOpWarning):
        result = await ReversalService.reverse(db_session, caller, ReversibleEntity.RECEIPT, receipt.id)

    assert result.status == "noop"
    assert receipt.reversed_at == first_stamp


@pytest.mark.asyncio
async def test_reversing_unknown_record(db_session, caller):
    with pytest.raises(ResourceNotFoundError):
        await ReversalService.reverse(db_session, caller, ReversibleEntity.EXPENSE, 999)


@pytest.mark.asyncio
async def test_reversing_expense_and_cash_transfer(db_session, caller):
    expense = await CashbookService.record_expense(
        db_session, caller, ExpenseCreate(expense_type="Electricity", amount=1200.0)
    )
    cash_transfer = await CashbookService.record_cash_transfer(
        db_session, caller, CashTransferCreate(from_account="cash", to_account="bank", amount=5000.0)
    )

    await ReversalService.reverse(db_session, caller, ReversibleEntity.EXPENSE, expense.id)
    await ReversalService.reverse(db_session, caller, ReversibleEntity.CASH_TRANSFER, cash_transfer.id)

    assert expense.expense_type == "electricity"
    assert expense.is_reversed is True
    assert cash_transfer.is_reversed is True

    audit = (await db_session.execute(
        select(AuditLog).where(AuditLog.action == "ENTITY_REVERSED").order_by(AuditLog.id)
    )).scalars().all()
    assert [a.entity_type for a in audit] == ["expense", "cash_transfer"]
    assert audit[0].before["is_reversed"] is False
    assert audit[0].after["is_reversed"] is True


@pytest.mark.asyncio
async def test_reversing_sale_returns_bags_to_lot(db_session, caller, new_lot, sale_payload, chamber):
    lot = await new_lot()
    sale = await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=5))

    await ReversalService.reverse(db_session, caller, ReversibleEntity.SALE, sale.id)

    assert sale.is_reversed is True
    assert lot.remaining_size == 20
    assert lot.sale_status == SaleStatus.STORED
    assert lot.total_paid_charge == 0.0
    assert chamber.current_fill == 20

    history = await LotService.get_history(db_session, caller.cold_storage_id, lot.id)
    assert history[-1].change_type == LotChangeType.SALE_REVERSED


@pytest.mark.asyncio
async def test_sale_with_active_exit_cannot_be_reversed(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    sale = await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(quantity=5))
    exit_row = await ExitService.record_exit(db_session, caller, sale.id, 2)

    with pytest.raises(PreconditionError):
        await ReversalService.reverse(db_session, caller, ReversibleEntity.SALE, sale.id)

    await ReversalService.reverse(db_session, caller, ReversibleEntity.EXIT, exit_row.id)
    result = await ReversalService.reverse(db_session, caller, ReversibleEntity.SALE, sale.id)
    assert result.status == "reversed"


@pytest.mark.asyncio
async def test_total_remaining_sale_reversal_blocked_by_later_sales(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    first = await LotService.record_partial_sale(
        db_session, caller, lot.id,
        sale_payload(quantity=3, charge_basis=ChargeBasis.TOTAL_REMAINING, sold_at=datetime(2025, 1, 1)),
    )
    assert lot.base_cold_charges_billed == 1
    later = await LotService.record_partial_sale(
        db_session, caller, lot.id, sale_payload(quantity=2, sold_at=datetime(2025, 1, 2))
    )

    with pytest.raises(PreconditionError):
        await ReversalService.reverse(db_session, caller, ReversibleEntity.SALE, first.id)

    await ReversalService.reverse(db_session, caller, ReversibleEntity.SALE, later.id)
    await ReversalService.reverse(db_session, caller, ReversibleEntity.SALE, first.id)

    assert lot.remaining_size == 20
    assert lot.base_cold_charges_billed == 0
