"""
Financial statement tests: year parsing, depreciation, interest, the
balance sheet plug and profit & loss.
"""

from datetime import date, datetime

import pytest

from coldstore_ledger.app.core.exceptions import ValidationError
from coldstore_ledger.app.domain.ledger.cashbook_service import CashbookService
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.domain.ledger.settlement_service import SettlementService
from coldstore_ledger.app.domain.reporting.financial_year import financial_year_of, parse_financial_year
from coldstore_ledger.app.domain.reporting.statement_service import StatementService
from coldstore_ledger.app.domain.reporting.statements import (
    ProfitAndLoss, balance_sheet_totals, depreciation_for_year, interest_for_year,
    is_long_term, storage_income, written_down_value,
)
from coldstore_ledger.app.models.enums import AssetCategory, ExpenseClass, LiabilityType, PayerType, PaymentStatus
from coldstore_ledger.app.schemas.cash import ExpenseCreate, ReceiptCreate
from coldstore_ledger.app.schemas.reports import AssetCreate, LiabilityCreate

FY_24 = parse_financial_year("2024-25")


def test_parse_financial_year():
    assert FY_24.start == date(2024, 4, 1)
    assert FY_24.end == date(2025, 3, 31)
    assert FY_24.days == 365
    assert parse_financial_year("1999-00").end == date(2000, 3, 31)


@pytest.mark.parametrize("label", ["2024-26", "24-25", "2024/25", ""])
def test_parse_financial_year_rejects_bad_labels(label):
    with pytest.raises(ValidationError):
        parse_financial_year(label)


def test_financial_year_of():
    assert financial_year_of(date(2025, 3, 31)).label == "2024-25"
    assert financial_year_of(date(2025, 4, 1)).label == "2025-26"


def test_depreciation_full_year():
    assert depreciation_for_year(100000, 10, date(2024, 4, 1), FY_24) == 10000.0
    assert written_down_value(100000, 10, date(2024, 4, 1), FY_24) == 90000.0

    next_year = parse_financial_year("2025-26")
    assert depreciation_for_year(100000, 10, date(2024, 4, 1), next_year) == 9000.0
    assert written_down_value(100000, 10, date(2024, 4, 1), next_year) == 81000.0


def test_depreciation_prorated_in_purchase_year():
    # Oct 1 to Mar 31 is 182 of 365 days
    assert depreciation_for_year(100000, 10, date(2024, 10, 1), FY_24) == pytest.approx(4986.30, abs=0.01)


def test_depreciation_after_disposal():
    assert written_down_value(100000, 10, date(2023, 4, 1), FY_24, disposal_date=date(2024, 6, 30)) == 0.0
    assert depreciation_for_year(100000, 10, date(2025, 4, 1), FY_24) == 0.0


def test_interest_accrual():
    assert interest_for_year(100000, 12, date(2023, 1, 1), FY_24) == 12000.0
    assert interest_for_year(100000, 12, date(2024, 10, 1), FY_24) == pytest.approx(5983.56, abs=0.01)
    assert interest_for_year(100000, 12, date(2023, 1, 1), FY_24, settled_date=date(2024, 3, 31)) == 0.0


def test_long_term_classification():
    assert is_long_term("bank_loan", None, FY_24) is True
    assert is_long_term("outstanding_payable", None, FY_24) is False
    assert is_long_term("credit_line", date(2026, 3, 31), FY_24) is False
    assert is_long_term("credit_line", date(2026, 4, 1), FY_24) is True


def test_balance_sheet_plug():
    totals = balance_sheet_totals([500000.0], [])
    assert totals.owners_equity == 500000.0
    assert totals.is_balanced is True
    assert totals.warning is None

    totals = balance_sheet_totals([300000.0, 200000.0], [150000.0])
    assert totals.owners_equity == 350000.0
    assert totals.total_liabilities_and_equity == 500000.0


def test_profit_and_loss_totals():
    pnl = ProfitAndLoss(
        cold_storage_charges=1000.0,
        merchant_extras=50.0,
        other_income={"kata": 200.0},
        expenses_by_type={"electricity": 400.0},
        depreciation=100.0,
        interest=25.5,
    )
    assert pnl.total_income == 1250.0
    assert pnl.total_expenses == 525.5
    assert pnl.net_profit_or_loss == 724.5


@pytest.mark.asyncio
async def test_balance_sheet_from_registers(db_session, caller):
    await StatementService.add_asset(db_session, caller, AssetCreate(
        name="Main building", category=AssetCategory.BUILDING, original_cost=500000.0,
        purchase_date=date(2024, 4, 1), depreciation_rate=0.0,
    ))

    report = await StatementService.balance_sheet(db_session, caller.cold_storage_id, "2024-25")
    assert report.total_assets == 500000.0
    assert report.owners_equity == 500000.0
    assert report.is_balanced is True

    await StatementService.add_liability(db_session, caller, LiabilityCreate(
        liability_type=LiabilityType.BANK_LOAN, party_name="State Bank", original_amount=250000.0,
        outstanding_amount=200000.0, interest_rate=9.0, start_date=date(2024, 5, 1),
    ))

    report = await StatementService.balance_sheet(db_session, caller.cold_storage_id, "2024-25")
    assert [line.amount for line in report.long_term_liabilities] == [200000.0]
    assert report.current_liabilities == []
    assert report.owners_equity == 300000.0
    assert report.total_liabilities_and_equity == 500000.0


@pytest.mark.asyncio
async def test_liability_outstanding_cannot_exceed_original(db_session, caller):
    with pytest.raises(ValidationError):
        await StatementService.add_liability(db_session, caller, LiabilityCreate(
            liability_type=LiabilityType.OTHER, party_name="Supplier", original_amount=100.0,
            outstanding_amount=150.0, start_date=date(2024, 5, 1),
        ))


@pytest.mark.asyncio
async def test_profit_and_loss_for_year(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(sold_at=datetime(2024, 6, 1)))
    await LotService.record_partial_sale(db_session, caller, lot.id, sale_payload(sold_at=datetime(2025, 5, 1)))
    await SettlementService.record_receipt(db_session, caller, ReceiptCreate(
        payer_type=PayerType.KATA, amount=300.0, received_at=datetime(2024, 7, 1),
    ))
    await CashbookService.record_expense(db_session, caller, ExpenseCreate(
        expense_type="Electricity", amount=1000.0, paid_at=datetime(2024, 8, 1),
    ))
    await CashbookService.record_expense(db_session, caller, ExpenseCreate(
        expense_type="Compressor", expense_class=ExpenseClass.CAPITAL, amount=50000.0,
        paid_at=datetime(2024, 8, 1),
    ))
    await StatementService.add_asset(db_session, caller, AssetCreate(
        name="Main building", category=AssetCategory.BUILDING, original_cost=100000.0,
        purchase_date=date(2024, 4, 1),
    ))

    report = await StatementService.profit_and_loss(db_session, caller.cold_storage_id, "2024-25")

    assert report.cold_storage_charges == 550.0
    assert report.other_income == {"kata": 300.0}
    assert report.total_income == 850.0
    assert report.expenses_by_type == {"electricity": 1000.0}
    assert report.depreciation == 10000.0
    assert report.interest == 0.0
    assert report.net_profit_or_loss == -10150.0


def test_storage_income_excludes_deduction_share():
    assert storage_income(740.0, 740.0, 150.0) == 590.0
    assert storage_income(370.0, 740.0, 150.0) == 295.0
    assert storage_income(0.0, 740.0, 150.0) == 0.0
    assert storage_income(10.0, 0.0, 0.0) == 0.0


@pytest.mark.asyncio
async def test_due_sale_counts_as_income_only_when_collected(db_session, caller, new_lot, sale_payload):
    lot = await new_lot()
    await LotService.record_partial_sale(
        db_session, caller, lot.id,
        sale_payload(payment_status=PaymentStatus.DUE, sold_at=datetime(2025, 3, 1)),
    )

    report = await StatementService.profit_and_loss(db_session, caller.cold_storage_id, "2024-25")
    assert report.cold_storage_charges == 0.0
    assert report.total_income == 0.0

    await SettlementService.record_receipt(db_session, caller, ReceiptCreate(
        payer_type=PayerType.COLD_MERCHANT, buyer_name="Mahesh Traders", amount=200.0,
        received_at=datetime(2025, 3, 20),
    ))
    await SettlementService.record_receipt(db_session, caller, ReceiptCreate(
        payer_type=PayerType.COLD_MERCHANT, buyer_name="Mahesh Traders", amount=350.0,
        received_at=datetime(2025, 4, 10),
    ))

    this_year = await StatementService.profit_and_loss(db_session, caller.cold_storage_id, "2024-25")
    next_year = await StatementService.profit_and_loss(db_session, caller.cold_storage_id, "2025-26")
    assert this_year.cold_storage_charges == 200.0
    assert next_year.cold_storage_charges == 350.0
