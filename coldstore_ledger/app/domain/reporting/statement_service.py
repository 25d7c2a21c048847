"""
Statement Service.

Balance Sheet and Profit & Loss for a financial year, read straight from
the ledger on every call. Read-only; takes no locks.
"""

import logging
from collections import defaultdict

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.core.exceptions import ValidationError
from coldstore_ledger.app.domain.reporting.financial_year import parse_financial_year
from coldstore_ledger.app.domain.reporting.statements import (
    ProfitAndLoss, balance_sheet_totals, depreciation_for_year, interest_for_year,
    is_long_term, storage_income, written_down_value,
)
from coldstore_ledger.app.models.asset import Asset
from coldstore_ledger.app.models.cash_receipt import CashReceipt
from coldstore_ledger.app.models.enums import CreditType, ExpenseClass, PayerType, TargetType
from coldstore_ledger.app.models.expense import Expense
from coldstore_ledger.app.models.liability import Liability
from coldstore_ledger.app.models.payment_allocation import PaymentAllocation
from coldstore_ledger.app.models.sale import Sale
from coldstore_ledger.app.services.audit import AuditAction, log_event, snapshot
from coldstore_ledger.app.schemas.reports import (
    AssetCategoryLine, BalanceSheetReport, LiabilityLine, ProfitAndLossReport
)

logger = logging.getLogger("coldstore.statements")

INCOME_PAYERS = (PayerType.SALES_GOODS, PayerType.KATA, PayerType.OTHERS)


def _rate(asset: Asset) -> float:
    if asset.depreciation_rate is not None:
        return asset.depreciation_rate
    return settings.default_depreciation_rates.get(asset.category.value, 10.0)


class StatementService:

    @staticmethod
    async def balance_sheet(db: AsyncSession, cold_storage_id: int, financial_year: str) -> BalanceSheetReport:
        fy = parse_financial_year(financial_year)

        assets = (await db.execute(
            select(Asset).where(Asset.cold_storage_id == cold_storage_id, Asset.purchase_date <= fy.end)
        )).scalars().all()
        by_category = defaultdict(lambda: [0, 0.0])
        for asset in assets:
            value = written_down_value(asset.original_cost, _rate(asset), asset.purchase_date, fy, asset.disposal_date)
            if value <= 0:
                continue
            by_category[asset.category][0] += 1
            by_category[asset.category][1] += value
        fixed_assets = [
            AssetCategoryLine(category=category, items=count, value=round(value, 2))
            for category, (count, value) in sorted(by_category.items(), key=lambda kv: kv[0].value)
        ]

        liabilities = (await db.execute(
            select(Liability).where(
                Liability.cold_storage_id == cold_storage_id,
                Liability.start_date <= fy.end,
                (Liability.settled_date.is_(None)) | (Liability.settled_date > fy.end),
            ).order_by(Liability.id)
        )).scalars().all()
        current, long_term = [], []
        for liability in liabilities:
            line = LiabilityLine(
                id=liability.id,
                liability_type=liability.liability_type,
                party_name=liability.party_name,
                amount=round(liability.outstanding_amount, 2),
            )
            if is_long_term(liability.liability_type.value, liability.due_date, fy):
                long_term.append(line)
            else:
                current.append(line)

        totals = balance_sheet_totals(
            [line.value for line in fixed_assets],
            [line.amount for line in current + long_term],
        )
        if totals.warning:
            logger.warning("Balance sheet %s for cold storage %s: %s", fy.label, cold_storage_id, totals.warning)

        return BalanceSheetReport(
            financial_year=fy.label,
            as_of_date=fy.end,
            fixed_assets=fixed_assets,
            total_assets=totals.total_assets,
            current_liabilities=current,
            long_term_liabilities=long_term,
            total_current_liabilities=round(sum(line.amount for line in current), 2),
            total_long_term_liabilities=round(sum(line.amount for line in long_term), 2),
            total_liabilities=totals.total_liabilities,
            owners_equity=totals.owners_equity,
            total_liabilities_and_equity=totals.total_liabilities_and_equity,
            is_balanced=totals.is_balanced,
            warning=totals.warning,
        )

    @staticmethod
    async def profit_and_loss(db: AsyncSession, cold_storage_id: int, financial_year: str) -> ProfitAndLossReport:
        fy = parse_financial_year(financial_year)
        start, end = fy.start_datetime, fy.end_exclusive
        pnl = ProfitAndLoss()

        pnl.cold_storage_charges = await StatementService._charges_collected(db, cold_storage_id, start, end)
        extras = (await db.execute(
            select(func.coalesce(func.sum(Sale.extra_due_to_merchant), 0.0)).where(
                Sale.cold_storage_id == cold_storage_id,
                Sale.is_reversed == False,  # noqa: E712
                Sale.sold_at >= start,
                Sale.sold_at < end,
            )
        )).scalar_one()
        pnl.merchant_extras = round(extras, 2)

        for payer_type, amount in (await db.execute(
            select(CashReceipt.payer_type, func.sum(CashReceipt.amount))
            .where(
                CashReceipt.cold_storage_id == cold_storage_id,
                CashReceipt.is_reversed == False,  # noqa: E712
                CashReceipt.payer_type.in_(INCOME_PAYERS),
                CashReceipt.received_at >= start,
                CashReceipt.received_at < end,
            )
            .group_by(CashReceipt.payer_type)
        )).all():
            pnl.other_income[payer_type.value] = round(amount, 2)

        for expense_type, amount in (await db.execute(
            select(Expense.expense_type, func.sum(Expense.amount))
            .where(
                Expense.cold_storage_id == cold_storage_id,
                Expense.is_reversed == False,  # noqa: E712
                Expense.expense_class == ExpenseClass.REVENUE,
                Expense.paid_at >= start,
                Expense.paid_at < end,
            )
            .group_by(Expense.expense_type)
        )).all():
            pnl.expenses_by_type[expense_type] = round(amount, 2)

        assets = (await db.execute(
            select(Asset).where(Asset.cold_storage_id == cold_storage_id, Asset.purchase_date <= fy.end)
        )).scalars().all()
        pnl.depreciation = round(sum(
            depreciation_for_year(a.original_cost, _rate(a), a.purchase_date, fy, a.disposal_date)
            for a in assets
        ), 2)

        liabilities = (await db.execute(
            select(Liability).where(Liability.cold_storage_id == cold_storage_id, Liability.start_date <= fy.end)
        )).scalars().all()
        pnl.interest = round(sum(
            interest_for_year(item.outstanding_amount, item.interest_rate, item.start_date, fy, item.settled_date)
            for item in liabilities
        ), 2)

        return ProfitAndLossReport(
            financial_year=fy.label,
            period_start=fy.start,
            period_end=fy.end,
            cold_storage_charges=pnl.cold_storage_charges,
            merchant_extras=pnl.merchant_extras,
            other_income=pnl.other_income,
            total_income=pnl.total_income,
            expenses_by_type=pnl.expenses_by_type,
            depreciation=pnl.depreciation,
            interest=pnl.interest,
            total_expenses=pnl.total_expenses,
            net_profit_or_loss=pnl.net_profit_or_loss,
        )

    @staticmethod
    async def _charges_collected(db: AsyncSession, cold_storage_id: int, start, end) -> float:
        """
        Storage charges collected in [start, end): counter payments of sales
        sold in the window plus receipt money received in the window and
        applied to sales, transferred dues or farmer receivables.
        """
        by_sale = defaultdict(float)
        for sale_id, paid in (await db.execute(
            select(Sale.id, Sale.initial_paid_amount).where(
                Sale.cold_storage_id == cold_storage_id,
                Sale.is_reversed == False,  # noqa: E712
                Sale.sold_at >= start,
                Sale.sold_at < end,
            )
        )).all():
            by_sale[sale_id] += paid

        other = 0.0
        for target_type, target_id, amount in (await db.execute(
            select(PaymentAllocation.target_type, PaymentAllocation.target_id, func.sum(PaymentAllocation.amount))
            .join(CashReceipt, CashReceipt.id == PaymentAllocation.credit_id)
            .where(
                PaymentAllocation.cold_storage_id == cold_storage_id,
                PaymentAllocation.credit_type == CreditType.RECEIPT,
                CashReceipt.received_at >= start,
                CashReceipt.received_at < end,
            )
            .group_by(PaymentAllocation.target_type, PaymentAllocation.target_id)
        )).all():
            if target_type == TargetType.SALE:
                by_sale[target_id] += amount
            else:
                other += amount

        income = other
        if by_sale:
            for sale in (await db.execute(
                select(Sale.id, Sale.cold_storage_charge, Sale.entry_deduction_amount)
                .where(Sale.id.in_(list(by_sale)))
            )).all():
                income += storage_income(by_sale[sale.id], sale.cold_storage_charge, sale.entry_deduction_amount)
        return round(income, 2)

    @staticmethod
    async def add_asset(db: AsyncSession, caller, payload) -> Asset:
        asset = Asset(cold_storage_id=caller.cold_storage_id, **payload.model_dump())
        db.add(asset)
        await db.flush()
        await log_event(
            db, AuditAction.ASSET_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="asset", entity_id=asset.id, after=snapshot(asset),
        )
        return asset

    @staticmethod
    async def add_liability(db: AsyncSession, caller, payload) -> Liability:
        if payload.outstanding_amount > payload.original_amount:
            raise ValidationError(
                "Outstanding amount cannot exceed the original amount",
                details={"original_amount": payload.original_amount, "outstanding_amount": payload.outstanding_amount}
            )
        liability = Liability(cold_storage_id=caller.cold_storage_id, **payload.model_dump())
        db.add(liability)
        await db.flush()
        await log_event(
            db, AuditAction.LIABILITY_RECORDED,
            actor_id=caller.user_id, cold_storage_id=caller.cold_storage_id,
            entity_type="liability", entity_id=liability.id, after=snapshot(liability),
        )
        return liability
