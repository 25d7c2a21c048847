"""
Financial statement math.

Pure functions: written-down-value depreciation, interest accrual,
liability classification, storage income and the balance sheet plug. No
database access.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.domain.reporting.financial_year import FinancialYear, financial_year_of, parse_financial_year

LONG_TERM_TYPES = {"bank_loan", "equipment_loan"}


def _round(value: float) -> float:
    return round(value, 2) + 0.0


def _days(start: date, end: date) -> int:
    return max((end - start).days + 1, 0)


def depreciation_schedule(cost: float, rate: float, purchase_date: date, through: FinancialYear,
                          disposal_date: Optional[date] = None) -> Dict[str, float]:
    """
    Yearly WDV depreciation from the purchase year through `through`.

    The purchase year is prorated by the days the asset was held; the year
    of disposal is prorated up to the disposal date.
    """
    schedule: Dict[str, float] = {}
    value = cost
    year = financial_year_of(purchase_date)
    while year.start <= through.start:
        held_from = max(purchase_date, year.start)
        held_to = year.end
        if disposal_date and disposal_date <= year.end:
            held_to = disposal_date
        if held_to < held_from:
            break
        fraction = 1.0 if (held_from == year.start and held_to == year.end) else _days(held_from, held_to) / year.days
        charge = value * rate / 100 * fraction
        schedule[year.label] = _round(charge)
        value -= charge
        if disposal_date and disposal_date <= year.end:
            break
        year = parse_financial_year(f"{year.start.year + 1}-{(year.start.year + 2) % 100:02d}")
    return schedule


def written_down_value(cost: float, rate: float, purchase_date: date, fy: FinancialYear,
                       disposal_date: Optional[date] = None) -> float:
    """Book value at the end of `fy`; zero once disposed."""
    if purchase_date > fy.end:
        return 0.0
    if disposal_date and disposal_date <= fy.end:
        return 0.0
    schedule = depreciation_schedule(cost, rate, purchase_date, fy, disposal_date)
    return _round(cost - sum(schedule.values()))


def depreciation_for_year(cost: float, rate: float, purchase_date: date, fy: FinancialYear,
                          disposal_date: Optional[date] = None) -> float:
    if purchase_date > fy.end:
        return 0.0
    return depreciation_schedule(cost, rate, purchase_date, fy, disposal_date).get(fy.label, 0.0)


def interest_for_year(outstanding: float, rate: float, start_date: date, fy: FinancialYear,
                      settled_date: Optional[date] = None) -> float:
    """outstanding x rate, prorated by the days the liability was active in the year."""
    active_from = max(start_date, fy.start)
    active_to = min(settled_date or fy.end, fy.end)
    days = _days(active_from, active_to)
    if days <= 0:
        return 0.0
    return _round(outstanding * rate / 100 * days / fy.days)


def is_long_term(liability_type: str, due_date: Optional[date], fy: FinancialYear) -> bool:
    """Loans are long-term; anything else only if due more than 12 months after year end."""
    if liability_type in LONG_TERM_TYPES:
        return True
    if due_date is None:
        return False
    try:
        horizon = fy.end.replace(year=fy.end.year + 1)
    except ValueError:
        horizon = fy.end.replace(year=fy.end.year + 1, day=28)
    return due_date > horizon


def storage_income(collected: float, charge: float, entry_deduction: float) -> float:
    """
    Storage income in `collected` money paid against one sale's charge.

    Each rupee collected carries its share of the entry deduction recovery,
    which goes back to the farmer's advance and freight and is not income.

    >>> storage_income(370.0, 740.0, 150.0)
    295.0
    """
    if charge <= 0:
        return 0.0
    return _round(collected * (charge - entry_deduction) / charge)


@dataclass
class BalanceSheetTotals:
    total_assets: float
    total_liabilities: float
    owners_equity: float
    total_liabilities_and_equity: float
    is_balanced: bool
    warning: Optional[str] = None


def balance_sheet_totals(asset_values: List[float], liability_values: List[float]) -> BalanceSheetTotals:
    """Owners' equity is the plug; the check surfaces rounding drift as a warning."""
    total_assets = _round(sum(asset_values))
    total_liabilities = _round(sum(liability_values))
    equity = _round(total_assets - total_liabilities)
    total_le = _round(total_liabilities + equity)
    difference = abs(total_assets - total_le)
    balanced = difference < settings.balance_tolerance
    warning = None
    if not balanced:
        warning = f"Balance sheet does not balance: assets {total_assets} vs liabilities and equity {total_le}"
    return BalanceSheetTotals(total_assets, total_liabilities, equity, total_le, balanced, warning)


@dataclass
class ProfitAndLoss:
    cold_storage_charges: float = 0.0
    merchant_extras: float = 0.0
    other_income: Dict[str, float] = field(default_factory=dict)
    expenses_by_type: Dict[str, float] = field(default_factory=dict)
    depreciation: float = 0.0
    interest: float = 0.0

    @property
    def total_income(self) -> float:
        return _round(self.cold_storage_charges + self.merchant_extras + sum(self.other_income.values()))

    @property
    def total_expenses(self) -> float:
        return _round(sum(self.expenses_by_type.values()) + self.depreciation + self.interest)

    @property
    def net_profit_or_loss(self) -> float:
        return _round(self.total_income - self.total_expenses)
