"""
Financial year helpers. A financial year runs April 1 to March 31 and is
written "YYYY-YY", e.g. "2024-25".
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from coldstore_ledger.app.core.exceptions import ValidationError

_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class FinancialYear:
    label: str
    start: date
    end: date

    @property
    def start_datetime(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def end_exclusive(self) -> datetime:
        return datetime.combine(self.end + timedelta(days=1), time.min)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def parse_financial_year(label: str) -> FinancialYear:
    match = _PATTERN.match(label or "")
    if not match:
        raise ValidationError("Financial year must look like YYYY-YY", details={"financial_year": label})
    first = int(match.group(1))
    if int(match.group(2)) != (first + 1) % 100:
        raise ValidationError("Financial year must span consecutive years", details={"financial_year": label})
    return FinancialYear(label=label, start=date(first, 4, 1), end=date(first + 1, 3, 31))


def financial_year_of(day: date) -> FinancialYear:
    first = day.year if day.month >= 4 else day.year - 1
    return parse_financial_year(f"{first}-{(first + 1) % 100:02d}")
