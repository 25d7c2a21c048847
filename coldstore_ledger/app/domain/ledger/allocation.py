"""
FIFO allocation.

Pure functions over plain values: applying a credit to the oldest open
dues first, and computing a party's running balance at a point in time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Hashable, Iterable, List, Sequence, Tuple

from coldstore_ledger.app.core.config import settings


@dataclass(frozen=True)
class OpenDue:
    """An allocation target: something that still has `due` outstanding."""
    key: Hashable
    due: float
    order: tuple = ()


def fifo(dues: Iterable[OpenDue]) -> List[OpenDue]:
    """Oldest first."""
    return sorted(dues, key=lambda d: d.order)


def allocate(amount: float, dues: Sequence[OpenDue]) -> Tuple[List[Tuple[Hashable, float]], float]:
    """
    Apply `amount` across `dues` in the given order.

    Returns the (key, applied) pairs and the leftover that found no due.
    Dues at or below the money tolerance are skipped.
    """
    remaining = round(amount, 2)
    applied: List[Tuple[Hashable, float]] = []
    for item in dues:
        if remaining <= 0:
            break
        if item.due <= settings.money_tolerance:
            continue
        portion = round(min(remaining, item.due), 2)
        if portion <= 0:
            continue
        applied.append((item.key, portion))
        remaining = round(remaining - portion, 2)
    return applied, max(remaining, 0.0)


def balance_as_of(
    debits: Iterable[Tuple[datetime, float]],
    credits: Iterable[Tuple[datetime, float]],
    moment: datetime,
) -> float:
    """Net amount owed at `moment`: debits minus credits dated at or before it."""
    owed = sum(amount for at, amount in debits if at <= moment)
    settled = sum(amount for at, amount in credits if at <= moment)
    return round(owed - settled, 2)
