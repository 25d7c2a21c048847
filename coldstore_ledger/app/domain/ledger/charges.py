"""
Sale & Charge Calculator.

Pure functions for storage charges: per-bag and per-quintal base charges,
the totalRemaining billing basis, proportional entry deductions and the
payment-terms variant. Nothing here touches the database.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from coldstore_ledger.app.core.config import settings
from coldstore_ledger.app.core.exceptions import ValidationError, MissingDataError
from coldstore_ledger.app.models.enums import ChargeUnit, ChargeBasis, PaymentMode, PaymentStatus


def money(value: float) -> float:
    """Round to paise."""
    return round(float(value), 2) + 0.0


def calculate_proportional_entry_deductions(
    quantity_sold: int,
    original_lot_size: int,
    advance_deduction: float = 0.0,
    freight_deduction: float = 0.0,
    other_deduction: float = 0.0,
) -> float:
    """
    Apportion one-time entry deductions to a sale by the share of bags sold.

    >>> calculate_proportional_entry_deductions(5, 20, 400, 200, 0)
    150.0
    """
    if not original_lot_size:
        return 0.0
    total = advance_deduction + freight_deduction + other_deduction
    return money(quantity_sold / original_lot_size * total)


def billable_quantity(
    charge_basis: ChargeBasis,
    quantity: int,
    remaining_size: int,
    base_cold_charges_billed: int,
) -> Tuple[int, bool]:
    """
    Quantity the base charge is computed on, and whether the lot's
    base_cold_charges_billed flag flips to 1 with this sale.

    totalRemaining bills the whole remaining lot exactly once. Once the flag
    is set those bags are already billed, so every later sale on the lot has
    no base charge whatever its basis; only its extras apply.
    """
    if base_cold_charges_billed:
        return 0, False
    if charge_basis == ChargeBasis.TOTAL_REMAINING:
        return remaining_size, True
    return quantity, False


def calculate_base_charge(
    charge_unit: ChargeUnit,
    quantity: int,
    cold_charge: float,
    hammali: float,
    original_size: int,
    net_weight_kg: Optional[float] = None,
) -> float:
    """
    Base storage charge for `quantity` bags.

    Per bag:     quantity * (cold_charge + hammali)
    Per quintal: (quantity / original_size) * net_weight_kg / 100 * cold_charge
                 + quantity * hammali
    """
    if quantity == 0:
        return 0.0

    if charge_unit == ChargeUnit.QUINTAL:
        if not net_weight_kg or net_weight_kg <= 0:
            raise MissingDataError(
                "Net weight is required for quintal billing",
                details={"field": "net_weight_kg"}
            )
        if not original_size:
            raise MissingDataError(
                "Original lot size is required for quintal billing",
                details={"field": "original_size"}
            )
        quintals = quantity / original_size * net_weight_kg / 100
        return money(quintals * cold_charge + quantity * hammali)

    return money(quantity * (cold_charge + hammali))


@dataclass(frozen=True)
class SaleCharge:
    """Breakdown of a sale's cold storage charge."""
    billable_quantity: int
    marks_base_billed: bool
    base_charge: float
    kata_charges: float
    extra_hammali: float
    grading_charges: float
    entry_deduction: float

    @property
    def total(self) -> float:
        return money(
            self.base_charge + self.kata_charges + self.extra_hammali
            + self.grading_charges + self.entry_deduction
        )


def compute_sale_charge(
    *,
    charge_unit: ChargeUnit,
    charge_basis: ChargeBasis,
    quantity: int,
    remaining_size: int,
    original_size: int,
    base_cold_charges_billed: int,
    cold_charge: float,
    hammali: float,
    net_weight_kg: Optional[float] = None,
    kata_charges: float = 0.0,
    extra_hammali: float = 0.0,
    grading_charges: float = 0.0,
    advance_deduction: float = 0.0,
    freight_deduction: float = 0.0,
    other_deduction: float = 0.0,
) -> SaleCharge:
    """Validate the inputs of a sale and compute its full charge breakdown."""
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than zero", details={"quantity": quantity})
    if quantity > remaining_size:
        raise ValidationError(
            "Quantity exceeds remaining bags",
            details={"quantity": quantity, "remaining_size": remaining_size}
        )

    components = {
        "cold_charge": cold_charge,
        "hammali": hammali,
        "kata_charges": kata_charges,
        "extra_hammali": extra_hammali,
        "grading_charges": grading_charges,
    }
    negative = {name: value for name, value in components.items() if value is not None and value < 0}
    if negative:
        raise ValidationError("Charge components cannot be negative", details=negative)

    qty, flips = billable_quantity(charge_basis, quantity, remaining_size, base_cold_charges_billed)
    base = calculate_base_charge(charge_unit, qty, cold_charge, hammali, original_size, net_weight_kg)

    return SaleCharge(
        billable_quantity=qty,
        marks_base_billed=flips,
        base_charge=base,
        kata_charges=money(kata_charges or 0.0),
        extra_hammali=money(extra_hammali or 0.0),
        grading_charges=money(grading_charges or 0.0),
        entry_deduction=calculate_proportional_entry_deductions(
            quantity, original_size, advance_deduction, freight_deduction, other_deduction
        ),
    )


# Payment terms: a tagged variant so that the paid/due split is always
# derived from one shape instead of optional fields.

@dataclass(frozen=True)
class Paid:
    mode: PaymentMode = PaymentMode.CASH
    status = PaymentStatus.PAID

    def split(self, total: float) -> Tuple[float, float]:
        return money(total), 0.0


@dataclass(frozen=True)
class Due:
    mode: Optional[PaymentMode] = None
    status = PaymentStatus.DUE

    def split(self, total: float) -> Tuple[float, float]:
        return 0.0, money(total)


@dataclass(frozen=True)
class Partial:
    paid_amount: float
    mode: PaymentMode = PaymentMode.CASH
    status = PaymentStatus.PARTIAL

    def split(self, total: float) -> Tuple[float, float]:
        if self.paid_amount < 0 or self.paid_amount > total + settings.money_tolerance:
            raise ValidationError(
                "Paid amount must be between 0 and the total charge",
                details={"paid_amount": self.paid_amount, "total": total}
            )
        paid = min(money(self.paid_amount), money(total))
        return paid, money(total - paid)


PaymentTerms = Union[Paid, Due, Partial]


def payment_terms_from(
    status: PaymentStatus,
    paid_amount: Optional[float] = None,
    mode: Optional[PaymentMode] = None,
) -> PaymentTerms:
    """Build the variant from flat request fields."""
    if status == PaymentStatus.PAID:
        return Paid(mode or PaymentMode.CASH)
    if status == PaymentStatus.DUE:
        return Due(mode)
    if paid_amount is None:
        raise ValidationError("Partial payment requires a paid amount", details={"field": "paid_amount"})
    return Partial(paid_amount, mode or PaymentMode.CASH)


def payment_status_for(paid: float, due: float) -> PaymentStatus:
    tolerance = settings.money_tolerance
    if due <= tolerance:
        return PaymentStatus.PAID
    if paid <= tolerance:
        return PaymentStatus.DUE
    return PaymentStatus.PARTIAL
