"""
Financial Calculator - Descuento comercial y factoring.
Año comercial de 360 días.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import InvalidOperationData
from .value_objects import ZERO, OperationContext, round_money, to_decimal

COMMERCIAL_YEAR_DAYS = Decimal("360")
HUNDRED = Decimal("100")
RATE_QUANTUM = Decimal("0.0001")

Number = Decimal | int | float | str


@dataclass(frozen=True, slots=True)
class DiscountCalculation:
    interest_amount: Decimal
    commission_amount: Decimal
    expenses: Decimal
    total_deductions: Decimal
    net_amount: Decimal
    effective_rate: Decimal


@dataclass(frozen=True, slots=True)
class FactoringCalculation:
    advance_amount: Decimal
    interest_amount: Decimal
    commission_amount: Decimal
    expenses: Decimal
    total_deductions: Decimal
    net_amount: Decimal
    effective_rate: Decimal


def _validate_terms(nominal: Decimal, days: int, rates: dict[str, Decimal], expenses: Decimal) -> None:
    if nominal < 0:
        raise InvalidOperationData(f"Nominal amount cannot be negative: {nominal}")
    if nominal > 0 and days < 1:
        raise InvalidOperationData(f"Term must be at least one day, got {days}")
    for name, rate in rates.items():
        if rate < 0:
            raise InvalidOperationData(f"{name} cannot be negative: {rate}")
    if expenses < 0:
        raise InvalidOperationData(f"Expenses cannot be negative: {expenses}")


def calculate_discount(
    nominal: Number,
    days: int,
    interest_rate: Number,
    commission_rate: Number,
    expenses: Number = ZERO,
) -> DiscountCalculation:
    """
    Calcula intereses, comisión, líquido y TAE efectiva de un descuento.

    interest   = nominal * rate/100 * days/360
    commission = nominal * commission_rate/100
    effective  = deductions/nominal * 360/days * 100

    Money values are rounded to cents and the net amount is derived from the
    rounded figures, so net + interest + commission + expenses == nominal.
    """
    nominal = to_decimal(nominal)
    interest_rate = to_decimal(interest_rate)
    commission_rate = to_decimal(commission_rate)
    expenses = to_decimal(expenses)
    days = int(days)
    _validate_terms(
        nominal,
        days,
        {"interest_rate": interest_rate, "commission_rate": commission_rate},
        expenses,
    )

    if nominal == 0:
        return DiscountCalculation(ZERO, ZERO, ZERO, ZERO, ZERO, ZERO)

    interest = round_money(nominal * interest_rate / HUNDRED * days / COMMERCIAL_YEAR_DAYS)
    commission = round_money(nominal * commission_rate / HUNDRED)
    expenses = round_money(expenses)
    deductions = interest + commission + expenses
    effective_rate = (deductions / nominal * COMMERCIAL_YEAR_DAYS / days * HUNDRED).quantize(
        RATE_QUANTUM, rounding=ROUND_HALF_UP
    )

    return DiscountCalculation(
        interest_amount=interest,
        commission_amount=commission,
        expenses=expenses,
        total_deductions=deductions,
        net_amount=nominal - deductions,
        effective_rate=effective_rate,
    )


def calculate_factoring(
    assigned_amount: Number,
    advance_percentage: Number,
    days: int,
    interest_rate: Number,
    commission_rate: Number,
    expenses: Number = ZERO,
) -> FactoringCalculation:
    """Same structure as the discount, applied to the advance amount."""
    assigned_amount = to_decimal(assigned_amount)
    advance_percentage = to_decimal(advance_percentage)
    if assigned_amount < 0:
        raise InvalidOperationData(f"Assigned amount cannot be negative: {assigned_amount}")
    if not ZERO <= advance_percentage <= HUNDRED:
        raise InvalidOperationData(
            f"Advance percentage must be between 0 and 100, got {advance_percentage}"
        )

    advance_amount = round_money(assigned_amount * advance_percentage / HUNDRED)
    terms = calculate_discount(advance_amount, days, interest_rate, commission_rate, expenses)

    return FactoringCalculation(
        advance_amount=advance_amount,
        interest_amount=terms.interest_amount,
        commission_amount=terms.commission_amount,
        expenses=terms.expenses,
        total_deductions=terms.total_deductions,
        net_amount=terms.net_amount,
        effective_rate=terms.effective_rate,
    )


def discount_days(start: date, maturity: date) -> int:
    """Días de descuento entre la fecha de negociación y el vencimiento (mínimo 1)."""
    return max(1, (maturity - start).days)


def build_operation_context(
    nominal: Number,
    calculation: DiscountCalculation | FactoringCalculation,
    currency: str = "EUR",
    counterparty_id: str | None = None,
    interest_rate: Number | None = None,
    commission_rate: Number | None = None,
    references: dict[str, str] | None = None,
) -> OperationContext:
    return OperationContext(
        amount=to_decimal(nominal),
        interest_amount=calculation.interest_amount,
        commission_amount=calculation.commission_amount,
        expenses=calculation.expenses,
        net_amount=calculation.net_amount,
        currency=currency,
        counterparty_id=counterparty_id,
        interest_rate=None if interest_rate is None else to_decimal(interest_rate),
        commission_rate=None if commission_rate is None else to_decimal(commission_rate),
        references=dict(references or {}),
    )
