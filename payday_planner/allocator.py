"""Payday allocation.

Splits the primary paycheck into the bills, spending and savings buckets and
decides which bills the bills bucket pays this cycle. Everything here is a pure
function of its arguments; persisting the result is the caller's job (see
``completion.complete_payday``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional
import logging

from .errors import InvalidBudgetConfiguration, NoIncomeConfigured
from .utils import advance_payday, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

HYSA_WARNING = (
    "Don't have a HYSA yet? Your bills and savings should sit in a high-yield savings account."
)


@dataclass(frozen=True)
class IncomeSnapshot:
    name: str
    paycheck_amount: Decimal
    pay_frequency: str
    next_payday: Optional[date]
    is_primary: bool = False
    id: Optional[int] = None


@dataclass(frozen=True)
class BillSnapshot:
    name: str
    amount: Decimal
    due_date: date
    late_by_date: Optional[date] = None
    is_autopay: bool = False
    allocated_amount: Decimal = ZERO
    last_paid_date: Optional[date] = None
    id: Optional[int] = None

    @property
    def effective_late_by(self) -> date:
        # Grace period defaults to the due date
        return self.late_by_date or self.due_date


@dataclass(frozen=True)
class BudgetBuckets:
    bills_percentage: Decimal
    spending_percentage: Decimal
    savings_percentage: Decimal
    bills_bucket_balance: Decimal = ZERO
    has_hysa: bool = True


@dataclass
class PaydayCycle:
    cycle_start: date
    cycle_end: Optional[date]
    next_cycle_end: Optional[date]
    paycheck_amount: Decimal
    bills_bucket_amount: Decimal
    spending_bucket_amount: Decimal
    savings_bucket_amount: Decimal
    bills_paid: List[BillSnapshot] = field(default_factory=list)
    bills_deferred: List[BillSnapshot] = field(default_factory=list)
    bills_bucket_remainder: Decimal = ZERO
    error_code: Optional[str] = None

    @classmethod
    def zeroed(cls, today: date, error_code: str) -> "PaydayCycle":
        return cls(
            cycle_start=today,
            cycle_end=None,
            next_cycle_end=None,
            paycheck_amount=ZERO,
            bills_bucket_amount=ZERO,
            spending_bucket_amount=ZERO,
            savings_bucket_amount=ZERO,
            error_code=error_code,
        )

    @property
    def income_configured(self) -> bool:
        return self.error_code is None

    @property
    def total_paid(self) -> Decimal:
        return sum((to_money(bill.amount) for bill in self.bills_paid), ZERO)

    def to_dict(self) -> dict:
        def _bill(bill):
            return {
                "id": bill.id,
                "name": bill.name,
                "amount": float(bill.amount),
                "due_date": bill.due_date.isoformat(),
                "late_by_date": bill.effective_late_by.isoformat(),
                "is_autopay": bill.is_autopay,
            }

        return {
            "cycle_start": self.cycle_start.isoformat(),
            "cycle_end": self.cycle_end.isoformat() if self.cycle_end else None,
            "next_cycle_end": self.next_cycle_end.isoformat() if self.next_cycle_end else None,
            "paycheck_amount": float(self.paycheck_amount),
            "bills_bucket_amount": float(self.bills_bucket_amount),
            "spending_bucket_amount": float(self.spending_bucket_amount),
            "savings_bucket_amount": float(self.savings_bucket_amount),
            "bills_paid": [_bill(b) for b in self.bills_paid],
            "bills_deferred": [_bill(b) for b in self.bills_deferred],
            "bills_bucket_remainder": float(self.bills_bucket_remainder),
            "error_code": self.error_code,
        }


def select_primary_income(incomes: Iterable[IncomeSnapshot]) -> Optional[IncomeSnapshot]:
    """Return the income flagged primary, else the first one, else None."""
    incomes = list(incomes)
    for income in incomes:
        if income.is_primary:
            return income
    return incomes[0] if incomes else None


def validate_inputs(income: IncomeSnapshot, buckets: BudgetBuckets, bills: Iterable[BillSnapshot]) -> None:
    """Raise InvalidBudgetConfiguration for out-of-range input. Nothing is clamped."""
    if income.paycheck_amount < 0:
        raise InvalidBudgetConfiguration(f"Paycheck amount for {income.name!r} cannot be negative.")

    for label, value in (
        ("Bills", buckets.bills_percentage),
        ("Spending", buckets.spending_percentage),
        ("Savings", buckets.savings_percentage),
    ):
        if value < 0 or value > 100:
            raise InvalidBudgetConfiguration(f"{label} percentage must be between 0 and 100.")

    if buckets.bills_bucket_balance < 0:
        raise InvalidBudgetConfiguration("Bills bucket balance cannot be negative.")

    for bill in bills:
        if bill.amount < 0:
            raise InvalidBudgetConfiguration(f"Amount for bill {bill.name!r} cannot be negative.")
        if bill.late_by_date is not None and bill.late_by_date < bill.due_date:
            raise InvalidBudgetConfiguration(f"Late-by date for bill {bill.name!r} is before its due date.")


def bucket_warnings(buckets: BudgetBuckets) -> List[str]:
    warnings = []
    total = sum(
        Decimal(str(p))
        for p in (buckets.bills_percentage, buckets.spending_percentage, buckets.savings_percentage)
    )
    if total != 100:
        warnings.append(f"Bucket percentages total {format(total.normalize(), 'f')}%, should equal 100%.")
    if not buckets.has_hysa:
        warnings.append(HYSA_WARNING)
    return warnings


def is_bill_eligible(bill: BillSnapshot, today: date, cycle_end: date, next_cycle_end: date) -> bool:
    """A bill is handled this cycle if it would come due or go late before the following payday.

    Autopay and near-due bills are looked at one cycle ahead so an automatic
    charge never lands on an empty bills bucket.
    """
    if bill.is_autopay and bill.due_date <= next_cycle_end:
        return True
    if bill.effective_late_by <= next_cycle_end:
        return True
    return today <= bill.due_date <= cycle_end


def bill_priority_key(bill: BillSnapshot):
    # Autopay first, then earliest grace deadline
    return (not bill.is_autopay, bill.effective_late_by)


def _fraction(percentage) -> Decimal:
    return Decimal(str(percentage)) / 100


def allocate_payday(
    today: date,
    primary_income: Optional[IncomeSnapshot],
    buckets: BudgetBuckets,
    bills: Iterable[BillSnapshot],
) -> PaydayCycle:
    """Compute one payday cycle.

    Returns a zeroed cycle with ``error_code`` set when no usable income is
    configured. Raises InvalidBudgetConfiguration for out-of-range input.
    """
    bills = list(bills)

    if (
        primary_income is None
        or primary_income.next_payday is None
        or primary_income.paycheck_amount == 0
    ):
        logger.debug("No income configured, returning zeroed payday cycle")
        return PaydayCycle.zeroed(today, NoIncomeConfigured.code)

    validate_inputs(primary_income, buckets, bills)

    cycle_end = primary_income.next_payday
    next_cycle_end = advance_payday(cycle_end, primary_income.pay_frequency)

    paycheck = to_money(primary_income.paycheck_amount)
    bills_bucket = to_money(
        paycheck * _fraction(buckets.bills_percentage) + to_money(buckets.bills_bucket_balance)
    )
    spending_bucket = to_money(paycheck * _fraction(buckets.spending_percentage))
    savings_bucket = to_money(paycheck * _fraction(buckets.savings_percentage))

    eligible = [b for b in bills if is_bill_eligible(b, today, cycle_end, next_cycle_end)]
    # sorted() is stable, so ties keep input order
    eligible = sorted(eligible, key=bill_priority_key)

    paid, deferred = [], []
    remaining = bills_bucket
    for bill in eligible:
        amount = to_money(bill.amount)
        if amount <= remaining:
            paid.append(bill)
            remaining -= amount
        else:
            logger.debug("Deferring bill %r: %s does not fit in %s", bill.name, amount, remaining)
            deferred.append(bill)

    return PaydayCycle(
        cycle_start=today,
        cycle_end=cycle_end,
        next_cycle_end=next_cycle_end,
        paycheck_amount=paycheck,
        bills_bucket_amount=bills_bucket,
        spending_bucket_amount=spending_bucket,
        savings_bucket_amount=savings_bucket,
        bills_paid=paid,
        bills_deferred=deferred,
        bills_bucket_remainder=remaining,
    )


def total_unallocated(bills: Iterable[BillSnapshot]) -> Decimal:
    """Money still owed on bills beyond what earlier paydays set aside."""
    bills = list(bills)
    total = sum((to_money(b.amount) for b in bills), ZERO)
    allocated = sum((to_money(b.allocated_amount) for b in bills), ZERO)
    return total - allocated
