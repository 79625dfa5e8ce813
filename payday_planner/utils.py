from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
import calendar

CENTS = Decimal("0.01")

# Largest value a Numeric(10, 2) column holds
MAX_MONEY = Decimal("99999999.99")

PAY_FREQUENCIES = ("weekly", "biweekly", "semimonthly", "monthly", "irregular")
BILL_FREQUENCIES = ("weekly", "biweekly", "monthly", "quarterly", "annually")

# Fixed-length pay periods; monthly is calendar based
PAY_PERIOD_DAYS = {"weekly": 7, "biweekly": 14, "semimonthly": 15}

# Paychecks per month, used for the monthly income estimate
MONTHLY_MULTIPLIERS = {
    "weekly": Decimal(52) / Decimal(12),
    "biweekly": Decimal(26) / Decimal(12),
    "semimonthly": Decimal(2),
    "monthly": Decimal(1),
    "irregular": Decimal(1),
}


def to_money(value) -> Decimal:
    """Coerce ``value`` to a Decimal rounded half-up to cents. None counts as zero."""
    if value is None:
        value = 0
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def add_months(start: date, months: int) -> date:
    """Move ``start`` by whole calendar months, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1

    # Clamp Day to Last Day of Target Month
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def advance_payday(payday: date, frequency: str) -> date:
    """Return the payday that follows ``payday`` for the given pay frequency.

    Irregular income has no schedule, so the date is returned unchanged.
    """
    if frequency in PAY_PERIOD_DAYS:
        return payday + timedelta(days=PAY_PERIOD_DAYS[frequency])
    if frequency == "monthly":
        return add_months(payday, 1)
    if frequency == "irregular":
        return payday
    raise ValueError(f"Unknown pay frequency: {frequency!r}")


def advance_due_date(due: date, frequency: str) -> date:
    """Return the next occurrence of a recurring bill due on ``due``."""
    if frequency == "weekly":
        return due + timedelta(days=7)
    if frequency == "biweekly":
        return due + timedelta(days=14)
    if frequency == "monthly":
        return add_months(due, 1)
    if frequency == "quarterly":
        return add_months(due, 3)
    if frequency == "annually":
        return add_months(due, 12)
    raise ValueError(f"Unknown bill frequency: {frequency!r}")


def monthly_income_estimate(incomes) -> Decimal:
    """Sum every income stream converted to a monthly amount."""
    total = Decimal("0")
    for income in incomes:
        multiplier = MONTHLY_MULTIPLIERS.get(income.pay_frequency, Decimal(1))
        total += to_money(income.paycheck_amount) * multiplier
    return to_money(total)


def parse_date(raw):
    """Parse an ISO date string. Blank values give None; bad values raise ValueError."""
    if raw is None:
        return None
    if isinstance(raw, date):
        return raw
    raw = str(raw).strip()
    if not raw:
        return None
    return date.fromisoformat(raw)
