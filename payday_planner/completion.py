"""Persisting a completed payday.

Applies the four writes of a computed PaydayCycle in one transaction: the
history snapshot, the paid bills, the income's next payday and the carried
bills bucket balance. Each write is keyed on the cycle date so retrying after
a failure never applies it twice.
"""

from datetime import date
import logging

from sqlalchemy.exc import SQLAlchemyError

from .errors import NoIncomeConfigured, PaydayCompletionError
from .extensions import db
from .models import PaydayHistory

logger = logging.getLogger(__name__)


def complete_payday(cycle, income, budget, bills, completed_on=None):
    """Record ``cycle`` as completed and return its PaydayHistory row.

    ``income``, ``budget`` and ``bills`` are the model rows the cycle was
    computed from. Raises NoIncomeConfigured for a zeroed cycle and
    PaydayCompletionError when anything fails to save.
    """
    if not cycle.income_configured:
        raise NoIncomeConfigured()

    completed_on = completed_on or date.today()
    payday_date = cycle.cycle_end
    bills_by_id = {bill.id: bill for bill in bills}

    try:
        history = PaydayHistory.query.filter_by(income_id=income.id, payday_date=payday_date).first()
        already_recorded = history is not None
        if not already_recorded:
            history = PaydayHistory.from_cycle(cycle, income_id=income.id)
            db.session.add(history)

        for paid in cycle.bills_paid:
            bill = bills_by_id.get(paid.id)
            if bill is None:
                raise PaydayCompletionError(f"Bill {paid.name!r} no longer exists.")
            if bill.last_allocated_date == payday_date:
                continue
            bill.apply_payment(paid.amount, payday_date, completed_on)

        if income.next_payday == payday_date:
            income.next_payday = cycle.next_cycle_end

        if not already_recorded:
            budget.bills_bucket_balance = cycle.bills_bucket_remainder

        db.session.commit()
    except PaydayCompletionError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Completing payday %s failed, rolled back", payday_date)
        raise PaydayCompletionError() from exc

    logger.info(
        "Completed payday %s: %d bills paid, %s carried forward",
        payday_date,
        len(cycle.bills_paid),
        cycle.bills_bucket_remainder,
    )
    return history
