from datetime import date
from decimal import Decimal, InvalidOperation

from flask import Blueprint, current_app, jsonify, request

from .allocator import allocate_payday, bucket_warnings, select_primary_income, total_unallocated
from .completion import complete_payday
from .errors import InvalidBudgetConfiguration, NoIncomeConfigured, PaydayCompletionError
from .extensions import db
from .models import Bill, Income, OneTimeDeposit, PaydayHistory, UserBudget
from .utils import (
    BILL_FREQUENCIES,
    MAX_MONEY,
    PAY_FREQUENCIES,
    monthly_income_estimate,
    parse_date,
    to_money,
)


main = Blueprint('main', __name__)


class FormError(ValueError):
    pass


def today():
    return date.today()


def _form():
    return request.get_json(silent=True) or request.form


def _flag(raw):
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ("1", "true", "on", "yes")


def _amount(raw, label):
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise FormError(f"{label} must be a number.")
    if not amount.is_finite() or amount < 0:
        raise FormError(f"{label} must be zero or more.")
    if amount > MAX_MONEY:
        raise FormError(f"{label} cannot be more than {MAX_MONEY}.")
    try:
        return to_money(amount)
    except InvalidOperation:
        raise FormError(f"{label} must be a number.")


def _date(raw, label, required=False):
    try:
        value = parse_date(raw)
    except ValueError:
        raise FormError(f"{label} must be a valid date.")
    if required and value is None:
        raise FormError(f"{label} is required.")
    return value


@main.errorhandler(FormError)
def handle_form_error(exc):
    return jsonify(error=str(exc)), 400


@main.errorhandler(InvalidBudgetConfiguration)
def handle_invalid_budget(exc):
    return jsonify(error=exc.message, code=exc.code), 400


@main.errorhandler(NoIncomeConfigured)
def handle_no_income(exc):
    return jsonify(error=exc.message, code=exc.code), 409


@main.errorhandler(PaydayCompletionError)
def handle_completion_error(exc):
    return jsonify(error=exc.message, code=exc.code, retryable=True), 503


def _current_cycle():
    incomes = Income.query.order_by(Income.id.asc()).all()
    primary = select_primary_income(incomes)
    budget = UserBudget.get_or_create()
    bills = Bill.query.filter(Bill.is_active == True).order_by(Bill.id.asc()).all()  # noqa: E712

    cycle = allocate_payday(
        today(),
        primary.to_snapshot() if primary else None,
        budget.to_snapshot(),
        [b.to_snapshot() for b in bills],
    )
    return cycle, primary, budget, bills


@main.route("/")
def dashboard():
    incomes = Income.query.order_by(Income.id.asc()).all()
    primary = select_primary_income(incomes)
    budget = UserBudget.get_or_create()
    bills = Bill.query.filter(Bill.is_active == True).all()  # noqa: E712

    total_bills = sum((to_money(b.amount) for b in bills), Decimal("0"))
    unallocated = total_unallocated(b.to_snapshot() for b in bills)

    return jsonify(
        primary_income=primary.to_dict() if primary else None,
        next_payday=primary.next_payday.isoformat() if primary and primary.next_payday else None,
        budget=budget.to_dict(),
        total_bills=float(total_bills),
        total_unallocated=float(unallocated),
        warnings=bucket_warnings(budget.to_snapshot()),
    )


# Bills Routes

@main.route('/bills')
def bills():
    bills = Bill.query.filter(Bill.is_active == True).order_by(Bill.due_date.asc(), Bill.name.asc()).all()  # noqa: E712
    return jsonify(bills=[b.to_dict() for b in bills])


def _apply_bill_form(bill, form, partial=False):
    """Validate ``form`` and copy it onto ``bill``.

    With ``partial`` only the keys present in the form are changed, so an
    update that sends just the amount keeps the grace date and frequency.
    """
    def given(key):
        return not partial or key in form

    changes = {}
    if given('name'):
        name = str(form.get('name', '')).strip()
        if not name:
            raise FormError("Bill name is required.")
        changes['name'] = name
    if given('category'):
        changes['category'] = str(form.get('category', 'other')).strip() or "other"
    if given('amount'):
        changes['amount'] = _amount(form.get('amount', '0'), "Amount")
    if given('due_date'):
        changes['due_date'] = _date(form.get('due_date'), "Due date", required=True)
    if given('late_by_date'):
        changes['late_by_date'] = _date(form.get('late_by_date'), "Late-by date")
    if given('is_autopay'):
        changes['is_autopay'] = _flag(form.get('is_autopay', False))
    if given('frequency'):
        frequency = str(form.get('frequency') or '').strip() or None
        if frequency and frequency not in BILL_FREQUENCIES:
            raise FormError(f"Frequency must be one of: {', '.join(BILL_FREQUENCIES)}.")
        changes['frequency'] = frequency
    if 'is_active' in form:
        changes['is_active'] = _flag(form['is_active'])

    due_date = changes.get('due_date', bill.due_date)
    late_by_date = changes.get('late_by_date', bill.late_by_date)
    if late_by_date and due_date and late_by_date < due_date:
        raise FormError("Late-by date cannot be before the due date.")

    for key, value in changes.items():
        setattr(bill, key, value)


@main.route('/bills/new', methods=['POST'])
def create_bill():
    bill = Bill(allocated_amount=Decimal("0"), is_active=True)
    _apply_bill_form(bill, _form())
    db.session.add(bill)
    db.session.commit()

    current_app.logger.info("Bill %r added", bill.name)
    return jsonify(bill=bill.to_dict()), 201


@main.route("/bills/<int:bill_id>/update", methods=["POST"])
def update_bill(bill_id):
    bill = db.get_or_404(Bill, bill_id)
    _apply_bill_form(bill, _form(), partial=True)
    db.session.commit()
    return jsonify(bill=bill.to_dict())


@main.route("/bills/<int:bill_id>/delete", methods=["POST"])
def delete_bill(bill_id):
    bill = db.get_or_404(Bill, bill_id)
    db.session.delete(bill)
    db.session.commit()
    return jsonify(deleted=bill_id)


# Income Routes

@main.route("/incomes")
def incomes():
    incomes = Income.query.order_by(Income.id.asc()).all()
    return jsonify(incomes=[i.to_dict() for i in incomes])


def _apply_income_form(income, form):
    name = str(form.get('name', '')).strip()
    if not name:
        raise FormError("Income name is required.")

    frequency = str(form.get('pay_frequency', 'biweekly')).strip() or "biweekly"
    if frequency not in PAY_FREQUENCIES:
        raise FormError(f"Pay frequency must be one of: {', '.join(PAY_FREQUENCIES)}.")

    paycheck_amount = _amount(form.get('paycheck_amount', '0'), "Paycheck amount")
    next_payday = _date(form.get('next_payday'), "Next payday")

    income.name = name
    income.paycheck_amount = paycheck_amount
    income.pay_frequency = frequency
    income.next_payday = next_payday
    income.is_primary = _flag(form.get('is_primary', False))

    # Only One Primary Income
    if income.is_primary:
        others = Income.query.filter(Income.is_primary == True)  # noqa: E712
        if income.id is not None:
            others = others.filter(Income.id != income.id)
        for other in others:
            other.is_primary = False


@main.route("/incomes/new", methods=["POST"])
def create_income():
    income = Income()
    _apply_income_form(income, _form())
    db.session.add(income)
    db.session.commit()

    current_app.logger.info("Income %r added", income.name)
    return jsonify(income=income.to_dict()), 201


@main.route("/incomes/<int:income_id>/update", methods=["POST"])
def update_income(income_id):
    income = db.get_or_404(Income, income_id)
    _apply_income_form(income, _form())
    db.session.commit()
    return jsonify(income=income.to_dict())


@main.route('/incomes/<int:income_id>/delete', methods=['POST'])
def delete_income(income_id):
    income = db.get_or_404(Income, income_id)
    db.session.delete(income)
    db.session.commit()
    return jsonify(deleted=income_id)


# Budget Routes

@main.route("/budget")
def budget():
    budget = UserBudget.get_or_create()
    return jsonify(budget=budget.to_dict(), warnings=bucket_warnings(budget.to_snapshot()))


@main.route("/budget/update", methods=["POST"])
def update_budget():
    budget = UserBudget.get_or_create()
    form = _form()

    for field in ("bills_percentage", "spending_percentage", "savings_percentage"):
        if field not in form:
            continue
        try:
            value = Decimal(str(form[field]).strip())
        except (InvalidOperation, ValueError):
            raise FormError(f"{field.replace('_', ' ').capitalize()} must be a number.")
        if not value.is_finite() or value < 0 or value > 100:
            raise InvalidBudgetConfiguration(
                f"{field.replace('_', ' ').capitalize()} must be between 0 and 100."
            )
        setattr(budget, field, value)

    if 'has_hysa' in form:
        budget.has_hysa = _flag(form['has_hysa'])

    budget.monthly_income = monthly_income_estimate(Income.query.all())
    db.session.commit()

    return jsonify(budget=budget.to_dict(), warnings=bucket_warnings(budget.to_snapshot()))


# One-Time Deposit Routes

def _pending_deposits():
    return (
        OneTimeDeposit.query
        .filter(OneTimeDeposit.received == False)  # noqa: E712
        .order_by(OneTimeDeposit.expected_date.asc(), OneTimeDeposit.id.asc())
        .all()
    )


@main.route("/deposits")
def deposits():
    return jsonify(deposits=[d.to_dict() for d in _pending_deposits()])


@main.route("/deposits/new", methods=["POST"])
def create_deposit():
    form = _form()
    name = str(form.get('name', '')).strip()
    if not name:
        raise FormError("Deposit name is required.")

    deposit = OneTimeDeposit(
        name=name,
        amount=_amount(form.get('amount', '0'), "Amount"),
        expected_date=_date(form.get('expected_date'), "Expected date"),
        received=False,
    )
    db.session.add(deposit)
    db.session.commit()

    current_app.logger.info("Deposit %r added", deposit.name)
    return jsonify(deposit=deposit.to_dict()), 201


@main.route("/deposits/<int:deposit_id>/received", methods=["POST"])
def receive_deposit(deposit_id):
    deposit = db.get_or_404(OneTimeDeposit, deposit_id)
    deposit.received = True
    db.session.commit()
    return jsonify(deposit=deposit.to_dict())


# Payday Routes

@main.route("/payday")
def payday():
    cycle, _, budget, _ = _current_cycle()
    if not cycle.income_configured:
        current_app.logger.info("Payday preview requested with no income configured")
    return jsonify(
        cycle=cycle.to_dict(),
        pending_deposits=[d.to_dict() for d in _pending_deposits()],
        warnings=bucket_warnings(budget.to_snapshot()),
    )


@main.route("/payday/complete", methods=["POST"])
def complete():
    """Complete the payday named by ``payday_date`` in the body.

    A repeated request for a payday that is already done returns its history
    instead of completing the following cycle.
    """
    payday_date = _date(_form().get('payday_date'), "Payday date", required=True)
    cycle, primary, budget, bills = _current_cycle()
    if not cycle.income_configured:
        raise NoIncomeConfigured()

    if payday_date != cycle.cycle_end:
        done = PaydayHistory.query.filter_by(income_id=primary.id, payday_date=payday_date).first()
        if done is None:
            current_app.logger.warning(
                "Completion requested for %s but the current payday is %s", payday_date, cycle.cycle_end
            )
            return jsonify(
                error=f"Payday {payday_date.isoformat()} is not the current payday.",
                code="payday_mismatch",
                current_payday=cycle.cycle_end.isoformat(),
            ), 409
        return jsonify(
            history=done.to_dict(),
            next_payday=primary.next_payday.isoformat(),
            already_completed=True,
        )

    history = complete_payday(cycle, primary, budget, bills, completed_on=today())
    return jsonify(
        history=history.to_dict(),
        next_payday=primary.next_payday.isoformat(),
        already_completed=False,
    )


@main.route("/payday/history")
def history():
    records = PaydayHistory.query.order_by(PaydayHistory.payday_date.desc(), PaydayHistory.id.desc()).all()
    return jsonify(history=[r.to_dict() for r in records])
