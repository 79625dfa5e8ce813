from datetime import date, datetime
from decimal import Decimal

from .allocator import BillSnapshot, BudgetBuckets, IncomeSnapshot
from .extensions import db
from .utils import advance_due_date, to_money


def _iso(value):
    return value.isoformat() if value else None


def _entry_dict(entry):
    # Snapshot amounts are stored as strings to keep cents exact
    entry = dict(entry)
    for key in ("amount_due", "amount_allocated"):
        if key in entry:
            entry[key] = float(entry[key])
    return entry


class Income(db.Model):
    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)  # e.g. Job, Side Gig
    paycheck_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    pay_frequency = db.Column(db.String(20), nullable=False, default="biweekly")

    next_payday = db.Column(db.Date, nullable=True)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.Date, nullable=False, default=date.today)

    def to_snapshot(self):
        return IncomeSnapshot(
            id=self.id,
            name=self.name,
            paycheck_amount=to_money(self.paycheck_amount),
            pay_frequency=self.pay_frequency,
            next_payday=self.next_payday,
            is_primary=bool(self.is_primary),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "paycheck_amount": float(self.paycheck_amount or 0),
            "pay_frequency": self.pay_frequency,
            "next_payday": _iso(self.next_payday),
            "is_primary": bool(self.is_primary),
        }


class Bill(db.Model):
    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(50), nullable=False, default="other")

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    late_by_date = db.Column(db.Date, nullable=True)  # End of grace period
    is_autopay = db.Column(db.Boolean, nullable=False, default=False)
    frequency = db.Column(db.String(20), nullable=True)  # None for one-time bills

    allocated_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    last_paid_date = db.Column(db.Date, nullable=True)
    last_allocated_date = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.Date, nullable=False, default=date.today)

    def apply_payment(self, amount, payday_date, paid_on):
        """Record that the bills bucket covered this bill on ``payday_date``."""
        self.allocated_amount = to_money(self.allocated_amount) + to_money(amount)
        self.last_paid_date = paid_on
        self.last_allocated_date = payday_date

        if not self.frequency:
            self.is_active = False
            return

        # Move to the Next Occurrence, Keeping the Grace Period
        if self.late_by_date:
            self.late_by_date = advance_due_date(self.late_by_date, self.frequency)
        self.due_date = advance_due_date(self.due_date, self.frequency)

    def to_snapshot(self):
        return BillSnapshot(
            id=self.id,
            name=self.name,
            amount=to_money(self.amount),
            due_date=self.due_date,
            late_by_date=self.late_by_date,
            is_autopay=bool(self.is_autopay),
            allocated_amount=to_money(self.allocated_amount),
            last_paid_date=self.last_paid_date,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "amount": float(self.amount),
            "due_date": _iso(self.due_date),
            "late_by_date": _iso(self.late_by_date),
            "is_autopay": bool(self.is_autopay),
            "frequency": self.frequency,
            "allocated_amount": float(self.allocated_amount or 0),
            "last_paid_date": _iso(self.last_paid_date),
            "last_allocated_date": _iso(self.last_allocated_date),
            "is_active": bool(self.is_active),
        }


class UserBudget(db.Model):
    id = db.Column(db.Integer, primary_key=True)

    bills_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=50)
    spending_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=30)
    savings_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=20)

    # Carried Forward From the Last Completed Payday
    bills_bucket_balance = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    monthly_income = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    has_hysa = db.Column(db.Boolean, nullable=False, default=False)

    @classmethod
    def get_or_create(cls):
        budget = cls.query.order_by(cls.id.asc()).first()
        if budget is None:
            budget = cls(
                bills_percentage=Decimal("50"),
                spending_percentage=Decimal("30"),
                savings_percentage=Decimal("20"),
                bills_bucket_balance=Decimal("0"),
                monthly_income=Decimal("0"),
            )
            db.session.add(budget)
            db.session.commit()
        return budget

    def to_snapshot(self):
        return BudgetBuckets(
            bills_percentage=Decimal(self.bills_percentage),
            spending_percentage=Decimal(self.spending_percentage),
            savings_percentage=Decimal(self.savings_percentage),
            bills_bucket_balance=to_money(self.bills_bucket_balance),
            has_hysa=bool(self.has_hysa),
        )

    def to_dict(self):
        return {
            "bills_percentage": float(self.bills_percentage),
            "spending_percentage": float(self.spending_percentage),
            "savings_percentage": float(self.savings_percentage),
            "bills_bucket_balance": float(self.bills_bucket_balance or 0),
            "monthly_income": float(self.monthly_income or 0),
            "has_hysa": bool(self.has_hysa),
        }


class PaydayHistory(db.Model):
    __table_args__ = (db.UniqueConstraint("income_id", "payday_date", name="uq_payday_history_cycle"),)

    id = db.Column(db.Integer, primary_key=True)

    income_id = db.Column(db.Integer, db.ForeignKey("income.id", ondelete="SET NULL"), nullable=True)
    payday_date = db.Column(db.Date, nullable=False)

    paycheck_amount = db.Column(db.Numeric(10, 2), nullable=False)
    bills_amount = db.Column(db.Numeric(10, 2), nullable=False)
    spending_amount = db.Column(db.Numeric(10, 2), nullable=False)
    savings_amount = db.Column(db.Numeric(10, 2), nullable=False)

    bills_allocated = db.Column(db.JSON, nullable=False, default=list)
    bills_deferred = db.Column(db.JSON, nullable=False, default=list)
    bills_unallocated = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    # Debts and Savings Goals Are Not Planned Yet, Recorded Empty
    debts_allocated = db.Column(db.JSON, nullable=False, default=list)
    savings_goals_allocated = db.Column(db.JSON, nullable=False, default=list)
    savings_unallocated = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    @staticmethod
    def _bill_entry(bill, allocated):
        return {
            "bill_id": bill.id,
            "bill_name": bill.name,
            "amount_due": str(to_money(bill.amount)),
            "amount_allocated": str(to_money(bill.amount) if allocated else to_money(0)),
            "due_date": bill.due_date.isoformat(),
            "was_autopay": bill.is_autopay,
        }

    @classmethod
    def from_cycle(cls, cycle, income_id):
        return cls(
            income_id=income_id,
            payday_date=cycle.cycle_end,
            paycheck_amount=cycle.paycheck_amount,
            bills_amount=cycle.bills_bucket_amount,
            spending_amount=cycle.spending_bucket_amount,
            savings_amount=cycle.savings_bucket_amount,
            bills_allocated=[cls._bill_entry(b, True) for b in cycle.bills_paid],
            bills_deferred=[cls._bill_entry(b, False) for b in cycle.bills_deferred],
            bills_unallocated=cycle.bills_bucket_remainder,
            debts_allocated=[],
            savings_goals_allocated=[],
            savings_unallocated=cycle.savings_bucket_amount,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "income_id": self.income_id,
            "payday_date": _iso(self.payday_date),
            "paycheck_amount": float(self.paycheck_amount),
            "bills_amount": float(self.bills_amount),
            "spending_amount": float(self.spending_amount),
            "savings_amount": float(self.savings_amount),
            "bills_allocated": [_entry_dict(e) for e in self.bills_allocated or []],
            "bills_deferred": [_entry_dict(e) for e in self.bills_deferred or []],
            "bills_unallocated": float(self.bills_unallocated),
            "debts_allocated": self.debts_allocated or [],
            "savings_goals_allocated": self.savings_goals_allocated or [],
            "savings_unallocated": float(self.savings_unallocated or 0),
            "created_at": self.created_at.isoformat() if isinstance(self.created_at, datetime) else None,
        }


class OneTimeDeposit(db.Model):
    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)  # e.g. Tax Return, Bonus
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    expected_date = db.Column(db.Date, nullable=True)
    received = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.Date, nullable=False, default=date.today)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "amount": float(self.amount),
            "expected_date": _iso(self.expected_date),
            "received": bool(self.received),
        }
