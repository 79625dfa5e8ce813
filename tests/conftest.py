"""
Shared pytest fixtures for Payday Planner tests.
"""

from datetime import date
from decimal import Decimal

import pytest

from payday_planner import create_app
from payday_planner.extensions import db as _db
from payday_planner.models import Bill, Income, UserBudget


class TestConfig:
    """Test configuration with an in-memory SQLite database."""
    __test__ = False

    SECRET_KEY = 'test-secret-key-for-testing-only'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'


@pytest.fixture
def app():
    """Create application with a fresh schema."""
    application = create_app(config_class=TestConfig)
    with application.app_context():
        _db.create_all()
        yield application
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def today(monkeypatch):
    """Pin the date the routes treat as today."""
    pinned = date(2024, 2, 20)
    monkeypatch.setattr('payday_planner.routes.today', lambda: pinned)
    return pinned


@pytest.fixture
def seeded(db):
    """Scenario 1 data: $2000 biweekly paycheck, 50/30/20 buckets, two bills."""
    income = Income(
        name='Job',
        paycheck_amount=Decimal('2000.00'),
        pay_frequency='biweekly',
        next_payday=date(2024, 3, 1),
        is_primary=True,
    )
    budget = UserBudget(
        bills_percentage=Decimal('50'),
        spending_percentage=Decimal('30'),
        savings_percentage=Decimal('20'),
        bills_bucket_balance=Decimal('0'),
        monthly_income=Decimal('0'),
    )
    phone = Bill(
        name='Phone',
        amount=Decimal('300.00'),
        due_date=date(2024, 3, 1),
        is_autopay=False,
        frequency='monthly',
        allocated_amount=Decimal('0'),
    )
    rent = Bill(
        name='Rent',
        amount=Decimal('1200.00'),
        due_date=date(2024, 3, 5),
        late_by_date=date(2024, 3, 10),
        is_autopay=False,
        frequency='monthly',
        allocated_amount=Decimal('0'),
    )
    db.session.add_all([income, budget, phone, rent])
    db.session.commit()
    return {'income': income, 'budget': budget, 'phone': phone, 'rent': rent}
