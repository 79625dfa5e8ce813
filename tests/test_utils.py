from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from payday_planner.utils import (
    add_months,
    advance_due_date,
    advance_payday,
    monthly_income_estimate,
    parse_date,
    to_money,
)


class TestAddMonths:

    def test_keeps_day_of_month(self):
        assert add_months(date(2024, 3, 15), 1) == date(2024, 4, 15)

    def test_clamps_to_end_of_february(self):
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_clamps_to_leap_day(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_rolls_over_year(self):
        assert add_months(date(2024, 12, 10), 1) == date(2025, 1, 10)
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)


class TestAdvancePayday:

    @pytest.mark.parametrize('frequency, expected', [
        ('weekly', date(2024, 3, 8)),
        ('biweekly', date(2024, 3, 15)),
        ('semimonthly', date(2024, 3, 16)),
        ('monthly', date(2024, 4, 1)),
    ])
    def test_frequencies(self, frequency, expected):
        assert advance_payday(date(2024, 3, 1), frequency) == expected

    def test_biweekly_across_month_end(self):
        assert advance_payday(date(2024, 1, 30), 'biweekly') == date(2024, 2, 13)

    def test_monthly_from_jan_31(self):
        assert advance_payday(date(2023, 1, 31), 'monthly') == date(2023, 2, 28)
        assert advance_payday(date(2024, 1, 31), 'monthly') == date(2024, 2, 29)

    def test_irregular_does_not_move(self):
        assert advance_payday(date(2024, 3, 1), 'irregular') == date(2024, 3, 1)

    def test_unknown_frequency(self):
        with pytest.raises(ValueError):
            advance_payday(date(2024, 3, 1), 'fortnightly')


class TestAdvanceDueDate:

    def test_quarterly_and_annual(self):
        assert advance_due_date(date(2024, 1, 31), 'quarterly') == date(2024, 4, 30)
        assert advance_due_date(date(2024, 2, 29), 'annually') == date(2025, 2, 28)

    def test_weekly(self):
        assert advance_due_date(date(2024, 2, 27), 'weekly') == date(2024, 3, 5)

    def test_unknown_frequency(self):
        with pytest.raises(ValueError):
            advance_due_date(date(2024, 1, 1), 'daily')


def test_to_money_rounds_half_up():
    assert to_money('10.005') == Decimal('10.01')
    assert to_money(None) == Decimal('0.00')
    assert to_money(12.1) == Decimal('12.10')


def test_monthly_income_estimate():
    incomes = [
        SimpleNamespace(paycheck_amount=Decimal('1200'), pay_frequency='biweekly'),
        SimpleNamespace(paycheck_amount=Decimal('500'), pay_frequency='monthly'),
        SimpleNamespace(paycheck_amount=Decimal('100'), pay_frequency='weekly'),
    ]
    # 1200 * 26/12 + 500 + 100 * 52/12
    assert monthly_income_estimate(incomes) == Decimal('3533.33')


def test_parse_date():
    assert parse_date('2024-03-01') == date(2024, 3, 1)
    assert parse_date('') is None
    assert parse_date(None) is None
    with pytest.raises(ValueError):
        parse_date('03/01/2024')
