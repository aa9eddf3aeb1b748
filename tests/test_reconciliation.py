from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from zoneinfo import ZoneInfo

from models.budget import Budget
from models.transaction import Transaction
from services.reconciliation import (
    aggregate_expenses,
    build_reconciliation,
    classify_status,
    percent_used,
    period_bounds,
    period_key,
    reconcile_budgets,
    shift_period,
)


def _tx(amount, category, is_expense, when, tx_id='t'):
    return Transaction(
        id=tx_id,
        amount=amount,
        description='test',
        category=category,
        is_expense=is_expense,
        date=when,
    )


def _budget(category, amount, month):
    return Budget(id='b', category=category, amount=amount, month=month)


def test_period_key_pads_year_and_month():
    assert period_key(date(2024, 3, 5)) == '2024-03'
    assert period_key(datetime(987, 11, 30, 23, 59)) == '0987-11'


def test_period_key_uses_display_timezone_for_aware_dates():
    late_utc = datetime(2024, 4, 1, 2, 30, tzinfo=timezone.utc)
    assert period_key(late_utc) == '2024-04'
    assert period_key(late_utc, ZoneInfo('America/New_York')) == '2024-03'


def test_shift_period_crosses_years():
    assert shift_period('2024-01', -1) == '2023-12'
    assert shift_period('2023-12', 1) == '2024-01'
    assert shift_period('2024-03', -14) == '2023-01'


def test_period_bounds_is_half_open_month():
    start, end = period_bounds('2024-12', timezone.utc)
    assert start == datetime(2024, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_aggregate_skips_income_and_other_periods():
    transactions = [
        _tx(100, 'Food & Dining', True, datetime(2024, 3, 5)),
        _tx(30, 'Food & Dining', False, datetime(2024, 3, 10)),
        _tx(70, 'Food & Dining', True, datetime(2024, 4, 1)),
        _tx(20, 'Shopping', True, datetime(2024, 3, 31, 23, 59)),
        _tx(5000, 'Income', False, datetime(2024, 3, 1)),
    ]
    totals = aggregate_expenses(transactions, '2024-03')
    assert totals == {'Food & Dining': Decimal('100'), 'Shopping': Decimal('20')}
    assert 'Income' not in totals


def test_aggregate_sums_decimals_exactly():
    transactions = [
        _tx(0.1, 'Utilities', True, datetime(2024, 3, 1)),
        _tx(0.2, 'Utilities', True, datetime(2024, 3, 2)),
    ]
    assert aggregate_expenses(transactions, '2024-03') == {'Utilities': Decimal('0.3')}


def test_aggregate_accepts_any_object_with_transaction_fields():
    row = SimpleNamespace(amount=12.5, category='Travel', is_expense=True, date=date(2024, 3, 9))
    assert aggregate_expenses([row], '2024-03') == {'Travel': Decimal('12.5')}


def test_status_boundaries():
    assert classify_status(80, 100) == 'near-limit'
    assert classify_status(79.99, 100) == 'under'
    assert classify_status(100, 100) == 'near-limit'
    assert classify_status(100.01, 100) == 'over'
    assert classify_status(0, 100) == 'under'


def test_status_boundary_is_exact_for_awkward_float_products():
    # 0.8 * 120 is 96.00000000000001 in binary floating point
    assert classify_status(96, 120) == 'near-limit'
    assert classify_status(95.99, 120) == 'under'


def test_zero_budget_policy():
    assert percent_used(50, 0) == 0
    assert classify_status(50, 0) == 'under'

    # Budget validation rejects amount=0, so build the row directly
    row = SimpleNamespace(category='Shopping', amount=0, month='2024-03')
    [zero_record] = reconcile_budgets({'Shopping': Decimal('50')}, [row], '2024-03')
    assert zero_record.percent_used == 0
    assert zero_record.status == 'under'
    assert zero_record.over_budget == 50
    assert zero_record.remaining == 0


def test_percent_used_rounds_half_up():
    assert percent_used(1, 8) == 13  # 12.5%
    assert percent_used(150, 120) == 125
    assert percent_used(1, 3) == 33


def test_percent_used_handles_tiny_budgets():
    assert percent_used(100, 1e-30) == 10 ** 34


def test_budget_without_spend_still_reported():
    [record] = reconcile_budgets({}, [_budget('Travel', 300, '2024-03')], '2024-03')
    assert record.actual == 0
    assert record.remaining == 300
    assert record.over_budget == 0
    assert record.percent_used == 0
    assert record.status == 'under'


def test_budgets_for_other_months_are_ignored():
    budgets = [_budget('Travel', 300, '2024-03'), _budget('Travel', 300, '2024-04')]
    records = reconcile_budgets({'Travel': Decimal('10')}, budgets, '2024-04')
    assert [r.period for r in records] == ['2024-04']


def test_end_to_end_food_and_dining_over_budget():
    transactions = [
        _tx(100, 'Food & Dining', True, datetime(2024, 3, 5)),
        _tx(50, 'Food & Dining', True, datetime(2024, 3, 20)),
        _tx(30, 'Food & Dining', False, datetime(2024, 3, 10)),
    ]
    budgets = [_budget('Food & Dining', 120, '2024-03')]

    [record] = build_reconciliation(transactions, budgets, '2024-03')

    assert record.category == 'Food & Dining'
    assert record.period == '2024-03'
    assert record.actual == 150
    assert record.budgeted == 120
    assert record.remaining == 0
    assert record.over_budget == 30
    assert record.percent_used == 125
    assert record.status == 'over'


def test_reconciliation_is_repeatable():
    start = datetime(2024, 3, 1, tzinfo=timezone.utc)
    transactions = [
        _tx(10 + i, 'Shopping' if i % 2 else 'Housing', i % 3 != 0, start + timedelta(days=i), tx_id=str(i))
        for i in range(40)
    ]
    budgets = [_budget('Shopping', 150, '2024-03'), _budget('Housing', 90, '2024-03')]

    first = build_reconciliation(transactions, budgets, '2024-03')
    second = build_reconciliation(transactions, budgets, '2024-03')

    assert [r.model_dump() for r in first] == [r.model_dump() for r in second]
    assert aggregate_expenses(transactions, '2024-03') == aggregate_expenses(transactions, '2024-03')
