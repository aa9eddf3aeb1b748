"""Budget-vs-actual reconciliation.

Pure functions: callers pass in snapshots of transactions and budgets, nothing
here touches the database. Amounts are summed and compared as ``Decimal`` so
the 80% / 100% boundaries are exact.
"""
from datetime import date, datetime, tzinfo
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Dict, Iterable, List, Optional, Tuple, Union

from models.reconciliation import BudgetReconciliation, BudgetStatus

STATUS_UNDER: BudgetStatus = 'under'
STATUS_NEAR_LIMIT: BudgetStatus = 'near-limit'
STATUS_OVER: BudgetStatus = 'over'

NEAR_LIMIT_RATIO = Decimal('0.8')

_ZERO = Decimal('0')
_HUNDRED = Decimal('100')

Number = Union[int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary float expansion
    return Decimal(str(value))


def period_key(value: Union[date, datetime], tz: Optional[tzinfo] = None) -> str:
    """Return the ``YYYY-MM`` period a date falls in.

    Aware datetimes are converted to ``tz`` first so that transaction dates and
    budget months are read in the same timezone. Naive values are used as-is.
    """
    if isinstance(value, datetime) and value.tzinfo is not None and tz is not None:
        value = value.astimezone(tz)
    return f"{value.year:04d}-{value.month:02d}"


def parse_period(period: str) -> Tuple[int, int]:
    year, month = period.split('-')
    return int(year), int(month)


def shift_period(period: str, offset: int) -> str:
    """Move a period by ``offset`` months (negative goes back)."""
    year, month = parse_period(period)
    index = year * 12 + (month - 1) + offset
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def period_bounds(period: str, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Half-open ``[start, end)`` datetimes covering a period."""
    year, month = parse_period(period)
    next_year, next_month = parse_period(shift_period(period, 1))
    return (
        datetime(year, month, 1, tzinfo=tz),
        datetime(next_year, next_month, 1, tzinfo=tz),
    )


def aggregate_expenses(transactions: Iterable, period: str, tz: Optional[tzinfo] = None) -> Dict[str, Decimal]:
    """Sum expense amounts per category for one period.

    Income and transactions from other periods are skipped. Categories without
    any matching expense are left out of the result rather than set to zero.
    """
    totals: Dict[str, Decimal] = {}
    for transaction in transactions:
        if not transaction.is_expense:
            continue
        if period_key(transaction.date, tz) != period:
            continue
        totals[transaction.category] = totals.get(transaction.category, _ZERO) + to_decimal(transaction.amount)
    return totals


def classify_status(actual: Number, budgeted: Number) -> BudgetStatus:
    """Map spend against a budget to a status band.

    Exactly 80% and exactly 100% both count as near-limit. A budget of zero is
    always 'under', matching the zero-budget policy of percent_used().
    """
    actual = to_decimal(actual)
    budgeted = to_decimal(budgeted)
    if budgeted <= _ZERO:
        return STATUS_UNDER
    if actual > budgeted:
        return STATUS_OVER
    if actual >= budgeted * NEAR_LIMIT_RATIO:
        return STATUS_NEAR_LIMIT
    return STATUS_UNDER


def percent_used(actual: Number, budgeted: Number) -> int:
    """Whole percent of the budget spent, rounded half up.

    Policy: a budget of zero (or less) reports 0% instead of dividing by zero.
    Validation never lets such a budget be stored.
    """
    actual = to_decimal(actual)
    budgeted = to_decimal(budgeted)
    if budgeted <= _ZERO:
        return 0
    ratio = actual / budgeted * _HUNDRED
    with localcontext() as ctx:
        # quantize needs every integer digit to fit in the context precision
        ctx.prec = max(ctx.prec, ratio.adjusted() + 2)
        return int(ratio.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def reconcile_budget(budget, actual: Number) -> BudgetReconciliation:
    budgeted = to_decimal(budget.amount)
    actual = to_decimal(actual)
    return BudgetReconciliation(
        category=budget.category,
        period=budget.month,
        budgeted=float(budgeted),
        actual=float(actual),
        remaining=float(max(budgeted - actual, _ZERO)),
        over_budget=float(max(actual - budgeted, _ZERO)),
        percent_used=percent_used(actual, budgeted),
        status=classify_status(actual, budgeted),
    )


def reconcile_budgets(expenses_by_category: Dict[str, Decimal], budgets: Iterable, period: str) -> List[BudgetReconciliation]:
    """One reconciliation per budget of ``period``; missing spend counts as zero."""
    return [
        reconcile_budget(budget, expenses_by_category.get(budget.category, _ZERO))
        for budget in budgets
        if budget.month == period
    ]


def build_reconciliation(transactions: Iterable, budgets: Iterable, period: str, tz: Optional[tzinfo] = None) -> List[BudgetReconciliation]:
    return reconcile_budgets(aggregate_expenses(transactions, period, tz), budgets, period)
