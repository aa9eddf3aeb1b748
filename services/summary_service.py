"""Dashboard summaries computed from a list of transactions."""
import logging
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from models.summary import CategoryTotal, MonthlyExpenses, TransactionSummary
from models.transaction import Transaction
from services.reconciliation import parse_period, period_key, shift_period, to_decimal

logger = logging.getLogger(__name__)

MAX_MONTHS = 24


def _latest(transactions: List[Transaction]) -> Optional[Transaction]:
    if not transactions:
        return None
    return max(transactions, key=lambda t: t.date)


def summarize_transactions(transactions: Iterable[Transaction]) -> TransactionSummary:
    """Totals shown on the dashboard cards."""
    transactions = list(transactions)
    total_expenses = Decimal('0')
    total_income = Decimal('0')
    expense_count = 0
    income_count = 0
    by_category: Dict[str, Decimal] = {}

    for transaction in transactions:
        amount = to_decimal(transaction.amount)
        if transaction.is_expense:
            total_expenses += amount
            expense_count += 1
            by_category[transaction.category] = by_category.get(transaction.category, Decimal('0')) + amount
        else:
            total_income += amount
            income_count += 1

    top_category = None
    top_amount = Decimal('0')
    for category, amount in by_category.items():
        if amount > top_amount:
            top_category, top_amount = category, amount

    return TransactionSummary(
        total_expenses=float(total_expenses),
        total_income=float(total_income),
        net_balance=float(total_income - total_expenses),
        expense_count=expense_count,
        income_count=income_count,
        top_expense_category=top_category,
        top_expense_amount=float(top_amount),
        most_recent_transaction=_latest(transactions),
        category_summary={category: float(amount) for category, amount in by_category.items()},
    )


def category_breakdown(transactions: Iterable[Transaction], expenses_only: bool = True) -> List[CategoryTotal]:
    """Per-category totals, largest first."""
    totals: Dict[str, Decimal] = {}
    for transaction in transactions:
        if expenses_only and not transaction.is_expense:
            continue
        totals[transaction.category] = totals.get(transaction.category, Decimal('0')) + to_decimal(transaction.amount)
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(category=category, total=float(total)) for category, total in ordered]


def monthly_expenses(
    transactions: Iterable[Transaction],
    months: int = 6,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> List[MonthlyExpenses]:
    """Expense totals for the last ``months`` months, oldest first.

    Months without expenses are still listed with a total of zero.
    """
    if not 1 <= months <= MAX_MONTHS:
        raise ValueError(f"months must be between 1 and {MAX_MONTHS}.")
    if today is None:
        today = datetime.now(tz or timezone.utc)
    current = period_key(today, tz)
    periods = [shift_period(current, -offset) for offset in range(months - 1, -1, -1)]
    totals = {period: Decimal('0') for period in periods}

    for transaction in transactions:
        if not transaction.is_expense:
            continue
        key = period_key(transaction.date, tz)
        if key in totals:
            totals[key] += to_decimal(transaction.amount)

    logger.debug(f"Monthly expenses computed for {periods[0]}..{periods[-1]}")
    result = []
    for period in periods:
        year, month = parse_period(period)
        result.append(MonthlyExpenses(
            month=period,
            label=date(year, month, 1).strftime('%b %Y'),
            expenses=float(totals[period]),
        ))
    return result
