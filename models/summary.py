"""Response models for the dashboard summaries"""
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.transaction import Transaction


class TransactionSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_expenses: float
    total_income: float
    net_balance: float
    expense_count: int
    income_count: int
    top_expense_category: Optional[str] = None
    top_expense_amount: float = 0.0
    most_recent_transaction: Optional[Transaction] = None
    category_summary: Dict[str, float]


class CategoryTotal(BaseModel):
    category: str
    total: float


class MonthlyExpenses(BaseModel):
    month: str
    label: str
    expenses: float
