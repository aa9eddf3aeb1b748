"""Pydantic models for monthly category budgets"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.category import TransactionCategory

MONTH_PATTERN = r'^\d{4}-(0[1-9]|1[0-2])$'


class BudgetCreate(BaseModel):
    """
    Spending ceiling for one category in one month.
    At most one budget may exist per (category, month).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )

    category: TransactionCategory
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Budgeted amount for the month.")
    month: str = Field(..., pattern=MONTH_PATTERN, description="Month in YYYY-MM format.")
    notes: Optional[str] = None


class Budget(BudgetCreate):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BudgetResponse(BaseModel):
    budget: Budget


class BudgetListResponse(BaseModel):
    budgets: List[Budget]
