"""Derived budget-vs-actual records. Never persisted."""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

BudgetStatus = Literal['under', 'near-limit', 'over']


class BudgetReconciliation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    category: str
    period: str
    budgeted: float
    actual: float
    remaining: float
    over_budget: float
    percent_used: int
    status: BudgetStatus


class ReconciliationResponse(BaseModel):
    month: str
    reconciliations: List[BudgetReconciliation]
