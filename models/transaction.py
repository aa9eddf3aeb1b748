"""Pydantic models for Transaction data"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.category import TransactionCategory


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionBase(BaseModel):
    """
    Represents a single expense or income transaction.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )

    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Transaction amount, always positive.")
    date: datetime = Field(default_factory=_utcnow)
    description: str = Field(..., min_length=1)
    category: TransactionCategory = 'Other'
    is_expense: bool = Field(True, description="True for outflows, False for income.")


class TransactionCreate(TransactionBase):
    pass


class TransactionUpdate(BaseModel):
    """Partial update; only the fields that are sent are changed."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    date: Optional[datetime] = None
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[TransactionCategory] = None
    is_expense: Optional[bool] = None


class Transaction(TransactionBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
