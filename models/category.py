"""Fixed set of transaction and budget categories"""
from typing import Literal, get_args

TransactionCategory = Literal[
    'Food & Dining',
    'Shopping',
    'Housing',
    'Transportation',
    'Entertainment',
    'Healthcare',
    'Education',
    'Travel',
    'Personal Care',
    'Utilities',
    'Subscriptions',
    'Gifts & Donations',
    'Income',
    'Investments',
    'Other',
]

TRANSACTION_CATEGORIES = get_args(TransactionCategory)
