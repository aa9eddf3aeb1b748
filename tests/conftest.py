import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DISPLAY_TIMEZONE", "UTC")

import pytest
from fastapi.testclient import TestClient

import main
import routes
from fake_mongo import FakeCollection


@pytest.fixture
def transactions_collection():
    return FakeCollection('transactions')


@pytest.fixture
def budgets_collection():
    collection = FakeCollection('budgets')
    collection.unique_indexes['category_month_unique'] = ['category', 'month']
    return collection


@pytest.fixture
def client(transactions_collection, budgets_collection):
    main.app.dependency_overrides[routes.get_transactions_collection] = lambda: transactions_collection
    main.app.dependency_overrides[routes.get_budgets_collection] = lambda: budgets_collection
    main.limiter.reset()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
