import asyncio

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from fake_mongo import FakeCollection
from utils import database as database_module
from utils.database import MongoDatabase


class _Admin:
    def __init__(self, reachable):
        self.reachable = reachable

    async def command(self, name):
        if not self.reachable:
            raise ServerSelectionTimeoutError("no servers found")
        return {'ok': 1}


class _Db:
    def __init__(self, client):
        self.client = client
        self.collections = {}

    def get_collection(self, name):
        return self.collections.setdefault(name, FakeCollection(name))


class _Client:
    instances = []

    def __init__(self, uri, reachable=True, **kwargs):
        self.uri = uri
        self.kwargs = kwargs
        self.admin = _Admin(reachable)
        self.closed = False
        self.db = _Db(self)
        _Client.instances.append(self)

    def __getitem__(self, name):
        return self.db

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def _reset_clients():
    _Client.instances = []


def test_connects_once_and_creates_budget_index(monkeypatch):
    monkeypatch.setattr(database_module, 'AsyncIOMotorClient', _Client)
    database = MongoDatabase('mongodb://example:27017', 'finance_tracker')

    async def scenario():
        first = await database.connect()
        second = await database.connect()
        collection = await database.get_collection('budgets')
        return first, second, collection

    first, second, collection = asyncio.run(scenario())

    assert first is second
    assert len(_Client.instances) == 1
    assert _Client.instances[0].kwargs['tz_aware'] is True
    assert collection.unique_indexes == {'category_month_unique': ['category', 'month']}
    assert database.is_connected


def test_unreachable_server_raises_connection_error(monkeypatch):
    monkeypatch.setattr(database_module, 'AsyncIOMotorClient', lambda uri, **kw: _Client(uri, reachable=False, **kw))
    database = MongoDatabase('mongodb://example:27017', 'finance_tracker')

    with pytest.raises(ConnectionError):
        asyncio.run(database.connect())

    assert not database.is_connected
    assert _Client.instances[0].closed
    assert asyncio.run(database.ping()) is False


def test_close_releases_client(monkeypatch):
    monkeypatch.setattr(database_module, 'AsyncIOMotorClient', _Client)
    database = MongoDatabase('mongodb://example:27017', 'finance_tracker')
    asyncio.run(database.connect())

    database.close()
    database.close()

    assert _Client.instances[0].closed
    assert not database.is_connected
