"""Shared test fixtures.

The fakes below stand in for a motor client/database so the app can be
exercised without a running MongoDB server. They implement only the calls
the application makes.
"""

from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import ReturnDocument

from mongo_connection import MongoConnection
from server import create_app


def _matches(doc, query):
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    async def to_list(self, length=None):
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    def __init__(self):
        self.docs = []

    def find(self, query=None):
        return FakeCursor([dict(doc) for doc in self.docs if _matches(doc, query or {})])

    async def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return dict(doc)
        return None

    async def insert_one(self, document):
        doc = dict(document)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for doc in self.docs:
            if _matches(doc, query):
                before = dict(doc)
                doc.update(update["$set"])
                return dict(doc) if return_document == ReturnDocument.AFTER else before
        return None

    async def find_one_and_delete(self, query):
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                return self.docs.pop(index)
        return None


class FakeDatabase:
    def __init__(self, name="todo_test"):
        self.name = name
        self.todos = FakeCollection()


class FakeAdmin:
    def __init__(self, client):
        self.client = client

    async def command(self, name):
        self.client.commands.append(name)
        if self.client.ping_error is not None:
            raise self.client.ping_error
        return {"ok": 1.0}


class FakeClient:
    """Records how it was built and which admin commands it received."""

    ping_error = None

    def __init__(self, uri, **options):
        self.uri = uri
        self.options = options
        self.commands = []
        self.closed = False
        self.admin = FakeAdmin(self)
        self.database = FakeDatabase()

    def get_default_database(self):
        return self.database

    def close(self):
        self.closed = True


@pytest.fixture
def fake_connection():
    client = FakeClient("mongodb://localhost/todo_test")
    return MongoConnection(client, client.database)


@pytest.fixture
def app(fake_connection):
    return create_app(fake_connection)


@pytest.fixture
def client(app):
    return TestClient(app)
