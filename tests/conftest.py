"""Pytest configuration and fixtures."""
import asyncio

import pytest

from document_store import StoreReadError, StoreWriteError
from memory_store import InMemoryStore
from survey_repo import SurveyRepo


class ScriptedStore(InMemoryStore):
    """
    In-memory store that records every call and can be told to fail.

    ``fail_delete`` / ``fail_query`` hold ids / collections whose operation raises.
    Deletes sleep briefly so concurrently issued ones overlap.
    """

    def __init__(self):
        super().__init__()
        self.calls = []
        self.fail_delete = set()
        self.fail_query = set()
        self.in_flight = 0
        self.max_in_flight = 0

    async def query_equals(self, collection, field, value):
        self.calls.append(("query", collection, value))
        if collection in self.fail_query:
            raise StoreReadError(f"query {collection} failed")
        return await super().query_equals(collection, field, value)

    async def delete_by_id(self, collection, doc_id):
        self.calls.append(("delete", collection, doc_id))
        if doc_id in self.fail_delete:
            raise StoreWriteError(f"delete {collection}/{doc_id} failed")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            await super().delete_by_id(collection, doc_id)
        finally:
            self.in_flight -= 1

    def deletes(self):
        return [(c, i) for kind, c, i in self.calls if kind == "delete"]


@pytest.fixture
def store():
    return ScriptedStore()


@pytest.fixture
def repo(store):
    return SurveyRepo(store)
