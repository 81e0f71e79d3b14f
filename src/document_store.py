"""
Document store boundary for the survey repository.

The repository only talks to storage through the primitive operations defined by
``DocumentStore``.  Concrete stores (DynamoDB, in-memory) translate their own
failures into the error kinds below so callers never see backend-specific exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

SURVEYS = "surveys"
QUESTIONS = "questions"
# Submissions have always lived in the "users" collection.
SUBMISSIONS = "users"


class StoreError(Exception):
    """Base class for document store failures."""


class StoreReadError(StoreError):
    """A get, query or scan against the store failed."""


class StoreWriteError(StoreError):
    """An insert, update or delete against the store failed."""


class NotFoundError(StoreError):
    """A record addressed by id does not exist."""


class DocumentStore(Protocol):
    """Primitive async operations over named collections of documents."""

    async def insert(self, collection: str, fields: Dict[str, Any]) -> str:
        ...

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def query_equals(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        ...

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        ...

    async def delete_by_id(self, collection: str, doc_id: str) -> None:
        ...

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        ...
