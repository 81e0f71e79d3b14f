"""
In-memory document store.

Implements the same primitive operations as the DynamoDB store over plain dictionaries.
Used to run the repository without AWS, mostly from tests.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List, Optional

from document_store import NotFoundError


class InMemoryStore:
    """Document store keeping every collection in a dict keyed by id."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def insert(self, collection: str, fields: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        doc = copy.deepcopy(fields)
        doc["id"] = doc_id
        self._docs(collection)[doc_id] = doc
        return doc_id

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._docs(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def query_equals(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(doc)
            for doc in self._docs(collection).values()
            if field in doc and doc[field] == value
        ]

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._docs(collection).values()]

    async def delete_by_id(self, collection: str, doc_id: str) -> None:
        self._docs(collection).pop(doc_id, None)

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        doc = self._docs(collection).get(doc_id)
        if doc is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist")
        doc.update(copy.deepcopy(fields))

    def dump(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Return a deep copy of every collection, keyed by collection then id."""
        return {name: copy.deepcopy(docs) for name, docs in self._collections.items() if docs}
