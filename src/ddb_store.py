"""
DynamoDB document store.

Each logical collection maps to one DynamoDB table whose partition key is ``id``.
Equality queries on a field go through a global secondary index when one is configured
for that (collection, field) pair and fall back to a filtered scan otherwise.  boto3 is
blocking, so every call runs in a worker thread with its own boto3 resource; concurrent
deletes issued by the repository overlap their round trips.
"""

from __future__ import annotations

import asyncio
import os
import threading
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from document_store import (
    QUESTIONS,
    SUBMISSIONS,
    SURVEYS,
    NotFoundError,
    StoreError,
    StoreReadError,
    StoreWriteError,
)


@dataclass
class StoreConfig:
    """Table and index names plus connection settings for the DynamoDB store."""

    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    table_names: Dict[str, str] = field(default_factory=lambda: {
        SURVEYS: "surveys",
        QUESTIONS: "questions",
        SUBMISSIONS: "users",
    })
    # (collection, field) -> GSI name
    indexes: Dict[Tuple[str, str], str] = field(default_factory=lambda: {
        (QUESTIONS, "surveyId"): "surveyId-index",
        (SUBMISSIONS, "surveyId"): "surveyId-index",
    })

    @classmethod
    def from_env(cls) -> "StoreConfig":
        survey_index = os.environ.get("SURVEY_ID_INDEX", "surveyId-index")
        return cls(
            region=os.environ.get("AWS_REGION", "us-east-1"),
            endpoint_url=os.environ.get("DYNAMODB_ENDPOINT_URL") or None,
            table_names={
                SURVEYS: os.environ.get("SURVEYS_TABLE", "surveys"),
                QUESTIONS: os.environ.get("QUESTIONS_TABLE", "questions"),
                SUBMISSIONS: os.environ.get("SUBMISSIONS_TABLE", "users"),
            },
            indexes={
                (QUESTIONS, "surveyId"): survey_index,
                (SUBMISSIONS, "surveyId"): survey_index,
            },
        )


def to_ddb(value: Any) -> Any:
    """Convert floats (recursively) to Decimal, which is what DynamoDB accepts."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_ddb(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_ddb(v) for v in value]
    return value


def from_ddb(value: Any) -> Any:
    """Convert Decimal values read from DynamoDB back to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_ddb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_ddb(v) for v in value]
    return value


ConditionOverrides = Dict[str, Type[StoreError]]


class DynamoDocumentStore:
    """
    Document store backed by one DynamoDB table per collection.

    boto3 resources are not thread-safe, so each worker thread builds its own resource
    (from its own session) the first time it touches the store.
    """

    def __init__(self, config: Optional[StoreConfig] = None, resource_factory: Optional[Callable[[], Any]] = None) -> None:
        self.config = config or StoreConfig()
        self.resource_factory = resource_factory or self._new_resource
        self._local = threading.local()

    @classmethod
    def from_env(cls) -> "DynamoDocumentStore":
        return cls(StoreConfig.from_env())

    def _new_resource(self) -> Any:
        return boto3.session.Session().resource(
            "dynamodb",
            region_name=self.config.region,
            endpoint_url=self.config.endpoint_url,
        )

    def table(self, collection: str) -> Any:
        """Return this thread's Table object for ``collection``."""
        tables = getattr(self._local, "tables", None)
        if tables is None:
            self._local.resource = self.resource_factory()
            tables = self._local.tables = {}
        if collection not in tables:
            name = self.config.table_names.get(collection, collection)
            tables[collection] = self._local.resource.Table(name)
        return tables[collection]

    async def _call(
        self,
        error_cls: Type[StoreError],
        action: str,
        collection: str,
        method: str,
        overrides: Optional[ConditionOverrides] = None,
        **kwargs: Any,
    ) -> Any:
        """
        Run ``Table.<method>(**kwargs)`` for ``collection`` in a worker thread.

        ``ClientError`` codes listed in ``overrides`` raise the mapped error; any other
        boto failure raises ``error_cls``.
        """
        def run() -> Any:
            return getattr(self.table(collection), method)(**kwargs)

        try:
            return await asyncio.to_thread(run)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            raise (overrides or {}).get(code, error_cls)(f"{action} failed: {e}") from e
        except BotoCoreError as e:
            raise error_cls(f"{action} failed: {e}") from e

    async def insert(self, collection: str, fields: Dict[str, Any]) -> str:
        """
        Insert a new document and return its generated id.

        Raises:
            StoreWriteError: If DynamoDB rejects the write.
        """
        doc_id = uuid.uuid4().hex
        item = to_ddb(dict(fields))
        item["id"] = doc_id
        await self._call(
            StoreWriteError,
            f"put {collection}",
            collection,
            "put_item",
            Item=item,
            ConditionExpression="attribute_not_exists(id)",
        )
        return doc_id

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        resp = await self._call(
            StoreReadError,
            f"get {collection}/{doc_id}",
            collection,
            "get_item",
            Key={"id": doc_id},
        )
        item = resp.get("Item")
        return from_ddb(item) if item is not None else None

    async def query_equals(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """
        Return every document in ``collection`` whose ``field`` equals ``value``.

        Uses the configured GSI for the field if there is one, otherwise scans.
        Follows ``LastEvaluatedKey`` until all pages are read.
        """
        index_name = self.config.indexes.get((collection, field))
        if index_name:
            method = "query"
            params: Dict[str, Any] = {
                "IndexName": index_name,
                "KeyConditionExpression": Key(field).eq(to_ddb(value)),
            }
        else:
            method = "scan"
            params = {"FilterExpression": Attr(field).eq(to_ddb(value))}
        return await self._paginate(collection, method, params)

    async def list_all(self, collection: str) -> List[Dict[str, Any]]:
        return await self._paginate(collection, "scan", {})

    async def _paginate(self, collection: str, method: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        while True:
            resp = await self._call(StoreReadError, f"read {collection}", collection, method, **params)
            items.extend(from_ddb(item) for item in resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            params = dict(params, ExclusiveStartKey=last_key)

    async def delete_by_id(self, collection: str, doc_id: str) -> None:
        # DynamoDB treats deleting a missing key as success.
        await self._call(
            StoreWriteError,
            f"delete {collection}/{doc_id}",
            collection,
            "delete_item",
            Key={"id": doc_id},
        )

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """
        Set ``fields`` on an existing document.

        Raises:
            NotFoundError: If no document with ``doc_id`` exists.
            StoreWriteError: For any other DynamoDB failure.
        """
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments: List[str] = []
        for i, (name, value) in enumerate(fields.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = to_ddb(value)
            assignments.append(f"#f{i} = :v{i}")
        await self._call(
            StoreWriteError,
            f"update {collection}/{doc_id}",
            collection,
            "update_item",
            overrides={"ConditionalCheckFailedException": NotFoundError},
            Key={"id": doc_id},
            UpdateExpression="SET " + ", ".join(assignments),
            ConditionExpression="attribute_exists(id)",
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )
