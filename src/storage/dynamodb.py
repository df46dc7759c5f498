"""DynamoDB-backed store.

Uses the boto3 resource API. Every attribute name in a hand-built
expression goes through a ``#n`` placeholder so reserved words (``status``,
``name``, ``items``) never need special casing. Secondary-index support is
discovered with ``DescribeTable`` and cached; a missing index degrades to
a filtered scan.
"""

import threading
import time
from decimal import Decimal
from typing import Any

import boto3
import structlog
from boto3.dynamodb.conditions import Attr, Key
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from shared.config import STORE_TIMEOUT
from storage.port import (
    INDEXES,
    BackendError,
    Condition,
    ItemNotFound,
    MalformedRequest,
    PreconditionFailed,
    Store,
    Table,
    decode_item,
    encode_item,
    strip_absent,
)

logger = structlog.get_logger(__name__)

# How long a negative index lookup is trusted before DescribeTable is asked again.
INDEX_RECHECK_SECONDS = 60.0


def to_dynamo(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else value
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def _condition_expression(condition: Condition, names: dict, values: dict) -> str:
    names["#c0"] = condition.attribute
    if condition.kind == "exists":
        return "attribute_exists(#c0)"
    if condition.kind == "not_exists":
        return "attribute_not_exists(#c0)"
    values[":c0"] = to_dynamo(condition.value)
    return "#c0 = :c0"


class DynamoDBStore(Store):
    def __init__(self, region: str, table_prefix: str = "codebook", resource=None) -> None:
        super().__init__(table_prefix)
        self._resource = resource or boto3.resource(
            "dynamodb",
            region_name=region,
            config=Config(
                connect_timeout=STORE_TIMEOUT,
                read_timeout=STORE_TIMEOUT,
                retries={"max_attempts": 2, "mode": "standard"},
            ),
        )
        self._index_cache: dict[str, tuple[bool, float]] = {}
        self._index_lock = threading.Lock()

    @property
    def client(self):
        return self._resource.meta.client

    def _table(self, table: Table):
        return self._resource.Table(self.table_name(table))

    def _translate(self, exc: Exception, table: Table, key: str | None, condition: Condition | None = None):
        if isinstance(exc, ClientError):
            code = exc.response.get("Error", {}).get("Code", "")
            message = exc.response.get("Error", {}).get("Message", str(exc))
            if code == "ConditionalCheckFailedException":
                return PreconditionFailed(table, key or "", condition)
            if code == "ValidationException":
                return MalformedRequest({"_entity": [message]})
            logger.error("dynamodb_client_error", table=table.value, key=key, code=code, message=message)
            return BackendError(f"Storage backend error: {code}", {"code": code})
        logger.error("dynamodb_transport_error", table=table.value, key=key, error=str(exc))
        return BackendError("Storage backend unreachable")

    # -------------------------------------------------------------------
    # Single-item operations
    # -------------------------------------------------------------------
    def get(self, table: Table, key: str) -> dict:
        try:
            response = self._table(table).get_item(Key={"id": key}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, table, key) from exc
        item = response.get("Item")
        if item is None:
            raise ItemNotFound(table, key)
        return decode_item(table, from_dynamo(item))

    def put(self, table: Table, item: dict, if_not_exists: bool = False) -> dict:
        if not item.get("id"):
            raise MalformedRequest({"id": ["Item key is required"]})
        encoded = encode_item(table, item)
        kwargs: dict[str, Any] = {"Item": to_dynamo(encoded)}
        condition = None
        if if_not_exists:
            condition = Condition.not_exists()
            kwargs["ConditionExpression"] = "attribute_not_exists(#id)"
            kwargs["ExpressionAttributeNames"] = {"#id": "id"}
        try:
            self._table(table).put_item(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, table, encoded["id"], condition) from exc
        return decode_item(table, encoded)

    def update(
        self,
        table: Table,
        key: str,
        changes: dict | None = None,
        increments: dict | None = None,
        removals: tuple[str, ...] = (),
        condition: Condition | None = None,
    ) -> dict:
        changes = encode_item(table, strip_absent(changes or {}))
        increments = increments or {}
        if "id" in changes or "id" in increments:
            raise MalformedRequest({"id": ["Item key cannot be updated"]})
        if not (changes or increments or removals):
            raise MalformedRequest({"_entity": ["Update has no changes"]})

        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        assignments = []
        for i, (name, value) in enumerate(changes.items()):
            names[f"#s{i}"] = name
            values[f":s{i}"] = to_dynamo(value)
            assignments.append(f"#s{i} = :s{i}")
        for i, (name, delta) in enumerate(increments.items()):
            names[f"#i{i}"] = name
            values[f":i{i}"] = to_dynamo(delta)
            assignments.append(f"#i{i} = #i{i} + :i{i}")

        expression = ""
        if assignments:
            expression = "SET " + ", ".join(assignments)
        if removals:
            removed = []
            for i, name in enumerate(removals):
                names[f"#r{i}"] = name
                removed.append(f"#r{i}")
            expression = f"{expression} REMOVE {', '.join(removed)}".strip()

        kwargs: dict[str, Any] = {
            "Key": {"id": key},
            "UpdateExpression": expression,
            "ExpressionAttributeNames": names,
            "ReturnValues": "ALL_NEW",
        }
        if condition is not None:
            kwargs["ConditionExpression"] = _condition_expression(condition, names, values)
        if values:
            kwargs["ExpressionAttributeValues"] = values

        try:
            response = self._table(table).update_item(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, table, key, condition) from exc
        return decode_item(table, from_dynamo(response.get("Attributes", {})))

    def delete(self, table: Table, key: str, condition: Condition | None = None) -> None:
        kwargs: dict[str, Any] = {"Key": {"id": key}}
        if condition is not None:
            names: dict[str, str] = {}
            values: dict[str, Any] = {}
            kwargs["ConditionExpression"] = _condition_expression(condition, names, values)
            kwargs["ExpressionAttributeNames"] = names
            if values:
                kwargs["ExpressionAttributeValues"] = values
        try:
            self._table(table).delete_item(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, table, key, condition) from exc

    # -------------------------------------------------------------------
    # Multi-item reads
    # -------------------------------------------------------------------
    def index_available(self, table: Table, index_name: str) -> bool:
        """Whether ``index_name`` exists and is ACTIVE on ``table``."""
        cache_key = f"{self.table_name(table)}/{index_name}"
        with self._index_lock:
            cached = self._index_cache.get(cache_key)
            if cached is not None:
                available, checked_at = cached
                if available or time.monotonic() - checked_at < INDEX_RECHECK_SECONDS:
                    return available

        try:
            description = self.client.describe_table(TableName=self.table_name(table))["Table"]
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, table, None) from exc
        available = any(
            index.get("IndexName") == index_name and index.get("IndexStatus", "ACTIVE") == "ACTIVE"
            for index in description.get("GlobalSecondaryIndexes", [])
        )
        with self._index_lock:
            self._index_cache[cache_key] = (available, time.monotonic())
        return available

    def _collect(self, operation, table: Table, **kwargs) -> list[dict]:
        items: list[dict] = []
        while True:
            try:
                response = operation(**kwargs)
            except (ClientError, BotoCoreError) as exc:
                raise self._translate(exc, table, None) from exc
            items.extend(decode_item(table, from_dynamo(item)) for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def query_by_index(self, table: Table, attribute: str, value: Any) -> list[dict]:
        index_name = INDEXES.get((table, attribute))
        if index_name is not None and self.index_available(table, index_name):
            return self._collect(
                self._table(table).query,
                table,
                IndexName=index_name,
                KeyConditionExpression=Key(attribute).eq(to_dynamo(value)),
            )

        logger.warning(
            "index_unavailable_falling_back_to_scan",
            table=self.table_name(table),
            attribute=attribute,
            index=index_name,
        )
        return self.scan(table, {attribute: value})

    def scan(self, table: Table, filters: dict | None = None) -> list[dict]:
        kwargs: dict[str, Any] = {}
        if filters:
            expression = None
            for name, expected in filters.items():
                clause = Attr(name).eq(to_dynamo(expected))
                expression = clause if expression is None else expression & clause
            kwargs["FilterExpression"] = expression
        return self._collect(self._table(table).scan, table, **kwargs)
