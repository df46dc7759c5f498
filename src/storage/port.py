"""Store port — typed access to the key-value table family.

Every table is keyed on ``id``. Backends share the item codec defined here
so that absent values, opaque JSON fields and optimistic-concurrency
conditions behave identically in memory and in DynamoDB.
"""

import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from shared.errors import StorageFailure


class Table(Enum):
    PRODUCTS = "products"
    ORDERS = "orders"
    USERS = "users"
    ACTIVITY_LOG = "activity-log"
    TICKETS = "tickets"
    REVIEWS = "reviews"


# (table, attribute) -> secondary index name
INDEXES: dict[tuple[Table, str], str] = {
    (Table.ORDERS, "userId"): "userId-index",
    (Table.USERS, "email"): "email-index",
    (Table.PRODUCTS, "featured"): "featured-index",
}

# Fields persisted as JSON text rather than native structures.
OPAQUE_FIELDS: dict[Table, frozenset[str]] = {
    Table.TICKETS: frozenset({"messages"}),
    Table.ACTIVITY_LOG: frozenset({"details"}),
}


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------
class ItemNotFound(ObjectNotFoundError):
    def __init__(self, table: Table, key: str):
        self.table = table
        self.key = key
        super().__init__({"_entity": [f"{table.value} item {key} not found"]})


class PreconditionFailed(InvalidOperationError):
    """The optimistic-concurrency condition on a write did not hold."""

    def __init__(self, table: Table, key: str, condition: "Condition | None" = None):
        self.table = table
        self.key = key
        self.condition = condition
        super().__init__({"_entity": [f"{table.value} item {key} was modified concurrently"]})


class MalformedRequest(ValidationError):
    pass


class BackendError(StorageFailure):
    pass


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Condition:
    """Single-attribute precondition for a conditional write."""

    attribute: str
    kind: str
    value: Any = None

    @classmethod
    def equals(cls, attribute: str, value: Any) -> "Condition":
        return cls(attribute, "equals", value)

    @classmethod
    def exists(cls, attribute: str = "id") -> "Condition":
        return cls(attribute, "exists")

    @classmethod
    def not_exists(cls, attribute: str = "id") -> "Condition":
        return cls(attribute, "not_exists")

    def holds(self, item: dict | None) -> bool:
        present = item is not None and self.attribute in item
        if self.kind == "exists":
            return present
        if self.kind == "not_exists":
            return not present
        return present and item[self.attribute] == self.value


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------
def strip_absent(value: Any) -> Any:
    """Drop ``None`` values from mappings, recursively."""
    if isinstance(value, dict):
        return {k: strip_absent(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_absent(v) for v in value if v is not None]
    return value


def _json_default(value: Any):
    # Decimal and other numerics coming back from the backend
    return float(value) if hasattr(value, "as_tuple") else str(value)


def encode_item(table: Table, item: dict) -> dict:
    encoded = strip_absent(copy.deepcopy(item))
    for name in OPAQUE_FIELDS.get(table, ()):
        if name in encoded and not isinstance(encoded[name], str):
            encoded[name] = json.dumps(encoded[name], default=_json_default)
    return encoded


def decode_item(table: Table, item: dict) -> dict:
    decoded = dict(item)
    for name in OPAQUE_FIELDS.get(table, ()):
        raw = decoded.get(name)
        if isinstance(raw, str):
            try:
                decoded[name] = json.loads(raw)
            except ValueError:
                pass  # legacy rows carry plain text
    return decoded


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------
class Store(ABC):
    """Abstract single-item key-value store."""

    def __init__(self, table_prefix: str = "codebook") -> None:
        self.table_prefix = table_prefix

    def table_name(self, table: Table) -> str:
        return f"{self.table_prefix}-{table.value}"

    @abstractmethod
    def get(self, table: Table, key: str) -> dict:
        """Return the item or raise ``ItemNotFound``."""
        ...

    def find(self, table: Table, key: str) -> dict | None:
        try:
            return self.get(table, key)
        except ItemNotFound:
            return None

    @abstractmethod
    def put(self, table: Table, item: dict, if_not_exists: bool = False) -> dict:
        """Write a whole item. With ``if_not_exists`` an existing ``id`` fails the write."""
        ...

    @abstractmethod
    def update(
        self,
        table: Table,
        key: str,
        changes: dict | None = None,
        increments: dict | None = None,
        removals: tuple[str, ...] = (),
        condition: Condition | None = None,
    ) -> dict:
        """Partially update an item and return its post-image.

        ``changes`` are assigned, ``increments`` are added to the stored
        numbers, ``removals`` are deleted. ``None`` values in ``changes`` are
        ignored.
        """
        ...

    @abstractmethod
    def delete(self, table: Table, key: str, condition: Condition | None = None) -> None: ...

    @abstractmethod
    def query_by_index(self, table: Table, attribute: str, value: Any) -> list[dict]:
        """Items whose ``attribute`` equals ``value``, via the secondary index when it exists."""
        ...

    @abstractmethod
    def scan(self, table: Table, filters: dict | None = None) -> list[dict]: ...
