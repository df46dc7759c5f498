"""In-memory store used in development and tests.

Honours the same conditional-write semantics as DynamoDB. All state lives
behind a single lock; callers receive deep copies so nothing outside the
store can mutate a stored item.
"""

import copy
import threading
from collections import defaultdict
from typing import Any

import structlog

from storage.port import (
    INDEXES,
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


class MemoryStore(Store):
    def __init__(self, table_prefix: str = "codebook") -> None:
        super().__init__(table_prefix)
        self._tables: dict[Table, dict[str, dict]] = defaultdict(dict)
        self._lock = threading.Lock()
        # Simulates a cold boot where a GSI has not been created yet.
        self.missing_indexes: set[str] = set()
        self.writes: int = 0

    def get(self, table: Table, key: str) -> dict:
        with self._lock:
            item = self._tables[table].get(key)
            if item is None:
                raise ItemNotFound(table, key)
            return decode_item(table, copy.deepcopy(item))

    def put(self, table: Table, item: dict, if_not_exists: bool = False) -> dict:
        if not item.get("id"):
            raise MalformedRequest({"id": ["Item key is required"]})
        encoded = encode_item(table, item)
        with self._lock:
            rows = self._tables[table]
            if if_not_exists and encoded["id"] in rows:
                raise PreconditionFailed(table, encoded["id"], Condition.not_exists())
            rows[encoded["id"]] = encoded
            self.writes += 1
        return decode_item(table, copy.deepcopy(encoded))

    def update(
        self,
        table: Table,
        key: str,
        changes: dict | None = None,
        increments: dict | None = None,
        removals: tuple[str, ...] = (),
        condition: Condition | None = None,
    ) -> dict:
        changes = strip_absent(changes or {})
        increments = increments or {}
        if "id" in changes or "id" in increments:
            raise MalformedRequest({"id": ["Item key cannot be updated"]})
        if not (changes or increments or removals):
            raise MalformedRequest({"_entity": ["Update has no changes"]})

        with self._lock:
            rows = self._tables[table]
            current = rows.get(key)
            if condition is not None and not condition.holds(current):
                raise PreconditionFailed(table, key, condition)

            updated = copy.deepcopy(current) if current is not None else {"id": key}
            for name, delta in increments.items():
                if name not in updated:
                    raise MalformedRequest({name: ["Cannot increment an absent attribute"]})
                updated[name] = updated[name] + delta
            updated.update(encode_item(table, changes))
            for name in removals:
                updated.pop(name, None)

            rows[key] = updated
            self.writes += 1
            return decode_item(table, copy.deepcopy(updated))

    def delete(self, table: Table, key: str, condition: Condition | None = None) -> None:
        with self._lock:
            rows = self._tables[table]
            if condition is not None and not condition.holds(rows.get(key)):
                raise PreconditionFailed(table, key, condition)
            rows.pop(key, None)

    def query_by_index(self, table: Table, attribute: str, value: Any) -> list[dict]:
        index_name = INDEXES.get((table, attribute))
        if index_name is None or index_name in self.missing_indexes:
            logger.warning(
                "index_unavailable_falling_back_to_scan",
                table=table.value,
                attribute=attribute,
                index=index_name,
            )
        return self.scan(table, {attribute: value})

    def scan(self, table: Table, filters: dict | None = None) -> list[dict]:
        filters = filters or {}
        with self._lock:
            rows = list(self._tables[table].values())
        return [
            decode_item(table, copy.deepcopy(row))
            for row in rows
            if all(row.get(name) == expected for name, expected in filters.items())
        ]

    def reset(self) -> None:
        """Drop every table's contents (useful between tests)."""
        with self._lock:
            self._tables.clear()
            self.missing_indexes.clear()
            self.writes = 0
