"""Store factory.

Provides get_store() / set_store() to swap implementations:
- MemoryStore for development and testing
- DynamoDBStore for production (STORE_BACKEND=dynamodb)
"""

import threading

from shared.config import get_settings
from storage.port import Store

_current_store: Store | None = None
_lock = threading.Lock()


def get_store() -> Store:
    """Return the current store. Defaults to the backend named by STORE_BACKEND."""
    global _current_store
    if _current_store is None:
        with _lock:
            if _current_store is None:
                settings = get_settings()
                backend = settings.adapters.store
                if backend == "memory":
                    from storage.memory import MemoryStore

                    _current_store = MemoryStore(settings.runtime.table_prefix)
                elif backend == "dynamodb":
                    from storage.dynamodb import DynamoDBStore

                    _current_store = DynamoDBStore(settings.runtime.region, settings.runtime.table_prefix)
                else:
                    raise ValueError(f"Unknown store backend: {backend}")
    return _current_store


def set_store(store: Store) -> None:
    """Override the active store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_store() -> None:
    global _current_store
    _current_store = None
