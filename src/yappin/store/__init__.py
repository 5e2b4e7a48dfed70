"""Hierarchical key-value store and its backends."""

from __future__ import annotations

from yappin.core.settings import Settings
from yappin.store.base import Increment, Store, increment
from yappin.store.errors import InvalidPathError, StoreError, TransactionAbortedError
from yappin.store.memory import MemoryStore
from yappin.store.paths import join

__all__ = [
    "Increment",
    "InvalidPathError",
    "MemoryStore",
    "Store",
    "StoreError",
    "TransactionAbortedError",
    "create_store",
    "increment",
    "join",
]


def create_store(config: Settings) -> Store:
    """Build the store backend selected by ``STORE_BACKEND``."""
    options = {
        "max_retries": config.store_transaction_max_retries,
        "latency": config.store_simulated_latency,
    }
    backend = config.store_backend.lower()
    if backend == "memory":
        return MemoryStore(**options)
    if backend == "sql":
        from yappin.db.session import SessionLocal
        from yappin.store.sql import SqlStore

        return SqlStore(SessionLocal, **options)
    if backend == "firebase":
        if not config.firebase_database_url:
            raise ValueError("FIREBASE_DATABASE_URL is required for the firebase backend")
        from yappin.store.firebase import FirebaseStore

        return FirebaseStore(
            config.firebase_database_url,
            config.firebase_credentials_path,
            max_retries=config.store_transaction_max_retries,
        )
    raise ValueError(f"Unknown store backend: {config.store_backend!r}")
