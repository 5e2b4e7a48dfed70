"""Store-level exceptions.

These describe misuse of the store or exhausted retries. They are not part
of the user-facing taxonomy in :mod:`yappin.core.errors`.
"""


class StoreError(RuntimeError):
    """Base exception raised by store backends."""


class InvalidPathError(StoreError, ValueError):
    """Raised for illegal paths, keys or overlapping update sets."""


class TransactionAbortedError(StoreError):
    """Raised when a transaction keeps conflicting past the retry budget."""
