"""Firebase Realtime Database store.

Requires the optional ``firebase`` extra. The Admin SDK is synchronous, so
every call is pushed onto a small thread pool to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import firebase_admin
from firebase_admin import credentials, db

from yappin.store import paths
from yappin.store.base import Increment, Store, TransactionFn, normalize, plan_update
from yappin.store.errors import TransactionAbortedError

logger = logging.getLogger(__name__)


def server_increment(delta: int | float) -> dict[str, Any]:
    """Return the server-value placeholder for an atomic increment."""
    return {".sv": {"increment": delta}}


class FirebaseStore(Store):
    """Store implementation delegating to ``firebase_admin.db`` references."""

    def __init__(
        self,
        database_url: str,
        credentials_path: str | None = None,
        *,
        app_name: str = "yappin",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.database_url = database_url
        self.credentials_path = credentials_path
        self.app_name = app_name
        self._app: firebase_admin.App | None = None
        self._executor = ThreadPoolExecutor(max_workers=10, thread_name_prefix="firebase")

    def initialize(self) -> None:
        """Initialise the Firebase app if it has not been set up yet."""
        if self._app is not None:
            return
        if self.credentials_path:
            cred = credentials.Certificate(self.credentials_path)
        else:
            cred = credentials.ApplicationDefault()
        self._app = firebase_admin.initialize_app(
            cred,
            {"databaseURL": self.database_url},
            name=self.app_name,
        )
        logger.info("Firebase store initialised for %s", self.database_url)

    def _ref(self, path: str) -> db.Reference:
        self.initialize()
        normalized = "/".join(paths.split(path))
        return db.reference(f"/{normalized}", app=self._app)

    async def _run_sync(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))

    async def get(self, path: str) -> Any:
        return await self._run_sync(self._ref(path).get)

    async def set(self, path: str, value: Any) -> None:
        ref = self._ref(path)
        value = normalize(value)
        if value is None:
            await self._run_sync(ref.delete)
        else:
            await self._run_sync(ref.set, value)

    async def update(self, updates: Mapping[str, Any]) -> None:
        payload: dict[str, Any] = {}
        for segments, value in plan_update(updates):
            if isinstance(value, Increment):
                value = server_increment(value.delta)
            payload["/".join(segments)] = value
        await self._run_sync(self._ref("").update, payload)

    async def transaction(self, path: str, fn: TransactionFn) -> Any:
        ref = self._ref(path)

        def _apply(current: Any) -> Any:
            return normalize(fn(current))

        try:
            return await self._run_sync(ref.transaction, _apply)
        except db.TransactionAbortedError as err:
            logger.warning("Transaction on %s aborted by Firebase", path)
            raise TransactionAbortedError(str(err)) from err

    async def close(self) -> None:
        self._executor.shutdown(wait=False)
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
