"""SQLite database handle backed by a SQLAlchemy connection pool."""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import event
from sqlalchemy import exc as sa_exc
from sqlalchemy.pool import QueuePool

from aspectql.config import QueryConfig
from aspectql.errors import BackendFailureError, InvalidArgumentError, QueryTimeoutError

MEMORY = ":memory:"

# Longest wait for a pooled connection in the current context, if capped.
_checkout_limit: ContextVar[float | None] = ContextVar("aspectql_checkout_limit", default=None)


def parse_sqlite_uri(uri: str) -> str:
    """Resolve ``sqlite:///path`` (or ``sqlite:///:memory:``) to a database path."""
    parsed = urlparse(uri)
    if parsed.scheme != "sqlite":
        raise InvalidArgumentError(f"Unsupported database URI '{uri}': expected sqlite:///<path>")
    sqlite_path = parsed.path
    if parsed.netloc:
        sqlite_path = f"{parsed.netloc}{sqlite_path}"
    elif sqlite_path.startswith("//"):
        # sqlite:////abs/path -> /abs/path
        sqlite_path = sqlite_path[1:]
    elif sqlite_path.startswith("/"):
        # sqlite:///rel/path -> rel/path
        sqlite_path = sqlite_path[1:]
    if not sqlite_path:
        raise InvalidArgumentError(f"Invalid sqlite URI: {uri}")
    return sqlite_path


class _DeadlinePool(QueuePool):
    """QueuePool whose checkout wait can be shortened for one caller.

    QueuePool reads ``_timeout`` whenever it has to wait for a free
    connection; the limit set by ``Database.connection(timeout=...)`` caps it
    for the calling context only.
    """

    @property  # type: ignore[override]
    def _timeout(self) -> float:
        limit = _checkout_limit.get()
        if limit is None:
            return self._pool_timeout
        return min(limit, self._pool_timeout)

    @_timeout.setter
    def _timeout(self, value: float) -> None:
        self._pool_timeout = value


class Database:
    """A pool of SQLite connections shared by readers and writers.

    Connections are created lazily up to ``pool_size`` and handed out one at a
    time through ``connection()``. A caller waits at most ``pool_timeout_s``
    (or its own deadline) for a free connection. ``:memory:`` opens a named
    shared-cache database kept alive by one anchor connection for the
    lifetime of the handle.
    """

    def __init__(
        self,
        path: str,
        *,
        pool_size: int = 4,
        busy_timeout_ms: int = 5000,
        pool_timeout_s: float = 30.0,
    ) -> None:
        if pool_size < 1:
            raise InvalidArgumentError(f"pool_size must be at least 1, got {pool_size}")
        if pool_timeout_s <= 0:
            raise InvalidArgumentError(f"pool_timeout_s must be positive, got {pool_timeout_s}")
        self.path = path
        self.pool_size = pool_size
        self.busy_timeout_ms = busy_timeout_ms
        self.pool_timeout_s = pool_timeout_s
        self._closed = False
        self._anchor: sqlite3.Connection | None = None

        if path == MEMORY:
            self._target = f"file:aspectql-{uuid.uuid4().hex}?mode=memory&cache=shared"
            self._uri = True
        else:
            self._target = path
            self._uri = False

        self._pool = _DeadlinePool(
            self._connect,
            pool_size=pool_size,
            max_overflow=0,
            timeout=pool_timeout_s,
            use_lifo=True,
            reset_on_return="rollback",
        )
        event.listen(self._pool, "connect", self._on_connect)

        if self._uri:
            try:
                self._anchor = self._connect()
            except sqlite3.Error as e:
                raise BackendFailureError("connect", f"{self.path}: {e}") from e

    @classmethod
    def from_uri(cls, uri: str, config: QueryConfig | None = None) -> Database:
        return cls._from_config(parse_sqlite_uri(uri), config or QueryConfig())

    @classmethod
    def open(cls, target: str, config: QueryConfig | None = None) -> Database:
        """Open a plain path or a ``sqlite://`` URI."""
        if target.startswith("sqlite:"):
            return cls.from_uri(target, config)
        return cls._from_config(target, config or QueryConfig())

    @classmethod
    def _from_config(cls, path: str, config: QueryConfig) -> Database:
        return cls(
            path,
            pool_size=config.pool_size,
            busy_timeout_ms=config.busy_timeout_ms,
            pool_timeout_s=config.pool_timeout_s,
        )

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._target,
            uri=self._uri,
            timeout=self.busy_timeout_ms / 1000,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        return conn

    def _on_connect(self, dbapi_conn: sqlite3.Connection, record: Any) -> None:
        dbapi_conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
        if not self._uri:
            dbapi_conn.execute("PRAGMA journal_mode=WAL")

    @contextmanager
    def connection(self, timeout: float | None = None) -> Iterator[sqlite3.Connection]:
        """Lease one pooled connection; any open transaction is rolled back on return.

        ``timeout`` caps the wait for a free connection; running out of it
        raises QueryTimeoutError.
        """
        if self._closed:
            raise BackendFailureError("connect", "database handle is closed")
        token = _checkout_limit.set(None if timeout is None else max(timeout, 0.0))
        try:
            proxied = self._pool.connect()
        except sa_exc.TimeoutError as e:
            if timeout is not None:
                raise QueryTimeoutError(timeout) from e
            raise BackendFailureError("connect", f"{self.path}: {e}") from e
        except sqlite3.Error as e:
            raise BackendFailureError("connect", f"{self.path}: {e}") from e
        finally:
            _checkout_limit.reset(token)

        try:
            yield proxied.dbapi_connection  # type: ignore[misc]
        finally:
            proxied.close()
            if self._closed:
                # Returned after close(); drop it instead of parking it.
                self._pool.dispose()

    def close(self) -> None:
        self._closed = True
        self._pool.dispose()
        if self._anchor is not None:
            self._anchor.close()
            self._anchor = None

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
