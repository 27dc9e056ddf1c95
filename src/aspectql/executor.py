"""Query executor: runs a plan on a pooled connection under a deadline."""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Callable
from contextlib import ExitStack
from typing import TypeVar

from aspectql.config import QueryConfig
from aspectql.database import Database
from aspectql.errors import BackendFailureError, InvalidArgumentError, QueryTimeoutError
from aspectql.logging import get_logger
from aspectql.planner import QueryPlan

T = TypeVar("T")

log = get_logger(__name__)


def _is_interrupt(error: sqlite3.Error) -> bool:
    return isinstance(error, sqlite3.OperationalError) and "interrupt" in str(error).lower()


class QueryExecutor:
    """Executes QueryPlans and hands every row to an assembler.

    Results are materialized in full before returning; a failure at any row
    discards the rows read so far.
    """

    def __init__(self, database: Database, config: QueryConfig | None = None) -> None:
        self._database = database
        self._config = config or QueryConfig()

    def _resolve_timeout(self, timeout: float | None) -> float | None:
        timeout_s = timeout if timeout is not None else self._config.default_timeout_s
        if timeout_s is None:
            return None
        if isinstance(timeout_s, bool) or not isinstance(timeout_s, (int, float)):
            raise InvalidArgumentError(f"timeout must be a number of seconds, got {timeout_s!r}")
        if timeout_s < 0:
            raise InvalidArgumentError(f"timeout must not be negative, got {timeout_s}")
        return float(timeout_s)

    def fetch(
        self,
        plan: QueryPlan,
        assemble: Callable[[sqlite3.Row], T],
        timeout: float | None = None,
    ) -> list[T]:
        timeout_s = self._resolve_timeout(timeout)
        deadline = None if timeout_s is None else time.monotonic() + timeout_s

        if self._config.log_sql:
            log.debug(
                "query.planned",
                operation=plan.operation,
                params=len(plan.params),
                sql=plan.sql,
            )
        else:
            log.debug("query.planned", operation=plan.operation, params=len(plan.params))

        if timeout_s == 0:
            log.warning("query.timeout", operation=plan.operation, timeout_s=timeout_s)
            raise QueryTimeoutError(timeout_s)

        started = time.perf_counter()
        with ExitStack() as stack:
            remaining = None if deadline is None else deadline - time.monotonic()
            try:
                conn = stack.enter_context(self._database.connection(timeout=remaining))
            except QueryTimeoutError as e:
                log.warning(
                    "query.timeout", operation=plan.operation, timeout_s=timeout_s, stage="checkout"
                )
                raise QueryTimeoutError(timeout_s) from e  # type: ignore[arg-type]
            if deadline is not None:
                conn.set_progress_handler(
                    lambda: 1 if time.monotonic() >= deadline else 0,
                    self._config.progress_interval,
                )
            try:
                cursor = conn.execute(plan.sql, plan.params)
                results = [assemble(row) for row in cursor]
            except sqlite3.Error as e:
                if deadline is not None and _is_interrupt(e):
                    log.warning("query.timeout", operation=plan.operation, timeout_s=timeout_s)
                    raise QueryTimeoutError(timeout_s) from e  # type: ignore[arg-type]
                log.warning("query.backend_failure", operation=plan.operation, error=str(e))
                raise BackendFailureError(plan.operation, str(e)) from e
            finally:
                if deadline is not None:
                    conn.set_progress_handler(None, 0)

        log.debug(
            "query.executed",
            operation=plan.operation,
            rows=len(results),
            elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        return results
