"""Configuration for the aspectql query engine."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class QueryConfig:
    """Configuration for the query engine and its database handle."""

    max_page_size: int = 1000
    default_timeout_s: float | None = None
    pool_size: int = 4
    busy_timeout_ms: int = 5000
    pool_timeout_s: float = 30.0
    progress_interval: int = 1000
    case_sensitive_patterns: bool = True
    log_sql: bool = False

    @classmethod
    def from_env(cls) -> QueryConfig:
        """Build a config from ASPECTQL_* environment variables."""
        config = cls()
        if max_page := os.getenv("ASPECTQL_MAX_PAGE_SIZE"):
            config.max_page_size = int(max_page)
        if timeout := os.getenv("ASPECTQL_TIMEOUT_S"):
            config.default_timeout_s = float(timeout)
        if pool_size := os.getenv("ASPECTQL_POOL_SIZE"):
            config.pool_size = int(pool_size)
        if pool_timeout := os.getenv("ASPECTQL_POOL_TIMEOUT_S"):
            config.pool_timeout_s = float(pool_timeout)
        case_sensitive = os.getenv("ASPECTQL_CASE_SENSITIVE")
        if case_sensitive is not None:
            config.case_sensitive_patterns = case_sensitive.lower() not in ("0", "false", "no")
        return config
