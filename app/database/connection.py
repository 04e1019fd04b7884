from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from app.config.settings import Settings

_pool: ConnectionPool | None = None
_acquire_timeout: float = 10.0


def init_pool(settings: Settings) -> None:
    """Initialize the global connection pool from settings."""
    global _pool, _acquire_timeout  # noqa: PLW0603
    conninfo = (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )
    _acquire_timeout = settings.db_pool_timeout_seconds
    _pool = ConnectionPool(
        conninfo,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=settings.db_pool_timeout_seconds,
    )


def close_pool() -> None:
    """Close the global connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection(timeout: float | None = None) -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a connection from the pool. Caller manages commit/rollback.

    Acquisition waits at most ``timeout`` seconds (the configured pool timeout
    by default) and raises ``psycopg_pool.PoolTimeout`` when exceeded. The
    connection goes back to the pool on every exit path; an uncommitted
    transaction is rolled back by the pool when the block raises.
    """
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    wait = timeout if timeout is not None else _acquire_timeout
    with _pool.connection(timeout=wait) as conn:
        yield conn
