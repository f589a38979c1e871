from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from explog.models.config_models import DatabaseConfig, ExportConfig

from .memory import InMemoryStorage
from .postgres import PostgresStorage
from .storage import StorageError, StoragePort

"""Connection handling and storage adapter selection.

Resolution order for connection parameters (.env is loaded by the CLI first,
with override, so its values win over the inherited environment):
    1. DATABASE_URL / PGDSN -> full DSN
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE / PGSSLMODE
    3. database section of config/explog.yml (fallback for missing parts)
"""

logger = logging.getLogger(__name__)

__all__ = [
    "resolve_dsn",
    "db_connection",
    "create_storage",
]


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn_env = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn_env:
        return dsn_env
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "explog")
    sslmode = os.getenv("PGSSLMODE", db_cfg.sslmode or "")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    if sslmode:
        dsn += f" sslmode={sslmode}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper; tested via integration)
    """Context manager providing a psycopg2 cursor.

    autocommit is off: the export core commits explicitly (per site, per record
    or once per batch). Anything left uncommitted when the block exits is
    rolled back, so a cancelled wizard never leaks pending writes.
    """
    try:
        import psycopg2
    except ImportError as e:
        raise StorageError(f"psycopg2 not available: {e}") from e

    try:
        conn = psycopg2.connect(resolve_dsn(db_cfg))
    except psycopg2.Error as e:
        raise StorageError(f"connection failed: {e}") from e
    conn.autocommit = False
    cur = conn.cursor()
    try:
        yield cur
    finally:
        if not conn.closed:
            conn.rollback()
        cur.close()
        conn.close()


@contextmanager
def create_storage(cfg: ExportConfig) -> Iterator[StoragePort]:
    """Yield the storage adapter selected by configuration.

    DISABLE_DB_CONNECT=1 forces the in-memory adapter (mock mode).
    """
    if os.getenv("DISABLE_DB_CONNECT") == "1" or cfg.database.type == "memory":
        logger.debug("storage: in-memory adapter (mock mode)")
        yield InMemoryStorage()
        return
    with db_connection(cfg.database) as cur:
        logger.debug("storage: postgres adapter")
        yield PostgresStorage(cur)
