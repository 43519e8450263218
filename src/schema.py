import logging
import textwrap
from collections.abc import Callable
from typing import Any

import asyncpg
from pydantic import BaseModel

from ._util import CACHE_TABLE, MIGRATIONS_TABLE, REQUIRED_TABLES, SCHEMA_VERSION

logger = logging.getLogger(__name__)

# Branch endpoints terminate TLS with certificates we do not pin; encrypt without verifying.
DEFAULT_SSL = "require"

MIGRATION_SQL = textwrap.dedent(
    f"""
    CREATE EXTENSION IF NOT EXISTS pgcrypto;

    CREATE TABLE IF NOT EXISTS {CACHE_TABLE} (
        key TEXT PRIMARY KEY,
        value JSONB NOT NULL,
        expires_at TIMESTAMP WITH TIME ZONE,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS trifecta_cache_expires_at_idx
        ON {CACHE_TABLE} (expires_at)
        WHERE expires_at IS NOT NULL;

    CREATE OR REPLACE FUNCTION trifecta_cache_cleanup_expired()
    RETURNS TRIGGER AS $$
    BEGIN
        DELETE FROM {CACHE_TABLE}
        WHERE expires_at IS NOT NULL AND expires_at <= NOW();
        RETURN NULL;
    END;
    $$ LANGUAGE plpgsql;

    DROP TRIGGER IF EXISTS trifecta_cache_cleanup_trigger ON {CACHE_TABLE};
    CREATE TRIGGER trifecta_cache_cleanup_trigger
        AFTER INSERT OR UPDATE ON {CACHE_TABLE}
        EXECUTE PROCEDURE trifecta_cache_cleanup_expired();

    CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
        id SERIAL PRIMARY KEY,
        version TEXT NOT NULL,
        applied_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
    );

    INSERT INTO {MIGRATIONS_TABLE} (version)
    SELECT '{SCHEMA_VERSION}'
    WHERE NOT EXISTS (SELECT 1 FROM {MIGRATIONS_TABLE} WHERE version = '{SCHEMA_VERSION}');
    """
)

_TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = 'public'
    AND table_name = ANY($1::text[])
"""

_VERSION_QUERY = f"""
    SELECT version FROM {MIGRATIONS_TABLE}
    ORDER BY applied_at DESC, id DESC LIMIT 1
"""

_CONNECTION_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError, ValueError)

PoolFactory = Callable[..., Any]


class DatabaseCheckResult(BaseModel):
    connected: bool
    schema_complete: bool
    missing_tables: list[str] | None = None
    version: str | None = None


async def _open_pool(connection_string: str, *, ssl: Any, create_pool: PoolFactory) -> asyncpg.Pool:
    return await create_pool(
        connection_string,
        min_size=1,
        max_size=1,
        ssl=ssl,
        server_settings={"application_name": "trifecta-migrations"},
    )


async def run_migrations(
    connection_string: str,
    *,
    ssl: Any = DEFAULT_SSL,
    create_pool: PoolFactory = asyncpg.create_pool,
) -> None:
    """Apply the idempotent bootstrap script; safe to run any number of times."""

    logger.info("Connecting to database...")
    pool = await _open_pool(connection_string, ssl=ssl, create_pool=create_pool)
    try:
        logger.info("Running migrations...")
        async with pool.acquire() as connection:
            await connection.execute(MIGRATION_SQL)
        logger.info("Migrations completed successfully.")
    except Exception:
        logger.exception("Migration error")
        raise
    finally:
        await pool.close()


async def check_schema(
    connection_string: str,
    *,
    ssl: Any = DEFAULT_SSL,
    create_pool: PoolFactory = asyncpg.create_pool,
) -> DatabaseCheckResult:
    """Report connectivity, missing tables and the applied schema version.

    Connection problems are reported as ``connected=False`` instead of raising.
    """

    pool = None
    try:
        pool = await _open_pool(connection_string, ssl=ssl, create_pool=create_pool)
        async with pool.acquire() as connection:
            await connection.fetchval("SELECT 1")

            rows = await connection.fetch(_TABLES_QUERY, list(REQUIRED_TABLES))
            found_tables = {row["table_name"] for row in rows}
            missing_tables = [table for table in REQUIRED_TABLES if table not in found_tables]

            version = None
            if MIGRATIONS_TABLE in found_tables:
                version = await connection.fetchval(_VERSION_QUERY)
    except _CONNECTION_ERRORS as exc:
        logger.warning("Database check failed: %s", exc)
        return DatabaseCheckResult(connected=False, schema_complete=False)
    finally:
        if pool is not None:
            await pool.close()

    return DatabaseCheckResult(
        connected=True,
        schema_complete=not missing_tables,
        missing_tables=missing_tables or None,
        version=version,
    )
