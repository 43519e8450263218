from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

import asyncpg
from pydantic import BaseModel, Field

from ._util import CACHE_TABLE
from .exceptions import (
    TrifectaConfigurationError,
    TrifectaConnectionClosedError,
    TrifectaQueryError,
    TrifectaResourceExhaustedError,
    TrifectaTransactionUnavailableError,
)
from .schema import DEFAULT_SSL

if TYPE_CHECKING:
    from .settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_QUERY_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)


class ConnectionMode(str, Enum):
    SERVERLESS = "serverless"
    POOL = "pool"


class ConnectionOptions(BaseModel):
    connection_string: str = Field(min_length=1)
    pool_size: int = Field(default=5, ge=1)
    idle_timeout: float = 10.0  # seconds before an idle pooled connection is closed
    use_serverless: bool = True
    statement_timeout: int = 3000  # milliseconds
    check_tables: bool = True
    acquire_timeout: float | None = 10.0
    ssl: Any = DEFAULT_SSL

    @property
    def mode(self) -> ConnectionMode:
        return ConnectionMode.SERVERLESS if self.use_serverless else ConnectionMode.POOL

    @property
    def server_settings(self) -> dict[str, str]:
        return {
            "application_name": "trifecta",
            "statement_timeout": str(self.statement_timeout),
        }

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> ConnectionOptions:
        connection_string = overrides.pop("connection_string", None) or settings.connection_string
        if not connection_string:
            raise TrifectaConfigurationError(
                "Connection string not provided. Pass connection_string or set TRIFECTA_CONNECTION_STRING."
            )
        values = {"use_serverless": settings.use_serverless, "pool_size": settings.pool_size}
        return cls(connection_string=connection_string, **(values | overrides))


class QueryResult(BaseModel):
    rows: list[dict[str, Any]]
    row_count: int


def _affected_rows(status: str | None, default: int) -> int:
    # Command tags end in the row count, e.g. "UPDATE 3" or "INSERT 0 2".
    if status:
        tail = status.rsplit(" ", 1)[-1]
        if tail.isdigit():
            return int(tail)
    return default


async def _run(connection: Any, text: str, params: Sequence[Any]) -> QueryResult:
    statement = await connection.prepare(text)
    rows = [dict(record) for record in await statement.fetch(*params)]
    return QueryResult(rows=rows, row_count=_affected_rows(statement.get_statusmsg(), len(rows)))


class DBConnection:
    """Query the trifecta database either per call (serverless) or through a pool.

    The mode is fixed at construction. Only the pool supports transactions.
    """

    def __init__(
        self,
        options: ConnectionOptions,
        *,
        connect: Callable[..., Awaitable[Any]] = asyncpg.connect,
        create_pool: Callable[..., Awaitable[Any]] = asyncpg.create_pool,
    ) -> None:
        self._options = options
        self.mode = options.mode
        self._connect = connect
        self._create_pool = create_pool
        self._pool: Any | None = None
        self._open = False

    async def __aenter__(self) -> DBConnection:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._open:
            return

        if self.mode is ConnectionMode.POOL:
            self._pool = await self._create_pool(
                self._options.connection_string,
                min_size=0,
                max_size=self._options.pool_size,
                max_inactive_connection_lifetime=self._options.idle_timeout,
                ssl=self._options.ssl,
                server_settings=self._options.server_settings,
            )
        self._open = True

        if self.mode is ConnectionMode.POOL and self._options.check_tables:
            await self._check_tables_exist()

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        self._open = False

    async def _check_tables_exist(self) -> None:
        try:
            result = await self.query(
                "SELECT EXISTS (SELECT FROM information_schema.tables WHERE table_name = $1) AS exists",
                [CACHE_TABLE],
            )
        except (TrifectaQueryError, TrifectaResourceExhaustedError) as exc:
            logger.error("Table verification error: %s", exc)
            logger.warning("Run migrations to create the necessary tables.")
            return

        if not (result.rows and result.rows[0].get("exists") is True):
            logger.warning("Trifecta tables not found in the database. Run migrations to create the necessary tables.")

    def _ensure_open(self) -> None:
        if not self._open:
            raise TrifectaConnectionClosedError("Database connection not initialized")

    async def _acquire(self) -> Any:
        assert self._pool is not None
        try:
            return await self._pool.acquire(timeout=self._options.acquire_timeout)
        except TimeoutError as exc:
            raise TrifectaResourceExhaustedError(
                f"No connection available within {self._options.acquire_timeout}s (pool size {self._options.pool_size})"
            ) from exc

    @asynccontextmanager
    async def _pooled_connection(self) -> AsyncIterator[Any]:
        connection = await self._acquire()
        try:
            yield connection
        finally:
            await self._pool.release(connection)

    async def query(self, text: str, params: Sequence[Any] = ()) -> QueryResult:
        self._ensure_open()

        if self.mode is ConnectionMode.SERVERLESS:
            try:
                connection = await self._connect(
                    self._options.connection_string,
                    ssl=self._options.ssl,
                    server_settings=self._options.server_settings,
                )
            except _QUERY_ERRORS as exc:
                raise TrifectaQueryError(f"Error executing query (serverless): {exc}") from exc
            try:
                return await _run(connection, text, params)
            except _QUERY_ERRORS as exc:
                raise TrifectaQueryError(f"Error executing query (serverless): {exc}") from exc
            finally:
                await connection.close()

        async with self._pooled_connection() as connection:
            try:
                return await _run(connection, text, params)
            except _QUERY_ERRORS as exc:
                raise TrifectaQueryError(f"Error executing query (pool): {exc}") from exc

    async def transaction(self, work: Callable[[Any], Awaitable[T]]) -> T:
        """Run `work(connection)` inside BEGIN/COMMIT, rolling back if it raises.

        The connection goes back to the pool on every path.
        """

        if self.mode is not ConnectionMode.POOL:
            raise TrifectaTransactionUnavailableError(
                "Transactions are only available with standard pool (not serverless)"
            )
        self._ensure_open()

        async with self._pooled_connection() as connection:
            try:
                await connection.execute("BEGIN")
                result = await work(connection)
                await connection.execute("COMMIT")
                return result
            except BaseException:
                logger.debug("Rolling back transaction", exc_info=True)
                try:
                    await connection.execute("ROLLBACK")
                except _QUERY_ERRORS:
                    logger.exception("Rollback failed")
                raise
