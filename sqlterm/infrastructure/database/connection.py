"""PostgreSQL connection pool and tenant-scoped execution using asyncpg."""

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import asyncpg

from sqlterm.config.settings import Settings
from sqlterm.infrastructure.errors import ConfigurationError, StatementError
from sqlterm.services.tenant import Tenant
from sqlterm.utils.retry import retry_kwargs, run_with_retry

logger = logging.getLogger(__name__)

_STATUS_ROW_COUNT = re.compile(r"(\d+)\s*$")


def quote_ident(name: str) -> str:
    """Quote an identifier for interpolation into SQL text."""
    if not name or "\x00" in name:
        raise ValueError(f"Invalid identifier: {name!r}")
    return '"' + name.replace('"', '""') + '"'


def affected_rows(status: str | None) -> int:
    """Row count from a command tag such as ``INSERT 0 3`` or ``UPDATE 2``."""
    if not status:
        return 0
    verb = status.split(" ", 1)[0].upper()
    if verb not in ("INSERT", "UPDATE", "DELETE", "MERGE", "COPY", "SELECT", "MOVE", "FETCH"):
        return 0
    match = _STATUS_ROW_COUNT.search(status)
    return int(match.group(1)) if match else 0


@dataclass
class StatementOutcome:
    """Outcome of one statement: rows for row-returning statements, otherwise an affected count."""

    rows: list[dict[str, Any]] | None = None
    affected: int = 0


class Database:
    """
    Owns the asyncpg pool.

    Created explicitly (FastAPI lifespan, CLI main), injected into services and
    closed at shutdown. Reads issued here are trusted internal queries; tenant
    SQL goes through :class:`TenantScope`.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        if not self.settings.database_url:
            raise ConfigurationError("DATABASE_URL is not configured")

        async def _create_pool() -> asyncpg.Pool:
            return await asyncpg.create_pool(
                self.settings.database_url,
                min_size=self.settings.db_pool_min_size,
                max_size=self.settings.db_pool_max_size,
                command_timeout=self.settings.db_command_timeout,
            )

        self._pool = await run_with_retry(_create_pool, **retry_kwargs(max_retries=3))
        logger.info(
            "PostgreSQL pool initialized (min=%s, max=%s)",
            self.settings.db_pool_min_size,
            self.settings.db_pool_max_size,
        )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        if self._pool is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        async with self._pool.acquire() as conn:
            yield conn

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """Run a trusted read and return rows as dictionaries."""

        async def _fetch() -> list[dict[str, Any]]:
            async with self.acquire() as conn:
                records = await conn.fetch(sql, *args)
            return [dict(record) for record in records]

        return await run_with_retry(_fetch, **retry_kwargs())

    async def fetchval(self, sql: str, *args: Any) -> Any:
        async def _fetchval() -> Any:
            async with self.acquire() as conn:
                return await conn.fetchval(sql, *args)

        return await run_with_retry(_fetchval, **retry_kwargs())

    async def execute(self, sql: str, *args: Any) -> str:
        """Run a trusted command once (no retry) and return its status tag."""
        async with self.acquire() as conn:
            return await conn.execute(sql, *args)

    def scope(self, tenant: Tenant) -> "TenantScope":
        return TenantScope(self, tenant)

    async def health_check(self) -> bool:
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error("PostgreSQL health check failed: %s", e)
            return False


class TenantScope:
    """
    The only path for tenant SQL.

    Every transaction opened here sets ``search_path`` to the tenant's schema
    before any tenant statement runs.
    """

    def __init__(self, database: Database, tenant: Tenant):
        self.database = database
        self.tenant = tenant

    @property
    def schema_sql(self) -> str:
        return quote_ident(self.tenant.schema_name)

    async def ensure_schema(self) -> None:
        await self.database.execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema_sql}")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        async with self.database.acquire() as conn:
            async with conn.transaction():
                await conn.execute(f"SET LOCAL search_path TO {self.schema_sql}")
                yield conn

    async def run_batch(self, statements: list[str]) -> list[StatementOutcome]:
        """
        Execute ``statements`` in order inside one transaction.

        Raises:
            StatementError: with the 1-based index of the failing statement;
                the whole batch is rolled back.
        """
        outcomes: list[StatementOutcome] = []
        async with self.transaction() as conn:
            for index, statement in enumerate(statements, start=1):
                try:
                    prepared = await conn.prepare(statement)
                    records = await prepared.fetch()
                except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                    raise StatementError(index, statement, e) from e

                if prepared.get_attributes():
                    outcomes.append(StatementOutcome(rows=[dict(record) for record in records]))
                else:
                    outcomes.append(StatementOutcome(affected=affected_rows(prepared.get_statusmsg())))
        return outcomes
