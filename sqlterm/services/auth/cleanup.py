"""Operator cleanup: drop every account together with its schema."""

import logging

from pydantic import BaseModel, Field

from sqlterm.infrastructure.database.connection import Database, quote_ident
from sqlterm.services.tenant import schema_name_for

logger = logging.getLogger(__name__)

_SELECT_USERS_SQL = 'SELECT user_id FROM public."user" ORDER BY user_id'
_DELETE_USER_SQL = 'DELETE FROM public."user" WHERE user_id = $1'
_SELECT_SCHEMAS_SQL = """
    SELECT schema_name
    FROM information_schema.schemata
    WHERE schema_name NOT IN ('information_schema', 'public')
      AND schema_name NOT LIKE 'pg\\_%'
      AND schema_name ~ '^[a-zA-Z0-9_]+$'
    ORDER BY schema_name
"""


class AccountWorkspace(BaseModel):
    username: str
    schema_name: str


class CleanupPlan(BaseModel):
    """What a cleanup run would delete."""

    accounts: list[AccountWorkspace] = Field(default_factory=list)
    orphan_schemas: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.accounts and not self.orphan_schemas


class CleanupReport(BaseModel):
    dropped_schemas: list[str] = Field(default_factory=list)
    removed_users: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class AccountCleanup:
    """
    Removes accounts and their schemas.

    Orphan schemas (tenant-shaped schemas with no account) are only listed and
    dropped when ``include_orphans`` is set.
    """

    def __init__(self, database: Database):
        self.database = database

    async def plan(self, include_orphans: bool = False) -> CleanupPlan:
        users = await self.database.fetch(_SELECT_USERS_SQL)
        accounts = [
            AccountWorkspace(username=row["user_id"], schema_name=schema_name_for(row["user_id"]))
            for row in users
        ]

        orphans: list[str] = []
        if include_orphans:
            owned = {account.schema_name for account in accounts}
            schemas = await self.database.fetch(_SELECT_SCHEMAS_SQL)
            orphans = [row["schema_name"] for row in schemas if row["schema_name"] not in owned]

        return CleanupPlan(accounts=accounts, orphan_schemas=orphans)

    async def run(self, plan: CleanupPlan) -> CleanupReport:
        """Drop each planned schema with CASCADE and delete its account row.

        A failure for one account is recorded and the run moves on.
        """
        report = CleanupReport()

        for account in plan.accounts:
            try:
                await self._drop_schema(account.schema_name)
                report.dropped_schemas.append(account.schema_name)
                await self.database.execute(_DELETE_USER_SQL, account.username)
                report.removed_users.append(account.username)
                logger.info("Removed user %s (schema %s)", account.username, account.schema_name)
            except Exception as e:
                logger.error("Cleanup failed for user %s: %s", account.username, e, exc_info=True)
                report.errors.append(f"{account.username}: {e}")

        for schema in plan.orphan_schemas:
            try:
                await self._drop_schema(schema)
                report.dropped_schemas.append(schema)
                logger.info("Dropped orphaned schema %s", schema)
            except Exception as e:
                logger.error("Could not drop orphaned schema %s: %s", schema, e, exc_info=True)
                report.errors.append(f"{schema}: {e}")

        return report

    async def _drop_schema(self, schema: str) -> None:
        await self.database.execute(f"DROP SCHEMA IF EXISTS {quote_ident(schema)} CASCADE")
