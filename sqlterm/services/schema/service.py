"""Schema service."""

import json
import logging
from typing import Any

from sqlterm.config.constants import INTEGER_TYPES
from sqlterm.config.settings import Settings
from sqlterm.infrastructure.database.connection import Database, quote_ident
from sqlterm.services.schema.models import (
    ColumnInfo,
    ForeignKeyInfo,
    SchemaInfo,
    TableDescription,
    TableInfo,
)
from sqlterm.services.tenant import Tenant

logger = logging.getLogger(__name__)

NO_TABLES_MESSAGE = "No tables found in the user's schema. The user needs to create tables first."

_SCHEMA_TABLES_SQL = """
    SELECT tablename
    FROM pg_tables
    WHERE schemaname = $1
    ORDER BY tablename
"""

_BASE_TABLES_SQL = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = $1
      AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

_COLUMNS_SQL = """
    SELECT
        c.column_name,
        c.data_type,
        c.is_nullable,
        c.column_default,
        (pk.column_name IS NOT NULL) AS is_primary_key
    FROM information_schema.columns c
    LEFT JOIN (
        SELECT ku.column_name
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage ku
          ON tc.constraint_name = ku.constraint_name
         AND tc.table_schema = ku.table_schema
        WHERE tc.constraint_type = 'PRIMARY KEY'
          AND tc.table_schema = $1
          AND tc.table_name = $2
    ) pk ON c.column_name = pk.column_name
    WHERE c.table_schema = $1
      AND c.table_name = $2
    ORDER BY c.ordinal_position
"""

_DESCRIBE_COLUMNS_SQL = """
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default,
        character_maximum_length,
        numeric_precision,
        numeric_scale
    FROM information_schema.columns
    WHERE table_schema = $1
      AND table_name = $2
    ORDER BY ordinal_position
"""

_PRIMARY_KEYS_SQL = """
    SELECT kcu.column_name
    FROM information_schema.key_column_usage kcu
    JOIN information_schema.table_constraints tc
      ON kcu.constraint_name = tc.constraint_name
     AND kcu.table_schema = tc.table_schema
    WHERE tc.table_schema = $1
      AND tc.table_name = $2
      AND tc.constraint_type = 'PRIMARY KEY'
    ORDER BY kcu.ordinal_position
"""

_FOREIGN_KEYS_SQL = """
    SELECT
        kcu.column_name,
        ccu.table_name AS foreign_table_name,
        ccu.column_name AS foreign_column_name
    FROM information_schema.key_column_usage kcu
    JOIN information_schema.table_constraints tc
      ON kcu.constraint_name = tc.constraint_name
     AND kcu.table_schema = tc.table_schema
    JOIN information_schema.constraint_column_usage ccu
      ON ccu.constraint_name = tc.constraint_name
     AND ccu.table_schema = tc.table_schema
    WHERE tc.table_schema = $1
      AND tc.table_name = $2
      AND tc.constraint_type = 'FOREIGN KEY'
"""


class SchemaService:
    """
    Reads a tenant schema for the AI components.

    These are trusted internal reads: they bind the schema as a parameter and
    quote every identifier taken from the catalog, and they bypass the tenant
    validator.
    """

    def __init__(self, settings: Settings, database: Database):
        """Initialize schema service.

        Args:
            settings: Application settings
            database: Connected database
        """
        self.settings = settings
        self.database = database

    async def list_tables(self, tenant: Tenant) -> list[str]:
        """Base tables in the tenant schema, by name."""
        rows = await self.database.fetch(_BASE_TABLES_SQL, tenant.schema_name)
        return [row["table_name"] for row in rows]

    async def get_schema_info(self, tenant: Tenant, tables: list[str] | None = None) -> SchemaInfo:
        """
        Columns, rows and primary-key maxima of the tenant's tables.

        Args:
            tenant: Tenant whose schema is read
            tables: Optional subset of table names; unknown names are ignored

        Returns:
            SchemaInfo; empty if anything goes wrong
        """
        try:
            rows = await self.database.fetch(_SCHEMA_TABLES_SQL, tenant.schema_name)
            names = [row["tablename"] for row in rows]
            if tables is not None:
                wanted = set(tables)
                names = [name for name in names if name in wanted]

            infos = [await self._table_info(tenant, name) for name in names]
            return SchemaInfo(tables=infos, total_tables=len(infos))

        except Exception as e:
            logger.error(
                "Schema introspection error for '%s': %s", tenant.schema_name, e, exc_info=True
            )
            return SchemaInfo.empty()

    async def _table_info(self, tenant: Tenant, table_name: str) -> TableInfo:
        column_rows = await self.database.fetch(_COLUMNS_SQL, tenant.schema_name, table_name)
        columns = [
            ColumnInfo(
                column_name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=row["is_nullable"] == "YES",
                default_value=row["column_default"],
                is_primary_key=bool(row["is_primary_key"]),
            )
            for row in column_rows
        ]

        relation = f"{quote_ident(tenant.schema_name)}.{quote_ident(table_name)}"
        table = TableInfo(table_name=table_name, columns=columns)
        try:
            table.row_count = int(await self.database.fetchval(f"SELECT count(*) FROM {relation}"))
            if table.row_count:
                table.sample_data = await self.database.fetch(
                    f"SELECT * FROM {relation} ORDER BY 1 LIMIT $1", self.settings.schema_max_rows
                )
            if table.row_count > len(table.sample_data):
                table.tail_data = await self.database.fetch(
                    f"SELECT * FROM (SELECT * FROM {relation} ORDER BY 1 DESC LIMIT $1) AS tail "
                    "ORDER BY 1",
                    self.settings.schema_sample_tail,
                )
            for column in columns:
                if column.is_primary_key and column.data_type in INTEGER_TYPES:
                    maximum = await self.database.fetchval(
                        f"SELECT max({quote_ident(column.column_name)}) FROM {relation}"
                    )
                    table.max_primary_keys[column.column_name] = (
                        int(maximum) if maximum is not None else None
                    )
        except Exception as e:
            logger.warning("Could not read data for table %s: %s", table_name, e)
        return table

    async def describe_table(self, tenant: Tenant, table_name: str) -> TableDescription | None:
        """Columns, primary keys and foreign keys of one table, or None if it does not exist."""
        if table_name not in await self.list_tables(tenant):
            return None

        schema = tenant.schema_name
        columns = await self.database.fetch(_DESCRIBE_COLUMNS_SQL, schema, table_name)
        primary_keys = await self.database.fetch(_PRIMARY_KEYS_SQL, schema, table_name)
        foreign_keys = await self.database.fetch(_FOREIGN_KEYS_SQL, schema, table_name)

        return TableDescription(
            table_name=table_name,
            columns=columns,
            primary_keys=[row["column_name"] for row in primary_keys],
            foreign_keys=[ForeignKeyInfo(**row) for row in foreign_keys],
        )

    def format_for_ai(self, schema_info: SchemaInfo) -> str:
        """Render a SchemaInfo as prompt context (see :func:`format_schema_for_ai`)."""
        return format_schema_for_ai(
            schema_info,
            threshold=self.settings.schema_sample_threshold,
            head=self.settings.schema_sample_head,
            tail=self.settings.schema_sample_tail,
        )


def _render_row(row: dict[str, Any]) -> str:
    return json.dumps(row, default=str, ensure_ascii=False)


def format_schema_for_ai(
    schema_info: SchemaInfo,
    threshold: int = 20,
    head: int = 10,
    tail: int = 5,
) -> str:
    """
    Describe every table: columns, row data and next free primary-key values.

    Tables with at most ``threshold`` rows are listed in full; larger tables
    show the first ``head`` and last ``tail`` rows.
    """
    if schema_info.total_tables == 0:
        return NO_TABLES_MESSAGE

    lines = [f"Database Schema ({schema_info.total_tables} tables):", ""]

    for table in schema_info.tables:
        lines.append(f"Table: {table.table_name}")
        lines.append("Columns:")
        for column in table.columns:
            pk = " (PRIMARY KEY)" if column.is_primary_key else ""
            nullable = " (nullable)" if column.is_nullable else " (not null)"
            default = f" (default: {column.default_value})" if column.default_value else ""
            lines.append(f"  - {column.column_name}: {column.data_type}{pk}{nullable}{default}")

        rows = table.sample_data
        if table.row_count == 0:
            lines.append("Data: EMPTY (0 rows)")
        elif table.row_count <= threshold:
            lines.append(f"Data ({table.row_count} rows):")
            lines.extend(f"  {_render_row(row)}" for row in rows)
        else:
            shown_head = rows[:head]
            source = table.tail_data or rows[head:]
            shown_tail = source[-tail:] if tail else []
            omitted = table.row_count - len(shown_head) - len(shown_tail)
            lines.append(
                f"Data ({table.row_count} rows, showing first {len(shown_head)} "
                f"and last {len(shown_tail)}):"
            )
            lines.extend(f"  {_render_row(row)}" for row in shown_head)
            lines.append(f"  ... ({omitted} rows omitted) ...")
            lines.extend(f"  {_render_row(row)}" for row in shown_tail)

        if table.next_ids:
            hints = ", ".join(f"{column}={value}" for column, value in table.next_ids.items())
            lines.append(f"CRITICAL: next available primary key values: {hints}")

        lines.append("")

    return "\n".join(lines)
