"""Tests for schema introspection and the AI schema description."""

import pytest

from sqlterm.services.schema.models import ColumnInfo, SchemaInfo, TableInfo
from sqlterm.services.schema.service import (
    NO_TABLES_MESSAGE,
    SchemaService,
    format_schema_for_ai,
)


def _users_table(row_count: int, max_id: int | None) -> TableInfo:
    return TableInfo(
        table_name="users",
        columns=[
            ColumnInfo(column_name="id", data_type="integer", is_nullable=False, is_primary_key=True),
            ColumnInfo(column_name="name", data_type="text", is_nullable=True),
        ],
        sample_data=[{"id": i, "name": f"user{i}"} for i in range(1, row_count + 1)],
        row_count=row_count,
        max_primary_keys={"id": max_id},
    )


# ==========================================
#  DESCRIPTION FOR THE MODEL
# ==========================================


def test_format_no_tables():
    assert format_schema_for_ai(SchemaInfo.empty()) == NO_TABLES_MESSAGE


def test_format_small_table():
    info = SchemaInfo(tables=[_users_table(3, 3)], total_tables=1)
    text = format_schema_for_ai(info)

    assert text.startswith("Database Schema (1 tables):")
    assert "Table: users" in text
    assert "  - id: integer (PRIMARY KEY) (not null)" in text
    assert "  - name: text (nullable)" in text
    assert "Data (3 rows):" in text
    assert '{"id": 3, "name": "user3"}' in text
    assert "CRITICAL: next available primary key values: id=4" in text


def test_format_empty_table():
    info = SchemaInfo(tables=[_users_table(0, None)], total_tables=1)
    text = format_schema_for_ai(info)

    assert "Data: EMPTY (0 rows)" in text
    assert "next available primary key values: id=1" in text


def test_format_large_table_shows_head_and_tail():
    info = SchemaInfo(tables=[_users_table(30, 30)], total_tables=1)
    text = format_schema_for_ai(info, threshold=20, head=10, tail=5)

    assert "Data (30 rows, showing first 10 and last 5):" in text
    assert "... (15 rows omitted) ..." in text
    assert '"name": "user10"' in text
    assert '"name": "user11"' not in text
    assert '"name": "user26"' in text
    assert "id=31" in text


def test_format_large_table_uses_fetched_tail():
    table = _users_table(30, 600)
    table.row_count = 600
    table.tail_data = [{"id": i, "name": f"user{i}"} for i in range(596, 601)]
    text = format_schema_for_ai(SchemaInfo(tables=[table], total_tables=1), threshold=20)

    assert "Data (600 rows, showing first 10 and last 5):" in text
    assert "... (585 rows omitted) ..." in text
    assert '"name": "user600"' in text
    assert '"name": "user30"' not in text


def test_next_ids():
    assert _users_table(3, 3).next_ids == {"id": 4}
    assert _users_table(0, None).next_ids == {"id": 1}


def test_schema_info_aliases():
    dumped = SchemaInfo(tables=[_users_table(1, 1)], total_tables=1).model_dump(by_alias=True)
    assert dumped["totalTables"] == 1
    assert dumped["tables"][0]["tableName"] == "users"


# ==========================================
#  INTROSPECTION
# ==========================================


def _fake_fetch(tables, columns, rows, tail=()):
    async def fetch(sql, *args):
        if "DESC LIMIT $1" in sql:
            return list(tail)
        if "FROM pg_tables" in sql:
            return [{"tablename": name} for name in tables]
        if "information_schema.columns c" in sql:
            return columns
        if "LIMIT $1" in sql:
            return rows
        if "information_schema.tables" in sql:
            return [{"table_name": name} for name in tables]
        return []

    return fetch


_USER_COLUMNS = [
    {
        "column_name": "id",
        "data_type": "integer",
        "is_nullable": "NO",
        "column_default": "nextval('users_id_seq'::regclass)",
        "is_primary_key": True,
    },
    {
        "column_name": "name",
        "data_type": "text",
        "is_nullable": "YES",
        "column_default": None,
        "is_primary_key": False,
    },
]


@pytest.mark.asyncio
async def test_get_schema_info(settings, database, tenant):
    rows = [{"id": 1, "name": "a"}, {"id": 3, "name": "b"}]
    database.fetch.side_effect = _fake_fetch(["users"], _USER_COLUMNS, rows)
    database.fetchval.side_effect = [2, 3]

    info = await SchemaService(settings, database).get_schema_info(tenant)

    assert info.total_tables == 1
    table = info.tables[0]
    assert table.table_name == "users"
    assert [column.column_name for column in table.columns] == ["id", "name"]
    assert table.columns[0].is_primary_key
    assert not table.columns[0].is_nullable
    assert table.row_count == 2
    assert table.sample_data == rows
    assert table.next_ids == {"id": 4}


@pytest.mark.asyncio
async def test_get_schema_info_subset(settings, database, tenant):
    database.fetch.side_effect = _fake_fetch(["orders", "users"], [], [])
    database.fetchval.return_value = 0

    info = await SchemaService(settings, database).get_schema_info(tenant, tables=["users", "ghost"])

    assert info.table_names == ["users"]


@pytest.mark.asyncio
async def test_get_schema_info_never_raises(settings, database, tenant):
    database.fetch.side_effect = RuntimeError("connection lost")
    info = await SchemaService(settings, database).get_schema_info(tenant)
    assert info.total_tables == 0
    assert info.tables == []


@pytest.mark.asyncio
async def test_describe_unknown_table(settings, database, tenant):
    database.fetch.side_effect = _fake_fetch(["users"], [], [])
    assert await SchemaService(settings, database).describe_table(tenant, "orders") is None


@pytest.mark.asyncio
async def test_list_tables_binds_schema(settings, database, tenant):
    database.fetch.side_effect = _fake_fetch(["users"], [], [])
    assert await SchemaService(settings, database).list_tables(tenant) == ["users"]
    assert database.fetch.call_args.args[1] == "alice"


@pytest.mark.asyncio
async def test_get_schema_info_fetches_tail_beyond_row_cap(settings, database, tenant):
    settings.schema_max_rows = 3
    head = [{"id": i, "name": f"u{i}"} for i in range(1, 4)]
    tail = [{"id": i, "name": f"u{i}"} for i in range(996, 1001)]
    database.fetch.side_effect = _fake_fetch(["users"], _USER_COLUMNS, head, tail)
    database.fetchval.side_effect = [1000, 1000]

    info = await SchemaService(settings, database).get_schema_info(tenant)

    table = info.tables[0]
    assert table.sample_data == head
    assert table.tail_data == tail
    tail_call = next(call for call in database.fetch.call_args_list if "DESC" in call.args[0])
    assert tail_call.args[1] == settings.schema_sample_tail
