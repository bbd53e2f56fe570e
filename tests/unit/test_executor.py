"""Tests for the query executor."""

from unittest.mock import MagicMock

import pytest
from sqlparse.exceptions import SQLParseError

from sqlterm.config.validation import TRANSACTION_CONTROL_NOT_ALLOWED
from sqlterm.infrastructure.database.connection import StatementOutcome
from sqlterm.infrastructure.errors import StatementError
from sqlterm.services.sql.executor import (
    QUERY_TOO_COMPLEX,
    QueryExecutor,
    build_message,
    map_postgres_error,
)


@pytest.fixture
def executor(database):
    return QueryExecutor(database)


# ==========================================
#  ERROR MAPPING
# ==========================================


@pytest.mark.parametrize(
    "message, expected",
    [
        ('syntax error at or near "SELEC"', "Syntax error in SQL query"),
        ('relation "orders" does not exist', "Table or relation does not exist"),
        ('column "nme" does not exist', "Column does not exist"),
        ('column "nme" of relation "users" does not exist', "Column does not exist"),
        (
            'duplicate key value violates unique constraint "users_pkey"',
            "Duplicate key violation",
        ),
        (
            'insert or update on table "orders" violates foreign key constraint "orders_user_fk"',
            "Foreign key constraint violation",
        ),
        (
            'null value in column "name" of relation "users" violates not-null constraint',
            "Not null constraint violation",
        ),
        ("division by zero", "division by zero"),
    ],
)
def test_map_postgres_error(message, expected):
    assert map_postgres_error(message) == expected


def test_build_message():
    assert build_message(2, 0) == "2 row(s) returned."
    assert build_message(0, 3) == "3 row(s) affected."
    assert build_message(0, 0) == "Command executed successfully."


# ==========================================
#  EXECUTION
# ==========================================


@pytest.mark.asyncio
async def test_empty_query(executor, tenant, database):
    result = await executor.execute(tenant, "   ")
    assert not result.success
    assert result.error == "Empty query"
    database.scope.assert_not_called()


@pytest.mark.asyncio
async def test_denied_query_never_reaches_database(executor, tenant, database):
    result = await executor.execute(tenant, "SELECT * FROM bob.users")
    assert not result.success
    assert "Cannot access schema 'bob'" in result.error
    database.scope.assert_not_called()


@pytest.mark.asyncio
async def test_dangerous_query(executor, tenant, database):
    result = await executor.execute(tenant, "DROP DATABASE production;")
    assert not result.success
    database.scope.assert_not_called()


@pytest.mark.asyncio
async def test_workspace_setup_failure(executor, tenant, scope):
    scope.ensure_schema.side_effect = RuntimeError("permission denied for database")
    result = await executor.execute(tenant, "SELECT 1")
    assert not result.success
    assert result.error == "Failed to set up user workspace"
    scope.run_batch.assert_not_called()


@pytest.mark.asyncio
async def test_select_rows(executor, tenant, scope):
    scope.run_batch.return_value = [StatementOutcome(rows=[{"id": 1}, {"id": 2}])]
    result = await executor.execute(tenant, "SELECT id FROM users;")

    assert result.success
    assert result.data == [{"id": 1}, {"id": 2}]
    assert result.row_count == 2
    assert result.message == "2 row(s) returned."
    scope.run_batch.assert_awaited_once_with(["SELECT id FROM users"])


@pytest.mark.asyncio
async def test_affected_rows(executor, tenant, scope):
    scope.run_batch.return_value = [StatementOutcome(affected=2), StatementOutcome(affected=1)]
    result = await executor.execute(
        tenant, "INSERT INTO users VALUES (1, 'a'), (2, 'b'); UPDATE users SET name = 'c' WHERE id = 1;"
    )

    assert result.success
    assert result.data == []
    assert result.row_count == 3
    assert result.message == "3 row(s) affected."


@pytest.mark.asyncio
async def test_ddl(executor, tenant, scope):
    scope.run_batch.return_value = [StatementOutcome()]
    result = await executor.execute(tenant, "CREATE TABLE users (id SERIAL PRIMARY KEY, name TEXT)")

    assert result.success
    assert result.row_count == 0
    assert result.message == "Command executed successfully."


@pytest.mark.asyncio
async def test_mixed_batch_returns_rows_of_selects(executor, tenant, scope):
    scope.run_batch.return_value = [
        StatementOutcome(affected=1),
        StatementOutcome(rows=[{"id": 1, "name": "a"}]),
    ]
    result = await executor.execute(
        tenant, "INSERT INTO users VALUES (1, 'a'); SELECT * FROM users;"
    )

    assert result.success
    assert result.data == [{"id": 1, "name": "a"}]
    assert result.row_count == 1
    assert result.message == "1 row(s) returned."


@pytest.mark.asyncio
async def test_statement_error(executor, tenant, scope):
    scope.run_batch.side_effect = StatementError(
        2,
        "INSERT INTO users VALUES (1, 'a')",
        Exception('duplicate key value violates unique constraint "users_pkey"'),
    )
    result = await executor.execute(
        tenant, "CREATE TABLE users (id INT PRIMARY KEY, name TEXT); INSERT INTO users VALUES (1, 'a');"
    )

    assert not result.success
    assert result.error == "Statement 2 failed: Duplicate key violation [INSERT INTO users VALUES (1, 'a')]"


@pytest.mark.asyncio
async def test_unexpected_execution_error(executor, tenant, scope):
    scope.run_batch.side_effect = ConnectionResetError("connection was closed")
    result = await executor.execute(tenant, "SELECT 1")
    assert not result.success
    assert result.error == "connection was closed"


@pytest.mark.asyncio
async def test_transaction_control_denied(executor, tenant, scope):
    result = await executor.execute(tenant, "BEGIN; SELECT 1; COMMIT;")
    assert not result.success
    assert result.error == TRANSACTION_CONTROL_NOT_ALLOWED
    scope.ensure_schema.assert_not_called()
    scope.run_batch.assert_not_called()


@pytest.mark.asyncio
async def test_only_comments(executor, tenant, scope):
    result = await executor.execute(tenant, "-- just a note")
    assert not result.success
    assert result.error == "No executable statements"
    scope.ensure_schema.assert_not_called()


@pytest.mark.asyncio
async def test_code_fences_are_removed(executor, tenant, scope):
    scope.run_batch.return_value = [StatementOutcome(rows=[])]
    result = await executor.execute(tenant, "```sql\nSELECT * FROM users;\n```")

    assert result.success
    scope.run_batch.assert_awaited_once_with(["SELECT * FROM users"])


@pytest.mark.asyncio
async def test_literal_schema_spoofing(executor, tenant, database):
    result = await executor.execute(
        tenant, "SELECT tablename FROM pg_tables WHERE schemaname = 'other_user'"
    )

    assert not result.success
    assert result.error == (
        "Access denied: You can only access your own schema 'alice'. "
        "Attempted to access 'other_user'."
    )
    database.scope.assert_not_called()


@pytest.mark.asyncio
async def test_unparseable_query_is_rejected(tenant, database, scope):
    validator = MagicMock()
    validator.validate.side_effect = SQLParseError("Maximum number of tokens exceeded (10000).")
    executor = QueryExecutor(database, validator=validator)

    values = ", ".join(f"({i}, 'user{i}')" for i in range(3000))
    result = await executor.execute(tenant, f"INSERT INTO users (id, name) VALUES {values}")

    assert not result.success
    assert result.error == QUERY_TOO_COMPLEX
    scope.ensure_schema.assert_not_called()
    scope.run_batch.assert_not_called()


@pytest.mark.asyncio
async def test_dynamic_sql_never_reaches_database(executor, tenant, database):
    result = await executor.execute(
        tenant, "DO $$ BEGIN EXECUTE 'insert into bob.orders values (99)'; END $$"
    )

    assert not result.success
    assert result.error == "Operation not allowed for security reasons"
    database.scope.assert_not_called()
