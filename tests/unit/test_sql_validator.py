"""Tests for SQL validation service."""

import pytest

from sqlterm.config.validation import (
    ACCESS_DENIED_CATALOG,
    ACCESS_DENIED_PUBLIC,
    OPERATION_NOT_ALLOWED,
    check_dangerous_operations,
    is_transaction_control,
    normalize_sql,
    referenced_schemas,
    validate_schema_access,
)
from sqlterm.services.sql.validation import SQLValidationService
from sqlterm.services.tenant import Tenant


@pytest.fixture
def alice():
    return Tenant("alice")


def test_sql_validator_own_tables(alice):
    """Test SQL validation service with an unqualified query."""
    result = SQLValidationService.validate("SELECT * FROM users WHERE id = 1", alice)
    assert result.is_valid
    assert result.errors == []


def test_sql_validator_own_schema_prefix(alice):
    result = SQLValidationService.validate("SELECT * FROM alice.users", alice)
    assert result.is_valid


def test_sql_validator_unquoted_name_folds_case(alice):
    result = SQLValidationService.validate("SELECT * FROM ALICE.users", alice)
    assert result.is_valid


def test_sql_validator_cross_schema(alice):
    """Test SQL validation service with another user's schema."""
    result = SQLValidationService.validate("SELECT * FROM bob.users", alice)
    assert not result.is_valid
    assert result.error == (
        "Access denied: Cannot access schema 'bob'. You can only access your own schema 'alice'."
    )


def test_sql_validator_quoted_schema(alice):
    result = SQLValidationService.validate('SELECT * FROM "Bob".users', alice)
    assert not result.is_valid
    assert "'Bob'" in result.error


def test_sql_validator_cross_schema_in_join(alice):
    result = SQLValidationService.validate(
        "SELECT o.id FROM orders o JOIN bob.customers c ON c.id = o.customer_id", alice
    )
    assert not result.is_valid
    assert "'bob'" in result.error


def test_sql_validator_insert_into_other_schema(alice):
    result = SQLValidationService.validate("INSERT INTO bob.users (id) VALUES (1)", alice)
    assert not result.is_valid


def test_sql_validator_aliases_are_not_schemas(alice):
    result = SQLValidationService.validate(
        "SELECT u.name, o.total FROM users u JOIN orders AS o ON o.user_id = u.id", alice
    )
    assert result.is_valid


def test_sql_validator_table_qualified_columns(alice):
    result = SQLValidationService.validate("SELECT users.name FROM users", alice)
    assert result.is_valid


def test_sql_validator_subquery_alias(alice):
    result = SQLValidationService.validate(
        "SELECT t.n FROM (SELECT count(*) AS n FROM users) t", alice
    )
    assert result.is_valid


def test_sql_validator_literal_mentioning_schema(alice):
    """Plain value literals are data, not references."""
    result = SQLValidationService.validate(
        "INSERT INTO notes (body) VALUES ('see public.users and bob.orders')", alice
    )
    assert result.is_valid


def test_sql_validator_public_schema(alice):
    result = SQLValidationService.validate('SELECT * FROM public."user"', alice)
    assert not result.is_valid
    assert result.error == ACCESS_DENIED_PUBLIC


def test_sql_validator_catalog_without_filter(alice):
    result = SQLValidationService.validate("SELECT table_name FROM information_schema.tables", alice)
    assert not result.is_valid
    assert result.error == ACCESS_DENIED_CATALOG


def test_sql_validator_catalog_with_own_filter(alice):
    result = SQLValidationService.validate(
        "SELECT table_name FROM information_schema.tables WHERE table_schema = 'alice'", alice
    )
    assert result.is_valid


def test_sql_validator_catalog_filter_widened_with_or(alice):
    result = SQLValidationService.validate(
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = 'alice' OR 1 = 1",
        alice,
    )
    assert not result.is_valid
    assert result.error == ACCESS_DENIED_CATALOG


def test_sql_validator_quoted_catalog_name(alice):
    result = SQLValidationService.validate('SELECT * FROM "information_schema".schemata', alice)
    assert not result.is_valid
    assert result.error == ACCESS_DENIED_CATALOG


def test_sql_validator_pg_catalog_relation(alice):
    result = SQLValidationService.validate("SELECT * FROM pg_namespace", alice)
    assert not result.is_valid
    assert result.error == ACCESS_DENIED_CATALOG


def test_sql_validator_pg_tables_own_schema(alice):
    result = SQLValidationService.validate(
        "SELECT tablename FROM pg_tables WHERE schemaname = 'alice'", alice
    )
    assert result.is_valid


def test_sql_validator_literal_filter_other_schema(alice):
    result = SQLValidationService.validate(
        "SELECT tablename FROM pg_tables WHERE schemaname = 'bob'", alice
    )
    assert not result.is_valid
    assert result.error == (
        "Access denied: You can only access your own schema 'alice'. Attempted to access 'bob'."
    )


@pytest.mark.parametrize(
    "sql",
    [
        "DROP DATABASE production",
        "drop   database production",
        "DROP/**/DATABASE production",
        "DROP -- hidden\nDATABASE production",
        "CREATE USER mallory WITH PASSWORD 'x'",
        "ALTER USER postgres WITH SUPERUSER",
        "CREATE ROLE admin",
        "GRANT ALL ON users TO bob",
        "REVOKE SELECT ON users FROM bob",
        "SET ROLE postgres",
        "SELECT * FROM pg_shadow",
    ],
)
def test_sql_validator_dangerous_operations(alice, sql):
    """Test SQL validation service with dangerous operations."""
    result = SQLValidationService.validate(sql, alice)
    assert not result.is_valid
    assert len(result.errors) > 0


def test_dangerous_keywords_inside_literals_are_allowed():
    assert check_dangerous_operations("INSERT INTO notes (body) VALUES ('please grant access')") is None


def test_dangerous_operation_message():
    assert check_dangerous_operations("DROP DATABASE x") == OPERATION_NOT_ALLOWED


def test_search_path_other_schema(alice):
    allowed, error = validate_schema_access("SET search_path TO bob", alice)
    assert not allowed
    assert "'bob'" in error


def test_search_path_quoted_literal(alice):
    allowed, _ = validate_schema_access("SET search_path = 'bob'", alice)
    assert not allowed


def test_search_path_own_schema(alice):
    allowed, error = validate_schema_access("SET search_path TO alice", alice)
    assert allowed
    assert error is None


def test_set_config_search_path(alice):
    allowed, _ = validate_schema_access("SELECT set_config('search_path', 'bob', false)", alice)
    assert not allowed


def test_schema_ddl_other_schema(alice):
    allowed, _ = validate_schema_access("DROP SCHEMA bob CASCADE", alice)
    assert not allowed


def test_schema_rename_target(alice):
    allowed, _ = validate_schema_access("ALTER SCHEMA alice RENAME TO bob", alice)
    assert not allowed


def test_schema_function_call_qualifier(alice):
    allowed, _ = validate_schema_access("SELECT bob.secret_fn()", alice)
    assert not allowed


def test_empty_query(alice):
    allowed, error = validate_schema_access("   ", alice)
    assert not allowed
    assert error == "SQL query is empty"


def test_tenant_with_special_characters():
    tenant = Tenant("jane.doe")
    result = SQLValidationService.validate("SELECT * FROM jane_doe.users", tenant)
    assert result.is_valid


def test_referenced_schemas_in_order():
    normalized = normalize_sql("SELECT * FROM a.x JOIN b.y ON a.x.id = b.y.id")
    assert referenced_schemas(normalized) == ["a", "b", "a", "b"]


def test_normalize_sql_masks_literals():
    normalized = normalize_sql("SELECT 'Secret' /* note */ FROM t")
    assert normalized.masked == "select '' from t"
    assert "Secret" in normalized.raw
    assert "note" not in normalized.raw


@pytest.mark.parametrize("statement", ["BEGIN", "commit", "ROLLBACK", "START TRANSACTION", "savepoint a"])
def test_transaction_control(statement):
    assert is_transaction_control(statement)


def test_not_transaction_control():
    assert not is_transaction_control("SELECT * FROM commits")


# ==========================================
#  SQL HELD IN LITERALS
# ==========================================


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT query_to_xml('select * from bob.secrets', true, true, '')",
        "DO $$ BEGIN EXECUTE 'insert into bob.orders values (99)'; END $$",
        "CREATE FUNCTION f() RETURNS SETOF record LANGUAGE sql AS $$ select * from bob.t $$",
        "CREATE OR REPLACE PROCEDURE p() LANGUAGE sql AS $body$ delete from bob.t $body$",
        "SELECT * FROM dblink('dbname=app', 'select * from bob.t') AS t(id int)",
        "PREPARE q AS SELECT 1; EXECUTE q",
        "SELECT to_regclass('bob.t')",
        "SELECT has_table_privilege('bob.t', 'select')",
        "CREATE EXTENSION dblink",
    ],
)
def test_dynamic_sql_is_denied(alice, sql):
    result = SQLValidationService.validate(sql, alice)
    assert not result.is_valid
    assert result.error == OPERATION_NOT_ALLOWED


@pytest.mark.parametrize(
    "sql, schema",
    [
        ("SELECT nextval('bob.orders_id_seq')", "bob"),
        ("SELECT setval('BOB.orders_id_seq', 1)", "bob"),
        ("SELECT count(*) FROM pg_class WHERE oid = 'bob.t'::regclass", "bob"),
        ("SELECT CAST('bob.t' AS regclass)", "bob"),
        ("SELECT regclass 'bob.t'", "bob"),
        ("SELECT currval('\"Bob\".seq')", "Bob"),
    ],
)
def test_relation_name_literals_other_schema(alice, sql, schema):
    allowed, error = validate_schema_access(sql, alice)
    assert not allowed
    assert error == (
        f"Access denied: Cannot access schema '{schema}'. "
        "You can only access your own schema 'alice'."
    )


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT nextval('users_id_seq')",
        "SELECT nextval('alice.users_id_seq'::regclass)",
        "CREATE TABLE t (id integer DEFAULT nextval('t_id_seq'::regclass))",
        "INSERT INTO users (id, name) VALUES (1, 'a') ON CONFLICT (id) DO NOTHING",
        "INSERT INTO jobs (name) VALUES ('execute nightly')",
    ],
)
def test_ordinary_sql_is_allowed(alice, sql):
    allowed, error = validate_schema_access(sql, alice)
    assert allowed, error


def test_normalize_sql_masks_dollar_quoted_bodies():
    normalized = normalize_sql("DO $$ BEGIN PERFORM 1; END $$")
    assert normalized.masked == "do ''"
