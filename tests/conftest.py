"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sqlterm.config.settings import Settings
from sqlterm.services.schema.models import SchemaInfo
from sqlterm.services.tenant import Tenant


@pytest.fixture
def settings():
    """Provide settings fixture."""
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        database_url="postgresql://localhost/sqlterm_test",
        bcrypt_rounds=4,
    )


@pytest.fixture
def tenant():
    return Tenant("alice")


@pytest.fixture
def scope():
    """Tenant scope whose batch succeeds with no rows."""
    scope = MagicMock()
    scope.ensure_schema = AsyncMock()
    scope.run_batch = AsyncMock(return_value=[])
    return scope


@pytest.fixture
def database(scope):
    """Database stand-in: trusted reads are AsyncMocks, tenant SQL goes through ``scope``."""
    database = MagicMock()
    database.scope.return_value = scope
    database.fetch = AsyncMock(return_value=[])
    database.fetchval = AsyncMock(return_value=None)
    database.execute = AsyncMock(return_value="OK")
    database.health_check = AsyncMock(return_value=True)
    return database


@pytest.fixture
def llm():
    """Configured LLM client stand-in."""
    llm = MagicMock()
    llm.is_configured = True
    llm.complete = AsyncMock(return_value="SELECT 1;")
    llm.complete_structured = AsyncMock()
    return llm


@pytest.fixture
def schema_service():
    schema_service = MagicMock()
    schema_service.list_tables = AsyncMock(return_value=[])
    schema_service.get_schema_info = AsyncMock(return_value=SchemaInfo.empty())
    schema_service.describe_table = AsyncMock(return_value=None)
    schema_service.format_for_ai.return_value = "Database Schema (0 tables):"
    return schema_service
