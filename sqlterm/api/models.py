"""Request/Response models for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from sqlterm.services.sql.models import HistoryItem


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AuthRequest(_Request):
    """Request model for register and login."""

    username: str = Field("", description="Account name")
    password: str = Field("", description="Account password")


class UsernameRequest(_Request):
    username: str = Field("", description="Authenticated user")


class ExecuteRequest(_Request):
    """Request model for raw SQL execution."""

    username: str = Field("", description="Authenticated user")
    query: str = Field("", description="SQL to execute, one or more statements")


class TableRequest(_Request):
    username: str = Field("", description="Authenticated user")
    table_name: str = Field("", alias="tableName", description="Table to describe")


class GenerateSQLRequest(_Request):
    """Request model for single-shot SQL generation."""

    username: str = Field("", description="Authenticated user")
    prompt: str = Field("", description="Natural language request")
    history: list[HistoryItem] | None = Field(None, description="Earlier prompts, oldest first")
    previous_error: str | None = Field(None, alias="previousError")
    previous_query: str | None = Field(None, alias="previousQuery")


class AgentRequest(_Request):
    username: str = Field("", description="Authenticated user")
    prompt: str = Field("", description="Natural language request")


class RunRequest(AgentRequest):
    """Generate and execute in one call."""

    strategy: str | None = Field(None, description="agent or single_shot (default from settings)")


class HealthResponse(BaseModel):
    """Response model for health endpoint."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Application version")
    database: bool = Field(..., description="Whether the database answers")
