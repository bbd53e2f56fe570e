"""AI agent models."""

from pydantic import BaseModel, ConfigDict, Field


class AgentCommands(BaseModel):
    """Structured reply of the command generation call."""

    commands: list[str] = Field(default_factory=list)
    explanation: str | None = None


class AgentResult(BaseModel):
    """Commands planned by the agent (before execution)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    sql_commands: list[str] | None = Field(default=None, alias="sqlCommands")
    error: str | None = None
    explanation: str | None = None
    relevant_tables: list[str] | None = Field(default=None, alias="relevantTables")
