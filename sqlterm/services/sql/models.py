"""SQL service models."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QueryResult(BaseModel):
    """Result from executing a tenant query."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    data: list[dict[str, Any]] | None = None
    row_count: int | None = Field(default=None, alias="rowCount")
    message: str | None = None
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> "QueryResult":
        return cls(success=False, error=error)


class AIQueryResult(BaseModel):
    """Result from single-shot SQL generation (before execution)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    sql_query: str | None = Field(default=None, alias="sqlQuery")
    explanation: str | None = None
    error: str | None = None


class HistoryItem(BaseModel):
    """A previous prompt in the same conversation."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    sql_query: str | None = Field(default=None, alias="sqlQuery")
    error: str | None = None


@dataclass
class ValidationResult:
    """Result from SQL validation."""

    is_valid: bool
    errors: list[str]

    @property
    def error(self) -> str | None:
        return self.errors[0] if self.errors else None
