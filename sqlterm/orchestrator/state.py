"""AI flow state models."""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from sqlterm.services.sql.models import QueryResult


@dataclass
class RetryState:
    """Bounded retry state for regenerating SQL after an execution error."""

    max_retries: int = 2
    attempt: int = 0  # retries used so far
    last_error: str | None = None
    last_query: str | None = None

    @property
    def can_retry(self) -> bool:
        return self.attempt < self.max_retries

    def record_failure(self, error: str | None, query: str) -> None:
        """Remember the failure and count one more retry."""
        self.last_error = error
        self.last_query = query
        self.attempt += 1


@dataclass
class GenerationPlan:
    """SQL commands a strategy wants executed, in order."""

    success: bool
    commands: list[str] = field(default_factory=list)
    explanation: str | None = None
    error: str | None = None
    retryable: bool = False
    relevant_tables: list[str] | None = None


class StepOutcome(BaseModel):
    """One executed command and its result."""

    sql: str
    result: QueryResult


class FlowResult(BaseModel):
    """Outcome of generating and executing SQL for one request."""

    success: bool
    strategy: str
    steps: list[StepOutcome] = Field(default_factory=list)
    attempts: int = 1
    explanation: str | None = None
    error: str | None = None
    relevant_tables: list[str] | None = None

    @property
    def commands(self) -> list[str]:
        return [step.sql for step in self.steps]
