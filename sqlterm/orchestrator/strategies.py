"""SQL generation strategies behind one interface."""

from typing import Protocol

from sqlterm.config.constants import StrategyName
from sqlterm.orchestrator.state import GenerationPlan, RetryState
from sqlterm.services.agent.service import AIAgentService
from sqlterm.services.sql.generator import SQLGenerator
from sqlterm.services.sql.models import HistoryItem
from sqlterm.services.tenant import Tenant


class SQLGenerationStrategy(Protocol):
    """Turns a request into SQL commands for the flow to execute."""

    name: StrategyName

    async def plan(
        self,
        tenant: Tenant,
        prompt: str,
        state: RetryState,
        history: list[HistoryItem] | None = None,
    ) -> GenerationPlan: ...


class SingleShotStrategy:
    """One model call per attempt; regenerates with the last error on retry."""

    name = StrategyName.SINGLE_SHOT

    def __init__(self, generator: SQLGenerator):
        self.generator = generator

    async def plan(
        self,
        tenant: Tenant,
        prompt: str,
        state: RetryState,
        history: list[HistoryItem] | None = None,
    ) -> GenerationPlan:
        result = await self.generator.generate(
            tenant,
            prompt,
            history=history,
            previous_error=state.last_error,
            previous_query=state.last_query,
        )
        if not result.success or not result.sql_query:
            return GenerationPlan(
                success=False, error=result.error, explanation=result.explanation
            )
        return GenerationPlan(
            success=True,
            commands=[result.sql_query],
            explanation=result.explanation,
            retryable=True,
        )


class AgentStrategy:
    """Two-stage agent; its command list runs once with early stop, no retry."""

    name = StrategyName.AGENT

    def __init__(self, agent: AIAgentService):
        self.agent = agent

    async def plan(
        self,
        tenant: Tenant,
        prompt: str,
        state: RetryState,
        history: list[HistoryItem] | None = None,
    ) -> GenerationPlan:
        result = await self.agent.run(tenant, prompt)
        if not result.success or not result.sql_commands:
            return GenerationPlan(
                success=False,
                error=result.error,
                explanation=result.explanation,
                relevant_tables=result.relevant_tables,
            )
        return GenerationPlan(
            success=True,
            commands=list(result.sql_commands),
            explanation=result.explanation,
            relevant_tables=result.relevant_tables,
        )
