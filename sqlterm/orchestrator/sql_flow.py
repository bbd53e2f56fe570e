"""SQL generation and execution flow with bounded retry."""

import logging
import time

from sqlterm.config.constants import FlowStep, StrategyName, log_flow_step
from sqlterm.config.settings import Settings
from sqlterm.infrastructure.logging.logger import StructuredLogger
from sqlterm.orchestrator.state import FlowResult, RetryState, StepOutcome
from sqlterm.orchestrator.strategies import SQLGenerationStrategy
from sqlterm.services.sql.executor import QueryExecutor
from sqlterm.services.sql.models import HistoryItem
from sqlterm.services.tenant import Tenant

logger = logging.getLogger(__name__)


class AISQLFlow:
    """Orchestrate SQL generation and execution for an ``/ai`` request.

    Commands of a plan run one Query Executor call each, in order, stopping at
    the first failure. A failed plan from a retryable strategy is regenerated
    with the error and the failing query, up to ``ai_max_retries`` times;
    intermediate failures are not reported.
    """

    def __init__(
        self,
        settings: Settings,
        executor: QueryExecutor,
        strategies: list[SQLGenerationStrategy],
    ) -> None:
        self.settings = settings
        self.executor = executor
        self.strategies = {strategy.name.value: strategy for strategy in strategies}
        self.structured_logger = StructuredLogger(__name__)

    def strategy_for(self, name: str | StrategyName | None = None) -> SQLGenerationStrategy:
        key = name.value if isinstance(name, StrategyName) else (name or self.settings.ai_strategy)
        if key not in self.strategies:
            raise ValueError(f"Unknown AI strategy '{key}'")
        return self.strategies[key]

    async def run(
        self,
        tenant: Tenant,
        prompt: str,
        strategy: str | StrategyName | None = None,
        history: list[HistoryItem] | None = None,
    ) -> FlowResult:
        """Generate and execute SQL for ``prompt``; never raises for execution errors."""
        selected = self.strategy_for(strategy)
        state = RetryState(max_retries=self.settings.ai_max_retries)
        start = time.time()

        while True:
            log_flow_step(
                FlowStep.SQL_GENERATION,
                f"strategy={selected.name.value} attempt={state.attempt + 1}",
            )
            try:
                plan = await selected.plan(tenant, prompt, state, history=history)
            except Exception as e:
                self.structured_logger.log_error(
                    "sql_generation",
                    e,
                    {"strategy": selected.name.value, "schema": tenant.schema_name},
                )
                return FlowResult(
                    success=False,
                    strategy=selected.name.value,
                    attempts=state.attempt + 1,
                    error=str(e) or "Failed to generate SQL",
                )

            if not plan.success:
                return FlowResult(
                    success=False,
                    strategy=selected.name.value,
                    attempts=state.attempt + 1,
                    explanation=plan.explanation,
                    error=plan.error,
                    relevant_tables=plan.relevant_tables,
                )

            log_flow_step(FlowStep.SQL_EXECUTION, f"{len(plan.commands)} command(s)")
            steps: list[StepOutcome] = []
            failed: StepOutcome | None = None
            for sql in plan.commands:
                result = await self.executor.execute(tenant, sql)
                steps.append(StepOutcome(sql=sql, result=result))
                if not result.success:
                    failed = steps[-1]
                    break

            if failed is None:
                self.structured_logger.log_step(
                    "ai_flow",
                    {
                        "strategy": selected.name.value,
                        "schema": tenant.schema_name,
                        "commands": len(steps),
                        "retries": state.attempt,
                    },
                    duration_ms=(time.time() - start) * 1000,
                )
                return FlowResult(
                    success=True,
                    strategy=selected.name.value,
                    steps=steps,
                    attempts=state.attempt + 1,
                    explanation=plan.explanation,
                    relevant_tables=plan.relevant_tables,
                )

            error = failed.result.error
            if plan.retryable and state.can_retry:
                state.record_failure(error, failed.sql)
                log_flow_step(FlowStep.RETRY, f"{state.attempt}/{state.max_retries}: {error}")
                continue

            if state.attempt > 0:
                error = f"Query failed after {state.attempt} retries: {error}"
            logger.warning("AI flow failed for '%s': %s", tenant.schema_name, error)
            return FlowResult(
                success=False,
                strategy=selected.name.value,
                steps=steps,
                attempts=state.attempt + 1,
                explanation=plan.explanation,
                error=error,
                relevant_tables=plan.relevant_tables,
            )
