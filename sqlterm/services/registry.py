"""Wiring of the services shared by the HTTP app and the terminal."""

from dataclasses import dataclass

from sqlterm.config.settings import Settings
from sqlterm.infrastructure.database.connection import Database
from sqlterm.infrastructure.llm.executor import LLMClient
from sqlterm.orchestrator.sql_flow import AISQLFlow
from sqlterm.orchestrator.strategies import AgentStrategy, SingleShotStrategy
from sqlterm.services.agent.service import AIAgentService
from sqlterm.services.auth.service import AuthService
from sqlterm.services.schema.service import SchemaService
from sqlterm.services.schema.table_selector import TableSelector
from sqlterm.services.sql.executor import QueryExecutor
from sqlterm.services.sql.generator import SQLGenerator


@dataclass
class Services:
    settings: Settings
    database: Database
    llm: LLMClient
    auth: AuthService
    executor: QueryExecutor
    schema: SchemaService
    generator: SQLGenerator
    agent: AIAgentService
    flow: AISQLFlow

    async def close(self) -> None:
        await self.llm.close()
        await self.database.close()


def build_services(settings: Settings, database: Database, llm: LLMClient) -> Services:
    schema = SchemaService(settings, database)
    executor = QueryExecutor(database)
    generator = SQLGenerator(settings, llm, schema)
    agent = AIAgentService(settings, llm, schema, TableSelector(settings, llm))
    flow = AISQLFlow(
        settings,
        executor,
        [SingleShotStrategy(generator), AgentStrategy(agent)],
    )
    return Services(
        settings=settings,
        database=database,
        llm=llm,
        auth=AuthService(settings, database),
        executor=executor,
        schema=schema,
        generator=generator,
        agent=agent,
        flow=flow,
    )
