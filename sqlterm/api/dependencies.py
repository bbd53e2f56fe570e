"""FastAPI dependencies."""

from fastapi import Request

from sqlterm.orchestrator.sql_flow import AISQLFlow
from sqlterm.services.agent.service import AIAgentService
from sqlterm.services.auth.service import AuthService
from sqlterm.services.registry import Services
from sqlterm.services.schema.service import SchemaService
from sqlterm.services.sql.executor import QueryExecutor
from sqlterm.services.sql.generator import SQLGenerator


def get_services(request: Request) -> Services:
    """Services created in the application lifespan."""
    return request.app.state.services


def get_auth_service(request: Request) -> AuthService:
    return get_services(request).auth


def get_query_executor(request: Request) -> QueryExecutor:
    return get_services(request).executor


def get_schema_service(request: Request) -> SchemaService:
    return get_services(request).schema


def get_sql_generator(request: Request) -> SQLGenerator:
    return get_services(request).generator


def get_agent_service(request: Request) -> AIAgentService:
    return get_services(request).agent


def get_sql_flow(request: Request) -> AISQLFlow:
    return get_services(request).flow
