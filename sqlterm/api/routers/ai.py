"""AI SQL endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sqlterm.api.dependencies import get_agent_service, get_sql_flow, get_sql_generator
from sqlterm.api.models import AgentRequest, GenerateSQLRequest, RunRequest
from sqlterm.api.response import json_error, json_result
from sqlterm.orchestrator.sql_flow import AISQLFlow
from sqlterm.services.agent.service import AIAgentService
from sqlterm.services.sql.generator import SQLGenerator
from sqlterm.services.tenant import Tenant

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-sql")
async def generate_sql(
    request: GenerateSQLRequest,
    generator: SQLGenerator = Depends(get_sql_generator),
) -> JSONResponse:
    """Generate SQL without executing it."""
    if not request.username or not request.prompt:
        return json_error("Username and prompt are required")

    result = await generator.generate(
        Tenant(request.username),
        request.prompt,
        history=request.history,
        previous_error=request.previous_error,
        previous_query=request.previous_query,
    )
    return json_result(result, status_code=200 if result.success else 400)


@router.post("/agent")
async def agent(
    request: AgentRequest,
    agent_service: AIAgentService = Depends(get_agent_service),
) -> JSONResponse:
    """Plan commands with the two-stage agent without executing them."""
    if not request.username or not request.prompt:
        return json_error("Username and prompt are required")

    result = await agent_service.run(Tenant(request.username), request.prompt)
    return json_result(result)


@router.post("/run")
async def run(
    request: RunRequest,
    flow: AISQLFlow = Depends(get_sql_flow),
) -> JSONResponse:
    """Generate and execute SQL, retrying or stopping early as the strategy requires."""
    if not request.username or not request.prompt:
        return json_error("Username and prompt are required")

    try:
        strategy = flow.strategy_for(request.strategy)
    except ValueError as e:
        return json_error(str(e))

    result = await flow.run(Tenant(request.username), request.prompt, strategy=strategy.name)
    return json_result(result)
