"""SQL execution and schema endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sqlterm.api.dependencies import get_query_executor, get_schema_service
from sqlterm.api.models import ExecuteRequest, TableRequest, UsernameRequest
from sqlterm.api.response import json_error, json_result
from sqlterm.services.schema.service import SchemaService
from sqlterm.services.sql.executor import QueryExecutor
from sqlterm.services.tenant import Tenant

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/execute")
async def execute(
    request: ExecuteRequest,
    executor: QueryExecutor = Depends(get_query_executor),
) -> JSONResponse:
    """Execute SQL in the user's schema."""
    if not request.username or not request.query:
        return json_error("Username and query are required")

    result = await executor.execute(Tenant(request.username), request.query)
    return json_result(result, status_code=200 if result.success else 400)


@router.post("/get-tables")
async def get_tables(
    request: UsernameRequest,
    schema_service: SchemaService = Depends(get_schema_service),
) -> JSONResponse:
    """List the tables of the user's schema."""
    if not request.username:
        return json_error("Username is required")

    try:
        tables = await schema_service.list_tables(Tenant(request.username))
    except Exception as e:
        logger.error("Get tables error: %s", e, exc_info=True)
        return json_error("Failed to retrieve tables", status_code=500)
    return json_result({"success": True, "tables": tables})


@router.post("/get-schema")
async def get_schema(
    request: TableRequest,
    schema_service: SchemaService = Depends(get_schema_service),
) -> JSONResponse:
    """Describe one table: columns, primary keys and foreign keys."""
    if not request.username or not request.table_name:
        return json_error("Username and table name are required")

    try:
        description = await schema_service.describe_table(
            Tenant(request.username), request.table_name
        )
    except Exception as e:
        logger.error("Get schema error: %s", e, exc_info=True)
        return json_error("Failed to retrieve table schema", status_code=500)

    if description is None:
        return json_error(f"Table '{request.table_name}' does not exist", status_code=404)
    return json_result(
        {"success": True, "schema": description.model_dump(by_alias=True)}
    )


@router.post("/schema-info")
async def schema_info(
    request: UsernameRequest,
    schema_service: SchemaService = Depends(get_schema_service),
) -> JSONResponse:
    """Full introspection of the user's schema, plus the text given to the model."""
    if not request.username:
        return json_error("Username is required")

    info = await schema_service.get_schema_info(Tenant(request.username))
    return json_result(
        {
            "success": True,
            "schemaInfo": info.model_dump(by_alias=True),
            "description": schema_service.format_for_ai(info),
        }
    )
