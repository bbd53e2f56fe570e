"""Account endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sqlterm.api.dependencies import get_auth_service
from sqlterm.api.models import AuthRequest
from sqlterm.api.response import json_error, json_result
from sqlterm.services.auth.service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register")
async def register(
    request: AuthRequest,
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account (201) or explain why not (400)."""
    problem = auth.validate_registration(request.username, request.password)
    if problem:
        return json_error(problem, status_code=400, key="message")

    result = await auth.register(request.username, request.password)
    return json_result(result, status_code=201 if result.success else 400)


@router.post("/login")
async def login(
    request: AuthRequest,
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Check credentials (200) or reject them (401)."""
    if not request.username or not request.password:
        return json_error("Username and password are required", status_code=400, key="message")

    result = await auth.login(request.username, request.password)
    return json_result(result, status_code=200 if result.success else 401)
