"""JSON responses for result models."""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def json_result(result: BaseModel | dict[str, Any], status_code: int = 200) -> JSONResponse:
    """Serialize a result with its camelCase wire names, dropping unset fields."""
    if isinstance(result, BaseModel):
        content = result.model_dump(by_alias=True, exclude_none=True)
    else:
        content = result
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def json_error(message: str, status_code: int = 400, key: str = "error") -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, key: message})
