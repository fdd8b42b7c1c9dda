# FILE: medstock/utils/resp.py
from __future__ import annotations

from typing import Any
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from medstock.schemas.common import ApiResponse


def ok(data: Any = None, message: str = "", status_code: int = 200) -> JSONResponse:
    payload = ApiResponse(success=True, message=message, data=data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload.model_dump(exclude={"errors"})))


def err(message: str, status_code: int = 400, errors: Any = None) -> JSONResponse:
    payload = ApiResponse(success=False, message=message, errors=errors)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload.model_dump(exclude={"data"})))
