# FILE: medstock/schemas/common.py
from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ApiResponse(BaseModel):
    success: bool
    message: str = ""
    data: Optional[Any] = None
    errors: Optional[Any] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
