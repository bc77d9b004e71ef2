# gateway/transport/schemas.py
from typing import Any

from pydantic import BaseModel


class FetchOut(BaseModel):
    job: Any | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorOut(BaseModel):
    error: ErrorDetail


def error_content(code: str, message: str) -> dict:
    """Body of every JSON error response."""
    return ErrorOut(error=ErrorDetail(code=code, message=message)).model_dump()
