from typing import Any, Optional

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    size: int
    total: int


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


class MessageResponse(BaseModel):
    message: str
