"""
Response envelope shared by every endpoint.

Successful calls return ``{"success": true, "data": ...}``; failures are
rendered by the exception handlers in main.py as
``{"success": false, "error": {...}}``.
"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None


class Page(BaseModel, Generic[T]):
    """One page of a listing"""
    items: List[T]
    page: int
    page_size: int
    total: int
    has_more: bool


class MessageResponse(BaseModel):
    message: str
