"""
Back Office — Shared response envelopes
"""
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from backoffice.models.common import LifecycleStatus

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    size: int
    total_pages: int

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    success: bool
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    status: int
    path: str
    timestamp: datetime


class LifecycleUpdate(BaseModel):
    status: LifecycleStatus = Field(..., examples=["INACTIVE"])


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    dependencies: dict[str, str]
