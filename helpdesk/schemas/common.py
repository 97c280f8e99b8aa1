# helpdesk/schemas/common.py
from __future__ import annotations

from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ListEnvelope(BaseModel, Generic[T]):
    success: bool = True
    count: int
    data: list[T]


class ErrorItem(BaseModel):
    field: str
    message: str


class ErrorOut(BaseModel):
    success: bool = False
    detail: str
    errors: list[ErrorItem] | None = None
