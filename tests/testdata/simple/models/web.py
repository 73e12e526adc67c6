"""Envelope types shared by all handlers."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIError(BaseModel):
    code: int
    message: str


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    next_cursor: str | None = None
