"""Order models."""

from __future__ import annotations

from decimal import Decimal
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field

from models.account import Account


class Priority(IntEnum):
    LOW = 1
    NORMAL = 2
    HIGH = 3


class Category(BaseModel):
    """Product category; categories nest."""

    name: str
    parent: Optional[Category] = None
    children: list[Category] = []


class LineItem(BaseModel):
    sku: str = Field(..., description="Stock keeping unit", examples=["SKU-1"])
    quantity: int = Field(1, alias="qty")
    price: Decimal


class Order(BaseModel):
    id: str
    owner: Account
    items: list[LineItem]
    priority: Priority = Priority.NORMAL
    category: Category | None = None
