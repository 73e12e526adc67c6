"""Account models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class AccountStatus(str, Enum):
    """Lifecycle state of an account."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


@dataclass
class Timestamps:
    created_at: datetime
    updated_at: Optional[datetime]


@dataclass
class Address:
    street: str
    city: str


@dataclass
class Account(Timestamps):
    """A customer account."""

    id: int  # swag: example=1
    uuid: UUID
    name: str  # Display name swag: example="account name"
    status: AccountStatus
    address: Address
    tags: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    password_hash: str = ""  # swag: ignore
    _cache: dict = field(default_factory=dict)


@dataclass
class NewAccount:
    name: str
    email: str  # swag: format=email
    nickname: str = ""  # swag: rename=nick required


class Profile:
    UserName: str
    display_name: str
    """Name shown to other users."""
