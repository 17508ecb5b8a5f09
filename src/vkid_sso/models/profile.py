"""Profile models for VK ID user info.

Contains the raw provider profile shape and the canonical identity the
rest of the flow works with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class VKUser(BaseModel):
    """User object returned by the VK ID user info endpoint."""

    model_config = ConfigDict(extra="allow")

    user_id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    avatar: str | None = None
    sex: int | None = None
    verified: bool | None = None
    birthday: str | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_user_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("user_id")
    @classmethod
    def require_user_id(cls, v: str) -> str:
        if not v:
            raise ValueError("user_id must not be empty")
        return v


class RawProfile(BaseModel):
    """Successful user info response: ``{"user": {...}}``."""

    model_config = ConfigDict(extra="allow")

    user: VKUser


@dataclass(frozen=True)
class CanonicalIdentity:
    """Provider-independent view of an authenticated VK user."""

    id: str
    display_name: str
    email: str
    avatar_url: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
