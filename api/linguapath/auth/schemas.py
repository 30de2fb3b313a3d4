"""Pydantic schemas for the authenticated principal."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class UserRole(str, Enum):
    """Roles carried in the access token."""

    ADMIN = "admin"
    STUDENT = "student"


class AuthenticatedUser(BaseModel):
    """User identity carried by a validated access token."""

    id: UUID
    email: str | None = None
    role: UserRole = UserRole.STUDENT

    @classmethod
    def from_token_payload(cls, payload: dict[str, Any]) -> "AuthenticatedUser":
        return cls(
            id=UUID(str(payload["sub"])),
            email=payload.get("email"),
            role=UserRole(payload.get("role") or UserRole.STUDENT.value),
        )
