"""Session DTOs shared across application layers."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class SessionStatus(str, Enum):
    NOT_LOGGED_IN = "NOT_LOGGED_IN"
    LOGGED_IN = "LOGGED_IN"
    EXPIRING_SOON = "EXPIRING_SOON"


@dataclass(frozen=True)
class CredentialRecord:
    token: str
    username: Optional[str] = None
    user_id: Optional[int] = None
    issued_at: Optional[datetime] = None


@dataclass(frozen=True)
class UserIdentity:
    id: Optional[int]
    username: Optional[str]
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["UserIdentity"]:
        if not isinstance(data, dict):
            return None
        return cls(
            id=_as_int(data.get("id")),
            username=data.get("username"),
            created_at=data.get("createdAt"),
        )


@dataclass(frozen=True)
class AuthPayload:
    """Successful login/register body."""

    token: str
    user: Optional[UserIdentity] = None
    message: Optional[str] = None

    def display_name(self, fallback: str) -> str:
        if self.user is not None and self.user.username:
            return self.user.username
        return fallback


@dataclass(frozen=True)
class ProfileInfo:
    id: Optional[int]
    username: Optional[str]
    created_at: Optional[str] = None

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "ProfileInfo":
        # Profile endpoints may wrap the user under "data" or "user".
        data = body
        for key in ("data", "user"):
            if isinstance(body.get(key), dict):
                data = body[key]
                break
        return cls(
            id=_as_int(data.get("id")),
            username=data.get("username"),
            created_at=data.get("createdAt"),
        )


def _as_int(value: Any) -> Optional[int]:
    # JSON numbers may arrive as floats ("id": 7.0)
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
