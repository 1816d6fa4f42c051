"""Outcome contracts returned by the auth repository."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class AuthErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


DEFAULT_MESSAGES = {
    AuthErrorCode.INVALID_INPUT: "Invalid data",
    AuthErrorCode.INVALID_CREDENTIALS: "Incorrect username or password",
    AuthErrorCode.SESSION_EXPIRED: "Session expired",
    AuthErrorCode.INVALID_TOKEN: "Invalid token",
    AuthErrorCode.NOT_FOUND: "User not found",
    AuthErrorCode.SERVER_ERROR: "Internal server error",
    AuthErrorCode.NETWORK_ERROR: "Connection error",
    AuthErrorCode.UNKNOWN_ERROR: "Unknown error",
}

# Failures that prove the stored credential is no longer accepted by the server.
SESSION_ENDING_CODES = frozenset({AuthErrorCode.SESSION_EXPIRED, AuthErrorCode.INVALID_TOKEN})

# Failures that say nothing about the credential itself.
TRANSIENT_CODES = frozenset({AuthErrorCode.NETWORK_ERROR, AuthErrorCode.SERVER_ERROR})


@dataclass(frozen=True)
class AuthFailure:
    """Classified failure. `status_code` keeps the raw HTTP status for diagnostics."""

    code: AuthErrorCode
    message: str
    status_code: Optional[int] = None

    @classmethod
    def of(cls, code: AuthErrorCode, message: Optional[str] = None, status_code: Optional[int] = None) -> "AuthFailure":
        return cls(code=code, message=message or DEFAULT_MESSAGES[code], status_code=status_code)

    @property
    def ends_session(self) -> bool:
        return self.code in SESSION_ENDING_CODES

    @property
    def is_transient(self) -> bool:
        return self.code in TRANSIENT_CODES


@dataclass(frozen=True)
class AuthResult:
    """Either a success value or a classified failure, never both."""

    value: Any = None
    failure: Optional[AuthFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: Any = None) -> "AuthResult":
        return cls(value=value)

    @classmethod
    def fail(cls, failure: AuthFailure) -> "AuthResult":
        return cls(failure=failure)
