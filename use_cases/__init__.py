"""Application layer contracts for the session and authentication flows.

Flow controllers live in their own modules (login_flow, registration_flow,
profile_flow, auth_flow, bootstrap) and are imported from there.
"""

from .domain_models import AuthErrorCode, AuthFailure, AuthResult
from .session_models import AuthPayload, CredentialRecord, ProfileInfo, SessionStatus, UserIdentity
from .session_status import is_expired, remaining_days, resolve

__all__ = [
    "AuthErrorCode",
    "AuthFailure",
    "AuthPayload",
    "AuthResult",
    "CredentialRecord",
    "ProfileInfo",
    "SessionStatus",
    "UserIdentity",
    "is_expired",
    "remaining_days",
    "resolve",
]
