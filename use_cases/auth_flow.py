"""Authentication gate (application layer)."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from config import Settings
from use_cases.bootstrap import check_session
from use_cases.session_models import SessionStatus
from utils.session_manager import CredentialStore

AuthFlowStatus = Literal["CONTINUE", "STOP"]


@dataclass(frozen=True)
class AuthFlowResult:
    """Result contract for the auth gate: CONTINUE to the app or STOP at the login screen."""

    status: AuthFlowStatus
    reason: str
    username: Optional[str] = None
    user_id: Optional[int] = None
    session_status: SessionStatus = SessionStatus.NOT_LOGGED_IN
    remaining_days: int = 0


def ensure_authenticated_session(
    store: CredentialStore,
    settings: Settings,
    now: Optional[datetime] = None,
) -> AuthFlowResult:
    """Decide whether the stored session lets the user past the login screen."""
    check = check_session(store, settings, now)
    if check.cleared:
        return AuthFlowResult(status="STOP", reason="session_expired", remaining_days=check.remaining_days)
    if check.status is SessionStatus.NOT_LOGGED_IN:
        return AuthFlowResult(status="STOP", reason="auth_required")

    record = store.read()
    if record is None:
        return AuthFlowResult(status="STOP", reason="auth_required")

    reason = "expiring_soon" if check.status is SessionStatus.EXPIRING_SOON else "authenticated"
    return AuthFlowResult(
        status="CONTINUE",
        reason=reason,
        username=record.username,
        user_id=record.user_id,
        session_status=check.status,
        remaining_days=check.remaining_days,
    )
