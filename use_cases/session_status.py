"""Pure session freshness rules over a stored credential record."""

import math
from datetime import datetime, timedelta
from typing import Optional

from use_cases.session_models import CredentialRecord, SessionStatus

DEFAULT_VALIDITY_WINDOW = timedelta(days=30)
DEFAULT_WARNING_WINDOW = timedelta(days=3)
_DAY_SECONDS = 24 * 60 * 60


def _elapsed(record: CredentialRecord, now: datetime) -> Optional[timedelta]:
    if record.issued_at is None:
        return None
    return now - record.issued_at


def is_expired(
    record: Optional[CredentialRecord],
    now: datetime,
    validity_window: timedelta = DEFAULT_VALIDITY_WINDOW,
) -> bool:
    """True when a stored token has outlived the validity window.

    A token without issued_at cannot be aged and counts as expired.
    """
    if record is None or not record.token:
        return False
    elapsed = _elapsed(record, now)
    return elapsed is None or elapsed >= validity_window


def resolve(
    record: Optional[CredentialRecord],
    now: datetime,
    validity_window: timedelta = DEFAULT_VALIDITY_WINDOW,
    warning_window: timedelta = DEFAULT_WARNING_WINDOW,
) -> SessionStatus:
    if record is None or not record.token:
        return SessionStatus.NOT_LOGGED_IN
    if is_expired(record, now, validity_window):
        return SessionStatus.NOT_LOGGED_IN
    if validity_window - _elapsed(record, now) <= warning_window:
        return SessionStatus.EXPIRING_SOON
    return SessionStatus.LOGGED_IN


def remaining_days(
    record: Optional[CredentialRecord],
    now: datetime,
    validity_window: timedelta = DEFAULT_VALIDITY_WINDOW,
) -> int:
    """Whole days left, rounded up; negative once the window has passed."""
    if record is None or record.issued_at is None:
        return 0
    remaining = validity_window - _elapsed(record, now)
    return math.ceil(remaining.total_seconds() / _DAY_SECONDS)
