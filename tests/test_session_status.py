from datetime import datetime, timedelta, timezone

import pytest

from use_cases.session_models import CredentialRecord, SessionStatus
from use_cases.session_status import is_expired, remaining_days, resolve

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)


def _issued(days_ago: float) -> CredentialRecord:
    return CredentialRecord(token="abc", username="juan", issued_at=NOW - timedelta(days=days_ago))


def test_no_record_is_not_logged_in():
    assert resolve(None, NOW) is SessionStatus.NOT_LOGGED_IN
    assert is_expired(None, NOW) is False
    assert remaining_days(None, NOW) == 0


def test_empty_token_is_not_logged_in():
    record = CredentialRecord(token="", issued_at=NOW)
    assert resolve(record, NOW) is SessionStatus.NOT_LOGGED_IN


def test_fresh_token_is_logged_in():
    assert resolve(_issued(1), NOW) is SessionStatus.LOGGED_IN
    assert remaining_days(_issued(1), NOW) == 29


def test_token_29_days_old_is_expiring_soon():
    record = _issued(29)
    assert resolve(record, NOW) is SessionStatus.EXPIRING_SOON
    assert remaining_days(record, NOW) == 1


def test_token_31_days_old_is_expired():
    record = _issued(31)
    assert is_expired(record, NOW)
    assert resolve(record, NOW) is SessionStatus.NOT_LOGGED_IN
    assert remaining_days(record, NOW) == -1


@pytest.mark.parametrize(
    "days_ago, expected",
    [
        (26.9, SessionStatus.LOGGED_IN),
        (27, SessionStatus.EXPIRING_SOON),
        (29.99, SessionStatus.EXPIRING_SOON),
        (30, SessionStatus.NOT_LOGGED_IN),
    ],
)
def test_window_boundaries(days_ago, expected):
    assert resolve(_issued(days_ago), NOW) is expected


def test_partial_day_rounds_up():
    assert remaining_days(_issued(29.5), NOW) == 1


def test_missing_issued_at_counts_as_expired():
    record = CredentialRecord(token="abc")
    assert is_expired(record, NOW)
    assert resolve(record, NOW) is SessionStatus.NOT_LOGGED_IN
    assert remaining_days(record, NOW) == 0


def test_custom_windows():
    record = _issued(5)
    assert resolve(record, NOW, timedelta(days=7), timedelta(days=1)) is SessionStatus.LOGGED_IN
    assert resolve(record, NOW, timedelta(days=7), timedelta(days=2)) is SessionStatus.EXPIRING_SOON
    assert resolve(record, NOW, timedelta(days=5), timedelta(days=1)) is SessionStatus.NOT_LOGGED_IN


def test_resolve_is_pure():
    record = _issued(10)
    first = resolve(record, NOW)
    assert resolve(record, NOW) is first
    assert record.issued_at == NOW - timedelta(days=10)
