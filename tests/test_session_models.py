from use_cases.domain_models import AuthErrorCode, AuthFailure, AuthResult
from use_cases.session_models import AuthPayload, ProfileInfo, UserIdentity


def test_user_identity_from_dict() -> None:
    user = UserIdentity.from_dict({"id": 7.0, "username": "juan", "createdAt": "2026-01-05T10:00:00Z"})
    assert user == UserIdentity(id=7, username="juan", created_at="2026-01-05T10:00:00Z")
    assert UserIdentity.from_dict(None) is None
    assert UserIdentity.from_dict({"id": "x"}).id is None


def test_profile_info_unwraps_envelopes() -> None:
    flat = ProfileInfo.from_body({"id": 1, "username": "a"})
    in_data = ProfileInfo.from_body({"success": True, "data": {"id": 1, "username": "a"}})
    in_user = ProfileInfo.from_body({"valid": True, "user": {"id": 1, "username": "a"}})
    assert flat == in_data == in_user


def test_display_name_falls_back() -> None:
    assert AuthPayload(token="t", user=UserIdentity(id=1, username="juan")).display_name("typed") == "juan"
    assert AuthPayload(token="t").display_name("typed") == "typed"
    assert AuthPayload(token="t", user=UserIdentity(id=1, username="")).display_name("typed") == "typed"


def test_failure_defaults_and_policy() -> None:
    failure = AuthFailure.of(AuthErrorCode.SESSION_EXPIRED)
    assert failure.message == "Session expired"
    assert failure.ends_session
    assert not failure.is_transient

    network = AuthFailure.of(AuthErrorCode.NETWORK_ERROR, "offline")
    assert network.message == "offline"
    assert network.is_transient
    assert not network.ends_session

    assert not AuthFailure.of(AuthErrorCode.INVALID_CREDENTIALS).ends_session


def test_result_is_success_xor_failure() -> None:
    assert AuthResult.success("value").ok
    failed = AuthResult.fail(AuthFailure.of(AuthErrorCode.UNKNOWN_ERROR))
    assert not failed.ok
    assert failed.value is None
