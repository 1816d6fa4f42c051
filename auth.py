"""Auth repository: the single boundary between the app and the remote auth service."""

import logging
from typing import Any, Optional

import requests

from infrastructure.http.api_client import (
    ENDPOINT_AUTH_LOGIN,
    ENDPOINT_AUTH_LOGOUT,
    ENDPOINT_AUTH_REGISTER,
    ENDPOINT_AUTH_VERIFY,
    ENDPOINT_HEALTH,
    ENDPOINT_TEST,
    ENDPOINT_USER_PROFILE,
    ApiClient,
    build_client,
    is_token_expired,
)
from infrastructure.observability import mask_token
from use_cases.domain_models import AuthErrorCode, AuthFailure, AuthResult
from use_cases.session_models import AuthPayload, ProfileInfo, UserIdentity

log = logging.getLogger(__name__)


def _json_body(response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None


def _server_message(response) -> Optional[str]:
    body = _json_body(response)
    if isinstance(body, dict):
        for key in ("message", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return None


def classify_status(status_code: int, authenticated: bool) -> AuthErrorCode:
    """Map an HTTP failure status to the error taxonomy."""
    if status_code == 400:
        return AuthErrorCode.INVALID_INPUT
    if is_token_expired(status_code):
        return AuthErrorCode.SESSION_EXPIRED if authenticated else AuthErrorCode.INVALID_CREDENTIALS
    if status_code == 404:
        return AuthErrorCode.NOT_FOUND
    if 500 <= status_code < 600:
        return AuthErrorCode.SERVER_ERROR
    return AuthErrorCode.UNKNOWN_ERROR


def classify_response(response, authenticated: bool) -> AuthFailure:
    code = classify_status(response.status_code, authenticated)
    message = _server_message(response)
    if code is AuthErrorCode.UNKNOWN_ERROR and not message:
        message = f"HTTP {response.status_code}: {(response.text or '')[:200]}"
    return AuthFailure.of(code, message, status_code=response.status_code)


def network_failure(error: Exception) -> AuthFailure:
    return AuthFailure.of(AuthErrorCode.NETWORK_ERROR, f"Connection error: {error}")


def unexpected_failure(error: Exception) -> AuthFailure:
    return AuthFailure.of(AuthErrorCode.UNKNOWN_ERROR, f"Unexpected error: {error}")


class AuthRepository:
    def __init__(self, client: ApiClient):
        self.client = client

    def register(self, username: str, password: str) -> AuthResult:
        return self._credentials_call(ENDPOINT_AUTH_REGISTER, username, password, "Registration failed")

    def login(self, username: str, password: str) -> AuthResult:
        return self._credentials_call(ENDPOINT_AUTH_LOGIN, username, password, "Login failed")

    def verify_token(self, token: str) -> AuthResult:
        """
        Check a stored token with the server.

        Only transport failures and 5xx are reported as transient
        (NETWORK_ERROR / SERVER_ERROR); every other non-success is INVALID_TOKEN.
        """
        try:
            response = self.client.get(ENDPOINT_AUTH_VERIFY, token=token)
        except requests.exceptions.RequestException as e:
            log.warning(f"Token verification unreachable: {e}")
            return AuthResult.fail(network_failure(e))
        except Exception as e:
            log.error(f"Token verification crashed: {e}", exc_info=True)
            return AuthResult.fail(unexpected_failure(e))

        status = response.status_code
        if 200 <= status < 300:
            body = _json_body(response)
            if isinstance(body, dict):
                log.info(f"Token verified {mask_token(token)}")
                return AuthResult.success(ProfileInfo.from_body(body))
            log.warning("Token verification returned an unreadable body")
        elif 500 <= status < 600:
            log.warning(f"Token verification got server error {status}")
            return AuthResult.fail(AuthFailure.of(AuthErrorCode.SERVER_ERROR, _server_message(response), status))
        else:
            log.info(f"Token rejected by server ({status}) {mask_token(token)}")
        return AuthResult.fail(AuthFailure.of(AuthErrorCode.INVALID_TOKEN, status_code=status))

    def get_profile(self, token: str) -> AuthResult:
        try:
            response = self.client.get(ENDPOINT_USER_PROFILE, token=token)
        except requests.exceptions.RequestException as e:
            log.warning(f"Profile fetch unreachable: {e}")
            return AuthResult.fail(network_failure(e))
        except Exception as e:
            log.error(f"Profile fetch crashed: {e}", exc_info=True)
            return AuthResult.fail(unexpected_failure(e))

        if 200 <= response.status_code < 300:
            body = _json_body(response)
            if isinstance(body, dict):
                return AuthResult.success(ProfileInfo.from_body(body))
            return AuthResult.fail(
                AuthFailure.of(AuthErrorCode.UNKNOWN_ERROR, "Unreadable profile data", response.status_code)
            )

        failure = classify_response(response, authenticated=True)
        log.warning(f"Profile fetch failed: {failure.code.value} ({response.status_code})")
        return AuthResult.fail(failure)

    def logout(self, token: str) -> AuthResult:
        """Tell the server about the logout. Always succeeds for the caller."""
        try:
            response = self.client.post(ENDPOINT_AUTH_LOGOUT, token=token)
            if not 200 <= response.status_code < 300:
                log.info(f"Remote logout answered {response.status_code}; continuing with local logout")
        except Exception as e:
            log.info(f"Remote logout failed ({e}); continuing with local logout")
        return AuthResult.success()

    def health_check(self) -> AuthResult:
        try:
            response = self.client.get(ENDPOINT_HEALTH)
        except requests.exceptions.RequestException as e:
            return AuthResult.fail(network_failure(e))
        except Exception as e:
            log.error(f"Health check crashed: {e}", exc_info=True)
            return AuthResult.fail(unexpected_failure(e))

        if 200 <= response.status_code < 300:
            return AuthResult.success(response.text or "API OK")
        return AuthResult.fail(classify_response(response, authenticated=False))

    def test_connection(self) -> bool:
        try:
            response = self.client.get(ENDPOINT_TEST)
            return 200 <= response.status_code < 300
        except Exception as e:
            log.info(f"Connection test failed: {e}")
            return False

    def _credentials_call(self, endpoint: str, username: str, password: str, fallback_message: str) -> AuthResult:
        try:
            response = self.client.post(endpoint, json={"username": username, "password": password})
        except requests.exceptions.RequestException as e:
            log.warning(f"{endpoint} unreachable: {e}")
            return AuthResult.fail(network_failure(e))
        except Exception as e:
            log.error(f"{endpoint} crashed: {e}", exc_info=True)
            return AuthResult.fail(unexpected_failure(e))

        if not 200 <= response.status_code < 300:
            failure = classify_response(response, authenticated=False)
            log.info(f"{endpoint} rejected for '{username}': {failure.code.value} ({response.status_code})")
            return AuthResult.fail(failure)

        body = _json_body(response)
        if not isinstance(body, dict):
            return AuthResult.fail(
                AuthFailure.of(AuthErrorCode.UNKNOWN_ERROR, "Unreadable server response", response.status_code)
            )

        token = body.get("token")
        if not body.get("success") or not token:
            message = body.get("message") or fallback_message
            log.info(f"{endpoint} refused for '{username}': {message}")
            return AuthResult.fail(AuthFailure.of(AuthErrorCode.UNKNOWN_ERROR, message, response.status_code))

        payload = AuthPayload(
            token=token,
            user=UserIdentity.from_dict(body.get("user")),
            message=body.get("message"),
        )
        log.info(f"{endpoint} succeeded for '{username}' {mask_token(token)}")
        return AuthResult.success(payload)


def build_repository(settings) -> AuthRepository:
    return AuthRepository(build_client(settings))
