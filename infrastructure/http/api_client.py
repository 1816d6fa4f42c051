"""HTTP client for the remote authentication service."""

import logging
from typing import Any, Dict, Optional

import requests

log = logging.getLogger(__name__)

ENDPOINT_HEALTH = "/"
ENDPOINT_TEST = "test"
ENDPOINT_AUTH_REGISTER = "auth/register"
ENDPOINT_AUTH_LOGIN = "auth/login"
ENDPOINT_AUTH_VERIFY = "auth/verify"
ENDPOINT_AUTH_LOGOUT = "auth/logout"
ENDPOINT_USER_PROFILE = "user/profile"


def create_auth_header(token: str) -> str:
    return f"Bearer {token}"


def is_token_expired(status_code: int) -> bool:
    return status_code == 401


class ApiClient:
    """
    Thin wrapper over a requests.Session bound to one base URL.

    Transport failures (timeouts, DNS, refused connections) surface as
    requests.exceptions.RequestException; callers translate them.
    """

    def __init__(self, base_url: str, timeout: int = 30, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def url(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

    def _headers(self, token: Optional[str]) -> Dict[str, str]:
        if token:
            return {"Authorization": create_auth_header(token)}
        return {}

    def get(self, path: str, token: Optional[str] = None) -> requests.Response:
        log.debug(f"GET {path}")
        return self.session.request(
            "GET",
            self.url(path),
            headers=self._headers(token),
            timeout=self.timeout,
        )

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, token: Optional[str] = None) -> requests.Response:
        log.debug(f"POST {path}")
        return self.session.request(
            "POST",
            self.url(path),
            json=json,
            headers=self._headers(token),
            timeout=self.timeout,
        )

    def close(self) -> None:
        self.session.close()


def build_client(settings) -> ApiClient:
    return ApiClient(settings.api_url, timeout=settings.api_timeout)
