"""Login screen state machine."""

import logging
import sqlite3
from dataclasses import dataclass, replace
from typing import Callable, Literal, Optional

from auth import AuthRepository
from use_cases.domain_models import AuthErrorCode, AuthFailure
from use_cases.flow_runtime import FlowController, Runner, run_inline
from utils.session_manager import CredentialStore

log = logging.getLogger(__name__)

LoginPhase = Literal["IDLE", "VALIDATING", "PENDING", "SUCCESS", "FAILED"]

DEFAULT_DISPLAY_NAME = "User"


@dataclass(frozen=True)
class LoginState:
    username: str = ""
    password: str = ""
    phase: LoginPhase = "IDLE"
    display_name: Optional[str] = None
    failure: Optional[AuthFailure] = None

    @property
    def pending(self) -> bool:
        return self.phase in ("VALIDATING", "PENDING")

    @property
    def is_success(self) -> bool:
        return self.phase == "SUCCESS"

    @property
    def show_error(self) -> bool:
        return self.failure is not None

    @property
    def error_message(self) -> str:
        return self.failure.message if self.failure else ""

    @property
    def enable_submit(self) -> bool:
        return not self.pending and not self.is_success


@dataclass(frozen=True)
class UsernameChanged:
    value: str


@dataclass(frozen=True)
class PasswordChanged:
    value: str


@dataclass(frozen=True)
class ErrorDismissed:
    pass


@dataclass(frozen=True)
class SubmitRequested:
    pass


@dataclass(frozen=True)
class AutoLoginStarted:
    pass


@dataclass(frozen=True)
class AutoLoginFailed:
    pass


@dataclass(frozen=True)
class LoginSucceeded:
    display_name: str


@dataclass(frozen=True)
class LoginFailed:
    failure: AuthFailure


@dataclass(frozen=True)
class Reset:
    pass


def _edited(state: LoginState) -> LoginState:
    if state.phase == "FAILED":
        return replace(state, phase="IDLE", failure=None)
    return replace(state, failure=None)


def reduce(state: LoginState, event) -> LoginState:
    if isinstance(event, UsernameChanged):
        return _edited(replace(state, username=event.value))
    if isinstance(event, PasswordChanged):
        return _edited(replace(state, password=event.value))
    if isinstance(event, ErrorDismissed):
        return _edited(state)
    if isinstance(event, SubmitRequested):
        if state.pending:
            return state
        if not state.username.strip():
            return replace(state, phase="FAILED", failure=AuthFailure.of(AuthErrorCode.INVALID_INPUT, "Username is required"))
        if not state.password:
            return replace(state, phase="FAILED", failure=AuthFailure.of(AuthErrorCode.INVALID_INPUT, "Password is required"))
        return replace(state, phase="PENDING", failure=None)
    if isinstance(event, AutoLoginStarted):
        if state.phase != "IDLE":
            return state
        return replace(state, phase="VALIDATING", failure=None)
    if isinstance(event, AutoLoginFailed):
        if state.phase != "VALIDATING":
            return state
        return replace(state, phase="IDLE")
    if isinstance(event, LoginSucceeded):
        return replace(state, phase="SUCCESS", display_name=event.display_name, failure=None)
    if isinstance(event, LoginFailed):
        return replace(state, phase="FAILED", failure=event.failure)
    if isinstance(event, Reset):
        return LoginState()
    raise TypeError(f"Unknown login event: {event!r}")


class LoginFlow(FlowController):
    def __init__(
        self,
        repository: AuthRepository,
        store: CredentialStore,
        runner: Runner = run_inline,
        on_authenticated: Optional[Callable[[str], None]] = None,
    ):
        super().__init__(LoginState(), reduce, runner)
        self.repository = repository
        self.store = store
        self.on_authenticated = on_authenticated
        self._mounted = False

    def mount(self) -> None:
        """Auto-login check; runs once per flow."""
        if self._mounted:
            return
        self._mounted = True

        record = self.store.read()
        if record is None:
            return
        state, generation = self._begin(AutoLoginStarted(), when=lambda s: s.phase == "IDLE")
        if state is None:
            return
        self._launch(lambda gen: self._verify_saved(record.token, record.username, gen), generation)

    def update_username(self, value: str) -> None:
        self.dispatch(UsernameChanged(value))

    def update_password(self, value: str) -> None:
        self.dispatch(PasswordChanged(value))

    def clear_error(self) -> None:
        self.dispatch(ErrorDismissed())

    def submit(self) -> LoginState:
        state, generation = self._begin(SubmitRequested(), when=lambda s: not s.pending)
        if state is None:
            return self.state
        if state.phase == "PENDING":
            username = state.username.strip()
            password = state.password
            self._launch(lambda gen: self._login(username, password, gen), generation)
        return self.state

    def reset(self) -> None:
        self._restart(Reset())

    def _login(self, username: str, password: str, generation: int) -> None:
        result = self.repository.login(username, password)
        if not self._is_current(generation):
            return
        if not result.ok:
            self._transition(LoginFailed(result.failure), generation=generation)
            return

        payload = result.value
        display_name = payload.display_name(username)
        user_id = payload.user.id if payload.user else None
        try:
            self.store.save(payload.token, username=display_name, user_id=user_id)
        except sqlite3.Error as e:
            log.error(f"Could not persist session for '{username}': {e}", exc_info=True)
            failure = AuthFailure.of(AuthErrorCode.UNKNOWN_ERROR, "Could not store the session")
            self._transition(LoginFailed(failure), generation=generation)
            return

        if self._transition(LoginSucceeded(display_name), generation=generation) is not None:
            log.info(f"Login completed for '{display_name}'")
            if self.on_authenticated is not None:
                self.on_authenticated(display_name)

    def _verify_saved(self, token: str, saved_username: Optional[str], generation: int) -> None:
        result = self.repository.verify_token(token)
        if not self._is_current(generation):
            return
        if result.ok:
            display_name = result.value.username or saved_username or DEFAULT_DISPLAY_NAME
            if self._transition(LoginSucceeded(display_name), generation=generation) is not None:
                log.info(f"Auto-login completed for '{display_name}'")
                if self.on_authenticated is not None:
                    self.on_authenticated(display_name)
            return

        log.info(f"Saved session rejected ({result.failure.code.value}); clearing it")
        try:
            self.store.clear_if(token)
        except sqlite3.Error as e:
            log.error(f"Could not clear rejected session: {e}", exc_info=True)
        self._transition(AutoLoginFailed(), generation=generation)
