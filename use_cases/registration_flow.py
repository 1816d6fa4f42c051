"""Registration screen state machine with live field validation."""

import logging
import sqlite3
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Literal, Optional

from auth import AuthRepository
from use_cases import validation
from use_cases.domain_models import AuthErrorCode, AuthFailure
from use_cases.flow_runtime import FlowController, Runner, run_inline
from utils.session_manager import CredentialStore

log = logging.getLogger(__name__)

RegistrationPhase = Literal["IDLE", "PENDING", "SUCCESS", "FAILED"]

FIELD_USERNAME = "username"
FIELD_PASSWORD = "password"
FIELD_CONFIRMATION = "confirmation"


@dataclass(frozen=True)
class RegistrationState:
    username: str = ""
    password: str = ""
    confirmation: str = ""
    errors: Dict[str, str] = field(default_factory=dict)
    phase: RegistrationPhase = "IDLE"
    display_name: Optional[str] = None
    failure: Optional[AuthFailure] = None

    @property
    def pending(self) -> bool:
        return self.phase == "PENDING"

    @property
    def is_success(self) -> bool:
        return self.phase == "SUCCESS"

    @property
    def username_error(self) -> str:
        return self.errors.get(FIELD_USERNAME, "")

    @property
    def password_error(self) -> str:
        return self.errors.get(FIELD_PASSWORD, "")

    @property
    def confirmation_error(self) -> str:
        return self.errors.get(FIELD_CONFIRMATION, "")

    @property
    def general_error(self) -> str:
        return self.failure.message if self.failure else ""

    @property
    def has_field_errors(self) -> bool:
        return bool(self.errors)

    @property
    def all_fields_filled(self) -> bool:
        return bool(self.username.strip() and self.password and self.confirmation)

    @property
    def enable_submit(self) -> bool:
        return not self.pending and not self.has_field_errors and self.all_fields_filled


@dataclass(frozen=True)
class UsernameChanged:
    value: str


@dataclass(frozen=True)
class PasswordChanged:
    value: str


@dataclass(frozen=True)
class ConfirmationChanged:
    value: str


@dataclass(frozen=True)
class SubmitRequested:
    pass


@dataclass(frozen=True)
class RegistrationSucceeded:
    display_name: str


@dataclass(frozen=True)
class RegistrationFailed:
    failure: AuthFailure


@dataclass(frozen=True)
class Reset:
    pass


def validate_fields(username: str, password: str, confirmation: str) -> Dict[str, str]:
    checks = {
        FIELD_USERNAME: validation.validate_username(username),
        FIELD_PASSWORD: validation.validate_password(password),
        FIELD_CONFIRMATION: validation.validate_confirmation(confirmation, password),
    }
    return {name: message for name, message in checks.items() if message}


def _with_error(errors: Dict[str, str], name: str, message: Optional[str]) -> Dict[str, str]:
    updated = dict(errors)
    if message:
        updated[name] = message
    else:
        updated.pop(name, None)
    return updated


def _edited(state: RegistrationState, **changes) -> RegistrationState:
    phase = "IDLE" if state.phase == "FAILED" else state.phase
    return replace(state, phase=phase, failure=None, **changes)


def reduce(state: RegistrationState, event) -> RegistrationState:
    if isinstance(event, UsernameChanged):
        errors = _with_error(state.errors, FIELD_USERNAME, validation.validate_username(event.value))
        return _edited(state, username=event.value, errors=errors)
    if isinstance(event, PasswordChanged):
        errors = _with_error(state.errors, FIELD_PASSWORD, validation.validate_password(event.value))
        errors = _with_error(
            errors, FIELD_CONFIRMATION, validation.validate_confirmation(state.confirmation, event.value)
        )
        return _edited(state, password=event.value, errors=errors)
    if isinstance(event, ConfirmationChanged):
        errors = _with_error(
            state.errors, FIELD_CONFIRMATION, validation.validate_confirmation(event.value, state.password)
        )
        return _edited(state, confirmation=event.value, errors=errors)
    if isinstance(event, SubmitRequested):
        if state.pending:
            return state
        errors = validate_fields(state.username.strip(), state.password, state.confirmation)
        if errors or not state.all_fields_filled:
            return replace(state, errors=errors)
        return replace(state, phase="PENDING", errors={}, failure=None)
    if isinstance(event, RegistrationSucceeded):
        return replace(state, phase="SUCCESS", display_name=event.display_name, failure=None)
    if isinstance(event, RegistrationFailed):
        return replace(state, phase="FAILED", failure=event.failure)
    if isinstance(event, Reset):
        return RegistrationState()
    raise TypeError(f"Unknown registration event: {event!r}")


class RegistrationFlow(FlowController):
    def __init__(
        self,
        repository: AuthRepository,
        store: CredentialStore,
        runner: Runner = run_inline,
        on_registered: Optional[Callable[[str], None]] = None,
    ):
        super().__init__(RegistrationState(), reduce, runner)
        self.repository = repository
        self.store = store
        self.on_registered = on_registered

    def update_username(self, value: str) -> None:
        self.dispatch(UsernameChanged(value))

    def update_password(self, value: str) -> None:
        self.dispatch(PasswordChanged(value))

    def update_confirmation(self, value: str) -> None:
        self.dispatch(ConfirmationChanged(value))

    def submit(self) -> RegistrationState:
        state, generation = self._begin(SubmitRequested(), when=lambda s: not s.pending)
        if state is None:
            return self.state
        if state.pending:
            username = state.username.strip()
            password = state.password
            self._launch(lambda gen: self._register(username, password, gen), generation)
        return self.state

    def reset(self) -> None:
        self._restart(Reset())

    def _register(self, username: str, password: str, generation: int) -> None:
        result = self.repository.register(username, password)
        if not self._is_current(generation):
            return
        if not result.ok:
            self._transition(RegistrationFailed(result.failure), generation=generation)
            return

        payload = result.value
        display_name = payload.display_name(username)
        user_id = payload.user.id if payload.user else None
        try:
            self.store.save(payload.token, username=display_name, user_id=user_id)
        except sqlite3.Error as e:
            log.error(f"Could not persist session for new user '{username}': {e}", exc_info=True)
            failure = AuthFailure.of(AuthErrorCode.UNKNOWN_ERROR, "Could not store the session")
            self._transition(RegistrationFailed(failure), generation=generation)
            return

        if self._transition(RegistrationSucceeded(display_name), generation=generation) is not None:
            log.info(f"Registration completed for '{display_name}'")
            if self.on_registered is not None:
                self.on_registered(display_name)
