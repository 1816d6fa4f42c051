"""Profile / session screen state machine.

Only a definite "this credential is no longer accepted" answer ends the
local session. Network and server failures leave the stored token alone.
Logout always tears the local session down, whatever the server says.
"""

import logging
import sqlite3
from dataclasses import dataclass, replace
from typing import Callable, Dict, Literal, Optional

from auth import AuthRepository
from use_cases.domain_models import AuthErrorCode, AuthFailure
from use_cases.flow_runtime import FlowController, Runner, run_inline
from use_cases.session_models import ProfileInfo
from utils.session_manager import CredentialStore

log = logging.getLogger(__name__)

ProfilePhase = Literal["IDLE", "LOADING", "LOADED", "FAILED"]

DEFAULT_DISPLAY_NAME = "User"


@dataclass(frozen=True)
class ProfileState:
    phase: ProfilePhase = "IDLE"
    profile: Optional[ProfileInfo] = None
    failure: Optional[AuthFailure] = None
    verifying: bool = False
    logging_out: bool = False
    requires_login: bool = False

    @property
    def pending(self) -> bool:
        return self.phase == "LOADING" or self.verifying or self.logging_out

    @property
    def show_content(self) -> bool:
        return self.phase == "LOADED" and self.profile is not None

    @property
    def show_error(self) -> bool:
        return self.failure is not None

    @property
    def error_message(self) -> str:
        return self.failure.message if self.failure else ""

    @property
    def enable_logout(self) -> bool:
        # Logout takes over from a load or verify still in flight.
        return not self.logging_out


@dataclass(frozen=True)
class LoadStarted:
    pass


@dataclass(frozen=True)
class ProfileLoaded:
    profile: ProfileInfo


@dataclass(frozen=True)
class ProfileFailed:
    failure: AuthFailure


@dataclass(frozen=True)
class VerifyStarted:
    pass


@dataclass(frozen=True)
class VerifyFinished:
    pass


@dataclass(frozen=True)
class SessionInvalidated:
    failure: AuthFailure


@dataclass(frozen=True)
class ErrorDismissed:
    pass


@dataclass(frozen=True)
class LogoutStarted:
    pass


@dataclass(frozen=True)
class LoggedOut:
    pass


@dataclass(frozen=True)
class Reset:
    pass


def reduce(state: ProfileState, event) -> ProfileState:
    if isinstance(event, LoadStarted):
        return replace(state, phase="LOADING", failure=None)
    if isinstance(event, ProfileLoaded):
        return replace(state, phase="LOADED", profile=event.profile, failure=None)
    if isinstance(event, ProfileFailed):
        if event.failure.ends_session:
            return replace(state, phase="FAILED", profile=None, failure=event.failure, requires_login=True)
        return replace(state, phase="FAILED", failure=event.failure)
    if isinstance(event, VerifyStarted):
        return replace(state, verifying=True)
    if isinstance(event, VerifyFinished):
        return replace(state, verifying=False)
    if isinstance(event, SessionInvalidated):
        return replace(
            state, phase="FAILED", profile=None, failure=event.failure, verifying=False, requires_login=True
        )
    if isinstance(event, ErrorDismissed):
        return replace(state, failure=None)
    if isinstance(event, LogoutStarted):
        phase = "IDLE" if state.phase == "LOADING" else state.phase
        return replace(state, phase=phase, verifying=False, logging_out=True)
    if isinstance(event, (LoggedOut, Reset)):
        return ProfileState()
    raise TypeError(f"Unknown profile event: {event!r}")


def _format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.split("T", 1)[0]


class ProfileFlow(FlowController):
    def __init__(
        self,
        repository: AuthRepository,
        store: CredentialStore,
        runner: Runner = run_inline,
        on_session_invalid: Optional[Callable[[], None]] = None,
    ):
        super().__init__(ProfileState(), reduce, runner)
        self.repository = repository
        self.store = store
        self.on_session_invalid = on_session_invalid

    def mount(self) -> None:
        self.load()

    def load(self) -> None:
        token = self.store.get_token()
        if token is None:
            failure = AuthFailure.of(AuthErrorCode.SESSION_EXPIRED)
            if self._transition(ProfileFailed(failure), when=lambda s: not s.pending) is not None:
                self._signal_invalid()
            return

        state, generation = self._begin(LoadStarted(), when=lambda s: not s.pending)
        if state is None:
            return
        self._launch(lambda gen: self._fetch(token, gen), generation)

    def refresh(self) -> None:
        self.load()

    def clear_error(self) -> None:
        self.dispatch(ErrorDismissed())

    def reset(self) -> None:
        self._restart(Reset())

    def logout(self, on_complete: Optional[Callable[[], None]] = None) -> None:
        state, generation = self._preempt(LogoutStarted(), when=lambda s: not s.logging_out)
        if state is None:
            return
        self._launch(lambda gen: self._logout(on_complete, gen), generation)

    def verify_session(self, on_invalid: Optional[Callable[[], None]] = None) -> None:
        token = self.store.get_token()
        if token is None:
            failure = AuthFailure.of(AuthErrorCode.SESSION_EXPIRED)
            if self._transition(SessionInvalidated(failure), when=lambda s: not s.pending) is not None:
                self._signal_invalid(on_invalid)
            return

        state, generation = self._begin(VerifyStarted(), when=lambda s: not s.pending)
        if state is None:
            return
        self._launch(lambda gen: self._verify(token, on_invalid, gen), generation)

    def greeting(self) -> str:
        profile = self.state.profile
        if profile is not None and profile.username:
            return f"Hello {profile.username}"
        return f"Hello {DEFAULT_DISPLAY_NAME}"

    def account_info(self) -> Dict[str, str]:
        profile = self.state.profile
        if profile is None:
            return {}
        return {
            "ID": str(profile.id) if profile.id is not None else "",
            "Username": profile.username or "",
            "Member since": _format_date(profile.created_at),
        }

    def _fetch(self, token: str, generation: int) -> None:
        result = self.repository.get_profile(token)
        if not self._is_current(generation):
            return
        if result.ok:
            self._transition(ProfileLoaded(result.value), generation=generation)
            return

        failure = result.failure
        if failure.ends_session:
            self._end_session(token)
            if self._transition(ProfileFailed(failure), generation=generation) is not None:
                self._signal_invalid()
            return
        log.info(f"Profile load failed ({failure.code.value}); keeping stored session")
        self._transition(ProfileFailed(failure), generation=generation)

    def _verify(self, token: str, on_invalid: Optional[Callable[[], None]], generation: int) -> None:
        result = self.repository.verify_token(token)
        if not self._is_current(generation):
            return
        if result.ok or not result.failure.ends_session:
            if not result.ok:
                log.info(f"Session check inconclusive ({result.failure.code.value}); keeping stored session")
            self._transition(VerifyFinished(), generation=generation)
            return

        self._end_session(token)
        if self._transition(SessionInvalidated(result.failure), generation=generation) is not None:
            self._signal_invalid(on_invalid)

    def _logout(self, on_complete: Optional[Callable[[], None]], generation: int) -> None:
        try:
            token = self.store.get_token()
            if token is not None:
                self.repository.logout(token)
        except Exception as e:
            log.warning(f"Remote logout step failed: {e}")
        finally:
            try:
                self.store.clear()
            except Exception as e:
                log.error(f"Could not clear stored credential on logout: {e}", exc_info=True)
            if self._transition(LoggedOut(), generation=generation) is not None and on_complete is not None:
                on_complete()

    def _end_session(self, token: str) -> None:
        # A newer login may have replaced the token while the call was in flight.
        try:
            if self.store.clear_if(token):
                log.info("Stored session rejected by server; credential cleared")
        except sqlite3.Error as e:
            log.error(f"Could not clear rejected session: {e}", exc_info=True)

    def _signal_invalid(self, on_invalid: Optional[Callable[[], None]] = None) -> None:
        callback = on_invalid or self.on_session_invalid
        if callback is not None:
            callback()
