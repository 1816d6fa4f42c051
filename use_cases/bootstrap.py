"""Startup orchestration and periodic session freshness checks."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

import auth
from config import Settings, load_settings
from infrastructure.observability import setup_observability
from use_cases import session_status
from use_cases.session_models import SessionStatus
from utils import session_manager

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCheckResult:
    status: SessionStatus
    remaining_days: int
    cleared: bool = False


@dataclass(frozen=True)
class StartupResult:
    """Everything the UI layer needs after startup."""

    settings: Settings
    store: session_manager.CredentialStore
    repository: auth.AuthRepository
    session: SessionCheckResult
    planned_steps: Tuple[str, ...]


def check_session(
    store: session_manager.CredentialStore,
    settings: Settings,
    now: Optional[datetime] = None,
) -> SessionCheckResult:
    """Resolve the stored session and clear it once it has expired."""
    now = now or datetime.now(timezone.utc)
    record = store.read()
    status = session_status.resolve(record, now, settings.validity_window, settings.warning_window)
    days = session_status.remaining_days(record, now, settings.validity_window)

    cleared = False
    if session_status.is_expired(record, now, settings.validity_window):
        log.info(f"Stored session expired ({days} days remaining); logging out")
        cleared = store.clear_if(record.token)
        if not cleared:
            # A newer login replaced the expired token mid-check.
            record = store.read()
            status = session_status.resolve(record, now, settings.validity_window, settings.warning_window)
            days = session_status.remaining_days(record, now, settings.validity_window)
    elif status is SessionStatus.EXPIRING_SOON:
        log.info(f"Stored session expires in {days} day(s)")

    return SessionCheckResult(status=status, remaining_days=days, cleared=cleared)


def run_startup(settings: Optional[Settings] = None) -> StartupResult:
    executed_steps = []

    settings = settings or load_settings()
    setup_observability(settings)
    executed_steps.append("setup_observability")

    store = session_manager.open_store(settings)
    executed_steps.append("open_credential_store")

    repository = auth.build_repository(settings)
    executed_steps.append("build_auth_repository")

    # Expired credentials must be gone before any flow reads the store.
    session = check_session(store, settings)
    executed_steps.append("check_session")

    return StartupResult(
        settings=settings,
        store=store,
        repository=repository,
        session=session,
        planned_steps=tuple(executed_steps),
    )


class SessionMonitor:
    """Re-runs check_session on a daemon thread every `interval` seconds."""

    def __init__(
        self,
        store: session_manager.CredentialStore,
        settings: Settings,
        interval: float = 3600.0,
        on_logged_out: Optional[Callable[[SessionCheckResult], None]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.settings = settings
        self.interval = interval
        self.on_logged_out = on_logged_out
        self.clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> SessionCheckResult:
        result = check_session(self.store, self.settings, self.clock())
        if result.cleared and self.on_logged_out is not None:
            self.on_logged_out(result)
        return result

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception as e:
                log.error(f"Session check failed: {e}", exc_info=True)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="session-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
