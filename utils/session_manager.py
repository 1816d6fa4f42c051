import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from infrastructure.observability import mask_token
from infrastructure.repositories.sqlite_credential_repository import SQLiteCredentialRepository
from use_cases.session_models import CredentialRecord

"""
CREDENTIAL STORE CONTRACT

The store owns the one persisted credential record of this device.

Fields:

token: str
    bearer credential; a record exists iff a token exists
issued_at: datetime (UTC)
    moment the token was stored; written together with token
username: str | None
user_id: int | None
    identity copies; a save() without them keeps the stored ones

Flows may read the record or ask for a full save()/clear(), never patch it.
save/clear/read are serialized by one lock; last writer wins.
Decisions taken on an older read go through clear_if(token), which
leaves a newer token in place.
"""

log = logging.getLogger(__name__)

Listener = Callable[[Optional[CredentialRecord]], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_issued_at(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        issued = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if issued.tzinfo is None:
        issued = issued.replace(tzinfo=timezone.utc)
    return issued


class CredentialStore:
    def __init__(self, repository: SQLiteCredentialRepository, clock: Callable[[], datetime] = _utcnow):
        self._repo = repository
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._repo.init_db()

    def save(self, token: str, username: Optional[str] = None, user_id: Optional[int] = None) -> CredentialRecord:
        if not token:
            raise ValueError("token must be a non-empty string")
        with self._lock:
            issued_at = self._clock()
            self._repo.upsert_credential(token, username, user_id, issued_at.isoformat())
            record = self._read_locked()
            log.info(f"Credential saved {mask_token(token)} for user={record.username if record else None}")
            self._notify(record)
            return record

    def read(self) -> Optional[CredentialRecord]:
        with self._lock:
            return self._read_locked()

    def clear(self) -> None:
        with self._lock:
            self._repo.delete_credential()
            log.info("Credential cleared")
            self._notify(None)

    def clear_if(self, token: str) -> bool:
        """Clear only while `token` is still the stored one; a newer save wins."""
        with self._lock:
            record = self._read_locked()
            if record is None or record.token != token:
                log.info(f"Credential clear skipped: {mask_token(token)} is no longer stored")
                return False
            self._repo.delete_credential()
            log.info("Credential cleared")
            self._notify(None)
            return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; it is called right away with the current record."""
        with self._lock:
            self._listeners.append(listener)
            listener(self._read_locked())

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def get_token(self) -> Optional[str]:
        record = self.read()
        return record.token if record else None

    def has_token(self) -> bool:
        return self.get_token() is not None

    def get_authorization_header(self) -> Optional[str]:
        token = self.get_token()
        return f"Bearer {token}" if token else None

    def _read_locked(self) -> Optional[CredentialRecord]:
        row = self._repo.get_credential()
        if not row or not row["token"]:
            return None
        return CredentialRecord(
            token=row["token"],
            username=row["username"],
            user_id=row["user_id"],
            issued_at=_parse_issued_at(row["issued_at"]),
        )

    def _notify(self, record: Optional[CredentialRecord]) -> None:
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception as e:
                # Listener failures never roll back a completed write.
                log.error(f"Credential listener failed: {e}", exc_info=True)


def open_store(settings) -> CredentialStore:
    """Store backed by the configured SQLite file and namespace."""
    repo = SQLiteCredentialRepository(settings.credential_db_path, settings.credential_namespace)
    return CredentialStore(repo)
