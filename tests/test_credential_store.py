import sqlite3
import threading
from datetime import datetime, timedelta, timezone

import pytest

from infrastructure.repositories.sqlite_credential_repository import SQLiteCredentialRepository
from use_cases.session_models import CredentialRecord
from utils.session_manager import CredentialStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def store(tmp_path, clock):
    repo = SQLiteCredentialRepository(str(tmp_path / "credentials.db"))
    return CredentialStore(repo, clock=clock)


def test_read_empty_store(store):
    assert store.read() is None
    assert store.get_token() is None
    assert store.has_token() is False
    assert store.get_authorization_header() is None


def test_save_then_read_round_trip(store):
    store.save("abc", username="juan", user_id=7)

    assert store.read() == CredentialRecord(token="abc", username="juan", user_id=7, issued_at=NOW)


def test_clear_then_read_is_empty(store):
    store.save("abc", username="juan", user_id=7)
    store.clear()
    assert store.read() is None


def test_clear_is_idempotent(store):
    store.save("abc")
    store.clear()
    store.clear()
    assert store.read() is None


def test_clear_on_empty_store_is_noop(store):
    store.clear()
    assert store.read() is None


def test_save_keeps_unspecified_identity_fields(store, clock):
    store.save("first", username="juan", user_id=7)
    clock.now = NOW + timedelta(hours=2)

    store.save("second")

    record = store.read()
    assert record.token == "second"
    assert record.username == "juan"
    assert record.user_id == 7
    assert record.issued_at == NOW + timedelta(hours=2)


def test_save_after_clear_does_not_resurrect_identity(store):
    store.save("first", username="juan", user_id=7)
    store.clear()

    store.save("second")

    record = store.read()
    assert record.username is None
    assert record.user_id is None


def test_save_rejects_empty_token(store):
    with pytest.raises(ValueError):
        store.save("")
    assert store.read() is None


def test_authorization_header(store):
    store.save("abc")
    assert store.get_authorization_header() == "Bearer abc"


def test_store_survives_restart(tmp_path, clock):
    db = str(tmp_path / "credentials.db")
    CredentialStore(SQLiteCredentialRepository(db), clock=clock).save("abc", username="juan")

    reopened = CredentialStore(SQLiteCredentialRepository(db), clock=clock)

    assert reopened.read().token == "abc"
    assert reopened.read().issued_at == NOW


def test_namespaces_are_isolated(tmp_path, clock):
    db = str(tmp_path / "credentials.db")
    main = CredentialStore(SQLiteCredentialRepository(db, namespace="auth_prefs"), clock=clock)
    other = CredentialStore(SQLiteCredentialRepository(db, namespace="other"), clock=clock)

    main.save("abc")

    assert other.read() is None


def test_subscribe_emits_current_value_then_changes(store):
    store.save("abc", username="juan")
    seen = []

    unsubscribe = store.subscribe(seen.append)
    store.save("def")
    store.clear()
    unsubscribe()
    store.save("ghi")

    assert [r.token if r else None for r in seen] == ["abc", "def", None]


def test_broken_listener_does_not_block_write(store):
    def broken(_record):
        if _record is not None:
            raise RuntimeError("observer crashed")

    store.subscribe(broken)
    store.save("abc")

    assert store.read().token == "abc"


def test_legacy_row_without_timezone_is_read_as_utc(tmp_path):
    db = str(tmp_path / "credentials.db")
    repo = SQLiteCredentialRepository(db)
    store = CredentialStore(repo)
    with sqlite3.connect(db) as conn:
        conn.execute(
            "INSERT INTO credentials (namespace, token, issued_at) VALUES (?, ?, ?)",
            ("auth_prefs", "abc", "2026-03-01T12:00:00"),
        )
        conn.commit()

    assert store.read().issued_at == NOW


def test_concurrent_saves_never_expose_partial_records(store):
    errors = []

    def writer(i):
        store.save(f"token-{i}", username=f"user{i}", user_id=i)

    def reader():
        for _ in range(20):
            record = store.read()
            if record is not None and record.issued_at is None:
                errors.append(record)

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(10)]
    threads += [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    final = store.read()
    assert final.token == f"token-{final.user_id}"


def test_clear_if_matching_token(store):
    store.save("abc")
    seen = []
    store.subscribe(seen.append)

    assert store.clear_if("abc") is True
    assert store.read() is None
    assert seen[-1] is None


def test_clear_if_keeps_newer_token(store):
    store.save("old")
    store.save("fresh")

    assert store.clear_if("old") is False
    assert store.read().token == "fresh"


def test_clear_if_on_empty_store(store):
    assert store.clear_if("abc") is False
