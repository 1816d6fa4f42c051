import sqlite3
from typing import Optional


class SQLiteCredentialRepository:
    """Single-row-per-namespace persistence of the current bearer credential."""

    def __init__(self, db_path: str, namespace: str = "auth_prefs"):
        self.db_path = db_path
        self.namespace = namespace

    def _conn(self):
        return sqlite3.connect(self.db_path)

    def _get_current_version(self, conn) -> int:
        version_row = conn.execute("SELECT version FROM schema_info").fetchone()
        if version_row:
            return version_row[0]
        return 0

    def _migrate_v1(self, conn):
        """Baseline schema (v1)."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS credentials (
                namespace TEXT PRIMARY KEY,
                token TEXT NOT NULL,
                username TEXT,
                user_id INTEGER,
                issued_at TEXT NOT NULL
            )
        """)

    def init_db(self):
        MIGRATIONS = [self._migrate_v1]

        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_info (
                    version INTEGER NOT NULL
                )
            """)

            current_version = self._get_current_version(conn)
            has_version_row = conn.execute("SELECT COUNT(*) FROM schema_info").fetchone()[0] > 0
            if not has_version_row:
                conn.execute("INSERT INTO schema_info (version) VALUES (?)", (current_version,))

            for i in range(current_version, len(MIGRATIONS)):
                target_version = i + 1
                try:
                    MIGRATIONS[i](conn)
                    conn.execute("UPDATE schema_info SET version = ?", (target_version,))
                except Exception as e:
                    # Leaving the with-block by exception skips commit, so the whole init rolls back.
                    raise RuntimeError(f"Credential store migration to v{target_version} failed: {e}") from e

            conn.commit()

    def get_credential(self) -> Optional[dict]:
        with self._conn() as conn:
            row = conn.execute("""
                SELECT token, username, user_id, issued_at
                FROM credentials WHERE namespace = ?
            """, (self.namespace,)).fetchone()
            if row:
                return {"token": row[0], "username": row[1], "user_id": row[2], "issued_at": row[3]}
            return None

    def upsert_credential(self, token: str, username: Optional[str], user_id: Optional[int], issued_iso: str):
        """Overwrite token and issued_at; identity fields passed as None keep their stored values."""
        with self._conn() as conn:
            conn.execute("""
                INSERT INTO credentials (namespace, token, username, user_id, issued_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(namespace) DO UPDATE SET
                token = excluded.token,
                issued_at = excluded.issued_at,
                username = COALESCE(excluded.username, credentials.username),
                user_id = COALESCE(excluded.user_id, credentials.user_id)
            """, (self.namespace, token, username, user_id, issued_iso))
            conn.commit()

    def delete_credential(self):
        with self._conn() as conn:
            conn.execute("DELETE FROM credentials WHERE namespace = ?", (self.namespace,))
            conn.commit()
