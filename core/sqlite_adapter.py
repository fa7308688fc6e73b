"""SQLite adapter for OnCue typing session storage."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from core.database_adapter import (
    AdapterError,
    ConnectionError,
    DatabaseAdapter,
    DuplicateSessionError,
)
from core.models import KeystrokeEvent, TypingSession, UserProfile

log = logging.getLogger("oncue.sqlite_adapter")

SCHEMA_VERSION = 1

_SESSION_COLUMNS = (
    "id, timestamp, reference_text, typed_text, keystrokes, start_time, end_time, "
    "duration_ms, wpm, accuracy, error_rate, tremor_score, fatigue_score"
)


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter implementation.

    Opens a short-lived connection per operation; the database file is the
    only shared state.
    """

    def __init__(self, db_path: Path):
        """Initialize SQLite adapter.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._initialized = False

    def initialize(self) -> None:
        """Initialize database schema and perform migrations."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self.get_connection(require_initialized=False) as conn:
            self._create_sessions_table(conn)
            self._create_profile_table(conn)
            self._set_schema_version(conn)

        self._initialized = True
        log.debug(f"Session database ready at {self.db_path}")

    @contextmanager
    def get_connection(self, require_initialized: bool = True):
        """Get a database connection that commits on success and always closes.

        Raises:
            AdapterError: If the adapter was not initialized
            ConnectionError: If the database file cannot be opened
        """
        if require_initialized and not self._initialized:
            raise AdapterError("Adapter not initialized. Call initialize() first.")

        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise ConnectionError(f"Cannot open database {self.db_path}: {e}") from e

        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            raise AdapterError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def close(self) -> None:
        """Nothing is held open between operations."""
        self._initialized = False

    # ========== Table Creation ==========

    def _create_sessions_table(self, conn: sqlite3.Connection) -> None:
        """Create typing_sessions table."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS typing_sessions (
                id TEXT PRIMARY KEY,
                timestamp INTEGER NOT NULL,
                reference_text TEXT NOT NULL,
                typed_text TEXT NOT NULL,
                keystrokes TEXT NOT NULL DEFAULT '[]',
                start_time INTEGER NOT NULL,
                end_time INTEGER NOT NULL,
                duration_ms INTEGER NOT NULL,
                wpm INTEGER NOT NULL,
                accuracy INTEGER NOT NULL,
                error_rate INTEGER NOT NULL,
                tremor_score INTEGER,
                fatigue_score INTEGER
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_typing_sessions_timestamp "
            "ON typing_sessions(timestamp)"
        )

    def _create_profile_table(self, conn: sqlite3.Connection) -> None:
        """Create user_profile table."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS user_profile (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL
            )
        """)

    def _set_schema_version(self, conn: sqlite3.Connection) -> None:
        current = conn.execute("PRAGMA user_version").fetchone()[0]
        if current < SCHEMA_VERSION:
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            log.info(f"Database schema upgraded from version {current} to {SCHEMA_VERSION}")

    # ========== Row Conversion ==========

    @staticmethod
    def _session_to_row(session: TypingSession) -> tuple:
        keystrokes = json.dumps(
            [k.model_dump(by_alias=True) for k in session.keystrokes]
        )
        return (
            session.id,
            session.timestamp,
            session.reference_text,
            session.typed_text,
            keystrokes,
            session.start_time,
            session.end_time,
            session.duration,
            session.wpm,
            session.accuracy,
            session.error_rate,
            session.tremor_score,
            session.fatigue_score,
        )

    @staticmethod
    def _row_to_session(row: tuple) -> TypingSession:
        (
            session_id,
            timestamp,
            reference_text,
            typed_text,
            keystrokes,
            start_time,
            end_time,
            duration_ms,
            wpm,
            accuracy,
            error_rate,
            tremor_score,
            fatigue_score,
        ) = row
        return TypingSession(
            id=session_id,
            timestamp=timestamp,
            reference_text=reference_text,
            typed_text=typed_text,
            keystrokes=[KeystrokeEvent.model_validate(k) for k in json.loads(keystrokes)],
            start_time=start_time,
            end_time=end_time,
            duration=duration_ms,
            wpm=wpm,
            accuracy=accuracy,
            error_rate=error_rate,
            tremor_score=tremor_score,
            fatigue_score=fatigue_score,
        )

    # ========== Session Operations ==========

    def save_session(self, session: TypingSession) -> None:
        """Store a new session; ids are never overwritten."""
        try:
            with self.get_connection() as conn:
                conn.execute(
                    f"INSERT INTO typing_sessions ({_SESSION_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    self._session_to_row(session),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateSessionError(f"Session {session.id} already exists") from e
        log.debug(f"Stored session {session.id}")

    def get_session(self, session_id: str) -> TypingSession | None:
        with self.get_connection() as conn:
            row = conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM typing_sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
        return self._row_to_session(row) if row else None

    def get_all_sessions(self) -> list[TypingSession]:
        with self.get_connection() as conn:
            rows = conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM typing_sessions ORDER BY timestamp, id"
            ).fetchall()
        return [self._row_to_session(row) for row in rows]

    def delete_session(self, session_id: str) -> None:
        with self.get_connection() as conn:
            cursor = conn.execute("DELETE FROM typing_sessions WHERE id = ?", (session_id,))
            deleted = cursor.rowcount
        if deleted:
            log.info(f"Deleted session {session_id}")
        else:
            log.debug(f"No session {session_id} to delete")

    def clear_sessions(self) -> None:
        with self.get_connection() as conn:
            cursor = conn.execute("DELETE FROM typing_sessions")
            deleted = cursor.rowcount
        log.info(f"Cleared {deleted} sessions")

    # ========== Profile Operations ==========

    def save_profile(self, profile: UserProfile) -> None:
        with self.get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO user_profile (id, data) VALUES (?, ?)",
                (profile.id, profile.model_dump_json(by_alias=True)),
            )

    def get_profile(self) -> UserProfile | None:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT data FROM user_profile ORDER BY rowid LIMIT 1"
            ).fetchone()
        return UserProfile.model_validate_json(row[0]) if row else None
