"""Storage management for OnCue typing sessions."""

import logging
from pathlib import Path
from typing import Optional

from core.database_adapter import DatabaseAdapter
from core.export import sessions_to_csv, sessions_to_json
from core.models import HistoryStats, TypingSession, UserProfile
from core.sqlite_adapter import SQLiteAdapter
from core.wpm_calculator import round_half_up

log = logging.getLogger("oncue.storage")

EXPORT_FORMATS = ("csv", "json")


class Storage:
    """Session storage facade used by the application layer."""

    def __init__(self, db_path: Path, adapter: Optional[DatabaseAdapter] = None):
        """Initialize storage with database at given path.

        Args:
            db_path: Path to SQLite database file
            adapter: Backend to use instead of the default SQLiteAdapter
        """
        self.db_path = Path(db_path)
        self.adapter = adapter or SQLiteAdapter(self.db_path)
        self.adapter.initialize()

    def close(self) -> None:
        self.adapter.close()

    # ========== Sessions ==========

    def save_session(self, session: TypingSession) -> None:
        self.adapter.save_session(session)
        log.info(f"Saved session {session.id} ({session.wpm} WPM)")

    def get_session(self, session_id: str) -> Optional[TypingSession]:
        return self.adapter.get_session(session_id)

    def get_all_sessions(self) -> list[TypingSession]:
        return self.adapter.get_all_sessions()

    def get_recent_sessions(self, limit: int = 10) -> list[TypingSession]:
        """Most recent sessions first."""
        sessions = self.adapter.get_all_sessions()
        return list(reversed(sessions))[:limit]

    def delete_session(self, session_id: str) -> None:
        self.adapter.delete_session(session_id)

    def clear_all_sessions(self) -> None:
        self.adapter.clear_sessions()

    def get_history_stats(self) -> HistoryStats:
        """Average WPM and accuracy across all stored sessions."""
        sessions = self.adapter.get_all_sessions()
        if not sessions:
            return HistoryStats()

        count = len(sessions)
        return HistoryStats(
            session_count=count,
            average_wpm=round_half_up(sum(s.wpm for s in sessions) / count),
            average_accuracy=round_half_up(sum(s.accuracy for s in sessions) / count),
        )

    # ========== Profile ==========

    def save_profile(self, profile: UserProfile) -> None:
        self.adapter.save_profile(profile)

    def get_profile(self) -> Optional[UserProfile]:
        return self.adapter.get_profile()

    # ========== Export ==========

    def export_json(self) -> str:
        """All sessions as a JSON array."""
        return sessions_to_json(self.adapter.get_all_sessions())

    def export_csv(self) -> str:
        """All sessions as CSV text (empty string when there are none)."""
        return sessions_to_csv(self.adapter.get_all_sessions())

    def export_to_file(self, file_path: Path, export_format: str = "csv") -> int:
        """Export all sessions to a file.

        Args:
            file_path: Destination file
            export_format: ``csv`` or ``json``

        Returns:
            Number of sessions exported

        Raises:
            ValueError: If export_format is not supported
        """
        if export_format not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {export_format}")

        sessions = self.adapter.get_all_sessions()
        if export_format == "csv":
            content = sessions_to_csv(sessions)
        else:
            content = sessions_to_json(sessions)

        file_path = Path(file_path)
        file_path.write_text(content, encoding="utf-8")
        log.info(f"Exported {len(sessions)} sessions to {file_path}")
        return len(sessions)
