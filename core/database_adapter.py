"""Database adapter abstraction layer for OnCue typing sessions.

Provides a pluggable backend interface so the Storage layer does not depend
on a particular database implementation.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager

from core.models import TypingSession, UserProfile

log = logging.getLogger("oncue.database_adapter")


class AdapterError(Exception):
    """Base exception for database adapter errors."""


class ConnectionError(AdapterError):
    """Raised when the database cannot be opened."""


class DuplicateSessionError(AdapterError):
    """Raised when a session with the same id is already stored."""


class DatabaseAdapter(ABC):
    """Abstract base class for database adapters.

    All database backends must implement this interface to ensure
    compatibility with the Storage layer.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Create tables and run pending migrations."""
        pass

    @abstractmethod
    @contextmanager
    def get_connection(self):
        """Get a database connection.

        Yields:
            Database connection object (type varies by backend)
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close all database connections and cleanup resources."""
        pass

    # ========== Session Operations ==========

    @abstractmethod
    def save_session(self, session: TypingSession) -> None:
        """Store a new session.

        Args:
            session: Session to store

        Raises:
            DuplicateSessionError: If a session with the same id exists
        """
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> TypingSession | None:
        """Get a session by id.

        Returns:
            The session, or None if no session has that id
        """
        pass

    @abstractmethod
    def get_all_sessions(self) -> list[TypingSession]:
        """Get all sessions ordered by start timestamp (oldest first)."""
        pass

    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        """Delete a session by id. Unknown ids are ignored."""
        pass

    @abstractmethod
    def clear_sessions(self) -> None:
        """Delete all sessions."""
        pass

    # ========== Profile Operations ==========

    @abstractmethod
    def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace the user profile."""
        pass

    @abstractmethod
    def get_profile(self) -> UserProfile | None:
        """Get the stored user profile, if any."""
        pass
