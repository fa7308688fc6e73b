"""Configuration management for OnCue typing tests."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

log = logging.getLogger("oncue.config")

DEFAULT_REFERENCE_TEXT = (
    "The quick brown fox jumps over the lazy dog. This simple sentence helps us "
    "measure typing speed and accuracy effectively."
)


class AppSettings(BaseModel):
    """Application settings with validation."""

    # Typing test
    reference_text: str = Field(
        default=DEFAULT_REFERENCE_TEXT, description="Passage the user is asked to type"
    )
    ignored_keys: str = Field(
        default="Shift,Control,Alt,Meta",
        description="Comma-separated keys that never produce a keystroke event",
    )
    # History and export
    history_limit: int = Field(
        default=20, gt=0, description="Sessions listed by the history command"
    )
    export_directory: str = Field(
        default="", description="Directory for export files (empty = current directory)"
    )
    confirm_deletes: bool = Field(
        default=True, description="Ask before deleting sessions"
    )

    model_config = ConfigDict(extra="ignore")

    @field_validator("reference_text")
    @classmethod
    def validate_reference_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reference_text must not be empty")
        return v


class Config:
    """Configuration manager using SQLite for persistence with Pydantic validation."""

    def __init__(self, db_path: Path):
        """Initialize config with database connection.

        Args:
            db_path: Path to SQLite database
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_settings_table()
        self._ensure_defaults()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a connection that commits on success and is always closed."""
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_settings_table(self) -> None:
        """Create settings table if not exists."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()

    def _ensure_defaults(self) -> None:
        """Ensure all default settings exist in database."""
        defaults = AppSettings().model_dump()

        with self._get_connection() as conn:
            cursor = conn.cursor()
            for key, value in defaults.items():
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO settings (key, value)
                    VALUES (?, ?)
                """,
                    (key, self._serialize_value(value)),
                )
            conn.commit()

    def _serialize_value(self, value: Any) -> str:
        """Convert value to string for storage."""
        if isinstance(value, bool):
            return "True" if value else "False"
        if isinstance(value, (list, dict)):
            return json.dumps(value)
        return str(value)

    def _simple_parse(self, value: str) -> Any:
        """Best-effort conversion of a stored string back to a Python value."""
        if value.startswith("[") or value.startswith("{"):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        return value

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Get configuration value.

        Args:
            key: Setting key
            default: Default value if not found

        Returns:
            Setting value
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
            result = cursor.fetchone()

        if result:
            raw_value = result[0]
            if key in AppSettings.model_fields:
                # Let pydantic coerce the raw string to the declared type
                try:
                    settings = AppSettings(**{key: raw_value})
                    return getattr(settings, key)
                except ValidationError:
                    log.warning(f"Stored value for {key} is invalid, using default")
                    return getattr(AppSettings(), key)
            return self._simple_parse(raw_value)

        if default is not None:
            return default
        if key in AppSettings.model_fields:
            return getattr(AppSettings(), key)
        return None

    def get_int(self, key: str, default: Optional[int] = None) -> int:
        """Get integer configuration value."""
        value = self.get(key, default)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(value)
        except (ValueError, TypeError):
            return default if default is not None else 0

    def get_bool(self, key: str, default: Optional[bool] = None) -> bool:
        """Get boolean configuration value."""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return bool(value)
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return bool(value) if value else False

    def get_list(self, key: str, default: Optional[List[str]] = None) -> List[str]:
        """Get list configuration value from comma-separated string."""
        value = self.get(key, default)
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if default is not None:
            return default
        return []

    def set(self, key: str, value: Any) -> None:
        """Set configuration value with pydantic validation.

        Args:
            key: Setting key
            value: Setting value

        Raises:
            ValueError: If value fails validation
        """
        if key in AppSettings.model_fields:
            try:
                validated = AppSettings(**{key: value})
                value = getattr(validated, key)
            except ValidationError as e:
                raise ValueError(f"Invalid value for {key}: {e}") from e

        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO settings (key, value)
                VALUES (?, ?)
            """,
                (key, self._serialize_value(value)),
            )
            conn.commit()
        log.debug(f"Setting {key} updated")

    def get_all(self) -> dict[str, Any]:
        """Get all settings as dictionary."""
        return {key: self.get(key) for key in self._stored_keys()}

    def _stored_keys(self) -> list[str]:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT key FROM settings ORDER BY key")
            return [row[0] for row in cursor.fetchall()]

    def settings(self) -> AppSettings:
        """All known settings as a validated AppSettings instance."""
        return AppSettings(**{key: self.get(key) for key in AppSettings.model_fields})
