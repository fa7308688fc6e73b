"""Shared test fixtures for OnCue typing tests."""

import pytest
import tempfile
from pathlib import Path

from core.models import KeystrokeEvent, TypingSession
from core.storage import Storage


@pytest.fixture
def temp_db_path():
    """Create a temporary database path and clean up afterwards."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield db_path


@pytest.fixture
def storage(temp_db_path):
    """Create storage with temporary database."""
    storage = Storage(temp_db_path)
    yield storage
    storage.close()


def make_keystroke(key_down_time, duration=100, is_correct=True, key="a", index=0):
    """Build a keystroke event; ``duration=None`` leaves key-up unrecorded."""
    return KeystrokeEvent(
        key=key,
        key_down_time=key_down_time,
        key_up_time=None if duration is None else key_down_time + duration,
        duration=duration,
        is_correct=is_correct,
        character_index=index,
    )


def make_session(session_id="1700000000000-abcdefghi", timestamp=1700000000000, **overrides):
    """Build a stored-session record with sensible defaults."""
    keystrokes = overrides.pop(
        "keystrokes",
        [make_keystroke(timestamp + i * 200, index=i) for i in range(5)],
    )
    fields = dict(
        id=session_id,
        timestamp=timestamp,
        reference_text="hello",
        typed_text="hello",
        keystrokes=keystrokes,
        start_time=timestamp,
        end_time=timestamp + 60000,
        duration=60000,
        wpm=1,
        accuracy=100,
        error_rate=0,
        tremor_score=0,
        fatigue_score=0,
    )
    fields.update(overrides)
    return TypingSession(**fields)
