"""Tests for SessionService."""

from unittest.mock import Mock

import pytest
from pydantic import ValidationError

from core.database_adapter import AdapterError
from core.models import TestStatus
from core.session_recorder import RecorderStateError, SessionRecorder
from core.session_service import SessionService


def attempt_payload(**overrides):
    payload = {
        "referenceText": "hello",
        "typedText": "helo",
        "keystrokes": [
            {"key": k, "keyDownTime": i * 200, "keyUpTime": i * 200 + 90,
             "duration": 90, "isCorrect": k != "o", "characterIndex": i}
            for i, k in enumerate("helo")
        ],
        "startTime": 0,
        "endTime": 60000,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def service(storage):
    return SessionService(storage)


class TestFinishTest:
    """Test SessionService.finish_test."""

    def test_saves_session(self, service, storage):
        """Test a finished test is stored."""
        recorder = SessionRecorder("hi")
        recorder.start(1000)
        recorder.key_down("h", 1100)
        recorder.key_up("h", 1180)

        result = service.finish_test(recorder, 13000)

        assert result.saved is True
        assert recorder.status == TestStatus.COMPLETED
        assert storage.get_session(result.session.id) == result.session

    def test_storage_failure_keeps_completed_session(self):
        """Test a storage error is logged and the session returned unsaved."""
        storage = Mock()
        storage.save_session.side_effect = AdapterError("disk full")
        service = SessionService(storage)
        recorder = SessionRecorder("hi")
        recorder.start(1000)

        result = service.finish_test(recorder, 2000)

        assert result.saved is False
        assert result.session.duration == 1000
        assert recorder.status == TestStatus.COMPLETED
        storage.save_session.assert_called_once_with(result.session)


    def test_second_finish_not_stored(self, service, storage):
        """Test finishing the same attempt again stores nothing new."""
        recorder = SessionRecorder("a")
        recorder.start(0)
        recorder.key_down("a", 100)
        recorder.key_up("a", 180)
        service.finish_test(recorder, 1000)

        with pytest.raises(RecorderStateError):
            service.finish_test(recorder, 2000)
        assert len(storage.get_all_sessions()) == 1


class TestRecordedAttempts:
    """Test computing sessions from recorded attempt data."""

    def test_compute_from_attempt(self, service, storage):
        """Test metrics are computed without storing anything."""
        session = service.compute_from_attempt(attempt_payload())

        assert session.accuracy == 75
        assert session.error_rate == 25
        assert session.wpm == 1
        assert session.duration == 60000
        assert len(session.keystrokes) == 4
        assert storage.get_all_sessions() == []

    def test_keeps_given_id(self, service):
        """Test an id in the payload is kept."""
        session = service.compute_from_attempt(attempt_payload(id="1700000000000-abc"))
        assert session.id == "1700000000000-abc"

    def test_import_attempt(self, service, storage):
        """Test importing stores the computed session."""
        result = service.import_attempt(attempt_payload())
        assert result.saved is True
        assert storage.get_session(result.session.id) is not None

    def test_import_duplicate_is_not_saved(self, service):
        """Test importing the same id twice reports the second as unsaved."""
        assert service.import_attempt(attempt_payload(id="dup")).saved is True
        assert service.import_attempt(attempt_payload(id="dup")).saved is False

    def test_malformed_payload(self, service):
        """Test missing fields raise a ValidationError."""
        with pytest.raises(ValidationError):
            service.compute_from_attempt({"typedText": "abc"})


def key_log(**overrides):
    payload = {
        "startTime": 1000,
        "endTime": 13000,
        "events": [
            {"type": "keydown", "key": "h", "time": 1100},
            {"type": "keyup", "key": "h", "time": 1180},
            {"type": "keydown", "key": "Shift", "time": 1200},
            {"type": "keydown", "key": "i", "time": 1300},
            {"type": "keyup", "key": "i", "time": 1370},
            {"type": "keyup", "key": "Shift", "time": 1400},
        ],
    }
    payload.update(overrides)
    return payload


class TestReplayKeyLog:
    """Test replaying captured key logs through the recorder."""

    def test_replay_and_save(self, service, storage):
        result = service.replay_key_log(key_log(), "hi", ["Shift"])

        session = result.session
        assert result.saved is True
        assert session.typed_text == "hi"
        assert [k.key for k in session.keystrokes] == ["h", "i"]
        assert session.keystrokes[0].duration == 80
        assert session.duration == 12000
        assert session.wpm == 2
        assert session.accuracy == 100
        assert storage.get_session(session.id) == session

    def test_reference_in_log_wins(self, service):
        """Test a reference passage carried by the log overrides the default."""
        result = service.replay_key_log(
            key_log(referenceText="ho"), "hi", ["Shift"], save=False
        )
        assert result.session.reference_text == "ho"
        assert result.session.accuracy == 50

    def test_dry_run_not_stored(self, service, storage):
        result = service.replay_key_log(key_log(), "hi", ["Shift"], save=False)
        assert result.saved is False
        assert storage.get_all_sessions() == []

    def test_times_default_to_events(self, service):
        """Test start and end fall back to the first and last event times."""
        result = service.replay_key_log(
            key_log(startTime=None, endTime=None), "hi", ["Shift"], save=False
        )
        assert result.session.start_time == 1100
        assert result.session.end_time == 1400

    def test_unknown_event_type(self, service):
        with pytest.raises(ValidationError):
            service.replay_key_log(
                {"events": [{"type": "press", "key": "a", "time": 1}]}, "a", []
            )
