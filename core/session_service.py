"""Finishing typing tests and turning recorded attempts into stored sessions."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.database_adapter import AdapterError
from core.models import KeystrokeEvent, TypingSession
from core.session_recorder import SessionRecorder, build_session, now_ms
from core.storage import Storage

log = logging.getLogger("oncue.session_service")


class RecordedAttempt(BaseModel):
    """Raw attempt data as captured by a recorder or exported by a client."""

    reference_text: str = Field(..., alias="referenceText")
    typed_text: str = Field(..., alias="typedText")
    keystrokes: list[KeystrokeEvent] = Field(default_factory=list)
    start_time: int = Field(..., alias="startTime")
    end_time: int = Field(..., alias="endTime")
    id: str | None = Field(default=None, description="Keep this id instead of generating one")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class KeyAction(BaseModel):
    """One raw key event from a captured key log."""

    type: Literal["keydown", "keyup"]
    key: str
    time: int


class KeyLog(BaseModel):
    """Key events captured during a test, replayed through a SessionRecorder."""

    reference_text: Optional[str] = Field(default=None, alias="referenceText")
    start_time: Optional[int] = Field(default=None, alias="startTime")
    end_time: Optional[int] = Field(default=None, alias="endTime")
    events: list[KeyAction] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


@dataclass
class FinishResult:
    """Outcome of finishing a test."""

    session: TypingSession
    saved: bool


class SessionService:
    """Connects the recorder, the metrics engine and storage."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def _persist(self, session: TypingSession) -> bool:
        try:
            self.storage.save_session(session)
        except AdapterError as e:
            # The test still counts as completed, it just isn't in history.
            log.error(f"Error saving session {session.id}: {e}")
            return False
        return True

    def finish_test(
        self, recorder: SessionRecorder, timestamp_ms: Optional[int] = None
    ) -> FinishResult:
        """Finish the recorder's test and save the resulting session.

        Args:
            recorder: Recorder with an active test
            timestamp_ms: End time; the recorder clock is used if omitted

        Returns:
            FinishResult; ``saved`` is False when storage failed
        """
        session = recorder.finish(timestamp_ms)
        return FinishResult(session=session, saved=self._persist(session))

    def compute_from_attempt(self, payload: dict[str, Any]) -> TypingSession:
        """Build a session from recorded attempt data without storing it.

        Raises:
            pydantic.ValidationError: If the payload is malformed
        """
        attempt = RecordedAttempt.model_validate(payload)
        return build_session(
            attempt.typed_text,
            attempt.reference_text,
            attempt.keystrokes,
            attempt.start_time,
            attempt.end_time,
            session_id=attempt.id,
        )

    def import_attempt(self, payload: dict[str, Any]) -> FinishResult:
        """Build a session from recorded attempt data and store it."""
        session = self.compute_from_attempt(payload)
        return FinishResult(session=session, saved=self._persist(session))

    def replay_key_log(
        self,
        payload: dict[str, Any],
        reference_text: str,
        ignored_keys: Iterable[str],
        save: bool = True,
    ) -> FinishResult:
        """Feed a captured key log through a recorder and finish the test.

        Args:
            payload: Key log data (events plus optional reference and times)
            reference_text: Passage used when the log does not carry one
            ignored_keys: Keys the recorder drops
            save: Store the resulting session

        Raises:
            pydantic.ValidationError: If the payload is malformed
            ValueError: If the reference passage is empty
        """
        key_log = KeyLog.model_validate(payload)
        recorder = SessionRecorder(
            key_log.reference_text or reference_text, ignored_keys=ignored_keys
        )

        start = key_log.start_time
        if start is None:
            start = key_log.events[0].time if key_log.events else now_ms()
        recorder.start(start)

        for action in key_log.events:
            if action.type == "keydown":
                recorder.key_down(action.key, action.time)
            else:
                recorder.key_up(action.key, action.time)

        end = key_log.end_time
        if end is None:
            end = max((a.time for a in key_log.events), default=start)
        log.debug(f"Replayed {len(key_log.events)} key events")

        if not save:
            return FinishResult(session=recorder.finish(end), saved=False)
        return self.finish_test(recorder, end)
