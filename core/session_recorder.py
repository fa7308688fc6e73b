"""Keystroke capture for a typing test in progress."""

import logging
import secrets
import string
import time
from typing import Callable, Iterable, Optional

from core.metrics import calculate_accuracy, calculate_performance_metrics
from core.models import KeystrokeEvent, PerformanceMetrics, TestStatus, TypingSession
from core.validation import validate_duration_ms, validate_reference_text
from core.wpm_calculator import calculate_wpm

log = logging.getLogger("oncue.session_recorder")

DEFAULT_IGNORED_KEYS = ("Shift", "Control", "Alt", "Meta")
BACKSPACE_KEY = "Backspace"

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9


class RecorderStateError(RuntimeError):
    """Raised when the recorder is used out of order."""


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


def generate_session_id(timestamp_ms: Optional[int] = None) -> str:
    """Generate a unique session id such as ``1718000000000-k3j9x0a2b``."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{timestamp_ms}-{suffix}"


class SessionRecorder:
    """Records key-down/key-up pairs for one typing test at a time.

    The recorder owns the typed text as well as the keystroke list: single
    printable characters are appended on key-down and ``Backspace`` removes
    the last character.
    """

    def __init__(
        self,
        reference_text: str,
        ignored_keys: Iterable[str] = DEFAULT_IGNORED_KEYS,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize recorder.

        Args:
            reference_text: Passage the user is asked to type
            ignored_keys: Keys that never produce a keystroke event
            clock: Millisecond clock used when no timestamp is passed

        Raises:
            ValueError: If reference_text is empty
        """
        self.reference_text = validate_reference_text(reference_text)
        self.ignored_keys = frozenset(ignored_keys)
        self._clock = clock

        self.status = TestStatus.IDLE
        self.typed_text = ""
        self.keystrokes: list[KeystrokeEvent] = []
        self.start_time: Optional[int] = None
        self.end_time: Optional[int] = None

        self._pending_key_down: Optional[int] = None
        self._pending_index: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == TestStatus.ACTIVE

    def start(self, timestamp_ms: Optional[int] = None) -> None:
        """Start (or restart) the test, discarding anything recorded so far."""
        self.start_time = self._clock() if timestamp_ms is None else timestamp_ms
        self.end_time = None
        self.status = TestStatus.ACTIVE
        self.typed_text = ""
        self.keystrokes = []
        self._pending_key_down = None
        log.debug(f"Typing test started at {self.start_time}")

    def key_down(self, key: str, timestamp_ms: Optional[int] = None) -> None:
        """Handle a key press.

        Args:
            key: Key identifier (a character, or a name such as ``Backspace``)
            timestamp_ms: Press time; the recorder clock is used if omitted
        """
        if not self.is_active or key in self.ignored_keys:
            return

        self._pending_key_down = self._clock() if timestamp_ms is None else timestamp_ms
        self._pending_index = len(self.typed_text)

        if key == BACKSPACE_KEY:
            self.typed_text = self.typed_text[:-1]
        elif len(key) == 1 and key.isprintable():
            self.typed_text += key

    def key_up(self, key: str, timestamp_ms: Optional[int] = None) -> Optional[KeystrokeEvent]:
        """Handle a key release and record the completed keystroke.

        Returns:
            The recorded KeystrokeEvent, or None if nothing was pending
        """
        if not self.is_active or self._pending_key_down is None:
            return None

        key_up_time = self._clock() if timestamp_ms is None else timestamp_ms
        index = self._pending_index
        expected = self.reference_text[index] if index < len(self.reference_text) else None

        event = KeystrokeEvent(
            key=key,
            key_down_time=self._pending_key_down,
            key_up_time=key_up_time,
            duration=key_up_time - self._pending_key_down,
            is_correct=key == expected,
            character_index=index,
        )
        self.keystrokes.append(event)
        self._pending_key_down = None
        return event

    def elapsed_ms(self, timestamp_ms: Optional[int] = None) -> int:
        """Milliseconds since the test started (0 before start)."""
        if self.start_time is None:
            return 0
        if self.end_time is not None:
            return validate_duration_ms(self.start_time, self.end_time)
        now = self._clock() if timestamp_ms is None else timestamp_ms
        return validate_duration_ms(self.start_time, now)

    def live_wpm(self, timestamp_ms: Optional[int] = None) -> int:
        """WPM of the text typed so far."""
        return calculate_wpm(len(self.typed_text), self.elapsed_ms(timestamp_ms))

    def live_accuracy(self) -> int:
        """Accuracy of the text typed so far."""
        return calculate_accuracy(self.typed_text, self.reference_text)

    def metrics(self, timestamp_ms: Optional[int] = None) -> PerformanceMetrics:
        """Full metrics for the attempt as it stands."""
        if self.start_time is None:
            raise RecorderStateError("Typing test has not been started")
        end = self.end_time
        if end is None:
            end = self._clock() if timestamp_ms is None else timestamp_ms
        return calculate_performance_metrics(
            self.typed_text, self.reference_text, self.keystrokes, self.start_time, end
        )

    def finish(self, timestamp_ms: Optional[int] = None) -> TypingSession:
        """Stop the test and build the session record.

        Raises:
            RecorderStateError: If the test was never started or is already finished
        """
        if self.start_time is None or self.status == TestStatus.IDLE:
            raise RecorderStateError("Cannot finish a typing test that was not started")
        if self.status == TestStatus.COMPLETED:
            raise RecorderStateError("Typing test is already finished")

        self.end_time = self._clock() if timestamp_ms is None else timestamp_ms
        self.status = TestStatus.COMPLETED
        self._pending_key_down = None

        session = build_session(
            self.typed_text,
            self.reference_text,
            self.keystrokes,
            self.start_time,
            self.end_time,
        )
        log.info(
            f"Typing test finished: {len(self.keystrokes)} keystrokes, "
            f"{session.wpm} WPM, {session.accuracy}% accuracy"
        )
        return session


def build_session(
    typed_text: str,
    reference_text: str,
    keystrokes: list[KeystrokeEvent],
    start_time: int,
    end_time: int,
    session_id: Optional[str] = None,
) -> TypingSession:
    """Compose metrics for an attempt and wrap them in a TypingSession."""
    metrics = calculate_performance_metrics(
        typed_text, reference_text, keystrokes, start_time, end_time
    )
    return TypingSession(
        id=session_id or generate_session_id(),
        timestamp=start_time,
        reference_text=reference_text,
        typed_text=typed_text,
        keystrokes=list(keystrokes),
        start_time=start_time,
        end_time=end_time,
        duration=end_time - start_time,
        wpm=metrics.wpm,
        accuracy=metrics.accuracy,
        error_rate=metrics.error_rate,
        tremor_score=metrics.tremor_severity_score,
        fatigue_score=metrics.fatigue_score,
    )
