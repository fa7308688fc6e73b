"""Pydantic models for OnCue typing data structures."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TestStatus(str, Enum):
    """Lifecycle of a single typing test."""

    __test__ = False

    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"


class KeystrokeEvent(BaseModel):
    """One recorded key press/release pair."""

    key: str = Field(..., description="Key identifier as reported by the keyboard")
    key_down_time: int = Field(
        ..., alias="keyDownTime", description="Key-down timestamp in milliseconds"
    )
    key_up_time: int | None = Field(
        default=None, alias="keyUpTime", description="Key-up timestamp in milliseconds"
    )
    duration: int | None = Field(
        default=None, description="Key hold duration in milliseconds"
    )
    is_correct: bool = Field(
        ..., alias="isCorrect", description="Key matched the expected character"
    )
    character_index: int = Field(
        ..., alias="characterIndex", description="Position in the reference text"
    )

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class DurationStats(BaseModel):
    """Mean and standard deviation of keystroke hold durations."""

    mean: int = Field(default=0, description="Rounded mean duration in milliseconds")
    std_dev: int = Field(
        default=0, alias="stdDev", description="Rounded population standard deviation"
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FatigueResult(BaseModel):
    """Early versus late throughput comparison for one session."""

    detected: bool = Field(default=False, description="Decline exceeded 20%")
    score: int = Field(default=0, ge=0, description="Percentage decline, never negative")
    early_wpm: int = Field(default=0, alias="earlyWPM", description="WPM in first third")
    late_wpm: int = Field(default=0, alias="lateWPM", description="WPM in last third")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PerformanceMetrics(BaseModel):
    """Metrics derived from a finished or in-progress typing attempt."""

    wpm: int = Field(..., description="Words per minute (5 characters = 1 word)")
    accuracy: int = Field(..., ge=0, le=100, description="Accuracy percentage")
    error_rate: int = Field(..., ge=0, le=100, alias="errorRate", description="100 - accuracy")
    total_keystrokes: int = Field(..., alias="totalKeystrokes")
    correct_keystrokes: int = Field(..., alias="correctKeystrokes")
    incorrect_keystrokes: int = Field(..., alias="incorrectKeystrokes")
    average_keystroke_duration: int = Field(
        ..., alias="averageKeystrokeDuration", description="Mean hold time in ms"
    )
    keystroke_duration_std_dev: int = Field(
        ..., alias="keystrokeDurationStdDev", description="Hold time std dev in ms"
    )
    tremor_severity_score: int = Field(
        ..., le=100, alias="tremorSeverityScore", description="0-100 variability score"
    )
    fatigue_detected: bool = Field(..., alias="fatigueDetected")
    fatigue_score: int = Field(..., ge=0, alias="fatigueScore")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TypingSession(BaseModel):
    """A completed typing test as stored and exported."""

    id: str = Field(..., description="Unique session identifier")
    timestamp: int = Field(..., description="Session start in milliseconds since epoch")
    reference_text: str = Field(..., alias="referenceText")
    typed_text: str = Field(..., alias="typedText")
    keystrokes: list[KeystrokeEvent] = Field(default_factory=list)
    start_time: int = Field(..., alias="startTime")
    end_time: int = Field(..., alias="endTime")
    duration: int = Field(..., description="Session duration in milliseconds")
    wpm: int
    accuracy: int
    error_rate: int = Field(..., alias="errorRate")
    tremor_score: int | None = Field(default=None, alias="tremorScore")
    fatigue_score: int | None = Field(default=None, alias="fatigueScore")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UserProfile(BaseModel):
    """Locally stored user profile."""

    id: str
    name: str | None = None
    email: str | None = None
    age: int | None = Field(default=None, ge=0)
    diagnosis_year: int | None = Field(default=None, alias="diagnosisYear")
    symptom_severity: Literal["mild", "moderate", "severe"] | None = Field(
        default=None, alias="symptomSeverity"
    )
    created_at: int = Field(..., alias="createdAt")
    last_active: int = Field(..., alias="lastActive")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class KeyHeatmapData(BaseModel):
    """Per-key press and error summary for the results view."""

    key: str
    press_count: int = Field(..., alias="pressCount")
    error_count: int = Field(..., alias="errorCount")
    average_duration: int = Field(..., alias="averageDuration")
    error_rate: int = Field(..., alias="errorRate")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class HistoryStats(BaseModel):
    """Aggregates shown above the session history list."""

    session_count: int = Field(default=0, description="Number of stored sessions")
    average_wpm: int = Field(default=0, description="Rounded mean WPM")
    average_accuracy: int = Field(default=0, description="Rounded mean accuracy")

    model_config = ConfigDict(frozen=True)
