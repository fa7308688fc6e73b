"""Performance metrics derived from a keystroke timeline.

Every function here is pure: the same inputs always give the same result and
no input shape raises. Division guards return 0 (or a zeroed record) instead.
"""

import math
from typing import Sequence

from core.models import DurationStats, FatigueResult, KeystrokeEvent, PerformanceMetrics
from core.wpm_calculator import calculate_wpm, round_half_up

# Fatigue analysis needs at least this many keystrokes to say anything.
MIN_FATIGUE_KEYSTROKES = 10
FATIGUE_DECLINE_THRESHOLD = 20

# CV of 50% maps to the top of the tremor scale.
TREMOR_CV_MULTIPLIER = 2
TREMOR_MAX_SCORE = 100


def calculate_accuracy(typed_text: str, reference_text: str) -> int:
    """Calculate typing accuracy as a percentage.

    Positions are compared up to the shorter of the two texts, but the
    denominator is the typed length, so typing past the end of the reference
    lowers accuracy.

    Args:
        typed_text: Text the user typed
        reference_text: Text the user was asked to type

    Returns:
        Accuracy in [0, 100]; 100 for empty typed text
    """
    if not typed_text:
        return 100

    comparison_length = min(len(typed_text), len(reference_text))
    correct = sum(
        1 for i in range(comparison_length) if typed_text[i] == reference_text[i]
    )
    return round_half_up(correct / len(typed_text) * 100)


def calculate_error_rate(typed_text: str, reference_text: str) -> int:
    """Calculate error rate as ``100 - accuracy``."""
    return 100 - calculate_accuracy(typed_text, reference_text)


def _valid_durations(keystrokes: Sequence[KeystrokeEvent]) -> list[int]:
    return [k.duration for k in keystrokes if k.duration is not None]


def calculate_average_keystroke_duration(keystrokes: Sequence[KeystrokeEvent]) -> int:
    """Mean hold duration over keystrokes with a recorded duration."""
    durations = _valid_durations(keystrokes)
    if not durations:
        return 0
    return round_half_up(sum(durations) / len(durations))


def calculate_keystroke_duration_std_dev(keystrokes: Sequence[KeystrokeEvent]) -> int:
    """Population standard deviation of hold durations.

    The variance is taken around the already rounded mean and the result is
    rounded again. Historical sessions depend on both roundings.
    """
    durations = _valid_durations(keystrokes)
    if not durations:
        return 0

    mean = calculate_average_keystroke_duration(keystrokes)
    variance = sum((d - mean) ** 2 for d in durations) / len(durations)
    return round_half_up(math.sqrt(variance))


def calculate_duration_stats(keystrokes: Sequence[KeystrokeEvent]) -> DurationStats:
    """Mean and standard deviation of hold durations in one record."""
    return DurationStats(
        mean=calculate_average_keystroke_duration(keystrokes),
        std_dev=calculate_keystroke_duration_std_dev(keystrokes),
    )


def calculate_tremor_score(keystrokes: Sequence[KeystrokeEvent]) -> int:
    """Tremor severity score (0-100) from hold duration variability.

    Args:
        keystrokes: Recorded keystrokes

    Returns:
        Twice the coefficient of variation, capped at 100; 0 if mean is 0
    """
    stats = calculate_duration_stats(keystrokes)
    if stats.mean == 0:
        return 0

    coefficient_of_variation = (stats.std_dev / stats.mean) * 100
    return min(TREMOR_MAX_SCORE, round_half_up(coefficient_of_variation * TREMOR_CV_MULTIPLIER))


def detect_fatigue(
    keystrokes: Sequence[KeystrokeEvent], start_time: int, end_time: int
) -> FatigueResult:
    """Compare keystroke throughput in the first and last third of a test.

    The middle third belongs to neither group. Each group's keystroke count
    stands in for its character count.

    Args:
        keystrokes: Recorded keystrokes in chronological order
        start_time: Test start in milliseconds
        end_time: Test end in milliseconds

    Returns:
        FatigueResult, zeroed when there are too few keystrokes or either
        third is empty
    """
    if len(keystrokes) < MIN_FATIGUE_KEYSTROKES:
        return FatigueResult()

    third_duration = (end_time - start_time) / 3
    early_boundary = start_time + third_duration
    late_boundary = start_time + 2 * third_duration

    early = [k for k in keystrokes if k.key_down_time < early_boundary]
    late = [k for k in keystrokes if k.key_down_time > late_boundary]

    if not early or not late:
        return FatigueResult()

    early_wpm = calculate_wpm(len(early), third_duration)
    late_wpm = calculate_wpm(len(late), third_duration)

    decline = (early_wpm - late_wpm) / early_wpm * 100 if early_wpm > 0 else 0

    return FatigueResult(
        detected=decline > FATIGUE_DECLINE_THRESHOLD,
        score=max(0, round_half_up(decline)),
        early_wpm=early_wpm,
        late_wpm=late_wpm,
    )


def calculate_performance_metrics(
    typed_text: str,
    reference_text: str,
    keystrokes: Sequence[KeystrokeEvent],
    start_time: int,
    end_time: int,
) -> PerformanceMetrics:
    """Calculate all metrics for one typing attempt."""
    accuracy = calculate_accuracy(typed_text, reference_text)
    stats = calculate_duration_stats(keystrokes)
    fatigue = detect_fatigue(keystrokes, start_time, end_time)

    correct = sum(1 for k in keystrokes if k.is_correct)

    return PerformanceMetrics(
        wpm=calculate_wpm(len(typed_text), end_time - start_time),
        accuracy=accuracy,
        error_rate=100 - accuracy,
        total_keystrokes=len(keystrokes),
        correct_keystrokes=correct,
        incorrect_keystrokes=len(keystrokes) - correct,
        average_keystroke_duration=stats.mean,
        keystroke_duration_std_dev=stats.std_dev,
        tremor_severity_score=calculate_tremor_score(keystrokes),
        fatigue_detected=fatigue.detected,
        fatigue_score=fatigue.score,
    )


def tremor_level(score: int) -> str:
    """Label for a tremor score: Low (<30), Moderate (<60) or High."""
    if score < 30:
        return "Low"
    if score < 60:
        return "Moderate"
    return "High"


def fatigue_level(score: int) -> str:
    """Label for a fatigue score: None (<15), Mild (<30) or Significant."""
    if score < 15:
        return "None"
    if score < 30:
        return "Mild"
    return "Significant"
