"""WPM calculation utilities."""

import math

CHARS_PER_WORD = 5
MS_PER_MINUTE = 60000


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity.

    Stored sessions were scored with this rule, so ``round()`` (which rounds
    halves to even) must not be used for any metric.

    Args:
        value: Number to round

    Returns:
        Rounded integer
    """
    return int(math.floor(value + 0.5))


def calculate_wpm(character_count: int, duration_ms: float) -> int:
    """Calculate words per minute.

    Args:
        character_count: Number of characters (or keystrokes used as a proxy)
        duration_ms: Duration in milliseconds

    Returns:
        Rounded WPM, or 0 if duration is zero
    """
    if duration_ms == 0:
        return 0

    words = character_count / CHARS_PER_WORD
    minutes = duration_ms / MS_PER_MINUTE
    return round_half_up(words / minutes)
