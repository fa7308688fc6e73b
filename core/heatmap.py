"""Per-key summary of a keystroke sequence."""

from typing import Sequence

from core.models import KeyHeatmapData, KeystrokeEvent
from core.wpm_calculator import round_half_up


def build_key_heatmap(keystrokes: Sequence[KeystrokeEvent]) -> list[KeyHeatmapData]:
    """Summarize presses, errors and hold time for every key.

    Args:
        keystrokes: Recorded keystrokes

    Returns:
        One entry per distinct key, most pressed first. Ties keep the order in
        which the keys were first pressed.
    """
    grouped: dict[str, list[KeystrokeEvent]] = {}
    for keystroke in keystrokes:
        grouped.setdefault(keystroke.key, []).append(keystroke)

    heatmap = []
    for key, presses in grouped.items():
        errors = sum(1 for k in presses if not k.is_correct)
        durations = [k.duration for k in presses if k.duration is not None]
        average = round_half_up(sum(durations) / len(durations)) if durations else 0
        heatmap.append(
            KeyHeatmapData(
                key=key,
                press_count=len(presses),
                error_count=errors,
                average_duration=average,
                error_rate=round_half_up(errors / len(presses) * 100),
            )
        )

    # sorted() is stable, so equal counts stay in first-press order
    return sorted(heatmap, key=lambda entry: entry.press_count, reverse=True)
