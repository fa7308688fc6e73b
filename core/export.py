"""CSV and JSON export of typing sessions."""

import csv
import io
import json
from typing import Sequence

from core.models import TypingSession
from core.wpm_calculator import round_half_up
from utils.time_format import iso_timestamp

CSV_HEADERS = [
    "Session ID",
    "Date",
    "Duration (seconds)",
    "WPM",
    "Accuracy (%)",
    "Error Rate (%)",
    "Total Keystrokes",
    "Tremor Score",
    "Fatigue Score",
]


def session_to_csv_row(session: TypingSession) -> list:
    """Flatten one session into the fixed nine-column layout."""
    return [
        session.id,
        iso_timestamp(session.timestamp),
        round_half_up(session.duration / 1000),
        session.wpm,
        session.accuracy,
        session.error_rate,
        len(session.keystrokes),
        session.tremor_score or 0,
        session.fatigue_score or 0,
    ]


def sessions_to_csv(sessions: Sequence[TypingSession]) -> str:
    """Render sessions as CSV text.

    Returns:
        Header plus one line per session joined by ``\\n``; empty string when
        there are no sessions
    """
    if not sessions:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(session_to_csv_row(s) for s in sessions)
    return buffer.getvalue().rstrip("\n")


def sessions_to_json(sessions: Sequence[TypingSession]) -> str:
    """Render sessions as an indented JSON array with camelCase field names."""
    return json.dumps(
        [s.model_dump(mode="json", by_alias=True) for s in sessions], indent=2
    )
