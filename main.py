#!/usr/bin/env python3
"""OnCue typing - typing speed, tremor and fatigue tracking."""

import argparse
import json
import logging
import os
import sqlite3
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from core.database_adapter import AdapterError
from core.heatmap import build_key_heatmap
from core.metrics import calculate_performance_metrics, fatigue_level, tremor_level
from core.models import TypingSession, UserProfile
from core.session_recorder import now_ms
from core.session_service import SessionService
from core.storage import EXPORT_FORMATS, Storage
from utils.config import Config
from utils.time_format import format_time, local_datetime

log = logging.getLogger("oncue")

APP_NAME = "oncue-typing"


def default_data_dir() -> Path:
    xdg_data_home = os.environ.get("XDG_DATA_HOME", str(Path.home() / ".local" / "share"))
    return Path(xdg_data_home) / APP_NAME


def setup_logging(verbose: bool = False) -> None:
    """Log to a rotating file in the XDG state directory and to stderr."""
    xdg_state_home = os.environ.get("XDG_STATE_HOME", str(Path.home() / ".local" / "state"))
    log_dir = Path(xdg_state_home) / APP_NAME
    log_dir.mkdir(parents=True, exist_ok=True)

    # 5MB max, keep 5 backups
    file_handler = RotatingFileHandler(
        log_dir / f"{APP_NAME}.log", maxBytes=5 * 1024 * 1024, backupCount=5
    )

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[file_handler, logging.StreamHandler()],
    )


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


# ========== Commands ==========


def cmd_history(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    stats = storage.get_history_stats()
    print(f"Sessions: {stats.session_count}")
    print(f"Average WPM: {stats.average_wpm}")
    print(f"Average accuracy: {stats.average_accuracy}%")

    limit = args.limit or config.get_int("history_limit")
    sessions = storage.get_recent_sessions(limit=limit)
    if not sessions:
        print("No typing sessions yet.")
        return 0

    print()
    print(f"{'ID':<24} {'Date':<16} {'Time':>6} {'WPM':>4} {'Acc':>4} {'Tremor':<10}")
    for session in sessions:
        tremor = session.tremor_score or 0
        print(
            f"{session.id:<24} {local_datetime(session.timestamp):<16} "
            f"{format_time(session.duration):>6} {session.wpm:>4} "
            f"{session.accuracy:>3}% {tremor_level(tremor):<10}"
        )
    return 0


def print_session(session: TypingSession) -> None:
    metrics = calculate_performance_metrics(
        session.typed_text,
        session.reference_text,
        session.keystrokes,
        session.start_time,
        session.end_time,
    )
    tremor = session.tremor_score or 0
    fatigue = session.fatigue_score or 0

    print(f"Session {session.id} - {local_datetime(session.timestamp)}")
    print(f"  Duration:            {format_time(session.duration)}")
    print(f"  WPM:                 {session.wpm}")
    print(f"  Accuracy:            {session.accuracy}%")
    print(f"  Error rate:          {session.error_rate}%")
    print(f"  Keystrokes:          {metrics.total_keystrokes} "
          f"({metrics.correct_keystrokes} correct, {metrics.incorrect_keystrokes} incorrect)")
    print(f"  Avg key duration:    {metrics.average_keystroke_duration} ms")
    print(f"  Key duration std:    {metrics.keystroke_duration_std_dev} ms")
    print(f"  Tremor score:        {tremor} ({tremor_level(tremor)})")
    print(f"  Fatigue score:       {fatigue}% ({fatigue_level(fatigue)})")


def cmd_show(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    session = storage.get_session(args.session_id)
    if session is None:
        print(f"No session with id {args.session_id}", file=sys.stderr)
        return 1

    print_session(session)

    heatmap = build_key_heatmap(session.keystrokes)[: args.keys]
    if heatmap:
        print()
        print(f"  {'Key':<10} {'Presses':>7} {'Errors':>6} {'Avg ms':>6} {'Err %':>5}")
        for entry in heatmap:
            print(
                f"  {entry.key!r:<10} {entry.press_count:>7} {entry.error_count:>6} "
                f"{entry.average_duration:>6} {entry.error_rate:>5}"
            )
    return 0


def cmd_delete(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    if storage.get_session(args.session_id) is None:
        print(f"No session with id {args.session_id}", file=sys.stderr)
        return 1
    if config.get_bool("confirm_deletes") and not args.yes:
        if not confirm(f"Delete session {args.session_id}?"):
            print("Cancelled.")
            return 0
    storage.delete_session(args.session_id)
    print(f"Deleted session {args.session_id}")
    return 0


def cmd_clear(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    if config.get_bool("confirm_deletes") and not args.yes:
        if not confirm("Delete ALL typing sessions? This cannot be undone."):
            print("Cancelled.")
            return 0
    storage.clear_all_sessions()
    print("All sessions deleted.")
    return 0


def cmd_export(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    output = args.output
    if output is None:
        export_dir = Path(config.get("export_directory") or ".")
        output = export_dir / f"{APP_NAME}-data-{now_ms()}.{args.format}"
    try:
        count = storage.export_to_file(Path(output), args.format)
    except OSError as e:
        log.error(f"Cannot write export to {output}: {e}")
        return 1
    print(f"Exported {count} sessions to {output}")
    return 0


def cmd_compute(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    service = SessionService(storage)
    try:
        payload = json.loads(Path(args.attempt_file).read_text(encoding="utf-8"))
        if args.save:
            result = service.import_attempt(payload)
            session = result.session
            if not result.saved:
                print("Warning: session could not be saved", file=sys.stderr)
        else:
            session = service.compute_from_attempt(payload)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        log.error(f"Cannot read attempt from {args.attempt_file}: {e}")
        return 1

    print_session(session)
    return 0


def cmd_replay(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    service = SessionService(storage)
    reference_text = args.text or config.get("reference_text")
    try:
        payload = json.loads(Path(args.key_log).read_text(encoding="utf-8"))
        result = service.replay_key_log(
            payload,
            reference_text,
            config.get_list("ignored_keys"),
            save=not args.dry_run,
        )
    except (OSError, json.JSONDecodeError, ValueError) as e:
        log.error(f"Cannot replay key log {args.key_log}: {e}")
        return 1

    if not args.dry_run and not result.saved:
        print("Warning: session could not be saved", file=sys.stderr)
    print_session(result.session)
    return 0


def cmd_profile(storage: Storage, config: Config, args: argparse.Namespace) -> int:
    profile = storage.get_profile()
    updates = {
        field: value
        for field, value in (
            ("name", args.name),
            ("email", args.email),
            ("age", args.age),
            ("diagnosis_year", args.diagnosis_year),
            ("symptom_severity", args.severity),
        )
        if value is not None
    }

    now = now_ms()
    if updates:
        if profile is None:
            data = {"id": "default", "created_at": now, **updates}
        else:
            data = {**profile.model_dump(), **updates}
        try:
            profile = UserProfile.model_validate({**data, "last_active": now})
        except ValidationError as e:
            log.error(f"Invalid profile values: {e}")
            return 1
        storage.save_profile(profile)

    if profile is None:
        print("No profile stored.")
        return 0
    print(json.dumps(profile.model_dump(by_alias=True, exclude_none=True), indent=2))
    return 0


COMMANDS = {
    "history": cmd_history,
    "show": cmd_show,
    "delete": cmd_delete,
    "clear": cmd_clear,
    "export": cmd_export,
    "compute": cmd_compute,
    "replay": cmd_replay,
    "profile": cmd_profile,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="Typing speed, tremor and fatigue tracking"
    )
    parser.add_argument("--db", type=Path, help="Path to the session database")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    history = sub.add_parser("history", help="List stored sessions")
    history.add_argument(
        "--limit", type=positive_int, help="Sessions to list (default: history_limit)"
    )

    show = sub.add_parser("show", help="Show results for one session")
    show.add_argument("session_id")
    show.add_argument("--keys", type=positive_int, default=10, help="Rows of the key heatmap")

    delete = sub.add_parser("delete", help="Delete one session")
    delete.add_argument("session_id")
    delete.add_argument("-y", "--yes", action="store_true", help="Do not ask")

    clear = sub.add_parser("clear", help="Delete all sessions")
    clear.add_argument("-y", "--yes", action="store_true", help="Do not ask")

    export = sub.add_parser("export", help="Export all sessions")
    export.add_argument("format", choices=EXPORT_FORMATS)
    export.add_argument("-o", "--output", type=Path)

    compute = sub.add_parser("compute", help="Compute metrics for a recorded attempt")
    compute.add_argument("attempt_file", type=Path)
    compute.add_argument("--save", action="store_true", help="Store the session")

    replay = sub.add_parser("replay", help="Run a captured key log through the recorder")
    replay.add_argument("key_log", type=Path)
    replay.add_argument("--text", help="Reference passage (default: reference_text setting)")
    replay.add_argument("--dry-run", action="store_true", help="Do not store the session")

    profile = sub.add_parser("profile", help="Show or update the user profile")
    profile.add_argument("--name")
    profile.add_argument("--email")
    profile.add_argument("--age", type=int)
    profile.add_argument("--diagnosis-year", type=int)
    profile.add_argument("--severity", choices=("mild", "moderate", "severe"))

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    db_path = args.db or default_data_dir() / "typing_data.db"
    try:
        config = Config(db_path)
        storage = Storage(db_path)
    except (AdapterError, sqlite3.Error) as e:
        log.error(f"Cannot open database {db_path}: {e}")
        return 1

    try:
        return COMMANDS[args.command](storage, config, args)
    except AdapterError as e:
        log.error(f"Database error: {e}")
        return 1
    finally:
        storage.close()


if __name__ == "__main__":
    sys.exit(main())
