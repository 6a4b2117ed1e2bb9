"""Session log reader — finds OpenClaw replies in append-only JSON Lines files.

The backend appends to the active session file while we read it, so a
partial trailing line is expected and skipped like any other line that
fails to parse.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from src.models import SessionLogEntry
from src.relay.models import ReplyRecord

logger = logging.getLogger(__name__)

SESSION_SUFFIX = ".jsonl"


def iter_log_entries(log_path: Path) -> Iterator[tuple[int, SessionLogEntry]]:
    """Yield (line number, entry) for every line that parses as an entry."""
    with open(log_path, encoding="utf-8", errors="replace") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield line_no, SessionLogEntry.model_validate_json(line)
            except ValidationError:
                continue


def find_latest_assistant_reply(
    log_path: Path, after: datetime,
) -> ReplyRecord | None:
    """Return the newest assistant text reply strictly after ``after``.

    Candidates are assistant message entries with a text block and a
    timestamp greater than ``after``. The one with the greatest timestamp
    wins; equal timestamps resolve to the later line.
    """
    best: ReplyRecord | None = None
    try:
        for line_no, entry in iter_log_entries(log_path):
            if not entry.is_assistant_message or entry.timestamp <= after:
                continue
            text = entry.message.first_text() if entry.message else None
            if text is None:
                continue
            if best is None or entry.timestamp >= best.timestamp:
                best = ReplyRecord(timestamp=entry.timestamp, text=text, line_no=line_no)
    except OSError as exc:
        logger.warning("Failed to read session file %s: %s", log_path, exc)
        return None
    return best


def resolve_active_session(
    sessions_dir: Path, suffix: str = SESSION_SUFFIX,
) -> Path | None:
    """Return the most recently modified session file in ``sessions_dir``.

    Missing, empty or unreadable directories yield None.
    """
    candidates: list[tuple[int, Path]] = []
    try:
        for p in Path(sessions_dir).iterdir():
            if not p.name.endswith(suffix):
                continue
            try:
                if not p.is_file():
                    continue
                candidates.append((p.stat().st_mtime_ns, p))
            except FileNotFoundError:
                # removed between listing and stat
                continue
    except OSError as exc:
        logger.error("Failed to read sessions directory %s: %s", sessions_dir, exc)
        return None
    if not candidates:
        return None
    return max(candidates, key=lambda c: c[0])[1]
