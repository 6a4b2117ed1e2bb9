"""Bounded polling for an asynchronous OpenClaw reply.

The wake hook returns no correlation id, so a reply is attributed to a
wake purely by time: the first poll that finds an assistant entry newer
than the wake's send time ends the wait. Two wakes in flight against the
same session can both pick up the same entry.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from src.relay.models import ReplyRecord
from src.sessions.reader import find_latest_assistant_reply

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.5
DEFAULT_MAX_WAIT_SECONDS = 60.0


class WaitState(str, Enum):
    FOUND = "found"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class WaitResult:
    state: WaitState
    record: ReplyRecord | None = None

    @property
    def text(self) -> str | None:
        return self.record.text if self.record else None


class ReplyWaiter:
    """Polls a session file at a fixed interval until a reply or the deadline."""

    def __init__(self, poll_interval: float = POLL_INTERVAL_SECONDS) -> None:
        self._poll_interval = poll_interval

    async def wait(
        self,
        log_path: Path,
        after: datetime,
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
    ) -> WaitResult:
        ticks = max(1, math.ceil(max_wait / self._poll_interval))
        for _ in range(ticks):
            await asyncio.sleep(self._poll_interval)
            record = await asyncio.to_thread(
                find_latest_assistant_reply, log_path, after,
            )
            if record is not None:
                return WaitResult(state=WaitState.FOUND, record=record)
        logger.debug("No reply in %s after %d polls", log_path.name, ticks)
        return WaitResult(state=WaitState.TIMED_OUT)
