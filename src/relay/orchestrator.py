"""Relay orchestration: wake OpenClaw, wait for its reply, deliver to WeCom.

Stages for one inbound text message:
1. Record the send time and call the wake hook
2. Grace delay so the session writer can open its file
3. Resolve the active session file
4. Poll for an assistant reply newer than the send time
5. Parse the reply and send text, then images in order
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from src.relay.openclaw import OpenClawWaker, WakeError
from src.relay.parser import parse_reply
from src.sessions.reader import resolve_active_session
from src.sessions.waiter import DEFAULT_MAX_WAIT_SECONDS, ReplyWaiter, WaitState
from src.wecom.client import WeComClient

logger = logging.getLogger(__name__)

GRACE_DELAY_SECONDS = 2.0
_PREVIEW_CHARS = 100

UNAVAILABLE_MESSAGE = "The service is temporarily unavailable. Please try again later."
SERVICE_ERROR_MESSAGE = "Service error. Please try again later."
TIMEOUT_MESSAGE = "The request timed out. Please try again later."
EMPTY_REPLY_MESSAGE = "(Received an empty reply)"


class RelayOrchestrator:
    """Runs one wake / wait / deliver cycle per inbound message."""

    def __init__(
        self,
        waker: OpenClawWaker,
        client: WeComClient,
        sessions_dir: Path,
        waiter: ReplyWaiter | None = None,
        reply_timeout: float = DEFAULT_MAX_WAIT_SECONDS,
        grace_delay: float = GRACE_DELAY_SECONDS,
    ) -> None:
        self._waker = waker
        self._client = client
        self._sessions_dir = Path(sessions_dir)
        self._waiter = waiter or ReplyWaiter()
        self._reply_timeout = reply_timeout
        self._grace_delay = grace_delay

    async def handle_message(self, user_id: str, text: str) -> None:
        logger.info("Processing message | user=%s | content=%s", user_id, text)
        send_time = datetime.now(UTC)

        try:
            status = await self._waker.wake(user_id, text)
        except WakeError as exc:
            logger.error("Failed to wake OpenClaw: %s", exc)
            await self._client.send_text(user_id, UNAVAILABLE_MESSAGE)
            return
        logger.info("Woke up OpenClaw, status=%s | waiting for reply", status)

        await asyncio.sleep(self._grace_delay)

        session_file = resolve_active_session(self._sessions_dir)
        if session_file is None:
            logger.error("Could not find session file in %s", self._sessions_dir)
            await self._client.send_text(user_id, SERVICE_ERROR_MESSAGE)
            return
        logger.info("Polling session file: %s", session_file.name)

        result = await self._waiter.wait(session_file, send_time, self._reply_timeout)
        if result.state is WaitState.TIMED_OUT or result.text is None:
            logger.error(
                "Timed out (%ss) waiting for OpenClaw reply", self._reply_timeout,
            )
            await self._client.send_text(user_id, TIMEOUT_MESSAGE)
            return

        logger.info("OpenClaw reply: %s", _preview(result.text))
        await self.deliver_reply(user_id, result.text)

    async def deliver_reply(self, user_id: str, raw_reply: str) -> None:
        """Send text first, then each image in reply order."""
        parsed = parse_reply(raw_reply)
        if parsed.is_empty:
            await self._client.send_text(user_id, EMPTY_REPLY_MESSAGE)
            return
        if parsed.text_only:
            await self._client.send_text(user_id, parsed.text_only)
        for image_path in parsed.image_paths:
            await self._client.send_image(user_id, image_path)


def _preview(text: str) -> str:
    if len(text) > _PREVIEW_CHARS:
        return text[:_PREVIEW_CHARS] + "..."
    return text
