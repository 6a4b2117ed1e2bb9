"""Webhook dispatcher for the handshake and background message processing.

POST callbacks are acknowledged before any work happens. Decryption,
parsing and the relay cycle run in a tracked background task whose
errors are logged and never reach the HTTP client.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from src.relay.models import MsgType
from src.relay.orchestrator import RelayOrchestrator
from src.wecom.crypto import CryptoError, WeComCryptor
from src.wecom.envelope import extract_encrypted, parse_inner_message

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    def __init__(self, cryptor: WeComCryptor, orchestrator: RelayOrchestrator) -> None:
        self._cryptor = cryptor
        self._orchestrator = orchestrator
        self._tasks: set[asyncio.Task[None]] = set()

    def handshake(self, params: Mapping[str, str]) -> str:
        """Return the decrypted echostr; raises CryptoError on failure."""
        return self._cryptor.verify_url(
            params.get("msg_signature"),
            params.get("timestamp"),
            params.get("nonce"),
            params.get("echostr"),
        )

    def accept(self, body: bytes, params: Mapping[str, str]) -> asyncio.Task[None]:
        """Schedule processing of a POST callback and return immediately."""
        task = asyncio.create_task(self._guarded(body, dict(params)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight background task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _guarded(self, body: bytes, params: dict[str, str]) -> None:
        try:
            await self.process(body, params)
        except Exception:
            logger.exception("Error during message handling")

    async def process(self, body: bytes, params: Mapping[str, str]) -> None:
        try:
            encrypted = extract_encrypted(body)
            plaintext = self._cryptor.decrypt(
                params.get("msg_signature"),
                params.get("timestamp"),
                params.get("nonce"),
                encrypted,
            )
            message = parse_inner_message(plaintext)
        except CryptoError as exc:
            logger.warning("Failed to decrypt/parse message: %s", exc)
            return

        logger.info("Message type: %s | from: %s", message.raw_type, message.sender_id)
        if message.msg_type is not MsgType.TEXT:
            logger.info("Unsupported message type: %s (ignored)", message.raw_type)
            return

        await self._orchestrator.handle_message(message.sender_id, message.content)
