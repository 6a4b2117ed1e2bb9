"""OpenClaw wake hook client."""

from __future__ import annotations

import logging

import httpx

from src.relay.models import WakeRequest

logger = logging.getLogger(__name__)

_WAKE_TIMEOUT_SECONDS = 30.0


class WakeError(Exception):
    """The wake hook could not be reached or rejected the request."""


def format_prompt(user_id: str, text: str) -> str:
    return f"【WeCom Message】User {user_id} says: {text}"


class OpenClawWaker:
    """Signals OpenClaw to process a WeCom message immediately.

    The hook is fire-and-forget: its response carries nothing that ties it
    to the reply that later shows up in the session log.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._transport = transport

    async def wake(self, user_id: str, text: str) -> int:
        """POST to ``/hooks/wake`` and return the HTTP status."""
        request = WakeRequest(prompt_text=format_prompt(user_id, text))
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    f"{self._base_url}/hooks/wake",
                    json=request.to_payload(),
                    headers=headers,
                    timeout=_WAKE_TIMEOUT_SECONDS,
                )
        except httpx.HTTPError as exc:
            raise WakeError(f"Wake hook unreachable: {exc}") from exc

        if resp.status_code >= 400:
            raise WakeError(f"Wake hook returned HTTP {resp.status_code}")
        return resp.status_code
