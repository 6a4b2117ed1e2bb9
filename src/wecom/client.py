"""WeCom outbound REST client — access token, text, media upload, image.

Each operation fetches its own access token; nothing is cached between
calls. The WeCom API reports most failures as HTTP 200 with a non-zero
``errcode`` in the body, so every response body is checked explicitly.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_WECOM_API_BASE = "https://qyapi.weixin.qq.com/cgi-bin"
_MAX_RETRIES = 3
_BACKOFF_CAP_SECONDS = 30
_REQUEST_TIMEOUT_SECONDS = 30.0
_IMAGE_CONTENT_TYPE = "image/png"


class UpstreamError(Exception):
    """WeCom API call failed at the HTTP level or returned a non-zero errcode."""

    def __init__(self, errcode: int | None, errmsg: str) -> None:
        self.errcode = errcode
        self.errmsg = errmsg
        if errcode is None:
            super().__init__(errmsg)
        else:
            super().__init__(f"{errmsg} (errcode {errcode})")


class MediaNotFoundError(FileNotFoundError):
    """Image to upload does not exist on disk."""


class WeComClient:
    """Sends replies to WeCom users through the self-built app API."""

    def __init__(
        self,
        corp_id: str,
        corp_secret: str,
        agent_id: int,
        api_base: str = _WECOM_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._corp_id = corp_id
        self._corp_secret = corp_secret
        self._agent_id = agent_id
        self._api_base = api_base.rstrip("/")
        self._transport = transport

    async def get_access_token(self) -> str:
        """Exchange corp credentials for a short-lived access token."""
        data = await self._request(
            "GET",
            "/gettoken",
            params={"corpid": self._corp_id, "corpsecret": self._corp_secret},
        )
        token = data.get("access_token")
        if not token:
            raise UpstreamError(data.get("errcode"), "No access_token in response")
        return str(token)

    async def send_text(self, user_id: str, text: str) -> dict[str, Any] | None:
        """Send a text message. Failures are logged, never raised."""
        try:
            token = await self.get_access_token()
            data = await self._send_message(token, user_id, "text", {"content": text})
        except UpstreamError as exc:
            logger.error("Failed to send text message to %s: %s", user_id, exc)
            return None
        logger.info("Text sent to %s | errcode=%s", user_id, data.get("errcode", 0))
        return data

    async def upload_media(self, token: str, image_path: str | Path) -> str:
        """Upload an image as temporary media and return its media_id."""
        path = Path(image_path)
        content = _read_media(path)
        data = await self._request(
            "POST",
            "/media/upload",
            params={"access_token": token, "type": "image"},
            files={"media": (path.name, content, _IMAGE_CONTENT_TYPE)},
        )
        media_id = data.get("media_id")
        if not media_id:
            raise UpstreamError(data.get("errcode"), "No media_id in upload response")
        logger.info("Image uploaded, media_id=%s", media_id)
        return str(media_id)

    async def send_image(self, user_id: str, image_path: str) -> dict[str, Any] | None:
        """Upload and send an image, falling back to a text notice on any failure.

        A missing file is reported to the user without contacting the API.
        """
        try:
            if not Path(image_path).is_file():
                raise MediaNotFoundError(image_path)
            token = await self.get_access_token()
            media_id = await self.upload_media(token, image_path)
            data = await self._send_message(token, user_id, "image", {"media_id": media_id})
        except MediaNotFoundError:
            logger.error("Image file not found: %s", image_path)
            await self.send_text(user_id, f"Image file not found: {image_path}")
            return None
        except (UpstreamError, OSError) as exc:
            logger.error("Failed to send image %s to %s: %s", image_path, user_id, exc)
            await self.send_text(user_id, f"Failed to send image: {exc}")
            return None
        logger.info("Image sent to %s | errcode=%s", user_id, data.get("errcode", 0))
        return data

    async def _send_message(
        self, token: str, user_id: str, msgtype: str, body: dict[str, Any],
    ) -> dict[str, Any]:
        payload = {
            "touser": user_id,
            "msgtype": msgtype,
            "agentid": self._agent_id,
            msgtype: body,
        }
        return await self._request(
            "POST", "/message/send", params={"access_token": token}, json=payload,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Issue a WeCom API call and return its body once errcode is 0.

        Retries on 429/5xx with exponential backoff capped at 30s.
        """
        url = f"{self._api_base}{path}"
        async with httpx.AsyncClient(
            verify=True, timeout=_REQUEST_TIMEOUT_SECONDS, transport=self._transport,
        ) as client:
            for attempt in range(_MAX_RETRIES + 1):
                try:
                    resp = await client.request(method, url, **kwargs)
                except httpx.HTTPError as exc:
                    raise UpstreamError(None, f"{path} request failed: {exc}") from exc

                if resp.status_code < 400:
                    break
                if not self._should_retry(resp.status_code) or attempt == _MAX_RETRIES:
                    raise UpstreamError(None, f"{path} returned HTTP {resp.status_code}")
                delay = min(2 ** attempt, _BACKOFF_CAP_SECONDS)
                await asyncio.sleep(delay)

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(None, f"{path} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise UpstreamError(None, f"{path} returned an unexpected body")
        errcode = data.get("errcode", 0)
        if errcode:
            raise UpstreamError(errcode, str(data.get("errmsg", "")))
        return data

    @staticmethod
    def _should_retry(status_code: int) -> bool:
        """Only retry on 429 (rate limit) or 5xx (server error)."""
        return status_code == 429 or status_code >= 500


def _read_media(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise MediaNotFoundError(str(path)) from exc
