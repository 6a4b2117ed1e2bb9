"""Shared test fixtures for wecom-openclaw-bridge."""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import xmltodict
from wechatpy.enterprise.crypto import WeChatCrypto

from src.config import BridgeSettings, load_settings
from src.wecom.client import WeComClient

TEST_TOKEN = "test-wecom-token"
# 43 characters, the length WeCom issues
TEST_AES_KEY = "abcdefghijklmnopqrstuvwxyz0123456789ABCDEFG"
TEST_CORP_ID = "ww0123456789abcdef"

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def settings(tmp_path: Path) -> BridgeSettings:
    return make_settings(sessions_dir=tmp_path / "sessions")


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    d = tmp_path / "sessions"
    d.mkdir()
    return d


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock(spec=WeComClient)
    client.send_text = AsyncMock(return_value={"errcode": 0})
    client.send_image = AsyncMock(return_value={"errcode": 0})
    return client


# --- Factory functions for test data ---


def make_settings(**kwargs: Any) -> BridgeSettings:
    """Factory for BridgeSettings with sensible defaults and no .env file."""
    defaults: dict[str, Any] = {
        "wecom_token": TEST_TOKEN,
        "wecom_aes_key": TEST_AES_KEY,
        "corp_id": TEST_CORP_ID,
        "corp_secret": "test-corp-secret",
        "openclaw_token": "test-openclaw-token",
    }
    defaults.update(kwargs)
    return load_settings(env_file=None, **defaults)


def make_entry(
    text: str | None = "hello",
    timestamp: datetime | str = T0,
    role: str = "assistant",
    entry_type: str = "message",
    content: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Factory for one session log line as a dict."""
    if content is None:
        content = [{"type": "text", "text": text}] if text is not None else []
    ts = timestamp.isoformat().replace("+00:00", "Z") if isinstance(timestamp, datetime) else timestamp
    return {
        "type": entry_type,
        "id": "entry-id",
        "timestamp": ts,
        "message": {"role": role, "content": content},
    }


def write_session(path: Path, entries: list[dict[str, Any] | str], trailing: str = "") -> Path:
    """Write entries as JSON Lines; strings are written verbatim."""
    lines = [e if isinstance(e, str) else json.dumps(e, ensure_ascii=False) for e in entries]
    path.write_text("\n".join(lines) + "\n" + trailing, encoding="utf-8")
    return path


def wecom_encrypt(
    plaintext: str,
    nonce: str = "nonce123",
    timestamp: str = "1767268800",
    token: str = TEST_TOKEN,
) -> dict[str, str]:
    """Encrypt like WeCom does; returns Encrypt, MsgSignature, TimeStamp, Nonce."""
    crypto = WeChatCrypto(token, TEST_AES_KEY, TEST_CORP_ID)
    xml = crypto.encrypt_message(plaintext, nonce, timestamp)
    return dict(xmltodict.parse(xml)["xml"])


def wecom_signature(
    encrypted: str,
    nonce: str = "nonce123",
    timestamp: str = "1767268800",
    token: str = TEST_TOKEN,
) -> str:
    """msg_signature for an arbitrary ciphertext, valid or not."""
    return hashlib.sha1("".join(sorted([token, timestamp, nonce, encrypted])).encode()).hexdigest()


def make_inner_xml(
    content: str = "Hello",
    sender: str = "U1",
    msg_type: str = "text",
    create_time: int = 1767268800,
) -> str:
    return (
        "<xml>"
        f"<ToUserName><![CDATA[{TEST_CORP_ID}]]></ToUserName>"
        f"<FromUserName><![CDATA[{sender}]]></FromUserName>"
        f"<CreateTime>{create_time}</CreateTime>"
        f"<MsgType><![CDATA[{msg_type}]]></MsgType>"
        f"<Content><![CDATA[{content}]]></Content>"
        "<MsgId>1234567890</MsgId>"
        "<AgentID>1000002</AgentID>"
        "</xml>"
    )


def make_outer_xml(encrypted: str) -> str:
    return (
        "<xml>"
        f"<ToUserName><![CDATA[{TEST_CORP_ID}]]></ToUserName>"
        f"<Encrypt><![CDATA[{encrypted}]]></Encrypt>"
        "<AgentID><![CDATA[1000002]]></AgentID>"
        "</xml>"
    )
