"""Data models for the WeCom to OpenClaw relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class MsgType(str, Enum):
    TEXT = "text"
    OTHER = "other"

    @classmethod
    def from_wecom(cls, raw: str | None) -> MsgType:
        return cls.TEXT if raw == cls.TEXT.value else cls.OTHER


@dataclass(frozen=True)
class InboundMessage:
    """Decrypted WeCom callback message."""

    sender_id: str
    msg_type: MsgType
    content: str
    received_at: datetime
    raw_type: str = ""  # MsgType as sent by WeCom, kept for logging


@dataclass(frozen=True)
class WakeRequest:
    """Body of an OpenClaw ``/hooks/wake`` call."""

    prompt_text: str
    mode: str = "now"

    def to_payload(self) -> dict[str, Any]:
        return {"text": self.prompt_text, "mode": self.mode}


@dataclass(frozen=True)
class ReplyRecord:
    """Newest qualifying assistant entry found in a session log."""

    timestamp: datetime
    text: str
    line_no: int


@dataclass(frozen=True)
class ParsedReply:
    text_only: str
    image_paths: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text_only and not self.image_paths
