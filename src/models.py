"""Shared Pydantic data models for the OpenClaw session log."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Enums ---


class EntryType(str, Enum):
    MESSAGE = "message"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# --- Session Log Models ---


class ContentBlock(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    text: str | None = None


class SessionMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    role: str
    content: list[ContentBlock] = Field(default_factory=list)

    def first_text(self) -> str | None:
        for block in self.content:
            if block.type == "text" and block.text is not None:
                return block.text
        return None


class SessionLogEntry(BaseModel):
    """One line of an OpenClaw session ``.jsonl`` file.

    Only the fields the relay reads are modelled; everything else the
    backend writes is ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    timestamp: datetime
    message: SessionMessage | None = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def is_assistant_message(self) -> bool:
        return (
            self.type == EntryType.MESSAGE.value
            and self.message is not None
            and self.message.role == Role.ASSISTANT.value
        )
