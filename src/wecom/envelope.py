"""Outer and inner WeCom callback XML envelopes."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from xml.parsers.expat import ExpatError

import xmltodict

from src.relay.models import InboundMessage, MsgType
from src.wecom.crypto import DecodeError


class EnvelopeError(DecodeError):
    """Callback XML was malformed or lacked an expected field."""


def _parse_root(xml: bytes | str) -> dict[str, Any]:
    try:
        doc = xmltodict.parse(xml)
    except ExpatError as exc:
        raise EnvelopeError(f"Malformed XML: {exc}") from exc
    root = doc.get("xml") if isinstance(doc, dict) else None
    if not isinstance(root, dict):
        raise EnvelopeError("Missing <xml> root element")
    return root


def extract_encrypted(body: bytes | str) -> str:
    """Return the ``Encrypt`` field of an outer callback envelope."""
    encrypted = _parse_root(body).get("Encrypt")
    if not encrypted:
        raise EnvelopeError("No Encrypt field in message")
    return str(encrypted)


def parse_inner_message(xml: str) -> InboundMessage:
    """Parse decrypted callback XML into an InboundMessage."""
    root = _parse_root(xml)
    sender = root.get("FromUserName")
    if not sender:
        raise EnvelopeError("No FromUserName in message")
    raw_type = str(root.get("MsgType") or "")
    try:
        received_at = datetime.fromtimestamp(int(root.get("CreateTime") or 0), UTC)
    except (TypeError, ValueError):
        received_at = datetime.now(UTC)
    return InboundMessage(
        sender_id=str(sender),
        msg_type=MsgType.from_wecom(raw_type),
        content=str(root.get("Content") or ""),
        received_at=received_at,
        raw_type=raw_type,
    )
