"""Split a raw OpenClaw reply into deliverable text and image references."""

from __future__ import annotations

import re

from src.relay.models import ParsedReply

_FINAL_PATTERN = re.compile(r"<final>(.*?)</final>", re.DOTALL)
_IMAGE_PATTERN = re.compile(r"\[IMAGE:(.*?)\]")


def parse_reply(raw: str) -> ParsedReply:
    """Parse ``raw`` into text and ordered image paths.

    Only the first ``<final>...</final>`` span is used when present.
    ``[IMAGE:<path>]`` markers are collected left to right and removed
    from the text. Never raises; missing markers yield empty results.
    """
    match = _FINAL_PATTERN.search(raw)
    text = match.group(1) if match else raw
    text = text.strip()

    image_paths = [m.group(1).strip() for m in _IMAGE_PATTERN.finditer(text)]
    text_only = _IMAGE_PATTERN.sub("", text).strip()
    return ParsedReply(text_only=text_only, image_paths=image_paths)
