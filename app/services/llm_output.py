"""Helpers for turning chat model output into plain text."""

import re
from typing import Any

_CODE_FENCE_START = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_CODE_FENCE_END = re.compile(r"\s*```\s*$")


def message_text(message: Any) -> str:
    """Extract the text of a chat model response.

    Some providers return content as a list of parts instead of a string.
    """
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```)."""
    return _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", text)).strip()
