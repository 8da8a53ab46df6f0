"""Model reply parsing: a single JSON decode attempt, no repair."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Parsed:
    """Reply decoded as JSON."""

    value: Any


@dataclass(frozen=True)
class RawText:
    """Reply that was not valid JSON, kept verbatim."""

    text: str


def parse_json_reply(content: str | None, empty_default: Any) -> Parsed | RawText:
    """
    Decode a model reply.

    An empty / missing reply parses as ``empty_default``. Code fences and
    surrounding prose are not stripped, so such replies come back as RawText.
    """
    if not content:
        return Parsed(empty_default)
    try:
        return Parsed(json.loads(content))
    except json.JSONDecodeError:
        return RawText(content)


def to_payload(result: Parsed | RawText, fallback_key: str) -> Any:
    """API payload: the decoded value, or ``{fallback_key: raw_text}``."""
    if isinstance(result, RawText):
        return {fallback_key: result.text}
    return result.value
