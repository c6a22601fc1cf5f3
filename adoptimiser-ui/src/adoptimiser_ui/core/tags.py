"""
Extraction of tag-delimited payloads embedded in free agent text.

Agents mark structured parts of their replies with pseudo-XML tags such as
``<thinking>``, ``<query>``, ``<insight>`` and ``<code>``. These helpers are
total: they never raise, whatever the input, and an opening tag without a
well-formed closing tag counts as no match.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Any


@lru_cache(maxsize=32)
def _block_pattern(tag_name: str) -> re.Pattern[str]:
    name = re.escape(tag_name)
    return re.compile(rf"<{name}>(.*?)</{name}>", re.IGNORECASE | re.DOTALL)


@lru_cache(maxsize=32)
def _open_pattern(tag_name: str) -> re.Pattern[str]:
    return re.compile(rf"<{re.escape(tag_name)}>", re.IGNORECASE)


def extract_tag(text: Any, tag_name: str) -> str | None:
    """
    Returns the trimmed inner text of the first ``<tag_name>...</tag_name>`` block.

    Matching is case-insensitive, spans lines and is non-greedy. Returns
    ``None`` when there is no well-formed block; an empty block yields ``""``.
    """
    if not isinstance(text, str) or not tag_name:
        return None
    match = _block_pattern(tag_name).search(text)
    if match is None:
        return None
    return match.group(1).strip()


def strip_tags(text: Any, tag_name: str) -> str:
    """Removes every well-formed ``tag_name`` block and returns the trimmed remainder."""
    if not isinstance(text, str):
        return ""
    if not tag_name:
        return text.strip()
    pattern = _block_pattern(tag_name)
    # Removing a block can splice a new one together ("<a<a></a>>y</a>"), so repeat
    # until nothing matches; this keeps the result idempotent.
    remainder, count = pattern.subn("", text)
    while count:
        remainder, count = pattern.subn("", remainder)
    return remainder.strip()


def contains_tag(text: Any, tag_name: str) -> bool:
    """Whether an opening ``<tag_name>`` appears anywhere, closed or not."""
    if not isinstance(text, str) or not tag_name:
        return False
    return _open_pattern(tag_name).search(text) is not None


__all__ = ["extract_tag", "strip_tags", "contains_tag"]
