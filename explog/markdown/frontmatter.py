from __future__ import annotations

import logging
import re
from typing import Any

import yaml

"""YAML front matter helpers for notes.

The target animal of a note is stored in its front matter:

    ---
    AnimalID: M001
    ---
"""

logger = logging.getLogger(__name__)

ANIMAL_ID_KEY = "AnimalID"


class FrontMatterError(ValueError):
    """Raised when the front matter block exists but is not a YAML mapping."""


_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


def _split(text: str) -> tuple[str | None, str]:
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end():]


def _parse(raw: str) -> dict[str, Any]:
    parsed = yaml.safe_load(raw) or {}
    if not isinstance(parsed, dict):
        raise FrontMatterError(f"front matter is not a mapping: {type(parsed).__name__}")
    return parsed


def read_frontmatter(text: str) -> dict[str, Any]:
    """Parse the leading YAML block. Invalid YAML is logged and treated as empty."""
    raw, _ = _split(text)
    if raw is None:
        return {}
    try:
        return _parse(raw)
    except (yaml.YAMLError, FrontMatterError) as e:
        logger.warning("failed to parse front matter: %s", e)
        return {}


def update_frontmatter(text: str, updates: dict[str, Any]) -> str:
    """Merge `updates` into the front matter, creating the block if missing.

    Raises:
        FrontMatterError: the existing block cannot be parsed, so rewriting it
            would drop the user's keys
    """
    raw, body = _split(text)
    if raw is None:
        existing: dict[str, Any] = {}
    else:
        try:
            existing = _parse(raw)
        except yaml.YAMLError as e:
            raise FrontMatterError(f"invalid front matter: {e}") from e
    merged = {**existing, **updates}
    dumped = yaml.safe_dump(merged, allow_unicode=True, sort_keys=False).rstrip("\n")
    block = f"---\n{dumped}\n---\n"
    if raw is None:
        return f"{block}\n{text}"
    return block + body


def read_animal_id(text: str) -> str | None:
    value = read_frontmatter(text).get(ANIMAL_ID_KEY)
    if value is None:
        return None
    value = str(value).strip()
    return value or None
