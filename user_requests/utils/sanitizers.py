"""
Input sanitization utilities.

Strips markup from free-text request parameters before validation using
bleach with an empty tag allowlist, so tag-like sequences never reach
downstream rendering, and trims incoming strings so that blank values reach
the validator as ``None``.
"""

import html
import math
from typing import Any, Collection, Mapping

import bleach
import structlog

logger = structlog.get_logger(__name__)

# No HTML tags or attributes survive sanitization of plain-text parameters
STRICT_ALLOWED_TAGS = frozenset()
STRICT_ALLOWED_ATTRIBUTES = {}


def strip_tags(value: Any) -> Any:
    """
    Remove markup and tag-like sequences from a text value.

    bleach escapes the text it keeps, so its output is decoded again and the
    pass repeated until nothing changes; plain ``&`` and ``<`` survive as
    typed and entity-encoded tags cannot reappear after decoding.

    Non-string values are returned unchanged so the validator can report
    them as type errors.

    Args:
        value: Raw parameter value

    Returns:
        The value with all tags and comments removed
    """
    if not isinstance(value, str):
        return value

    sanitized = value
    while True:
        cleaned = html.unescape(bleach.clean(
            sanitized,
            tags=STRICT_ALLOWED_TAGS,
            attributes=STRICT_ALLOWED_ATTRIBUTES,
            strip=True,
            strip_comments=True
        ))
        if cleaned == sanitized:
            break
        sanitized = cleaned

    if sanitized != value:
        logger.debug(
            "Markup stripped from input",
            original_length=len(value),
            sanitized_length=len(sanitized)
        )

    return sanitized


def trim_value(value: Any, except_keys: Collection[str] = ()) -> Any:
    """
    Trim strings recursively and convert empty strings to ``None``.

    Mapping entries whose key is in ``except_keys`` are left as they are.
    """
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed if trimmed else None
    if isinstance(value, Mapping):
        return {
            key: item if key in except_keys else trim_value(item, except_keys)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [trim_value(item, except_keys) for item in value]
    return value


def to_int(value: Any) -> int:
    """
    Coerce a request parameter to an integer leniently.

    Integers pass through, booleans become 0/1, floats are truncated and
    strings are parsed from their leading sign and digits. Anything that
    cannot be read as a number becomes 0.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if not isinstance(value, str):
        return 0

    text = value.strip()
    digits = ''
    for index, char in enumerate(text):
        if char.isdigit() and char.isascii():
            digits += char
        elif index == 0 and char in '+-':
            digits += char
        else:
            break

    try:
        return int(digits)
    except ValueError:
        return 0


__all__ = [
    'STRICT_ALLOWED_TAGS',
    'STRICT_ALLOWED_ATTRIBUTES',
    'strip_tags',
    'trim_value',
    'to_int'
]
