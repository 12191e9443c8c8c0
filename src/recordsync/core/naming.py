"""File naming for one-file-per-record storage.

Filenames follow ``{category}-{group}-{subgroup}-{key}.json`` where the three
leading segments come from configurable record fields.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from recordsync.core.types import Record

DEFAULT_NAME_FIELDS = ("type", "brand", "color")
SEGMENT_PLACEHOLDERS = ("Unknown", "Unknown", "NoColor")
MAX_SEGMENT_LENGTH = 100
RECORD_SUFFIX = ".json"

_PATH_UNSAFE = re.compile(r'[/\\:*?"<>|]')
_SYMBOLS = re.compile(r"[™®©]")
_WHITESPACE = re.compile(r"\s+")
_NOT_ALLOWED = re.compile(r"[^a-zA-Z0-9-]")


def sanitize_segment(
    value: object,
    max_length: int = MAX_SEGMENT_LENGTH,
    placeholder: str = "Unknown",
) -> str:
    """Sanitize a value for use as one filename segment.

    Examples:
        >>> sanitize_segment("Prusa™ Research")
        'PrusaResearch'
        >>> sanitize_segment("Red/Blue")
        'RedBlue'
        >>> sanitize_segment("???")
        'Unknown'
    """
    if value is None:
        return placeholder
    text = str(value)
    text = _PATH_UNSAFE.sub("", text)
    text = _SYMBOLS.sub("", text)
    text = _WHITESPACE.sub("", text)
    text = _NOT_ALLOWED.sub("", text)
    return text[:max_length] or placeholder


def record_filename(
    record: Record,
    name_fields: Sequence[str] = DEFAULT_NAME_FIELDS,
) -> str:
    """Build the filename for a record."""
    segments = [
        sanitize_segment(record.fields.get(name), placeholder=placeholder)
        for name, placeholder in zip(name_fields, SEGMENT_PLACEHOLDERS, strict=False)
    ]
    segments.append(sanitize_segment(record.key))
    return "-".join(segments) + RECORD_SUFFIX


def key_suffix(key: str) -> str:
    """Filename suffix identifying a record key."""
    return f"-{sanitize_segment(key)}{RECORD_SUFFIX}"


def parse_record_filename(filename: str) -> tuple[str, str, str, str] | None:
    """Split a record filename into (category, group, subgroup, key).

    Hyphenated middle segments cannot be split reliably, so everything between
    the first and last segment is halved.

    Returns:
        The four segments, or None if the name is not a record filename.
    """
    if not filename.endswith(RECORD_SUFFIX):
        return None
    parts = filename[: -len(RECORD_SUFFIX)].split("-")
    if len(parts) < 4 or not all(parts):
        return None
    if len(parts) == 4:
        return parts[0], parts[1], parts[2], parts[3]
    middle = "-".join(parts[1:-1])
    midpoint = len(middle) // 2
    return parts[0], middle[:midpoint], middle[midpoint:], parts[-1]


def is_record_filename(filename: str) -> bool:
    """Check whether a filename looks like a record file."""
    return parse_record_filename(filename) is not None
