"""
Version parsing for installed Android components.

Every parser returns None for input it does not understand. Absence of a
version is an ordinary outcome during discovery, so nothing here raises.
"""

from __future__ import annotations

import re

# Versions are stored in a single unsigned byte.
MAX_VERSION_NUMBER = 255

_DIGITS = re.compile(r"[0-9]+")
_API_DIR_PREFIX = "android-"
_REVISION_KEY = "Pkg.Revision"


def _parse_number(text: str) -> int | None:
    if not _DIGITS.fullmatch(text):
        return None
    value = int(text)
    return value if value <= MAX_VERSION_NUMBER else None


def parse_major_version(version: str) -> int | None:
    """Major component of a dotted version string.

    >>> parse_major_version("35.0.0")
    35
    >>> parse_major_version(".0.0") is None
    True
    """
    major, _, _ = version.partition(".")
    return _parse_number(major)


def parse_ndk_version(properties_text: str) -> int | None:
    """Major NDK version from the contents of ``source.properties``.

    Uses the first ``Pkg.Revision`` line that has a value; both
    ``Pkg.Revision = 27.0.1`` and ``Pkg.Revision=27.0.1`` are accepted.
    """
    for line in properties_text.split("\n"):
        key, sep, value = line.partition("=")
        if not key.strip().startswith(_REVISION_KEY) or not sep:
            continue
        return parse_major_version(value.strip(" \t\r"))
    return None


def parse_api_level(dir_name: str) -> int | None:
    """API level of an SDK platform directory such as ``android-35``."""
    if not dir_name.startswith(_API_DIR_PREFIX):
        return None
    return _parse_number(dir_name[len(_API_DIR_PREFIX):])


def version_sort_key(version: str) -> tuple[int, ...]:
    """Numeric ordering key for a dotted version, ignoring any non-numeric tail.

    ``"35.0.1"`` sorts after ``"35.0.0"``; ``"34.0.0-rc2"`` compares as ``(34, 0)``.
    """
    parts: list[int] = []
    for segment in version.split("."):
        if not _DIGITS.fullmatch(segment):
            break
        parts.append(int(segment))
    return tuple(parts)
