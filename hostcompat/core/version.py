"""Total ordering over dotted numeric release identifiers."""

import re
from enum import IntEnum
from functools import lru_cache
from typing import Tuple

from .errors import FormatError

_VERSION_RE = re.compile(r"^\d+(\.\d+)*$")


class Ordering(IntEnum):
    """Result of comparing two versions."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


@lru_cache(maxsize=256)
def parse_version(version: str) -> Tuple[int, ...]:
    """
    Parse a dotted numeric identifier such as ``"28.2"`` into its segments.

    Raises:
        FormatError: If the identifier is empty or contains anything other
            than dot-separated digits.
    """
    if not isinstance(version, str):
        raise FormatError(
            f"Version identifier must be a string, got {type(version).__name__}",
            details={"version": repr(version)},
        )
    text = version.strip()
    if not _VERSION_RE.match(text):
        raise FormatError(
            f"Unparsable version identifier: {version!r}",
            details={"version": version},
        )
    return tuple(int(part) for part in text.split("."))


def compare(a: str, b: str) -> Ordering:
    """
    Compare two version identifiers.

    Shorter identifiers are zero-padded, so ``"1.2"`` equals ``"1.2.0"``.
    """
    left = parse_version(a)
    right = parse_version(b)
    width = max(len(left), len(right))
    left = left + (0,) * (width - len(left))
    right = right + (0,) * (width - len(right))
    if left < right:
        return Ordering.LESS
    if left > right:
        return Ordering.GREATER
    return Ordering.EQUAL


def version_le(a: str, b: str) -> bool:
    return compare(a, b) is not Ordering.GREATER


def version_lt(a: str, b: str) -> bool:
    return compare(a, b) is Ordering.LESS
