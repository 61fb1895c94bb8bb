"""Definitions for capabilities introduced in release 28.1."""

import os
from typing import Any, List, Sized

from ..core.registry import Locality
from ..engine.catalog import Catalog

CATALOG = Catalog("28.1")


@CATALOG.function("string-search")
def string_search(needle: str, haystack: str, start_pos: int = 0) -> Any:
    if not 0 <= start_pos <= len(haystack):
        raise IndexError(f"args-out-of-range: {start_pos}")
    index = haystack.find(needle, start_pos)
    return index if index >= 0 else None


@CATALOG.function("length=")
def length_equal(sequence: Sized, length: int) -> bool:
    return len(sequence) == length


@CATALOG.function("length<")
def length_less(sequence: Sized, length: int) -> bool:
    return len(sequence) < length


@CATALOG.function("length>")
def length_greater(sequence: Sized, length: int) -> bool:
    return len(sequence) > length


@CATALOG.function("ensure-list")
def ensure_list(obj: Any) -> List[Any]:
    return obj if isinstance(obj, list) else [obj]


@CATALOG.function("file-name-concat")
def file_name_concat(directory: str, *components: str) -> str:
    parts = [p for p in (directory, *components) if p]
    if not parts:
        return ""
    return os.path.join(*[p.rstrip("/") or "/" for p in parts[:-1]], parts[-1])


@CATALOG.function("string-pad", unit="subr-x")
def string_pad(string: str, length: int, padding: str = " ", start: bool = False) -> str:
    missing = length - len(string)
    if missing <= 0:
        return string
    return padding * missing + string if start else string + padding * missing


@CATALOG.function("string-limit", unit="subr-x")
def string_limit(string: str, length: int, end: bool = False) -> str:
    if length >= len(string):
        return string
    return string[len(string) - length:] if end else string[:length]


CATALOG.variable("read-symbol-shorthands", [], locality=Locality.BUFFER)
