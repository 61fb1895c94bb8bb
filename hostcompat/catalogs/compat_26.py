"""Definitions for capabilities introduced in release 26.1."""

import re
from typing import Any, Callable, Iterable, List, Optional

from ..engine.catalog import Catalog

CATALOG = Catalog("26.1")

_WHITESPACE = "[ \t\n\r]+"


@CATALOG.function("mapcan")
def mapcan(func: Callable[[Any], Iterable[Any]], sequence: Iterable[Any]) -> List[Any]:
    result: List[Any] = []
    for item in sequence:
        result.extend(func(item) or [])
    return result


@CATALOG.function("string-trim-left")
def string_trim_left(string: str, regexp: Optional[str] = None) -> str:
    match = re.match(f"(?:{regexp or _WHITESPACE})", string)
    return string[match.end():] if match else string


@CATALOG.function("string-trim-right")
def string_trim_right(string: str, regexp: Optional[str] = None) -> str:
    match = re.search(f"(?:{regexp or _WHITESPACE})\\Z", string)
    return string[:match.start()] if match else string


@CATALOG.function("file-name-quoted-p")
def file_name_quoted_p(name: str) -> bool:
    return name.startswith("/:")


@CATALOG.function("file-name-quote")
def file_name_quote(name: str) -> str:
    return name if name.startswith("/:") else "/:" + name


# The test function argument only exists from 26.1 on
@CATALOG.prefixed("assoc")
def assoc(key: Any, alist: List[Any], testfn: Optional[Callable[[Any, Any], bool]] = None) -> Any:
    test = testfn or (lambda a, b: a == b)
    for pair in alist:
        if isinstance(pair, (tuple, list)) and pair and test(key, pair[0]):
            return pair
    return None


CATALOG.variable(
    "mounted-file-systems",
    "^\\(?:/afs/\\|/media/\\|/mnt\\|/net/\\|/tmp_mnt/\\)",
    constant=True,
)
