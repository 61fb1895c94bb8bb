"""Definitions for capabilities introduced in release 25.1."""

from typing import Any, Callable, List, Optional

from ..engine.catalog import Catalog

CATALOG = Catalog("25.1")


@CATALOG.function("string-greaterp")
def string_greaterp(string1: Any, string2: Any) -> bool:
    return str(string1) > str(string2)


@CATALOG.function("directory-name-p")
def directory_name_p(name: str) -> bool:
    return name.endswith("/")


@CATALOG.function("alist-get")
def alist_get(
    key: Any,
    alist: List[Any],
    default: Any = None,
    remove: bool = False,
    testfn: Optional[Callable[[Any, Any], bool]] = None,
) -> Any:
    test = testfn or (lambda a, b: a == b)
    for pair in alist:
        if isinstance(pair, (tuple, list)) and pair and test(key, pair[0]):
            return pair[1] if len(pair) > 1 else None
    return default


@CATALOG.macro("if-let", unit="subr-x")
def if_let(
    spec: Callable[[], Any],
    then: Callable[[Any], Any],
    otherwise: Optional[Callable[[], Any]] = None,
) -> Any:
    value = spec()
    if value:
        return then(value)
    return otherwise() if otherwise is not None else None


CATALOG.variable("text-quoting-style", None)
