"""Definitions for capabilities introduced in release 29.1."""

import re
from typing import Any, Callable, List, Optional

from ..core.registry import Locality
from ..engine.catalog import Catalog
from ..engine.declaration import NamingStrategy

CATALOG = Catalog("29.1")

_Predicate = Optional[Callable[[Any, Any], bool]]


@CATALOG.function("take", strategy=NamingStrategy.INDIRECT, real_name="compat--take")
def take(n: int, items: List[Any]) -> List[Any]:
    return list(items[:max(n, 0)])


@CATALOG.function("ntake", strategy=NamingStrategy.INDIRECT, real_name="compat--ntake")
def ntake(n: int, items: List[Any]) -> List[Any]:
    del items[max(n, 0):]
    return items


@CATALOG.function("string-equal-ignore-case")
def string_equal_ignore_case(string1: str, string2: str) -> bool:
    return string1.casefold() == string2.casefold()


@CATALOG.function("string-split")
def string_split(string: str, separators: Optional[str] = None, omit_nulls: Optional[bool] = None) -> List[str]:
    if separators is None:
        separators, omit_nulls = "[ \f\t\n\r\v]+", True
    parts = re.split(separators, string)
    return [p for p in parts if p] if omit_nulls else parts


def _plist_index(plist: List[Any], prop: Any, predicate: _Predicate) -> int:
    test = predicate or (lambda a, b: a is b or a == b)
    for i in range(0, len(plist) - 1, 2):
        if test(plist[i], prop):
            return i
    return -1


@CATALOG.prefixed("plist-get")
def plist_get(plist: List[Any], prop: Any, predicate: _Predicate = None) -> Any:
    i = _plist_index(plist, prop, predicate)
    return plist[i + 1] if i >= 0 else None


@CATALOG.prefixed("plist-put")
def plist_put(plist: List[Any], prop: Any, value: Any, predicate: _Predicate = None) -> List[Any]:
    i = _plist_index(plist, prop, predicate)
    if i >= 0:
        plist[i + 1] = value
    else:
        plist.extend([prop, value])
    return plist


@CATALOG.prefixed("plist-member")
def plist_member(plist: List[Any], prop: Any, predicate: _Predicate = None) -> Optional[List[Any]]:
    i = _plist_index(plist, prop, predicate)
    return plist[i:] if i >= 0 else None


@CATALOG.macro("with-memoization")
def with_memoization(
    getter: Callable[[], Any],
    setter: Callable[[Any], Any],
    compute: Callable[[], Any],
) -> Any:
    value = getter()
    if value is None:
        value = compute()
        setter(value)
    return value


CATALOG.variable("header-line-indent", "", locality=Locality.PERMANENT_BUFFER)
