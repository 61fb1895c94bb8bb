"""Definitions for capabilities introduced in release 27.1."""

import json
from typing import Any, Callable, List, Optional

from ..engine import guards
from ..engine.catalog import Catalog

CATALOG = Catalog("27.1")


@CATALOG.function("proper-list-p")
def proper_list_p(obj: Any) -> Optional[int]:
    return len(obj) if isinstance(obj, list) else None


@CATALOG.function("flatten-tree")
def flatten_tree(tree: Any) -> List[Any]:
    result: List[Any] = []
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            stack.extend(reversed(node))
        elif node is not None:
            result.append(node)
    return result


@CATALOG.function("xor")
def xor(cond1: Any, cond2: Any) -> Any:
    if cond1 and not cond2:
        return cond1
    if cond2 and not cond1:
        return cond2
    return None


@CATALOG.function("string-distance")
def string_distance(string1: str, string2: str, bytecompare: bool = False) -> int:
    if bytecompare:
        string1 = string1.encode("utf-8")
        string2 = string2.encode("utf-8")
    previous = list(range(len(string2) + 1))
    for i, a in enumerate(string1, 1):
        current = [i]
        for j, b in enumerate(string2, 1):
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (a != b)))
        previous = current
    return previous[-1]


@CATALOG.function("assoc-delete-all")
def assoc_delete_all(
    key: Any,
    alist: List[Any],
    test: Optional[Callable[[Any, Any], bool]] = None,
) -> List[Any]:
    test = test or (lambda a, b: a == b)
    alist[:] = [
        pair for pair in alist
        if not (isinstance(pair, (tuple, list)) and pair and test(pair[0], key))
    ]
    return alist


def _native_json_broken(context: guards.GuardContext) -> bool:
    """Hosts built without a JSON library ship a json-serialize that fails."""
    if not context.registry.exists("json-serialize"):
        return True
    try:
        func = context.registry.resolve("json-serialize")
        return func({"a": 1}) != '{"a":1}'
    except Exception:
        return True


@CATALOG.function("json-serialize", guard=guards.when(_native_json_broken))
def json_serialize(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


CATALOG.variable("regexp-unmatchable", "\\`a\\`", constant=True)
