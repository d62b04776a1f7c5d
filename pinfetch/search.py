"""
Structural search over parsed JSON payloads.

Payloads from Pinterest have no stable schema and may contain shared or
self-referencing containers, so the walk tracks visited containers by id().
The walk uses an explicit stack, so nesting depth is not bounded by the
interpreter's recursion limit.
"""

from typing import Any, List, Set


def deep_find(root: Any, key: str) -> List[Any]:
    """
    Return every value stored under `key` anywhere inside `root`.

    Depth-first, parents before children, dict keys in insertion order.
    Each dict/list is visited at most once, so cyclic structures terminate.
    """
    results: List[Any] = []
    seen: Set[int] = set()
    stack = [root]

    while stack:
        node = stack.pop()
        if not isinstance(node, (dict, list, tuple)) or id(node) in seen:
            continue
        seen.add(id(node))

        if isinstance(node, dict):
            if key in node:
                results.append(node[key])
            children = list(node.values())
        else:
            children = list(node)

        # Reversed so the first child is popped first
        stack.extend(child for child in reversed(children) if isinstance(child, (dict, list, tuple)))

    return results


def first_string(values: List[Any], fallback: str = "") -> str:
    """First non-blank string in `values`, stripped, else `fallback`."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback
