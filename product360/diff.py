"""Structural diff of JSON-like payloads.

Dicts are compared by key and lists by index. There is no element matching
for lists: reordering ``[a, b]`` to ``[b, a]`` reports two changed paths, not
a move. This is intentional and keeps the output deterministic.

An added or removed subtree counts as a single change at its own path; a
value whose type differs between the two sides (e.g. dict vs. scalar) is a
single change as well.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping, Optional, Tuple

from .contracts import DiffResult

ADDED = "added"
CHANGED = "changed"
REMOVED = "removed"

_MISSING = object()


def _children(node: Any) -> Optional[dict[str, Any]]:
    if isinstance(node, Mapping):
        return {str(key): value for key, value in node.items()}
    if isinstance(node, (list, tuple)):
        return {str(index): value for index, value in enumerate(node)}
    return None


def _same_shape(left: Any, right: Any) -> bool:
    both_maps = isinstance(left, Mapping) and isinstance(right, Mapping)
    both_lists = isinstance(left, (list, tuple)) and isinstance(right, (list, tuple))
    return both_maps or both_lists


def _union_keys(baseline: dict[str, Any], candidate: dict[str, Any]) -> list[str]:
    keys = list(baseline)
    keys.extend(key for key in candidate if key not in baseline)
    return keys


def walk(baseline: Any, candidate: Any, prefix: str = "") -> Iterator[Tuple[str, str]]:
    """Yield ``(kind, path)`` pairs in pre-order over the union of keys."""
    base_children = _children(baseline) or {}
    cand_children = _children(candidate) or {}
    for key in _union_keys(base_children, cand_children):
        path = f"{prefix}.{key}" if prefix else key
        old = base_children.get(key, _MISSING)
        new = cand_children.get(key, _MISSING)
        if old is _MISSING:
            yield ADDED, path
        elif new is _MISSING:
            yield REMOVED, path
        elif _same_shape(old, new):
            yield from walk(old, new, path)
        elif _differs(old, new):
            yield CHANGED, path


def _differs(old: Any, new: Any) -> bool:
    # JSON true and 1 are different values even though Python equates them
    if isinstance(old, bool) != isinstance(new, bool):
        return True
    return old != new


def diff(
    baseline: Optional[Mapping[str, Any]], candidate: Mapping[str, Any]
) -> DiffResult:
    """Compare ``candidate`` against ``baseline``.

    A ``None`` baseline means there is nothing to compare against (first
    version ever); the result has ``has_baseline=False`` and zero counts,
    which callers must not read as "no changes".
    """
    if baseline is None:
        return DiffResult(has_baseline=False)

    counts = {ADDED: 0, CHANGED: 0, REMOVED: 0}
    paths: dict[str, None] = {}
    for kind, path in walk(baseline, candidate):
        counts[kind] += 1
        paths.setdefault(path, None)

    return DiffResult(
        fields_added=counts[ADDED],
        fields_changed=counts[CHANGED],
        fields_removed=counts[REMOVED],
        changed_paths=list(paths),
        has_baseline=True,
    )
