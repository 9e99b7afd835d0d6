"""Helpers for reading loosely-typed vendor payloads.

Apollo responses vary in shape depending on the endpoint and plan, so fields
are tried in a fixed order and the first usable value wins.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

# Collection keys in priority order, per Apollo response type
SEARCH_COLLECTION_KEYS = ("people", "matches")
BULK_COLLECTION_KEYS = ("people", "matched_people")

Lookup = Tuple[Sequence[str], Optional[Callable[[Any], Any]]]


def dig(obj: Any, path: Sequence[str]) -> Any:
    """Follow a key path through nested dicts, returning None on any miss."""
    current = obj
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def is_blank(value: Any) -> bool:
    return value is None or value == ""


def first_value(obj: Any, lookups: Iterable[Lookup], default: Any = None) -> Any:
    """Return the first non-empty value produced by an ordered list of lookups.

    Each lookup is a ``(path, transform)`` pair; ``transform`` may be None.
    """
    for path, transform in lookups:
        value = dig(obj, path)
        if transform is not None and value is not None:
            value = transform(value)
        if not is_blank(value):
            return value
    return default


def first_present(obj: Dict[str, Any], *keys: str) -> Any:
    """First non-empty value among ``keys`` on a flat dict."""
    return first_value(obj, [((key,), None) for key in keys])


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def resolve_collection(payload: Any, keys: Sequence[str]) -> List[Any]:
    """Return the first list-valued collection among ``keys``, else []."""
    if not isinstance(payload, dict):
        return []
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return value
    return []
