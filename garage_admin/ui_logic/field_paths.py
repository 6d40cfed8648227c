"""
Dotted-path access into nested form values (`geo.lat`, `contact.phone`).

Writes are immutable: `set_path` returns a new mapping in which only the
containers along the path are copied; siblings are carried over untouched.
"""

from typing import Any, Dict, Mapping, Tuple

_MISSING = object()


def split_path(path: str) -> Tuple[str, ...]:
    """Split a dotted path, rejecting empty segments."""
    if not isinstance(path, str) or not path:
        raise ValueError(f"Invalid field path: {path!r}")
    parts = tuple(path.split("."))
    if any(not part for part in parts):
        raise ValueError(f"Invalid field path: {path!r}")
    return parts


def get_path(values: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Read the leaf addressed by `path`, or `default` when any hop is missing."""
    current: Any = values
    for part in split_path(path):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def has_path(values: Mapping[str, Any], path: str) -> bool:
    return get_path(values, path, _MISSING) is not _MISSING


def set_path(values: Mapping[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """Return a copy of `values` with the leaf at `path` replaced.

    Missing intermediate containers are created. A non-mapping value sitting
    where a container is needed is an error, not silently overwritten.
    """
    parts = split_path(path)
    return _set(values, parts, value, path)


def _set(values: Mapping[str, Any], parts: Tuple[str, ...], value: Any, path: str) -> Dict[str, Any]:
    head, rest = parts[0], parts[1:]
    updated = dict(values)
    if not rest:
        updated[head] = value
        return updated
    child = values.get(head)
    if child is None:
        child = {}
    elif not isinstance(child, Mapping):
        raise TypeError(f"Cannot set {path!r}: {head!r} holds a {type(child).__name__}")
    updated[head] = _set(child, rest, value, path)
    return updated
