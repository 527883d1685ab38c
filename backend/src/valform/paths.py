"""Dotted-path access for nested form values.

Field names double as paths: ``"address.city"`` or ``"phones[0].number"``
address a slot inside a nested structure. These helpers read and build
such structures.
"""

import re
from typing import Any, Mapping, MutableMapping, MutableSequence

_SEGMENT = re.compile(r"[^.\[\]]+|\[(\d+)\]")

_MISSING = object()


def split_path(path: str) -> list[str | int]:
    """Split a dotted path into keys and integer indexes.

    ``"a.b[0].c"`` becomes ``["a", "b", 0, "c"]``. Bare numeric segments
    (``"items.0"``) are treated as indexes as well.
    """
    segments: list[str | int] = []
    for match in _SEGMENT.finditer(path):
        if match.group(1) is not None:
            segments.append(int(match.group(1)))
        else:
            token = match.group(0)
            segments.append(int(token) if token.isdigit() else token)
    return segments


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    """Read the value at ``path``; return ``default`` when any segment is missing."""
    current = obj
    for segment in split_path(path):
        current = _child(current, segment)
        if current is _MISSING:
            return default
    return current


def set_path(obj: MutableMapping[str, Any], path: str, value: Any) -> MutableMapping[str, Any]:
    """Write ``value`` at ``path``, creating intermediate containers.

    A list is created when the following segment is an index, a dict
    otherwise. Returns ``obj`` so calls can be chained in a reduce.
    """
    segments = split_path(path)
    if not segments:
        return obj

    current: Any = obj
    for segment, following in zip(segments, segments[1:]):
        child = _child(current, segment)
        if not isinstance(child, (MutableMapping, MutableSequence)) or isinstance(child, str):
            child = [] if isinstance(following, int) else {}
            _assign(current, segment, child)
        current = child

    _assign(current, segments[-1], value)
    return obj


def _child(container: Any, segment: str | int) -> Any:
    if isinstance(container, Mapping):
        if segment in container:
            return container[segment]
        # "items.0" on a mapping keyed by strings
        return container.get(str(segment), _MISSING)
    if isinstance(container, (list, tuple)) and isinstance(segment, int):
        return container[segment] if -len(container) <= segment < len(container) else _MISSING
    return _MISSING


def _assign(container: Any, segment: str | int, value: Any) -> None:
    if isinstance(container, MutableSequence):
        if not isinstance(segment, int):
            raise TypeError(f"Cannot use key {segment!r} on a list")
        while len(container) <= segment:
            container.append(None)
        container[segment] = value
    else:
        container[segment] = value
