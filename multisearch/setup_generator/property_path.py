"""
Property path compiler.

A property path is a dotted name such as ``"alpha"``, ``"estimator.alpha"`` or
``"clf.C"`` (for a ``Pipeline`` step called ``clf``). Paths are compiled once
against the base object; the result knows, segment by segment, how to reach
the owner of the final property and how to assign it. Assignment goes through
a :class:`Settable`, which also coerces string values coming from list
parameters to the type of the current property value.
"""

from typing import Any, List, Optional, Tuple

_TRUE_STRINGS = {'true', '1', 'yes', 'on'}
_FALSE_STRINGS = {'false', '0', 'no', 'off'}

# Segment access kinds
_PARAM = 'param'
_ATTR = 'attr'


def _has_params(obj) -> bool:
    return hasattr(obj, 'get_params') and hasattr(obj, 'set_params')


def _lookup(obj, name: str) -> Tuple[Optional[str], Any]:
    """Return the access kind and current value of ``name`` on ``obj``."""
    if _has_params(obj):
        params = obj.get_params(deep=False)
        if name in params:
            return _PARAM, params[name]
        deep = obj.get_params(deep=True)
        if name in deep:
            return _PARAM, deep[name]
    if not name.startswith('_') and hasattr(obj, name):
        value = getattr(obj, name)
        if not callable(value) or _has_params(value):
            return _ATTR, value
    return None, None


def coerce_value(value, current):
    """Convert ``value`` to the type of ``current`` where that is unambiguous."""
    if isinstance(value, str):
        text = value.strip()
        if text == 'None':
            return None
        if isinstance(current, bool):
            lowered = text.lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise ValueError(f"Cannot convert '{value}' to bool")
        if isinstance(current, int):
            return int(round(float(text)))
        if isinstance(current, float):
            return float(text)
        if isinstance(current, tuple):
            return tuple(int(part) for part in text.split(',') if part.strip())
        if current is None:
            return _guess_literal(text)
        return value

    if isinstance(value, float):
        if isinstance(current, bool):
            return bool(value)
        if isinstance(current, int):
            return int(round(value))
        if current is None and value.is_integer():
            return int(value)
    return value


def _guess_literal(text: str):
    lowered = text.lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


class Settable:
    """Assignment capability for one property of one concrete object."""

    def __init__(self, owner, name: str, kind: str):
        self.owner = owner
        self.name = name
        self.kind = kind

    def current(self):
        if self.kind == _PARAM:
            return self.owner.get_params(deep=False).get(self.name)
        return getattr(self.owner, self.name)

    def apply(self, value) -> None:
        converted = coerce_value(value, self.current())
        if self.kind == _PARAM:
            self.owner.set_params(**{self.name: converted})
        else:
            setattr(self.owner, self.name, converted)


class PropertyPath:
    """A compiled dotted property path."""

    def __init__(self, path: str, segments: List[str]):
        self.path = path
        self.segments = segments

    @classmethod
    def compile(cls, obj, path: str) -> Optional["PropertyPath"]:
        """
        Compile ``path`` against ``obj``.

        Returns ``None`` if any segment does not resolve or the final property
        cannot be assigned.
        """
        if not path or not path.strip():
            return None
        segments = [seg.strip() for seg in path.split('.')]
        if any(not seg for seg in segments):
            return None
        current = obj
        for seg in segments[:-1]:
            kind, current = _lookup(current, seg)
            if kind is None or current is None:
                return None
        kind, _ = _lookup(current, segments[-1])
        if kind is None:
            return None
        return cls(path, segments)

    def resolve(self, obj) -> Settable:
        """Bind the compiled path to a concrete object graph (e.g. a deep copy)."""
        current = obj
        for seg in self.segments[:-1]:
            kind, current = _lookup(current, seg)
            if kind is None:
                raise AttributeError(f"Property path '{self.path}' no longer resolves at '{seg}'")
        kind, _ = _lookup(current, self.segments[-1])
        if kind is None:
            raise AttributeError(f"Property '{self.segments[-1]}' not found for path '{self.path}'")
        return Settable(current, self.segments[-1], kind)

    def __repr__(self) -> str:
        return f"PropertyPath({self.path!r})"
