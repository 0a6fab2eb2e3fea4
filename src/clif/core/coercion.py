"""Conversion of loosely-typed decoded values to setting leaf types."""

from __future__ import annotations

from .errors import CoercionError

_TRUE_WORDS = {"1", "true", "t", "yes", "y", "on"}
_FALSE_WORDS = {"0", "false", "f", "no", "n", "off", ""}


def to_int(key: str, value) -> int:
    # bool is an int subclass, but "true" for a width is a type error
    if isinstance(value, bool):
        raise CoercionError(key, "int", value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    raise CoercionError(key, "int", value)


def to_float(key: str, value) -> float:
    if isinstance(value, bool):
        raise CoercionError(key, "float", value)
    if isinstance(value, (int, float)):
        return float(value)
    raise CoercionError(key, "float", value)


def to_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    raise CoercionError(key, "bool", value)


def to_str(key: str, value) -> str:
    if isinstance(value, str):
        return value
    raise CoercionError(key, "str", value)


_STRICT = {
    int: to_int,
    float: to_float,
    bool: to_bool,
    str: to_str,
}


def coerce(key: str, value, target: type, optional: bool = False):
    """Convert ``value`` to ``target`` without parsing text.

    ``None`` is accepted only for optional leaves.
    """
    if value is None:
        if optional:
            return None
        raise CoercionError(key, target.__name__, value)
    try:
        converter = _STRICT[target]
    except KeyError:
        raise CoercionError(key, getattr(target, "__name__", str(target)), value) from None
    return converter(key, value)


def parse(key: str, text: str, target: type):
    """Convert environment text to ``target``."""
    if target is str:
        return text
    raw = text.strip()
    if target is bool:
        word = raw.lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise CoercionError(key, "bool", text)
    if target is int:
        try:
            return int(raw)
        except ValueError:
            raise CoercionError(key, "int", text) from None
    if target is float:
        try:
            return float(raw)
        except ValueError:
            raise CoercionError(key, "float", text) from None
    raise CoercionError(key, getattr(target, "__name__", str(target)), text)


def is_leaf_type(target) -> bool:
    return target in _STRICT
