"""Field introspection for settings classes.

Each attribute of a settings class is classified once into a small closed
set of kinds that the walker knows how to visit:

    LEAF     int / float / bool / str (optionally Optional[...])
    STRUCT   a nested dataclass held by value
    POINTER  an Optional nested dataclass, allocated on demand
    SKIP     private names, containers, callables and anything else

Per-field options (env key override, monitoring, skipping) live in the
``dataclasses.field`` metadata written by ``setting()``.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import types
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, ClassVar, Union, get_args, get_origin, get_type_hints

from .coercion import is_leaf_type

logger = logging.getLogger(__name__)

METADATA_KEY = "clif"
CORE_MARKER = "__clif_core__"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class FieldKind(Enum):
    LEAF = auto()
    STRUCT = auto()
    POINTER = auto()
    SKIP = auto()


@dataclass(frozen=True)
class SettingOptions:
    env: str | None = None
    monitored: bool = False
    skip: bool = False
    contextual_default: Callable[[Any], Any] | None = None


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: FieldKind
    type: Any
    optional: bool = False
    exported: bool = True
    is_core: bool = False
    options: SettingOptions = SettingOptions()

    @property
    def env(self) -> str | None:
        return self.options.env

    @property
    def monitored(self) -> bool:
        return self.options.monitored


def setting(
    default=dataclasses.MISSING,
    *,
    default_factory=dataclasses.MISSING,
    env: str | None = None,
    monitored: bool = False,
    skip: bool = False,
    contextual_default: Callable[[Any], Any] | None = None,
    **kwargs,
):
    """Declare a dataclass field with clif options.

    Args:
        default: Plain default, as for ``dataclasses.field``.
        env: Environment variable name; ``${APPNAME}`` is substituted.
        monitored: Poll this setting after initialization and keep it live.
        skip: Never populate this field from any source.
        contextual_default: Callable receiving the runtime ``DefaultContext``;
            used when the field holds no value.
    """
    if default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        default = None
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[METADATA_KEY] = SettingOptions(
        env=env,
        monitored=monitored,
        skip=skip,
        contextual_default=contextual_default,
    )
    return dataclasses.field(
        default=default, default_factory=default_factory, metadata=metadata, **kwargs
    )


def is_core_type(target) -> bool:
    return isinstance(target, type) and getattr(target, CORE_MARKER, False)


def _unwrap_optional(hint) -> tuple[Any, bool]:
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1 and len(args) != len(get_args(hint)):
            return args[0], True
    return hint, False


def _raw_fields(cls) -> list[tuple[str, Any, Any]]:
    """Return (name, annotation, metadata) in declaration order."""
    try:
        hints = get_type_hints(cls)
    except (NameError, TypeError) as e:
        logger.debug("Unable to resolve annotations of %s: %s", cls.__qualname__, e)
        hints = {}

    if dataclasses.is_dataclass(cls):
        return [(f.name, hints.get(f.name, f.type), f.metadata) for f in dataclasses.fields(cls)]

    names: list[str] = []
    for klass in reversed(cls.__mro__):
        for name in getattr(klass, "__annotations__", {}):
            if name not in names:
                names.append(name)
    return [(name, hints.get(name), {}) for name in names]


def _classify(name: str, hint, metadata) -> FieldSpec:
    options = metadata.get(METADATA_KEY, SettingOptions()) if metadata else SettingOptions()
    exported = not name.startswith("_")

    if hint is None or isinstance(hint, str) or get_origin(hint) is ClassVar:
        return FieldSpec(name, FieldKind.SKIP, hint, exported=exported, options=options)

    target, optional = _unwrap_optional(hint)
    if is_core_type(target):
        kind = FieldKind.POINTER if optional else FieldKind.STRUCT
        if not exported:
            kind = FieldKind.SKIP
        return FieldSpec(name, kind, target, optional, exported, True, options)

    if not exported or options.skip:
        kind = FieldKind.SKIP
    elif is_leaf_type(target):
        kind = FieldKind.LEAF
    elif isinstance(target, type) and dataclasses.is_dataclass(target):
        kind = FieldKind.POINTER if optional else FieldKind.STRUCT
    else:
        kind = FieldKind.SKIP
    return FieldSpec(name, kind, target, optional, exported, False, options)


@functools.lru_cache(maxsize=None)
def describe(cls) -> tuple[FieldSpec, ...]:
    """Classify the fields of ``cls`` in declaration order."""
    return tuple(_classify(name, hint, metadata) for name, hint, metadata in _raw_fields(cls))


def zero_value(spec: FieldSpec):
    if spec.kind is FieldKind.LEAF:
        return None if spec.optional else spec.type()
    if spec.kind is FieldKind.STRUCT:
        return allocate(spec.type)
    return None


def allocate(cls):
    """Build a zero value of ``cls``, filling required constructor fields."""
    try:
        return cls()
    except TypeError:
        if not dataclasses.is_dataclass(cls):
            raise

    specs = {spec.name: spec for spec in describe(cls)}
    kwargs = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        kwargs[f.name] = zero_value(specs[f.name])
    return cls(**kwargs)


def is_frozen(obj) -> bool:
    params = getattr(type(obj), "__dataclass_params__", None)
    return bool(params and params.frozen)
