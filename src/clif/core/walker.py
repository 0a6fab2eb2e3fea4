"""Depth-first merge of setting sources into a settings graph.

The walker visits every field of a settings object in declaration order:

    LEAF     ask each source in precedence order; the last one that has a
             value wins; coerce it to the field type and write it back
    STRUCT   copy the nested object, walk the copy, assign the copy back
    POINTER  allocate the nested object if it is None, then walk it
    SKIP     leave untouched

The core configuration anchor is walked like a pointer, but its subtree is
keyed from the root ("logger.level", not "core.logger.level") so that the
toolkit's own sections line up with the top level of the configuration file.

The first failure aborts the walk. Writes made before the failure stay in
place; there is no rollback.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Iterable, Sequence

from .coercion import coerce
from .errors import ConfigurationError, WalkError
from .fields import MISSING, FieldKind, FieldSpec, allocate, describe, is_frozen
from .ports import Setting, SettingSource

logger = logging.getLogger(__name__)

LeafHook = Callable[[Any, Setting, Any], None]


def walk(
    node,
    sources: Sequence[SettingSource],
    depth: int = 0,
    prefix: str = "",
    anchor: str | None = None,
    on_leaf: LeafHook | None = None,
) -> None:
    """Populate ``node`` in place from ``sources``.

    Args:
        node: Settings object (dataclass instance or annotated class instance)
        sources: Providers ordered from lowest to highest precedence
        depth: Nesting level of ``node``
        prefix: Dotted key prefix of ``node``'s fields
        anchor: Name of the top-level field holding the core configuration;
            other core-typed fields are never wired up
        on_leaf: Called as ``on_leaf(owner, setting, value)`` after each write
    """
    _walk(node, tuple(sources), depth, prefix, anchor, on_leaf, (type(node),), {id(node)})


def _walk(node, sources, depth, prefix, anchor, on_leaf, lineage, visiting) -> None:
    for spec in describe(type(node)):
        if spec.kind is FieldKind.SKIP:
            continue

        key = prefix + spec.name
        if spec.is_core:
            if depth != 0 or spec.name != anchor:
                logger.debug("Skipping core configuration field %s", key)
                continue
            # the anchor's sections are keyed from the root
            child_prefix = ""
        else:
            child_prefix = key + "."

        if spec.kind is FieldKind.LEAF:
            _visit_leaf(node, spec, key, sources, on_leaf)
        elif spec.kind is FieldKind.STRUCT:
            _visit_struct(node, spec, key, child_prefix, sources, depth, on_leaf, lineage, visiting)
        elif spec.kind is FieldKind.POINTER:
            _visit_pointer(node, spec, key, child_prefix, sources, depth, on_leaf, lineage, visiting)


def _visit_leaf(node, spec: FieldSpec, key: str, sources: Iterable[SettingSource], on_leaf) -> None:
    setting = Setting(key=key, spec=spec, current=getattr(node, spec.name, None))
    value = MISSING
    try:
        for source in sources:
            candidate = source.lookup(setting)
            if candidate is not MISSING:
                value = candidate
        if value is MISSING:
            return
        value = coerce(key, value, spec.type, spec.optional)
        setattr(node, spec.name, value)
    except ConfigurationError:
        raise
    except Exception as e:
        raise WalkError(key, e) from e

    if on_leaf is not None:
        on_leaf(node, setting, value)


def _visit_struct(node, spec, key, child_prefix, sources, depth, on_leaf, lineage, visiting) -> None:
    current = getattr(node, spec.name, None)
    if current is None:
        temp = _allocate(spec, key)
    else:
        temp = copy.copy(current)

    if is_frozen(temp):
        if current is None:
            setattr(node, spec.name, temp)
        return

    try:
        _walk(
            temp, sources, depth + 1, child_prefix, None, on_leaf,
            lineage + (spec.type,), visiting | {id(temp)},
        )
    finally:
        setattr(node, spec.name, temp)


def _visit_pointer(node, spec, key, child_prefix, sources, depth, on_leaf, lineage, visiting) -> None:
    child = getattr(node, spec.name, None)
    if child is None:
        if spec.type in lineage:
            # self-referential optional: allocating would never terminate
            logger.debug("Not allocating recursive field %s", key)
            return
        child = _allocate(spec, key)
        setattr(node, spec.name, child)
    elif id(child) in visiting:
        return

    if is_frozen(child):
        return

    _walk(
        child, sources, depth + 1, child_prefix, None, on_leaf,
        lineage + (spec.type,), visiting | {id(child)},
    )


def _allocate(spec: FieldSpec, key: str):
    try:
        return allocate(spec.type)
    except Exception as e:
        raise WalkError(key, e) from e
