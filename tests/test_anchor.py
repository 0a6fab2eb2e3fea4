from dataclasses import dataclass
from typing import Optional

import pytest

from clif.configuration import Configuration
from clif.core.anchor import resolve_anchor
from clif.core.errors import (
    AnonymousCoreConfigError,
    ConfigurationError,
    EmbeddedCoreNotPointerError,
    InvalidInitConfigError,
    MissingCoreConfigError,
    NonExportedCoreConfigError,
)


@dataclass
class Good:
    name: str = ""
    core: Optional[Configuration] = None
    other: Optional[Configuration] = None


@dataclass
class NoCore:
    name: str = ""


@dataclass
class Hidden:
    _core: Optional[Configuration] = None


@dataclass
class ByValue:
    core: Configuration = None


@dataclass
class Embedded(Configuration):
    port: int = 0


@dataclass(frozen=True)
class Frozen:
    core: Optional[Configuration] = None


class Plain:
    core: Optional[Configuration] = None

    def __init__(self):
        self.core = None


def test_first_core_field_wins():
    anchor = resolve_anchor(Good())

    assert anchor.name == "core"
    assert anchor.core_type is Configuration


def test_annotated_plain_class_is_accepted():
    assert resolve_anchor(Plain()).name == "core"


def test_missing_core():
    with pytest.raises(MissingCoreConfigError) as exc:
        resolve_anchor(NoCore())

    assert exc.value.code == "CC01"
    assert str(exc.value) == "configuration error - InitConfig(core configuration not present)"


def test_private_core():
    with pytest.raises(NonExportedCoreConfigError) as exc:
        resolve_anchor(Hidden())
    assert exc.value.code == "CC05"
    assert exc.value.field_name == "_core"


def test_core_held_by_value():
    with pytest.raises(EmbeddedCoreNotPointerError) as exc:
        resolve_anchor(ByValue())
    assert exc.value.code == "CC06"
    assert "field core" in str(exc.value)


def test_anonymous_core():
    with pytest.raises(AnonymousCoreConfigError) as exc:
        resolve_anchor(Embedded())
    assert exc.value.code == "CC02"


@pytest.mark.parametrize("settings", [None, Good, Frozen()])
def test_unusable_settings(settings):
    with pytest.raises(InvalidInitConfigError) as exc:
        resolve_anchor(settings)
    assert isinstance(exc.value, ConfigurationError)


def test_none_message():
    with pytest.raises(InvalidInitConfigError) as exc:
        resolve_anchor(None)
    assert str(exc.value) == "configuration error - InitConfig(None)"
