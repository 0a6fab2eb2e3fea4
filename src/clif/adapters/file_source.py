"""Configuration file source (YAML or JSON)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from ..core.errors import FileReadError, UnmarshalError
from ..core.fields import MISSING
from ..core.ports import Setting

logger = logging.getLogger(__name__)

YAML_TYPES = {"yaml", "yml"}
JSON_TYPES = {"json"}

SectionDecoder = Callable[[Any], Mapping[str, Any]]


def config_type(path: Path | str) -> str:
    """Lower-cased extension without the dot, or "" when there is none."""
    return Path(path).suffix.lower().lstrip(".")


def load_file(path: Path | str) -> dict[str, Any]:
    """Read and parse a configuration file.

    Unrecognised extensions yield an empty mapping. An empty file is an empty
    mapping too.

    Raises:
        FileReadError: the file cannot be read
        UnmarshalError: the content is not valid YAML/JSON or its root is
            not a mapping
    """
    path = Path(path)
    kind = config_type(path)
    if kind not in YAML_TYPES and kind not in JSON_TYPES:
        logger.debug("Ignoring configuration file with unknown type: %s", path)
        return {}

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FileReadError(path, e) from e

    try:
        if kind in YAML_TYPES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text) if text.strip() else None
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise UnmarshalError(f"unable to parse {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise UnmarshalError(f"{path} root must be a mapping, got {type(data).__name__}")
    return data


class FileSource:
    """Values decoded from the configuration file, addressed by dotted key.

    Sections owned by the toolkit are decoded by their own types when the
    source is built, so a malformed ``logger`` block fails initialization
    even when the environment would override it.
    """

    name = "file"

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        path: Path | None = None,
        sections: Mapping[str, SectionDecoder] | None = None,
    ):
        self.path = path
        self.data: dict[str, Any] = dict(data or {})
        for section, decode in (sections or {}).items():
            if section in self.data:
                raw = self.data[section]
                decoded = decode(raw)
                # keys the section does not own stay visible to caller fields
                self.data[section] = {**raw, **decoded}

    @classmethod
    def from_path(cls, path: Path | str, sections: Mapping[str, SectionDecoder] | None = None):
        path = Path(path)
        return cls(load_file(path), path=path, sections=sections)

    def lookup(self, setting: Setting):
        return self.get(setting.key)

    def get(self, key: str):
        node: Any = self.data
        parts = key.split(".")
        for depth, part in enumerate(parts):
            if not isinstance(node, Mapping):
                parent = ".".join(parts[:depth])
                raise UnmarshalError(f"{parent} != mapping (got {type(node).__name__})")
            if part not in node:
                return MISSING
            node = node[part]
        return node
