"""Environment variable source."""

from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import dotenv_values

from ..core.coercion import parse
from ..core.fields import MISSING, FieldSpec
from ..core.ports import Environment, Setting

APP_NAME_PLACEHOLDER = "${APPNAME}"

_NON_WORD = re.compile(r"[^0-9A-Za-z]+")


def normalize_name(name: str) -> str:
    """Upper-case ``name`` and replace runs of other characters with "_"."""
    return _NON_WORD.sub("_", name).strip("_").upper()


class EnvSource:
    """Highest-precedence source: ``${APPNAME}_<SECTION>_<FIELD>`` variables.

    A dotenv file, when given, is read once and sits under the real
    environment: a variable set in the process always wins.
    """

    name = "env"

    def __init__(
        self,
        app_name: str,
        environ: Environment | None = None,
        dotenv_path: Path | str | None = None,
    ):
        self.prefix = normalize_name(app_name)
        self.environ = os.environ if environ is None else environ
        self.dotenv: dict[str, str] = {}
        if dotenv_path is not None and Path(dotenv_path).is_file():
            self.dotenv = {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}

    def env_key(self, key: str, spec: FieldSpec | None = None) -> str:
        if spec is not None and spec.env:
            return spec.env.replace(APP_NAME_PLACEHOLDER, self.prefix)
        return normalize_name(f"{self.prefix}_{key.replace('.', '_')}")

    def get(self, name: str) -> str | None:
        value = self.environ.get(name)
        if value is None:
            value = self.dotenv.get(name)
        return value

    def lookup(self, setting: Setting):
        raw = self.get(self.env_key(setting.key, setting.spec))
        if raw is None:
            return MISSING
        return parse(setting.key, raw, setting.type)
