"""Layered configuration store.

Configuration is read once per run from ``git config --list`` and, if the
``GITHOOKS_CONFIG`` environment variable names one, a YAML overlay file.
Layers are applied in order: single-valued reads return the last value
seen, multi-valued reads return every value in declaration order.

Values that used to carry embedded mini-languages are parsed into an
explicit ``ValueSource`` instead:

    file:PATH      -> FromFile
    env:VAR        -> FromEnv
    cmd:ARGV...    -> FromExternalCommand (shell-style quoting)
    anything else  -> the caller's bare interpretation (usually FromLiteral)

``eval:`` is rejected: arbitrary code evaluation has no safe equivalent.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeAlias

import yaml

from githooks.lib.errors import ConfigError

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "yes", "on", "1"}
FALSE_VALUES = {"false", "no", "off", "0", ""}


def normalize_key(key: str) -> str:
    """Normalize a dotted key the way git compares them.

    Section and variable names are case-insensitive, a middle subsection
    is case-sensitive.
    """
    parts = key.split(".")
    if len(parts) < 3:
        return key.lower()
    return ".".join([parts[0].lower(), *parts[1:-1], parts[-1].lower()])


class ConfigStore:
    """Multi-valued, layered key/value configuration."""

    def __init__(self, entries: Iterable[tuple[str, str]] = ()):
        self._values: dict[str, list[str]] = {}
        self.extend(entries)

    # --- Construction ---

    def add(self, key: str, value: str) -> None:
        self._values.setdefault(normalize_key(key), []).append(value)

    def extend(self, entries: Iterable[tuple[str, str]]) -> None:
        for key, value in entries:
            self.add(key, value)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, Any]]) -> ConfigStore:
        """Build a store from ``{section: {key: value-or-list}}``."""
        store = cls()
        store.extend(_flatten_mapping(mapping))
        return store

    @classmethod
    def load(cls, repository: Any, overlay_path: str | Path | None = None) -> ConfigStore:
        """Load git configuration, then the optional YAML overlay.

        Args:
            repository: Object exposing ``config_entries()`` (GitRepository)
            overlay_path: YAML overlay file. Defaults to $GITHOOKS_CONFIG.

        Raises:
            ConfigError: If the overlay is named but unreadable or malformed.
        """
        from githooks.hook_config import CONFIG_OVERLAY_ENV_VAR

        store = cls(repository.config_entries())

        overlay = overlay_path or os.environ.get(CONFIG_OVERLAY_ENV_VAR)
        if overlay:
            store.extend(_flatten_mapping(load_yaml_overlay(Path(overlay))))
        return store

    # --- Reads ---

    def get_all(self, section: str, key: str) -> list[str]:
        return list(self._values.get(normalize_key(f"{section}.{key}"), []))

    def get(self, section: str, key: str, default: str | None = None) -> str | None:
        values = self._values.get(normalize_key(f"{section}.{key}"))
        return values[-1] if values else default

    def get_bool(self, section: str, key: str, default: bool = False) -> bool:
        raw = self.get(section, key)
        if raw is None:
            return default
        value = raw.strip().lower()
        if value in TRUE_VALUES:
            return True
        if value in FALSE_VALUES:
            return False
        raise ConfigError(f"bad boolean value '{raw}' for {section}.{key}")

    def __contains__(self, dotted_key: str) -> bool:
        return normalize_key(dotted_key) in self._values


def load_yaml_overlay(path: Path) -> dict[str, Any]:
    """Load a ``section -> key -> value`` mapping from a YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"can't open config overlay '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"can't parse config overlay '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config overlay '{path}' must be a mapping of sections")
    return data


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten_mapping(mapping: Mapping[str, Any]) -> list[tuple[str, str]]:
    entries = []
    for section, body in mapping.items():
        if not isinstance(body, Mapping):
            raise ConfigError(f"config section '{section}' must be a mapping")
        for key, value in body.items():
            values = value if isinstance(value, list) else [value]
            for item in values:
                entries.append((f"{section}.{key}", _scalar(item)))
    return entries


# --- Value sources ---


@dataclass(frozen=True)
class FromLiteral:
    text: str

    def resolve(self) -> str:
        return self.text


@dataclass(frozen=True)
class FromFile:
    path: str

    def resolve(self) -> str:
        try:
            return Path(self.path).read_text()
        except OSError as e:
            raise ConfigError(f"can't open file '{self.path}': {e}") from e


@dataclass(frozen=True)
class FromEnv:
    var: str

    def resolve(self) -> str | None:
        return os.environ.get(self.var)


@dataclass(frozen=True)
class FromExternalCommand:
    argv: tuple[str, ...]

    def resolve(self) -> str:
        try:
            result = subprocess.run(list(self.argv), capture_output=True, text=True)
        except OSError as e:
            raise ConfigError(f"can't run '{self.argv[0]}': {e}") from e
        if result.returncode != 0:
            raise ConfigError(
                f"'{' '.join(self.argv)}' exited with value {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        return result.stdout.strip()


ValueSource: TypeAlias = FromLiteral | FromFile | FromEnv | FromExternalCommand


def parse_value_source(
    raw: str, bare: Callable[[str], ValueSource] = FromLiteral
) -> ValueSource:
    """Parse a configuration value into its ValueSource.

    Args:
        raw: The configured string
        bare: Constructor for values without a recognized prefix

    Raises:
        ConfigError: For ``eval:`` values or an empty ``cmd:``.
    """
    if raw.startswith("eval:"):
        raise ConfigError(
            f"'eval:' values are not supported ({raw!r}); "
            "use 'cmd:' to compute a value with an external command"
        )
    if raw.startswith("file:"):
        return FromFile(raw[len("file:"):])
    if raw.startswith("env:"):
        return FromEnv(raw[len("env:"):])
    if raw.startswith("cmd:"):
        argv = tuple(shlex.split(raw[len("cmd:"):]))
        if not argv:
            raise ConfigError(f"empty command in value {raw!r}")
        return FromExternalCommand(argv)
    return bare(raw)
