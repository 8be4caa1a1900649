"""Load RecountConfig from recount.yaml, recount.toml or pyproject.toml.

Merge order, later wins: file, ``RECOUNT_MAX_EVENTS`` environment
variable, keyword overrides.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

import yaml

from recount._errors import ConfigError
from recount.config import RecountConfig

ENV_MAX_EVENTS = "RECOUNT_MAX_EVENTS"

_KNOWN_KEYS = frozenset(RecountConfig.__dataclass_fields__)


def load_config(root: Path | str = ".", **overrides: object) -> RecountConfig:
    """Load RecountConfig from root, merging file, environment and overrides.

    Looks for recount.yaml, recount.yml, recount.toml, then a
    ``[tool.recount]`` table in pyproject.toml. Unknown keys are rejected.
    """
    merged = {**_read_file_config(Path(root)), **_read_env(), **overrides}
    unknown = sorted(set(merged) - _KNOWN_KEYS)
    if unknown:
        msg = f"unknown recount config keys: {', '.join(unknown)}"
        raise ConfigError(msg)
    return RecountConfig(**merged)  # type: ignore[arg-type]


def _read_file_config(root: Path) -> dict[str, object]:
    for name in ("recount.yaml", "recount.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "recount.toml"
    if toml_path.is_file():
        return _section(_parse_toml(toml_path), toml_path)
    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        tool = _parse_toml(pyproject).get("tool", {})
        if isinstance(tool, dict) and isinstance(tool.get("recount"), dict):
            return dict(tool["recount"])
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        msg = f"invalid YAML in {path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping, got {type(data).__name__}"
        raise ConfigError(msg)
    return _section(data, path)


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        msg = f"invalid TOML in {path}: {exc}"
        raise ConfigError(msg) from exc


def _section(data: dict[str, object], path: Path) -> dict[str, object]:
    """Accept either top-level keys or a ``recount:`` section."""
    section = data.get("recount")
    if section is None:
        return dict(data)
    if not isinstance(section, dict):
        msg = f"'recount' section in {path} must be a mapping"
        raise ConfigError(msg)
    return dict(section)


def _read_env() -> dict[str, object]:
    raw = os.environ.get(ENV_MAX_EVENTS)
    if raw is None or raw == "":
        return {}
    try:
        return {"max_events": int(raw)}
    except ValueError as exc:
        msg = f"{ENV_MAX_EVENTS} must be an integer, got {raw!r}"
        raise ConfigError(msg) from exc
