"""Utilities for loading and merging safeguard configuration files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Sequence

import yaml

from .policy import ConfigError, PolicyConfig

DEFAULT_CONFIG = Path(__file__).resolve().parent / "defaults" / "safeguard.yaml"

_MERGED_SECTIONS = ("rules", "environments", "execution")


class ConfigLoader:
    """Load configuration files and merge them into a :class:`PolicyConfig`."""

    def __init__(self, default_files: Sequence[Path | str] | None = None) -> None:
        config_paths: List[Path]
        if default_files is None:
            config_paths = []
            if DEFAULT_CONFIG.exists():
                config_paths.append(DEFAULT_CONFIG)
        else:
            config_paths = [Path(path) for path in default_files]

        self._default_files = config_paths

    # ------------------------------------------------------------------
    def load_data(self, files: Sequence[Path | str] | None = None) -> Dict[str, Any]:
        """Return the merged raw configuration document."""

        config_paths = list(self._default_files)
        if files:
            config_paths.extend(Path(path) for path in files)

        merged: MutableMapping[str, Any] = {}
        for config_path in config_paths:
            data = load_document(config_path)
            for key, value in data.items():
                if key in _MERGED_SECTIONS and isinstance(value, Mapping):
                    section = merged.get(key)
                    if not isinstance(section, dict):
                        section = {}
                    section.update(value)
                    merged[key] = section
                else:
                    merged[key] = value

        return dict(merged)

    # ------------------------------------------------------------------
    def load(self, files: Sequence[Path | str] | None = None) -> PolicyConfig:
        """Return the policy defined by the default and override files."""

        return PolicyConfig.from_mapping(self.load_data(files))


def load_document(path: Path | str) -> Dict[str, Any]:
    """Load a single YAML or JSON mapping, such as an application config snapshot."""

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
        raise ConfigError(f"Failed to read configuration file {path}") from exc

    if path.suffix.lower() == ".json":
        try:
            data = json.loads(content or "{}")
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in configuration file {path}") from exc
    else:
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in configuration file {path}") from exc

    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration file must be a mapping: {path}")

    return dict(data)
