import json
from pathlib import Path

import pytest

from safeguard.rules import ConfigError, ConfigLoader, load_document


def write_config(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_merges_default_and_override_files(tmp_path: Path):
    defaults = write_config(
        tmp_path,
        "defaults.yaml",
        """
rules:
  app-key-is-set: true
  csrf-enabled: true
environments:
  production: [app-key-is-set, csrf-enabled]
  local: [app-key-is-set]
execution:
  max_workers: 2
scan_paths: [app/]
""",
    )
    override = write_config(
        tmp_path,
        "override.json",
        json.dumps(
            {
                "rules": {"csrf-enabled": False, "custom-rule": True},
                "environments": {"production": ["custom-rule"]},
                "execution": {"rule_timeout": 5},
                "scan_paths": ["src/"],
            }
        ),
    )

    loader = ConfigLoader(default_files=[defaults])
    policy = loader.load([override])

    assert policy.enabled == {
        "app-key-is-set": True,
        "csrf-enabled": False,
        "custom-rule": True,
    }
    assert policy.environments == {
        "production": ("custom-rule",),
        "local": ("app-key-is-set",),
    }
    assert policy.max_workers == 2
    assert policy.rule_timeout == 5.0
    assert policy.settings["scan_paths"] == ["src/"]


def test_default_configuration_loaded():
    policy = ConfigLoader().load()

    assert policy.is_enabled("app-key-is-set")
    assert "app-key-is-set" in policy.environments["production"]
    assert policy.custom_rules_path == "safeguard_rules"
    assert "APP_KEY" in policy.settings["required_env_vars"]


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError):
        ConfigLoader().load([tmp_path / "missing.yaml"])


def test_invalid_yaml_raises(tmp_path: Path):
    broken = write_config(tmp_path, "broken.yaml", "rules: [unclosed")

    with pytest.raises(ConfigError):
        ConfigLoader(default_files=[]).load([broken])


def test_non_mapping_document_raises(tmp_path: Path):
    listing = write_config(tmp_path, "list.json", "[1, 2]")

    with pytest.raises(ConfigError):
        load_document(listing)


def test_empty_file_is_an_empty_mapping(tmp_path: Path):
    empty = write_config(tmp_path, "empty.yaml", "")

    assert load_document(empty) == {}
