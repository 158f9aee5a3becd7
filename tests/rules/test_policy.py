from __future__ import annotations

from typing import Iterable

import pytest

from safeguard.models import RuleResult
from safeguard.rules import (
    AuditContext,
    ConfigError,
    PolicyConfig,
    Rule,
    RuleRegistry,
    resolve_enabled,
    resolve_environment,
    resolve_rules,
)


class EnvRule(Rule):
    def __init__(self, rule_id: str, environments: Iterable[str] | None = None) -> None:
        self.rule_id = rule_id
        self.description = f"Checks {rule_id}"
        self.environments = tuple(environments) if environments is not None else None

    def check(self, context: AuditContext) -> RuleResult:
        return RuleResult.ok("ok")


def ids(rules: Iterable[Rule]) -> list[str]:
    return [rule.rule_id for rule in rules]


def make_registry(*rules: Rule) -> RuleRegistry:
    return RuleRegistry(rules)


def test_resolve_enabled_selects_only_true_entries() -> None:
    registry = make_registry(EnvRule("A"), EnvRule("B"))
    policy = PolicyConfig(enabled={"A": True, "B": False})

    assert ids(resolve_enabled(registry, policy)) == ["A"]


def test_missing_and_non_boolean_entries_are_disabled() -> None:
    registry = make_registry(EnvRule("A"), EnvRule("B"), EnvRule("C"))
    policy = PolicyConfig.from_mapping({"rules": {"A": True, "B": "yes"}})

    assert ids(resolve_enabled(registry, policy)) == ["A"]


def test_resolve_environment_requires_listing_applicability_and_enablement() -> None:
    registry = make_registry(EnvRule("A"), EnvRule("B"))
    policy = PolicyConfig(
        enabled={"A": True, "B": True, "C": False},
        environments={"prod": ("A", "C")},
    )

    assert ids(resolve_environment(registry, policy, "prod")) == ["A"]


def test_resolve_environment_respects_rule_applicability() -> None:
    registry = make_registry(EnvRule("A", environments=["production"]), EnvRule("B"))
    policy = PolicyConfig(
        enabled={"A": True, "B": True},
        environments={"testing": ("A", "B")},
    )

    assert ids(resolve_environment(registry, policy, "testing")) == ["B"]


def test_resolve_environment_does_not_override_global_switch() -> None:
    registry = make_registry(EnvRule("A"), EnvRule("B"))
    policy = PolicyConfig(enabled={"A": False, "B": True}, environments={"prod": ("A", "B")})

    assert ids(resolve_environment(registry, policy, "prod")) == ["B"]


def test_missing_or_empty_environment_falls_back_to_enabled() -> None:
    registry = make_registry(EnvRule("A"), EnvRule("B"), EnvRule("C"))
    policy = PolicyConfig(
        enabled={"A": True, "B": False, "C": True},
        environments={"prod": ("A",), "dev": ()},
    )

    expected = ids(resolve_enabled(registry, policy))
    assert ids(resolve_environment(registry, policy, "staging")) == expected
    assert ids(resolve_environment(registry, policy, "dev")) == expected


def test_environment_selection_follows_registry_order() -> None:
    registry = make_registry(EnvRule("A"), EnvRule("B"), EnvRule("C"))
    policy = PolicyConfig(
        enabled={"A": True, "B": True, "C": True},
        environments={"prod": ("C", "A", "B")},
    )

    assert ids(resolve_environment(registry, policy, "prod")) == ["A", "B", "C"]


def test_resolve_rules_dispatches_on_mode() -> None:
    registry = make_registry(EnvRule("A"), EnvRule("B"))
    policy = PolicyConfig(enabled={"A": True, "B": True}, environments={"prod": ("B",)})

    assert ids(resolve_rules(registry, policy, "prod")) == ["A", "B"]
    assert ids(resolve_rules(registry, policy, "prod", environment_scoped=True)) == ["B"]
    assert ids(resolve_rules(registry, policy, None, environment_scoped=True)) == ["A", "B"]


def test_policy_from_mapping_reads_execution_and_settings() -> None:
    policy = PolicyConfig.from_mapping(
        {
            "rules": {"A": True},
            "environments": {"prod": ["A"], "broken": "A"},
            "custom_rules_path": "rules_dir",
            "custom_rules_package": "",
            "execution": {"max_workers": 4, "rule_timeout": 2.5},
            "scan_paths": ["app/"],
        }
    )

    assert policy.environments == {"prod": ("A",), "broken": ()}
    assert policy.custom_rules_path == "rules_dir"
    assert policy.custom_rules_package is None
    assert policy.max_workers == 4
    assert policy.rule_timeout == 2.5
    assert policy.settings == {"scan_paths": ["app/"]}


@pytest.mark.parametrize(
    "execution",
    [{"max_workers": "four"}, {"max_workers": 0}, {"rule_timeout": -5}, {"rule_timeout": True}, "fast"],
)
def test_policy_from_mapping_rejects_invalid_execution(execution) -> None:
    with pytest.raises(ConfigError):
        PolicyConfig.from_mapping({"execution": execution})


def test_policy_from_mapping_accepts_numeric_strings() -> None:
    policy = PolicyConfig.from_mapping({"execution": {"max_workers": "3", "rule_timeout": "1.5"}})

    assert policy.max_workers == 3
    assert policy.rule_timeout == 1.5
