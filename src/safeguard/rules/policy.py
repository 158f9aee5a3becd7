"""Policy configuration and the functions selecting which rules run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .base import Rule
from .registry import RuleRegistry

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when configuration files cannot be loaded, parsed or validated."""


@dataclass(frozen=True)
class PolicyConfig:
    """Externally supplied enable map and per-environment rule lists."""

    enabled: Mapping[str, bool] = field(default_factory=dict)
    environments: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    custom_rules_path: Optional[str] = None
    custom_rules_package: Optional[str] = None
    settings: Mapping[str, Any] = field(default_factory=dict)
    max_workers: int = 1
    rule_timeout: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PolicyConfig":
        """Build a policy from a parsed configuration document."""

        rules = data.get("rules") or {}
        enabled: Dict[str, bool] = {}
        if isinstance(rules, Mapping):
            enabled = {str(rule_id): value is True for rule_id, value in rules.items()}

        environments: Dict[str, Tuple[str, ...]] = {}
        raw_environments = data.get("environments") or {}
        if isinstance(raw_environments, Mapping):
            for name, rule_ids in raw_environments.items():
                if isinstance(rule_ids, (list, tuple)):
                    environments[str(name)] = tuple(str(rule_id) for rule_id in rule_ids)
                else:
                    environments[str(name)] = ()

        execution = data.get("execution") or {}
        if not isinstance(execution, Mapping):
            raise ConfigError("execution must be a mapping")
        reserved = {"rules", "environments", "custom_rules_path", "custom_rules_package", "execution"}
        settings = {key: value for key, value in data.items() if key not in reserved}

        return cls(
            enabled=enabled,
            environments=environments,
            custom_rules_path=_optional_str(data.get("custom_rules_path")),
            custom_rules_package=_optional_str(data.get("custom_rules_package")),
            settings=settings,
            max_workers=_max_workers(execution.get("max_workers")),
            rule_timeout=_rule_timeout(execution.get("rule_timeout")),
        )

    def is_enabled(self, rule_id: str) -> bool:
        return self.enabled.get(rule_id) is True


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _max_workers(value: object) -> int:
    if value is None:
        return 1
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigError(f"execution.max_workers must be a positive integer, got {value!r}")
    try:
        workers = int(value)
    except ValueError:
        raise ConfigError(
            f"execution.max_workers must be a positive integer, got {value!r}"
        ) from None
    if workers < 1:
        raise ConfigError(f"execution.max_workers must be at least 1, got {workers}")
    return workers


def _rule_timeout(value: object) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ConfigError(f"execution.rule_timeout must be a number of seconds, got {value!r}")
    try:
        seconds = float(value)
    except ValueError:
        raise ConfigError(
            f"execution.rule_timeout must be a number of seconds, got {value!r}"
        ) from None
    if seconds <= 0:
        raise ConfigError(f"execution.rule_timeout must be positive, got {value!r}")
    return seconds


# ----------------------------------------------------------------------
def resolve_enabled(registry: RuleRegistry, policy: PolicyConfig) -> List[Rule]:
    """Return registered rules switched on in ``policy.enabled``, in registry order."""

    return [rule for rule in registry.all() if policy.is_enabled(rule.rule_id)]


def resolve_environment(
    registry: RuleRegistry, policy: PolicyConfig, environment: str
) -> List[Rule]:
    """Return rules scoped to ``environment``.

    A rule is selected only when it is listed for the environment, applies to
    it, and is globally enabled. Without a non-empty list for the
    environment this falls back to :func:`resolve_enabled`.
    """

    listed: Sequence[str] = policy.environments.get(environment) or ()
    if not listed:
        logger.debug("No rule list for environment %s, using enabled rules", environment)
        return resolve_enabled(registry, policy)

    listed_ids = set(listed)
    for rule_id in sorted(listed_ids.difference(registry.ids())):
        logger.debug("Environment %s lists unknown rule %s", environment, rule_id)

    return [
        rule
        for rule in registry.all()
        if rule.rule_id in listed_ids
        and rule.applies_to_environment(environment)
        and policy.is_enabled(rule.rule_id)
    ]


def resolve_rules(
    registry: RuleRegistry,
    policy: PolicyConfig,
    environment: Optional[str] = None,
    *,
    environment_scoped: bool = False,
) -> List[Rule]:
    """Select rules for a run in either enabled or environment-scoped mode."""

    if environment_scoped and environment:
        return resolve_environment(registry, policy, environment)
    return resolve_enabled(registry, policy)
