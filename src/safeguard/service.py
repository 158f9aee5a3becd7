"""Orchestration layer used by the CLI to execute security audits."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .adapters import RuleExecutor, load_entry_point_plugins, load_plugins
from .aggregation import OutcomeAggregator
from .models import AuditSummary, Outcome, Severity
from .rules import AuditContext, PolicyConfig, Rule, RuleRegistry, resolve_rules
from .rules.builtin import default_rules

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuditReport:
    """Outcomes of one audit run plus their summary."""

    environment: str
    outcomes: List[Outcome]
    summary: AuditSummary
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.summary.verdict.value,
            "environment": self.environment,
            "timestamp": self.timestamp.isoformat(),
            "summary": self.summary.to_dict(),
            "results": [outcome.to_dict() for outcome in self.outcomes],
        }


class AuditService:
    """High level service selecting, running and summarizing rules."""

    def __init__(
        self,
        registry: RuleRegistry,
        policy: PolicyConfig,
        *,
        executor: RuleExecutor | None = None,
        aggregator: OutcomeAggregator | None = None,
    ) -> None:
        self.registry = registry
        self.policy = policy
        self._executor = executor or RuleExecutor(
            max_workers=policy.max_workers, timeout=policy.rule_timeout
        )
        self._aggregator = aggregator or OutcomeAggregator()

    # ------------------------------------------------------------------
    @classmethod
    def from_config(
        cls,
        policy: PolicyConfig,
        *,
        base_path: Path | None = None,
        include_builtin: bool = True,
        include_entry_points: bool = True,
        executor: RuleExecutor | None = None,
    ) -> "AuditService":
        """Build a service whose registry holds built-in and custom rules."""

        registry = RuleRegistry()
        if include_builtin:
            registry.register_all(default_rules())
        if include_entry_points:
            registry.register_all(load_entry_point_plugins())

        if policy.custom_rules_path:
            rules_path = Path(policy.custom_rules_path)
            if not rules_path.is_absolute():
                rules_path = (base_path or Path.cwd()) / rules_path
            custom = load_plugins(rules_path, policy.custom_rules_package)
            logger.info("Loaded %d custom rule(s) from %s", len(custom), rules_path)
            registry.register_all(custom)

        return cls(registry, policy, executor=executor)

    # ------------------------------------------------------------------
    def select(self, environment: str, *, environment_scoped: bool = False) -> List[Rule]:
        return resolve_rules(
            self.registry, self.policy, environment, environment_scoped=environment_scoped
        )

    def run(self, context: AuditContext, *, environment_scoped: bool = False) -> AuditReport:
        """Run the rules selected for ``context.environment``."""

        rules = self.select(context.environment, environment_scoped=environment_scoped)
        logger.info("Running %d rule(s) for environment %s", len(rules), context.environment)

        outcomes = self._executor.run(rules, context)
        summary = self._aggregator.aggregate(outcomes)
        return AuditReport(environment=context.environment, outcomes=outcomes, summary=summary)

    # ------------------------------------------------------------------
    def list_rules(
        self,
        *,
        enabled: Optional[bool] = None,
        environment: Optional[str] = None,
        severity: Optional[Severity] = None,
    ) -> List[Rule]:
        """Filter registered rules by enablement, applicability and declared severity."""

        rules: Sequence[Rule] = self.registry.all()
        if enabled is not None:
            rules = [rule for rule in rules if self.policy.is_enabled(rule.rule_id) is enabled]
        if environment:
            rules = [rule for rule in rules if rule.applies_to_environment(environment)]
        if severity is not None:
            rules = [rule for rule in rules if rule.severity is severity]
        return list(rules)


__all__ = ["AuditReport", "AuditService"]
