"""Outcome and summary models shared by the executor, aggregator and renderers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping

from .result import RuleResult, Severity


class Verdict(str, Enum):
    """Overall status of an audit run."""

    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Outcome:
    """A rule's static metadata paired with the result of one invocation."""

    rule_id: str
    description: str
    declared_severity: Severity
    result: RuleResult

    @property
    def passed(self) -> bool:
        return self.result.passed

    @property
    def severity(self) -> Severity:
        """Severity of the produced result, which drives aggregation."""

        return self.result.severity

    @property
    def message(self) -> str:
        return self.result.message

    @property
    def details(self) -> Mapping[str, Any]:
        return self.result.details

    @property
    def status(self) -> str:
        return "passed" if self.passed else "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule_id,
            "description": self.description,
            "status": self.status,
            "message": self.message,
            "severity": self.severity.value,
            "details": dict(self.details),
        }


@dataclass(frozen=True, slots=True)
class AuditSummary:
    """Counts and verdict computed from a list of outcomes."""

    total: int
    passed: int
    errors: int
    warnings: int
    notices: int
    verdict: Verdict

    @property
    def issues(self) -> int:
        return self.errors + self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "errors": self.errors,
            "warnings": self.warnings,
            "notices": self.notices,
        }
