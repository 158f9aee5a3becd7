"""Severity levels and the result value produced by a single rule check."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Severity(str, Enum):
    """Severity levels supported by the audit engine."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: object) -> "Severity":
        """Return the severity matching ``value`` (case-insensitive)."""

        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown severity: {value!r}")


SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
    Severity.CRITICAL: 3,
}


@dataclass(frozen=True, slots=True)
class RuleResult:
    """Immutable outcome of one rule execution.

    Prefer the named constructors (:meth:`ok`, :meth:`fail`, :meth:`warning`,
    :meth:`critical`). A passed result always carries ``info`` severity; when
    ``severity`` is omitted it defaults to ``info`` for a pass and ``error``
    for a failure.
    """

    passed: bool
    message: str
    severity: Optional[Severity] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.severity is None:
            severity = Severity.INFO if self.passed else Severity.ERROR
        else:
            severity = Severity.parse(self.severity)
        if self.passed and severity is not Severity.INFO:
            raise ValueError(f"A passed result must have info severity, got {severity.value}")
        object.__setattr__(self, "severity", severity)
        object.__setattr__(self, "details", dict(self.details or {}))

    @classmethod
    def ok(cls, message: str, details: Optional[Mapping[str, Any]] = None) -> "RuleResult":
        return cls(True, message, Severity.INFO, details or {})

    @classmethod
    def fail(
        cls,
        message: str,
        severity: Severity | str = Severity.ERROR,
        details: Optional[Mapping[str, Any]] = None,
    ) -> "RuleResult":
        return cls(False, message, Severity.parse(severity), details or {})

    @classmethod
    def warning(cls, message: str, details: Optional[Mapping[str, Any]] = None) -> "RuleResult":
        return cls(False, message, Severity.WARNING, details or {})

    @classmethod
    def critical(cls, message: str, details: Optional[Mapping[str, Any]] = None) -> "RuleResult":
        return cls(False, message, Severity.CRITICAL, details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity.value,
            "details": dict(self.details),
        }
