"""Data models for rule results, outcomes and audit summaries."""

from .outcome import AuditSummary, Outcome, Verdict
from .result import SEVERITY_RANK, RuleResult, Severity

__all__ = [
    "AuditSummary",
    "Outcome",
    "RuleResult",
    "SEVERITY_RANK",
    "Severity",
    "Verdict",
]
