"""Pluggable security-rule audit engine."""

from .models import AuditSummary, Outcome, RuleResult, Severity, Verdict
from .rules import AuditContext, PolicyConfig, Rule, RuleRegistry

__all__ = [
    "AuditContext",
    "AuditSummary",
    "Outcome",
    "PolicyConfig",
    "Rule",
    "RuleRegistry",
    "RuleResult",
    "Severity",
    "Verdict",
]

__version__ = "0.1.0"
