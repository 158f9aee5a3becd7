"""Reduction of rule outcomes into counts and an overall verdict."""

from __future__ import annotations

from typing import Iterable

from ..models import AuditSummary, Outcome, Severity, Verdict

_ERROR_LEVELS = {Severity.ERROR, Severity.CRITICAL}


class OutcomeAggregator:
    """Summarize :class:`Outcome` lists into an :class:`AuditSummary`."""

    def aggregate(self, outcomes: Iterable[Outcome]) -> AuditSummary:
        """Return counts and the verdict for ``outcomes``.

        Only failed outcomes contribute to error, warning and notice counts,
        and they are classified by the severity of their result rather than
        the rule's declared severity.
        """

        total = passed = errors = warnings = notices = 0
        for outcome in outcomes:
            total += 1
            if outcome.passed:
                passed += 1
            elif outcome.severity in _ERROR_LEVELS:
                errors += 1
            elif outcome.severity is Severity.WARNING:
                warnings += 1
            else:
                notices += 1

        return AuditSummary(
            total=total,
            passed=passed,
            errors=errors,
            warnings=warnings,
            notices=notices,
            verdict=self._verdict(errors, warnings),
        )

    # ------------------------------------------------------------------
    def _verdict(self, errors: int, warnings: int) -> Verdict:
        if errors:
            return Verdict.FAILED
        if warnings:
            return Verdict.WARNING
        return Verdict.PASSED


def aggregate(outcomes: Iterable[Outcome]) -> AuditSummary:
    return OutcomeAggregator().aggregate(outcomes)
