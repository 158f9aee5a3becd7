"""Execution of selected rules into ordered outcomes."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Deque, Dict, List, Optional, Sequence, Tuple

from ..models import Outcome, RuleResult, Severity
from ..rules import AuditContext, Rule

logger = logging.getLogger(__name__)


class RuleExecutor:
    """Run rules against an audit context and pair results with rule metadata.

    Rules run one after another unless ``max_workers`` is greater than one.
    With a per-rule ``timeout`` (seconds) every rule runs on its own daemon
    thread and its deadline starts when that thread starts; a rule that is
    still running at its deadline is abandoned and frees its slot. Abandoned
    threads never keep the process alive. Outcomes are always returned in
    the order the rules were given, and a failing check never aborts the
    batch.
    """

    def __init__(self, *, max_workers: int = 1, timeout: Optional[float] = None) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self.max_workers = max_workers
        self.timeout = timeout

    # ------------------------------------------------------------------
    def run(self, rules: Sequence[Rule], context: AuditContext) -> List[Outcome]:
        if not rules:
            return []

        if self.timeout is not None:
            return self._run_timed(rules, context, self.timeout)

        if self.max_workers == 1:
            return [self.run_rule(rule, context) for rule in rules]

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(rules)), thread_name_prefix="safeguard-rule"
        ) as pool:
            return list(pool.map(lambda rule: self.run_rule(rule, context), rules))

    # ------------------------------------------------------------------
    def run_rule(self, rule: Rule, context: AuditContext) -> Outcome:
        """Execute a single rule, converting faults into a failed outcome."""

        try:
            result = rule.check(context)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Rule %s raised %s: %s", rule.rule_id, type(exc).__name__, exc)
            logger.debug("Traceback for rule %s", rule.rule_id, exc_info=True)
            return self._fault_outcome(rule, exc)

        if not isinstance(result, RuleResult):
            logger.warning(
                "Rule %s returned %s instead of a RuleResult", rule.rule_id, type(result).__name__
            )
            return self._fault_outcome(
                rule, TypeError(f"check() returned {type(result).__name__}, expected RuleResult")
            )

        return Outcome(
            rule_id=rule.rule_id,
            description=rule.description,
            declared_severity=rule.severity,
            result=result,
        )

    # ------------------------------------------------------------------
    def _run_timed(
        self, rules: Sequence[Rule], context: AuditContext, timeout: float
    ) -> List[Outcome]:
        outcomes: List[Optional[Outcome]] = [None] * len(rules)
        finished: "queue.Queue[Tuple[int, Outcome]]" = queue.Queue()
        pending: Deque[Tuple[int, Rule]] = deque(enumerate(rules))
        deadlines: Dict[int, float] = {}

        def work(index: int, rule: Rule) -> None:
            finished.put((index, self.run_rule(rule, context)))

        while pending or deadlines:
            while pending and len(deadlines) < self.max_workers:
                index, rule = pending.popleft()
                deadlines[index] = time.monotonic() + timeout
                threading.Thread(
                    target=work,
                    args=(index, rule),
                    name=f"safeguard-rule-{rule.rule_id}",
                    daemon=True,
                ).start()

            wait = max(0.0, min(deadlines.values()) - time.monotonic())
            try:
                index, outcome = finished.get(timeout=wait)
            except queue.Empty:
                pass
            else:
                # Late results from abandoned rules are dropped.
                if deadlines.pop(index, None) is not None:
                    outcomes[index] = outcome

            now = time.monotonic()
            for index in [index for index, deadline in deadlines.items() if deadline <= now]:
                del deadlines[index]
                rule = rules[index]
                logger.warning("Rule %s timed out after %ss", rule.rule_id, timeout)
                outcomes[index] = self._timeout_outcome(rule)

        return [outcome for outcome in outcomes if outcome is not None]

    # ------------------------------------------------------------------
    def _fault_outcome(self, rule: Rule, exc: BaseException) -> Outcome:
        result = RuleResult.fail(
            f"Rule execution failed: {rule.rule_id}: {exc}",
            Severity.ERROR,
            {"error": str(exc), "exception": type(exc).__name__},
        )
        return Outcome(
            rule_id=rule.rule_id,
            description=rule.description,
            declared_severity=Severity.ERROR,
            result=result,
        )

    def _timeout_outcome(self, rule: Rule) -> Outcome:
        result = RuleResult.fail(
            f"Rule execution timed out after {self.timeout:g}s: {rule.rule_id}",
            Severity.ERROR,
            {"error": "timeout", "timeout_seconds": self.timeout},
        )
        return Outcome(
            rule_id=rule.rule_id,
            description=rule.description,
            declared_severity=Severity.ERROR,
            result=result,
        )
