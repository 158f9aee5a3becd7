from __future__ import annotations

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path
from typing import Callable

import pytest

import safeguard
from safeguard.adapters import RuleExecutor
from safeguard.models import RuleResult, Severity
from safeguard.rules import AuditContext, Rule


class CallableRule(Rule):
    def __init__(
        self,
        rule_id: str,
        behaviour: Callable[[AuditContext], RuleResult],
        severity: Severity = Severity.CRITICAL,
    ) -> None:
        self.rule_id = rule_id
        self.description = f"Checks {rule_id}"
        self.severity = severity
        self._behaviour = behaviour
        self.calls = 0

    def check(self, context: AuditContext) -> RuleResult:
        self.calls += 1
        return self._behaviour(context)


def passing(context: AuditContext) -> RuleResult:
    return RuleResult.ok("all good")


def broken(context: AuditContext) -> RuleResult:
    raise RuntimeError("config store unavailable")


@pytest.fixture
def context() -> AuditContext:
    return AuditContext(environment="production")


def test_outcomes_pair_rule_metadata_with_results(context: AuditContext) -> None:
    rule = CallableRule("debug", lambda ctx: RuleResult.warning("debug on"))

    [outcome] = RuleExecutor().run([rule], context)

    assert outcome.rule_id == "debug"
    assert outcome.description == "Checks debug"
    assert outcome.declared_severity is Severity.CRITICAL
    assert outcome.severity is Severity.WARNING
    assert outcome.message == "debug on"


def test_faulting_rule_does_not_abort_batch(context: AuditContext) -> None:
    after = CallableRule("after", passing)
    rules = [CallableRule("before", passing), CallableRule("broken", broken), after]

    outcomes = RuleExecutor().run(rules, context)

    assert [outcome.rule_id for outcome in outcomes] == ["before", "broken", "after"]
    assert after.calls == 1

    fault = outcomes[1]
    assert fault.passed is False
    assert fault.severity is Severity.ERROR
    assert fault.declared_severity is Severity.ERROR
    assert "broken" in fault.message
    assert "config store unavailable" in fault.message
    assert fault.details == {"error": "config store unavailable", "exception": "RuntimeError"}


def test_non_result_return_is_a_fault(context: AuditContext) -> None:
    rule = CallableRule("sloppy", lambda ctx: None)  # type: ignore[arg-type,return-value]

    [outcome] = RuleExecutor().run([rule], context)

    assert outcome.passed is False
    assert outcome.severity is Severity.ERROR
    assert outcome.details["exception"] == "TypeError"


def test_running_twice_is_idempotent(context: AuditContext) -> None:
    rules = [
        CallableRule("a", passing),
        CallableRule("b", lambda ctx: RuleResult.fail("nope", Severity.ERROR)),
        CallableRule("c", broken),
    ]
    executor = RuleExecutor()

    def key(outcomes):
        return [(outcome.passed, outcome.severity, outcome.message) for outcome in outcomes]

    assert key(executor.run(rules, context)) == key(executor.run(rules, context))


def test_parallel_execution_preserves_order(context: AuditContext) -> None:
    def sleeper(delay: float) -> Callable[[AuditContext], RuleResult]:
        def behaviour(ctx: AuditContext) -> RuleResult:
            time.sleep(delay)
            return RuleResult.ok(f"slept {delay}")

        return behaviour

    rules = [CallableRule(str(index), sleeper(delay)) for index, delay in enumerate([0.2, 0.0, 0.1])]

    outcomes = RuleExecutor(max_workers=3).run(rules, context)

    assert [outcome.rule_id for outcome in outcomes] == ["0", "1", "2"]
    assert all(outcome.passed for outcome in outcomes)


def test_slow_rule_times_out_without_blocking_others(context: AuditContext) -> None:
    release = threading.Event()

    def stuck(ctx: AuditContext) -> RuleResult:
        release.wait(5)
        return RuleResult.ok("finally")

    rules = [CallableRule("stuck", stuck), CallableRule("quick", passing)]
    outcomes = RuleExecutor(timeout=0.1).run(rules, context)
    release.set()

    assert outcomes[0].passed is False
    assert outcomes[0].severity is Severity.ERROR
    assert "timed out" in outcomes[0].message
    assert outcomes[1].passed is True


def test_empty_rule_list(context: AuditContext) -> None:
    assert RuleExecutor(max_workers=4).run([], context) == []


def test_invalid_configuration_rejected() -> None:
    with pytest.raises(ValueError):
        RuleExecutor(max_workers=0)
    with pytest.raises(ValueError):
        RuleExecutor(timeout=0)


def test_queued_rules_are_not_charged_for_hung_rules(context: AuditContext) -> None:
    release = threading.Event()

    def stuck(ctx: AuditContext) -> RuleResult:
        release.wait(5)
        return RuleResult.ok("finally")

    quick = CallableRule("quick", passing)
    rules = [CallableRule("stuck-1", stuck), CallableRule("stuck-2", stuck), quick]

    outcomes = RuleExecutor(max_workers=2, timeout=0.3).run(rules, context)
    release.set()

    assert [outcome.rule_id for outcome in outcomes] == ["stuck-1", "stuck-2", "quick"]
    assert ["timed out" in outcome.message for outcome in outcomes] == [True, True, False]
    assert quick.calls == 1
    assert outcomes[2].passed is True


def test_timed_out_rule_does_not_hold_process_open(tmp_path: Path) -> None:
    script = textwrap.dedent(
        """
        import time

        from safeguard.adapters import RuleExecutor
        from safeguard.models import RuleResult
        from safeguard.rules import AuditContext, Rule


        class Sleeper(Rule):
            rule_id = "sleeper"
            description = "Sleeps far past its deadline"

            def check(self, context):
                time.sleep(30)
                return RuleResult.ok("woke up")


        [outcome] = RuleExecutor(timeout=0.2).run([Sleeper()], AuditContext(environment="production"))
        print(outcome.message)
        """
    )
    source_root = str(Path(safeguard.__file__).resolve().parents[1])
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [source_root, env.get("PYTHONPATH")]))

    started = time.monotonic()
    completed = subprocess.run(
        [sys.executable, "-c", script],
        capture_output=True,
        text=True,
        env=env,
        cwd=tmp_path,
        timeout=20,
    )
    elapsed = time.monotonic() - started

    assert completed.returncode == 0, completed.stderr
    assert "timed out after 0.2s: sleeper" in completed.stdout
    assert elapsed < 10
