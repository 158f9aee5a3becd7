"""Template rendering for ``safeguard make-rule``."""

from __future__ import annotations

import re
from pathlib import Path

from ..models import Severity

RULE_TEMPLATE = '''"""Custom safeguard rule: {rule_id}."""

from safeguard.models import RuleResult, Severity
from safeguard.rules import AuditContext, Rule


class {class_name}(Rule):
    rule_id = "{rule_id}"
    description = "Describe what {class_name} verifies"
    severity = Severity.{severity_name}

    def check(self, context: AuditContext) -> RuleResult:
        value = context.config_value("app.example")
        if value is None:
            return RuleResult.fail(
                "app.example is not configured",
                Severity.{severity_name},
                {{"recommendation": "Set app.example in the application config"}},
            )

        return RuleResult.ok("app.example is configured")
'''

_CLASS_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")


class ScaffoldError(RuntimeError):
    """Raised when a rule skeleton cannot be written."""


def rule_id_for(class_name: str) -> str:
    """``DatabaseSecurityRule`` -> ``database-security-rule``."""

    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", class_name).lower()


def module_name_for(class_name: str) -> str:
    return rule_id_for(class_name).replace("-", "_")


def render_rule(class_name: str, severity: Severity = Severity.ERROR) -> str:
    if not _CLASS_NAME.match(class_name):
        raise ScaffoldError(f"Rule name must be a CamelCase identifier: {class_name}")

    return RULE_TEMPLATE.format(
        class_name=class_name,
        rule_id=rule_id_for(class_name),
        severity_name=severity.name,
    )


def write_rule(
    class_name: str,
    directory: Path,
    *,
    severity: Severity = Severity.ERROR,
    force: bool = False,
) -> Path:
    """Write a rule skeleton into ``directory`` and return its path."""

    content = render_rule(class_name, severity)
    destination = directory / f"{module_name_for(class_name)}.py"
    if destination.exists() and not force:
        raise ScaffoldError(f"Rule file already exists: {destination}")

    directory.mkdir(parents=True, exist_ok=True)
    init_file = directory / "__init__.py"
    if not init_file.exists():
        init_file.write_text('"""Project-specific safeguard rules."""\n', encoding="utf-8")

    destination.write_text(content, encoding="utf-8")
    return destination
