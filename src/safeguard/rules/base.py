"""Rule contract and the read-only context handed to every check."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, List, Mapping, Optional, Tuple

from ..models import RuleResult, Severity

_MISSING = object()

DETAIL_LABELS = {
    "current_setting": "Current Setting",
    "recommendation": "Recommendation",
    "security_impact": "Security Impact",
    "issues": "Issues Found",
    "recommendations": "Recommendations",
    "file_path": "File Path",
    "current_permissions": "Current Permissions",
    "recommended_permissions": "Recommended Permissions",
}


@dataclass(frozen=True)
class AuditContext:
    """Snapshot of the state rules are allowed to inspect."""

    environment: str
    config: Mapping[str, Any] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)
    settings: Mapping[str, Any] = field(default_factory=dict)
    base_path: Path = field(default_factory=Path.cwd)

    def config_value(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``app.debug`` in the app configuration."""

        current: Any = self.config
        for part in key.split("."):
            if not isinstance(current, Mapping):
                return default
            current = current.get(part, _MISSING)
            if current is _MISSING:
                return default
        return current

    def setting(self, name: str, default: Any = None) -> Any:
        return self.settings.get(name, default)

    def path(self, relative: str | Path) -> Path:
        candidate = Path(relative)
        if candidate.is_absolute():
            return candidate
        return self.base_path / candidate


def format_detail_lines(details: Mapping[str, Any]) -> List[str]:
    """Render result details as indented text lines for terminal output."""

    lines: List[str] = []
    for key, value in details.items():
        label = DETAIL_LABELS.get(key) or key.replace("_", " ").title()
        if isinstance(value, (list, tuple)):
            lines.append(f"   {label}:")
            for item in value:
                if isinstance(item, Mapping):
                    lines.extend(_format_item(item))
                elif item not in ("", None):
                    lines.append(f"     - {item}")
        elif isinstance(value, Mapping):
            lines.append(f"   {label}:")
            lines.extend(_format_item(value))
        else:
            lines.append(f"   {label}: {value}")
    return lines


def _format_item(item: Mapping[str, Any]) -> List[str]:
    # Structured issues carry their own type and severity.
    if "type" in item and "severity" in item:
        kind = str(item["type"]).replace("_", " ").title()
        lines = [f"     [{str(item['severity']).upper()}] {kind}"]
        for key in ("message", "reason", "risk"):
            if item.get(key):
                lines.append(f"       {key.title()}: {item[key]}")
        return lines

    parts = [
        f"{key}: {value}"
        for key, value in item.items()
        if isinstance(value, (str, int, float)) and not isinstance(value, bool)
    ]
    return [f"     - {' | '.join(parts)}"] if parts else []


class Rule(ABC):
    """Base class every security rule implements.

    Subclasses declare ``rule_id``, ``description`` and ``severity`` as class
    attributes and implement :meth:`check`. The registry, not the rule,
    enforces id uniqueness.
    """

    rule_id: ClassVar[str] = ""
    description: ClassVar[str] = ""
    severity: ClassVar[Severity] = Severity.ERROR
    environments: ClassVar[Optional[Tuple[str, ...]]] = None

    def applies_to_environment(self, environment: str) -> bool:
        """Return ``True`` when the rule can meaningfully run in ``environment``."""

        if self.environments is None:
            return True
        return environment in self.environments

    @abstractmethod
    def check(self, context: AuditContext) -> RuleResult:
        """Inspect ``context`` and return the result of the check."""

    # ------------------------------------------------------------------
    def format_details(self, result: RuleResult) -> List[str]:
        """Return the lines shown under this rule's result; override for custom output."""

        return format_detail_lines(result.details)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.rule_id!r}>"
