"""Rules scanning the project tree."""

from __future__ import annotations

import os
import re
import stat
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ...models import RuleResult, Severity
from ..base import AuditContext, Rule

SKIPPED_DIRECTORIES = {"vendor", "node_modules", ".git", ".venv", "venv", "__pycache__"}
COMMENT_PREFIXES = ("#", "//", "/*", "*")


class EnvFilePermissions(Rule):
    rule_id = "env-file-permissions"
    description = "Checks that the .env file is not readable by other users"
    severity = Severity.ERROR

    def applies_to_environment(self, environment: str) -> bool:
        return os.name != "nt"

    def check(self, context: AuditContext) -> RuleResult:
        env_file = context.path(".env")

        if not env_file.exists():
            return RuleResult.warning(
                ".env file not found",
                {
                    "file_path": str(env_file),
                    "recommendation": "Create a .env file from .env.example",
                },
            )

        mode = stat.S_IMODE(env_file.stat().st_mode)
        permissions = format(mode, "03o")

        issues: List[str] = []
        if mode & stat.S_IROTH:
            issues.append("File is world-readable")
        if mode & stat.S_IWOTH:
            issues.append("File is world-writable")

        if issues:
            return RuleResult.warning(
                "Environment file has overly permissive permissions",
                {
                    "issues": issues,
                    "current_permissions": permissions,
                    "recommended_permissions": "600 (rw-------)",
                    "security_impact": "Environment variables may be readable by other users",
                    "recommendation": f"Run: chmod 600 {env_file}",
                },
            )

        return RuleResult.ok(
            "Environment file permissions are secure",
            {"permissions": permissions, "file_path": str(env_file)},
        )


def compile_secret_pattern(pattern: str) -> re.Pattern[str]:
    """Turn a variable-name glob such as ``*_KEY`` into an assignment regex."""

    name = re.escape(pattern).replace(r"\*", r"\w*")
    return re.compile(
        r"\$?\b" + name + r"\b['\"]?\s*(?:=|:|=>)\s*['\"][^'\"\s]+['\"]",
        re.IGNORECASE,
    )


class NoSecretsInCode(Rule):
    rule_id = "no-secrets-in-code"
    description = "Scans the codebase for potentially hardcoded secrets"
    severity = Severity.CRITICAL

    def check(self, context: AuditContext) -> RuleResult:
        scan_paths: Sequence[str] = context.setting("scan_paths", []) or []
        patterns: Sequence[str] = context.setting("secret_patterns", []) or []
        extensions = {str(ext).lower() for ext in context.setting("scan_extensions", []) or []}
        compiled = [(pattern, compile_secret_pattern(pattern)) for pattern in patterns]

        findings: List[Dict[str, Any]] = []
        for scan_path in scan_paths:
            root = context.path(scan_path)
            if not root.is_dir():
                continue
            for file_path in _iter_files(root, extensions):
                findings.extend(self._scan_file(file_path, context.base_path, compiled))

        if findings:
            return RuleResult.critical(
                "Potential secrets found in code files",
                {
                    "findings": findings,
                    "recommendation": "Move secrets to environment variables and remove them from code",
                },
            )

        return RuleResult.ok(
            "No hardcoded secrets detected in codebase",
            {"scanned_paths": list(scan_paths), "patterns_checked": list(patterns)},
        )

    def _scan_file(
        self,
        file_path: Path,
        base_path: Path,
        patterns: Sequence[Tuple[str, re.Pattern[str]]],
    ) -> List[Dict[str, Any]]:
        try:
            content = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return []

        try:
            display_path = str(file_path.relative_to(base_path))
        except ValueError:
            display_path = str(file_path)

        findings: List[Dict[str, Any]] = []
        for line_number, line in enumerate(content.splitlines(), start=1):
            matched = _matching_pattern(line, patterns)
            if matched is not None:
                findings.append({"file": display_path, "line": line_number, "pattern": matched})
        return findings


def _matching_pattern(
    line: str, patterns: Sequence[Tuple[str, re.Pattern[str]]]
) -> Optional[str]:
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_PREFIXES):
        return None
    for pattern, regex in patterns:
        if regex.search(stripped):
            return pattern
    return None


def _iter_files(root: Path, extensions: set[str]) -> Iterator[Path]:
    for directory, subdirectories, files in os.walk(root):
        subdirectories[:] = sorted(name for name in subdirectories if name not in SKIPPED_DIRECTORIES)
        for name in sorted(files):
            path = Path(directory) / name
            if not extensions or path.suffix.lower() in extensions:
                yield path
