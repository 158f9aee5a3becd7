"""Tests for GitHub Actions reporting helpers."""

from __future__ import annotations

import json
from pathlib import Path

from safeguard.cli.github_reporting import format_summary, iter_annotations, main


def _build_report() -> dict[str, object]:
    return {
        "status": "failed",
        "environment": "production",
        "summary": {"total": 3, "passed": 1, "errors": 1, "warnings": 1, "notices": 0},
        "results": [
            {
                "rule": "app-key-is-set",
                "status": "passed",
                "message": "Application key is properly set",
                "severity": "critical",
                "details": {},
            },
            {
                "rule": "no-secrets-in-code",
                "status": "failed",
                "message": "Potential secrets found in code",
                "severity": "critical",
                "details": {
                    "findings": [{"file": "app/settings.py", "line": 12, "pattern": "*_KEY"}],
                    "recommendation": "Move secrets to environment variables",
                },
            },
            {
                "rule": "env-file-permissions",
                "status": "failed",
                "message": ".env file has insecure permissions",
                "severity": "warning",
                "details": {"file_path": ".env"},
            },
        ],
    }


def test_format_summary_includes_key_sections() -> None:
    """Rendered summaries should include status, counts and failed checks."""

    summary = format_summary(_build_report())

    assert "# Safeguard Security Report" in summary
    assert "**Status:** Failed" in summary
    assert "**Environment:** production" in summary
    assert "| Errors | 1 |" in summary
    assert "- **Critical** `no-secrets-in-code` - Potential secrets found in code" in summary
    assert "app-key-is-set" not in summary


def test_iter_annotations_maps_severity_levels() -> None:
    """Workflow commands should map severities to the correct annotation levels."""

    annotations = list(iter_annotations(_build_report()))

    assert len(annotations) == 2
    assert annotations[0] == (
        "::error file=app/settings.py,line=12,title=Critical - no-secrets-in-code::"
        "Potential secrets found in code; Recommendation: Move secrets to environment variables"
    )
    assert annotations[1].startswith("::warning file=.env,title=Warning - env-file-permissions::")


def test_main_writes_summary_and_prints_annotations(tmp_path: Path, capsys) -> None:
    report_path = tmp_path / "report.json"
    report_path.write_text(json.dumps(_build_report()), encoding="utf-8")
    summary_path = tmp_path / "summary.md"

    assert main([str(report_path), "--summary-path", str(summary_path)]) == 0

    assert "# Safeguard Security Report" in summary_path.read_text(encoding="utf-8")
    assert "::error" in capsys.readouterr().out


def test_main_rejects_invalid_report(tmp_path: Path) -> None:
    report_path = tmp_path / "report.json"
    report_path.write_text("{not json", encoding="utf-8")

    assert main([str(report_path)]) == 2
