"""Helpers for publishing safeguard reports to GitHub Actions surfaces."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Iterable, Mapping, Sequence, Tuple

ANNOTATION_LEVELS = {
    "critical": "error",
    "error": "error",
    "warning": "warning",
    "info": "notice",
}
STATUS_TITLES = {
    "passed": "Passed",
    "warning": "Passed with warnings",
    "failed": "Failed",
}


def _failed_results(report: Mapping[str, object]) -> list[Mapping[str, object]]:
    results: Sequence[Mapping[str, object]] = report.get("results") or []
    return [result for result in results if str(result.get("status", "")).lower() == "failed"]


def format_summary(report: Mapping[str, object]) -> str:
    """Render a Markdown job summary for the provided report."""

    summary: Mapping[str, object] = report.get("summary") or {}
    status = str(report.get("status") or "passed").lower()
    environment = report.get("environment")

    lines: list[str] = [
        "# Safeguard Security Report",
        "",
        f"**Status:** {STATUS_TITLES.get(status, status.title())}",
    ]
    if environment:
        lines.append(f"**Environment:** {environment}")
    lines.extend(
        [
            "",
            "| Result | Checks |",
            "| --- | ---: |",
            f"| Total | {int(summary.get('total', 0))} |",
            f"| Passed | {int(summary.get('passed', 0))} |",
            f"| Errors | {int(summary.get('errors', 0))} |",
            f"| Warnings | {int(summary.get('warnings', 0))} |",
        ]
    )

    failed = _failed_results(report)
    if failed:
        lines.extend(["", "## Failed checks", ""])
        display_limit = 10
        for result in failed[:display_limit]:
            severity = str(result.get("severity", "error")).lower()
            rule_id = str(result.get("rule", "")).strip()
            message = str(result.get("message", "")).strip()

            bullet = f"- **{severity.title()}**"
            if rule_id:
                bullet += f" `{rule_id}`"
            if message:
                bullet += f" - {message}"
            lines.append(bullet)

        remaining = len(failed) - display_limit
        if remaining > 0:
            lines.append(f"- ...and {remaining} more failed checks.")

    lines.append("")
    return "\n".join(lines)


def iter_annotations(report: Mapping[str, object]) -> Iterable[str]:
    """Generate GitHub Actions workflow command annotations for failed checks."""

    for result in _failed_results(report):
        severity = str(result.get("severity", "error")).lower()
        level = ANNOTATION_LEVELS.get(severity, "error")
        rule_id = str(result.get("rule", "")).strip()
        message = str(result.get("message", "")).strip()
        details: Mapping[str, object] = result.get("details") or {}

        file_path, line = _extract_annotation_location(details)

        title_parts = [severity.title()]
        if rule_id:
            title_parts.append(rule_id)
        title = " - ".join(title_parts)

        body = message or "Security check failed without message."
        recommendation = details.get("recommendation") if isinstance(details, Mapping) else None
        if recommendation:
            body += f"; Recommendation: {recommendation}"
        body = body.replace("%", "%25").replace("\r", "").replace("\n", "%0A")

        attributes: list[str] = []
        if file_path:
            attributes.append(f"file={file_path}")
        if line is not None:
            attributes.append(f"line={line}")
        attributes.append(f"title={title}")

        yield f"::{level} {','.join(attributes)}::{body}"


def _extract_annotation_location(details: Mapping[str, object]) -> Tuple[str | None, int | None]:
    """Extract a file and line from result details or their first finding."""

    if not isinstance(details, Mapping):
        return None, None

    file_path = _first_non_empty_str(details, "file", "file_path", "path")
    line = _coerce_int(details.get("line"))

    findings = details.get("findings")
    if not file_path and isinstance(findings, list) and findings:
        first = findings[0]
        if isinstance(first, Mapping):
            file_path = _first_non_empty_str(first, "file", "file_path", "path")
            if line is None:
                line = _coerce_int(first.get("line"))

    return file_path, line


def _first_non_empty_str(details: Mapping[str, object], *keys: str) -> str | None:
    for key in keys:
        value = details.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _coerce_int(value: object | None) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _load_report(path: Path) -> Mapping[str, object]:
    raw = path.read_text(encoding="utf-8-sig")
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc

    if not isinstance(data, Mapping):
        raise ValueError("Report JSON must be an object.")
    return data


def _write_summary(report: Mapping[str, object], destination: Path | None) -> None:
    if destination is None:
        return

    content = format_summary(report)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(content)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="safeguard-github",
        description="Publish safeguard results as GitHub job summary and annotations.",
    )
    parser.add_argument("report", type=Path, help="Path to a `safeguard check --format json` report.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional explicit path for the GitHub job summary output.",
    )

    args = parser.parse_args(argv)

    summary_path = args.summary_path
    if summary_path is None:
        summary_env = os.getenv("GITHUB_STEP_SUMMARY")
        if summary_env:
            summary_path = Path(summary_env)

    try:
        report = _load_report(args.report)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    _write_summary(report, summary_path)

    for command in iter_annotations(report):
        print(command)

    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
