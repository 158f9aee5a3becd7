"""Command-line interface implementation for safeguard."""

from __future__ import annotations

import argparse
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Mapping, Sequence

from dotenv import dotenv_values

from ..adapters import PluginLoadError, RuleExecutor
from ..models import Outcome, Severity
from ..rules import DEFAULT_CONFIG, AuditContext, ConfigError, ConfigLoader, PolicyConfig, Rule
from ..rules import load_document
from ..rules.base import format_detail_lines
from ..service import AuditReport, AuditService
from .scaffold import ScaffoldError, write_rule

logger = logging.getLogger(__name__)

PROJECT_CONFIG = "safeguard.yaml"
DEFAULT_ENVIRONMENT = "production"

STATUS_LABELS = {
    Severity.CRITICAL: "CRIT",
    Severity.ERROR: "FAIL",
    Severity.WARNING: "WARN",
    Severity.INFO: "NOTE",
}
RULE_SEPARATOR = "=" * 39


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render rows as a simple text table for terminal output."""

    table = [tuple(headers), *(tuple(str(value) for value in row) for row in rows)]
    widths = [max(len(row[idx]) for row in table) for idx in range(len(headers))]

    def format_row(values: Sequence[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True))

    lines = [format_row(table[0])]
    lines.append("  ".join("=" * width for width in widths))
    for row in table[1:]:
        lines.append(format_row(row))
    return "\n".join(lines)


def render_report(
    report: AuditReport,
    *,
    rules: Mapping[str, Rule] | None = None,
    ci: bool = False,
    details: bool = False,
    show_all: bool = False,
) -> str:
    """Render an audit report as human-readable text."""

    lines: list[str] = []
    if not ci:
        lines.extend(["Safeguard Security Check", RULE_SEPARATOR, ""])
        lines.extend([f"Environment: {report.environment}", ""])

    for outcome in report.outcomes:
        if ci:
            status = "PASS" if outcome.passed else "FAIL"
            lines.append(f"[{status}] {outcome.rule_id}: {outcome.message}")
            continue

        lines.append(f"{_status_label(outcome)}  {outcome.message}")
        if show_all or (details and not outcome.passed):
            lines.extend(_detail_lines(outcome, rules))

    if not ci:
        lines.extend(["", RULE_SEPARATOR])
        summary = report.summary
        if summary.issues == 0 and summary.notices:
            lines.append(
                f"All checks passed! ({summary.passed} checks passed, {summary.notices} notices)"
            )
        elif summary.issues == 0:
            lines.append(f"All checks passed! ({summary.passed} checks)")
        else:
            lines.append(f"{summary.issues} issues found, {summary.passed} checks passed")
            if summary.errors and summary.warnings:
                lines.append(f"   ({summary.errors} errors/critical, {summary.warnings} warnings)")
            elif summary.errors:
                lines.append(f"   ({summary.errors} errors/critical)")
            else:
                lines.append(f"   ({summary.warnings} warnings)")

    return "\n".join(lines)


def _status_label(outcome: Outcome) -> str:
    if outcome.passed:
        return "PASS"
    return STATUS_LABELS[outcome.severity]


def _detail_lines(outcome: Outcome, rules: Mapping[str, Rule] | None) -> list[str]:
    rule = (rules or {}).get(outcome.rule_id)
    if rule is not None:
        try:
            return rule.format_details(outcome.result)
        except Exception:  # noqa: BLE001
            logger.debug("format_details failed for %s", outcome.rule_id, exc_info=True)
    return format_detail_lines(outcome.details)


def render_rule_list(
    rules: Sequence[Rule], policy: PolicyConfig, environment: str | None = None
) -> str:
    headers = ["Rule ID", "Description", "Severity", "Status"]
    if environment:
        headers.append(f"Applies to {environment}")

    rows: list[list[str]] = []
    for rule in rules:
        row = [
            rule.rule_id,
            _truncate(rule.description),
            rule.severity.value.upper(),
            "Enabled" if policy.is_enabled(rule.rule_id) else "Disabled",
        ]
        if environment:
            row.append("Yes" if rule.applies_to_environment(environment) else "No")
        rows.append(row)

    enabled = sum(1 for rule in rules if policy.is_enabled(rule.rule_id))
    lines = [
        render_table(headers, rows),
        "",
        "Summary:",
        f"  Total rules: {len(rules)}",
        f"  Enabled: {enabled}",
        f"  Disabled: {len(rules) - enabled}",
    ]
    return "\n".join(lines)


def _truncate(description: str, limit: int = 50) -> str:
    if len(description) > limit:
        return description[: limit - 3] + "..."
    return description


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number of seconds, got {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number of seconds, got {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(prog="safeguard", description="Security rule audit CLI")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v for info, -vv for debug).",
    )
    parser.add_argument(
        "--config",
        dest="config_files",
        action="append",
        type=Path,
        default=None,
        help=(
            "Configuration file (YAML or JSON) merged over the packaged defaults. "
            f"Defaults to ./{PROJECT_CONFIG} when present."
        ),
    )
    subparsers = parser.add_subparsers(dest="command")

    check_parser = subparsers.add_parser("check", help="Run security checks.")
    check_parser.add_argument(
        "--env",
        default=None,
        help=f"Environment to check. Defaults to $APP_ENV, then '{DEFAULT_ENVIRONMENT}'.",
    )
    check_parser.add_argument(
        "--env-rules",
        action="store_true",
        help="Only run the rules configured for the selected environment.",
    )
    check_parser.add_argument(
        "--format",
        choices=["cli", "json"],
        default="cli",
        help="Output format for check results.",
    )
    check_parser.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Exit with status 1 when error or critical checks fail.",
    )
    check_parser.add_argument(
        "--ci",
        action="store_true",
        help="Compact output for CI; implies --fail-on-error.",
    )
    check_parser.add_argument(
        "--details",
        action="store_true",
        help="Show detailed information for failed checks.",
    )
    check_parser.add_argument(
        "--show-all",
        action="store_true",
        help="Show detailed information for all checks.",
    )
    check_parser.add_argument(
        "--app-config",
        type=Path,
        default=None,
        help="YAML or JSON snapshot of the application configuration to audit.",
    )
    check_parser.add_argument(
        "--base-path",
        type=Path,
        default=None,
        help="Project root used for filesystem checks and the .env file.",
    )
    check_parser.add_argument(
        "--workers",
        type=positive_int,
        default=None,
        help="Run up to N rules concurrently.",
    )
    check_parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        help="Abandon a single rule after this many seconds.",
    )

    list_parser = subparsers.add_parser("list", help="List available security rules.")
    status_group = list_parser.add_mutually_exclusive_group()
    status_group.add_argument("--enabled", action="store_true", help="Show only enabled rules.")
    status_group.add_argument("--disabled", action="store_true", help="Show only disabled rules.")
    list_parser.add_argument(
        "--environment",
        "--env",
        dest="environment",
        default=None,
        help="Show rules that apply to a specific environment.",
    )
    list_parser.add_argument(
        "--severity",
        choices=[severity.value for severity in Severity],
        default=None,
        help="Show rules with a specific declared severity.",
    )
    list_parser.add_argument(
        "--base-path",
        type=Path,
        default=None,
        help="Project root used to resolve custom_rules_path.",
    )

    init_parser = subparsers.add_parser("init", help="Publish the default configuration file.")
    init_parser.add_argument("--path", type=Path, default=Path(PROJECT_CONFIG))
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file.")

    make_parser = subparsers.add_parser("make-rule", help="Create a custom rule skeleton.")
    make_parser.add_argument("name", help="CamelCase class name of the new rule.")
    make_parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Directory for the rule. Defaults to the configured custom_rules_path.",
    )
    make_parser.add_argument(
        "--severity",
        choices=[severity.value for severity in Severity],
        default=Severity.ERROR.value,
    )
    make_parser.add_argument("--force", action="store_true", help="Overwrite an existing file.")

    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def load_policy(config_files: Sequence[Path] | None) -> PolicyConfig:
    files = list(config_files or [])
    if not files and Path(PROJECT_CONFIG).exists():
        files.append(Path(PROJECT_CONFIG))
    return ConfigLoader().load(files)


def create_service(
    policy: PolicyConfig,
    *,
    base_path: Path | None = None,
    executor: RuleExecutor | None = None,
) -> AuditService:
    """Create an audit service holding built-in and custom rules."""

    return AuditService.from_config(policy, base_path=base_path, executor=executor)


def build_context(
    environment: str,
    policy: PolicyConfig,
    *,
    base_path: Path,
    app_config_path: Path | None = None,
) -> AuditContext:
    """Snapshot the configuration, environment variables and settings for a run."""

    app_config: dict[str, Any] = {}
    if app_config_path is not None:
        app_config = load_document(app_config_path)

    env: dict[str, str] = {}
    env_file = base_path / ".env"
    if env_file.is_file():
        env.update(
            {key: value for key, value in dotenv_values(env_file).items() if value is not None}
        )
    env.update(os.environ)

    return AuditContext(
        environment=environment,
        config=app_config,
        env=env,
        settings=dict(policy.settings),
        base_path=base_path,
    )


def _handle_check(args: argparse.Namespace, policy: PolicyConfig) -> int:
    environment = args.env or os.environ.get("APP_ENV") or DEFAULT_ENVIRONMENT
    base_path = (args.base_path or Path.cwd()).resolve()

    executor = None
    if args.workers is not None or args.timeout is not None:
        executor = RuleExecutor(
            max_workers=args.workers or policy.max_workers,
            timeout=args.timeout if args.timeout is not None else policy.rule_timeout,
        )

    service = create_service(policy, base_path=base_path, executor=executor)
    context = build_context(
        environment, policy, base_path=base_path, app_config_path=args.app_config
    )
    report = service.run(context, environment_scoped=args.env_rules)

    errors = report.summary.errors
    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False, default=str))
        return 1 if errors else 0

    rules = {rule.rule_id: rule for rule in service.registry.all()}
    print(
        render_report(
            report,
            rules=rules,
            ci=args.ci,
            details=args.details,
            show_all=args.show_all,
        )
    )
    if (args.ci or args.fail_on_error) and errors:
        return 1
    return 0


def _handle_list(args: argparse.Namespace, policy: PolicyConfig) -> int:
    service = create_service(policy, base_path=(args.base_path or Path.cwd()).resolve())

    enabled = True if args.enabled else False if args.disabled else None
    severity = Severity.parse(args.severity) if args.severity else None
    rules = service.list_rules(enabled=enabled, environment=args.environment, severity=severity)

    title = "Available Safeguard Rules"
    filters = []
    if args.environment:
        filters.append(f"{args.environment} environment")
    if severity is not None:
        filters.append(f"{severity.value} severity")
    if filters:
        title += " (" + ", ".join(filters) + ")"
    print(f"{title}:")
    print(RULE_SEPARATOR)

    if not rules:
        print("No rules found matching your criteria.")
        return 0

    print(render_rule_list(rules, policy, args.environment))
    return 0


def _handle_init(args: argparse.Namespace) -> int:
    destination: Path = args.path
    if destination.exists() and not args.force:
        print(f"Error: {destination} already exists (use --force to overwrite)")
        return 1

    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(DEFAULT_CONFIG, destination)
    print(f"Configuration published to {destination}")
    return 0


def _handle_make_rule(args: argparse.Namespace, policy: PolicyConfig) -> int:
    directory = args.path or Path(policy.custom_rules_path or "safeguard_rules")
    try:
        destination = write_rule(
            args.name,
            directory,
            severity=Severity.parse(args.severity),
            force=args.force,
        )
    except ScaffoldError as exc:
        print(f"Error: {exc}")
        return 1

    print(f"Rule created: {destination}")
    print(f"Enable it by adding it to the 'rules' section of {PROJECT_CONFIG}.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "init":
        return _handle_init(args)

    if args.command not in {"check", "list", "make-rule"}:
        parser.print_help()
        return 0

    try:
        policy = load_policy(args.config_files)
        if args.command == "check":
            return _handle_check(args, policy)
        if args.command == "list":
            return _handle_list(args, policy)
        return _handle_make_rule(args, policy)
    except (ConfigError, PluginLoadError) as exc:
        print(f"Error: {exc}")
        return 2


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
