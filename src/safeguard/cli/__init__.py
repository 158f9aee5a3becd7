"""Command-line interface package for safeguard."""

from .app import (
    PROJECT_CONFIG,
    build_context,
    build_parser,
    create_service,
    load_policy,
    main,
    render_report,
    render_rule_list,
    run,
)

__all__ = [
    "PROJECT_CONFIG",
    "build_context",
    "build_parser",
    "create_service",
    "load_policy",
    "main",
    "render_report",
    "render_rule_list",
    "run",
]
