from __future__ import annotations

from typing import Any

from safeguard.models import Severity
from safeguard.rules import AuditContext
from safeguard.rules.builtin import (
    DatabaseConnectionEncrypted,
    DatabaseCredentialsNotDefault,
    DatabaseQueryLogging,
)


def database_context(environment: str = "production", **config: Any) -> AuditContext:
    return AuditContext(environment=environment, config=config)


def with_connections(**connections: dict[str, Any]) -> AuditContext:
    return database_context(database={"connections": connections})


def test_strong_credentials_pass() -> None:
    context = with_connections(
        mysql={"driver": "mysql", "username": "app_user", "password": "Str0ng!Passw0rd#2024"}
    )

    assert DatabaseCredentialsNotDefault().check(context).passed


def test_default_root_credentials_are_critical() -> None:
    result = DatabaseCredentialsNotDefault().check(
        with_connections(mysql={"username": "root", "password": ""})
    )

    assert not result.passed
    assert result.severity is Severity.CRITICAL
    assert result.details["issues"][0]["type"] == "default_credentials"


def test_weak_and_short_passwords() -> None:
    weak = DatabaseCredentialsNotDefault().check(
        with_connections(mysql={"username": "app_user", "password": "password123"})
    )
    assert weak.severity is Severity.ERROR
    assert weak.details["issues"][0]["type"] == "weak_password"

    short = DatabaseCredentialsNotDefault().check(
        with_connections(mysql={"username": "app_user", "password": "Xy9!short"})
    )
    assert short.severity is Severity.WARNING
    assert short.details["issues"][0]["type"] == "short_password"


def test_multiple_vulnerabilities_reported_per_connection() -> None:
    result = DatabaseCredentialsNotDefault().check(
        with_connections(
            primary={"username": "root", "password": "root"},
            replica={"username": "reader", "password": "qwerty"},
            reporting={"username": "reports", "password": "Very$ecureReporting1"},
        )
    )

    assert result.details["vulnerable_connections"] == ["primary", "replica"]
    assert result.details["total_connections"] == 3
    assert result.severity is Severity.CRITICAL


def test_encrypted_connections_pass() -> None:
    context = with_connections(
        mysql={"driver": "mysql", "options": {"ssl_ca": "/etc/ssl/ca.pem"}},
        pgsql={"driver": "pgsql", "sslmode": "verify-full"},
        sqlite={"driver": "sqlite"},
        sqlsrv={"driver": "sqlsrv", "encrypt": True},
    )
    result = DatabaseConnectionEncrypted().check(context)

    assert result.passed
    assert result.details["total_connections"] == 4


def test_unencrypted_connections_are_critical() -> None:
    context = with_connections(
        mysql={"driver": "mysql"},
        pgsql={"driver": "pgsql", "sslmode": "prefer"},
        sqlite={"driver": "sqlite"},
    )
    result = DatabaseConnectionEncrypted().check(context)

    assert not result.passed
    assert result.severity is Severity.CRITICAL
    assert [entry["connection"] for entry in result.details["vulnerable_connections"]] == [
        "mysql",
        "pgsql",
    ]
    assert result.details["secure_connections"] == ["sqlite"]


def test_query_logging_passes_without_debugging_tools() -> None:
    context = database_context(
        debugbar={"enabled": False}, telescope={"enabled": False}, database={"log": False}
    )

    assert DatabaseQueryLogging().check(context).passed
    assert DatabaseQueryLogging().check(database_context(environment="local")).passed


def test_debugging_tools_in_production() -> None:
    result = DatabaseQueryLogging().check(
        database_context(debugbar={"enabled": True}, telescope={"enabled": True})
    )

    assert not result.passed
    assert result.severity is Severity.CRITICAL
    assert result.message == "Database query logging configuration has security implications"
    assert [issue["type"] for issue in result.details["issues"]] == [
        "debugbar_enabled",
        "telescope_enabled",
    ]


def test_query_log_alone_in_production_is_an_error() -> None:
    result = DatabaseQueryLogging().check(database_context(database={"log": True}))

    assert result.severity is Severity.ERROR
    assert result.details["issues"][0]["type"] == "query_logging_in_production"


def test_debugging_tools_in_local_are_warnings() -> None:
    result = DatabaseQueryLogging().check(
        database_context(environment="local", debugbar={"enabled": True}, telescope={"enabled": True})
    )

    assert result.severity is Severity.WARNING
    assert [issue["severity"] for issue in result.details["issues"]] == ["warning", "info"]
