"""Rules inspecting database connection settings."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from ...models import RuleResult, Severity
from ..base import AuditContext, Rule

DEFAULT_CREDENTIALS = {
    "root": {"", "root", "password", "admin", "toor"},
    "admin": {"admin", "password", "", "123456"},
    "sa": {"", "sa", "password", "admin"},
    "postgres": {"", "postgres", "password"},
    "mysql": {"", "mysql", "password"},
    "test": {"test", "password", ""},
    "demo": {"demo", "password", ""},
    "guest": {"guest", "password", ""},
}

WEAK_PASSWORDS = {
    "password", "123456", "admin", "root", "test", "demo",
    "guest", "user", "pass", "1234", "12345", "123456789",
    "qwerty", "abc123", "password123", "admin123",
}

MIN_PASSWORD_LENGTH = 12
SECURE_PGSQL_MODES = {"require", "verify-ca", "verify-full"}
ENCRYPTION_ISSUES = {
    "mysql": "No SSL options configured (missing sslmode or SSL attributes)",
    "pgsql": "SSL mode not set to require, verify-ca, or verify-full",
    "sqlsrv": "Encryption not enabled or TrustServerCertificate not properly configured",
}


def connections(context: AuditContext) -> Mapping[str, Mapping[str, Any]]:
    """Return ``database.connections`` keeping only mapping entries."""

    value = context.config_value("database.connections", {}) or {}
    if not isinstance(value, Mapping):
        return {}
    return {str(name): config for name, config in value.items() if isinstance(config, Mapping)}


class DatabaseCredentialsNotDefault(Rule):
    rule_id = "database-credentials-not-default"
    description = "Detects default or weak database credentials that pose security risks"
    severity = Severity.CRITICAL

    def check(self, context: AuditContext) -> RuleResult:
        configured = connections(context)
        issues: List[Dict[str, Any]] = []

        for name, config in configured.items():
            username = str(config.get("username") or "")
            password = str(config.get("password") or "")

            if password in DEFAULT_CREDENTIALS.get(username.lower(), ()):
                issue = (
                    "default_credentials",
                    "critical",
                    f"Default credentials detected for user '{username}'",
                )
            elif password.lower() in WEAK_PASSWORDS:
                issue = ("weak_password", "error", f"Weak password detected for user '{username}'")
            elif 0 < len(password) < MIN_PASSWORD_LENGTH:
                issue = (
                    "short_password",
                    "warning",
                    f"Password too short for user '{username}' "
                    f"(minimum {MIN_PASSWORD_LENGTH} characters recommended)",
                )
            else:
                continue

            kind, level, message = issue
            issues.append(
                {
                    "connection": name,
                    "type": kind,
                    "username": username,
                    "severity": level,
                    "message": message,
                }
            )

        if issues:
            levels = {issue["severity"] for issue in issues}
            severity = (
                Severity.CRITICAL
                if "critical" in levels
                else Severity.ERROR if "error" in levels else Severity.WARNING
            )
            return RuleResult.fail(
                "Vulnerable database credentials detected",
                severity,
                {
                    "vulnerable_connections": [issue["connection"] for issue in issues],
                    "issues": issues,
                    "total_connections": len(configured),
                    "recommendations": [
                        "Use strong, unique passwords for all database users",
                        "Avoid default usernames like root, admin, sa",
                        "Use environment variables for credentials",
                        "Implement password rotation policies",
                    ],
                },
            )

        return RuleResult.ok(
            "Database credentials appear secure",
            {"checked_connections": len(configured), "all_secure": True},
        )


class DatabaseConnectionEncrypted(Rule):
    rule_id = "database-connection-encrypted"
    description = "Verifies that database connections use SSL/TLS encryption"
    severity = Severity.CRITICAL

    def check(self, context: AuditContext) -> RuleResult:
        configured = connections(context)
        vulnerable: List[Dict[str, str]] = []
        secure: List[str] = []

        for name, config in configured.items():
            if is_connection_encrypted(config):
                secure.append(name)
                continue
            driver = str(config.get("driver") or "unknown")
            vulnerable.append(
                {
                    "connection": name,
                    "driver": driver,
                    "reason": ENCRYPTION_ISSUES.get(
                        driver, "Unknown driver or encryption not configured"
                    ),
                }
            )

        if vulnerable:
            return RuleResult.critical(
                "Database connections without proper encryption detected",
                {
                    "vulnerable_connections": vulnerable,
                    "secure_connections": secure,
                    "recommendation": "Enable SSL/TLS for all database connections in production environments",
                    "security_impact": "Unencrypted database connections expose sensitive data "
                    "to network interception",
                },
            )

        return RuleResult.ok(
            "All database connections are properly encrypted",
            {"secure_connections": secure, "total_connections": len(configured)},
        )


def is_connection_encrypted(config: Mapping[str, Any]) -> bool:
    driver = config.get("driver")
    if driver == "sqlite":
        return True
    if driver == "mysql":
        options = config.get("options") or {}
        has_ssl_option = isinstance(options, Mapping) and any(
            "ssl" in str(key).lower() for key in options
        )
        return has_ssl_option or config.get("sslmode") == "require"
    if driver == "pgsql":
        return config.get("sslmode") in SECURE_PGSQL_MODES
    if driver == "sqlsrv":
        return config.get("encrypt") is True or config.get("TrustServerCertificate", True) is False
    return False


class DatabaseQueryLogging(Rule):
    rule_id = "database-query-logging"
    description = "Verifies that database query logging is appropriately configured for security"
    severity = Severity.WARNING

    def check(self, context: AuditContext) -> RuleResult:
        environment = context.environment
        production = environment == "production"
        query_logging = bool(context.config_value("database.log", False))
        issues: List[Dict[str, Any]] = []
        recommendations: List[str] = []

        if production and query_logging:
            issues.append(
                {
                    "type": "query_logging_in_production",
                    "severity": "warning",
                    "message": "Database query logging is enabled in production environment",
                    "risk": "Query logs may contain sensitive data and impact performance",
                }
            )
            recommendations.append(
                "Disable query logging in production or ensure logs are properly secured"
            )

        if context.config_value("debugbar.enabled", False):
            issues.append(
                {
                    "type": "debugbar_enabled",
                    "severity": "critical" if production else "warning",
                    "message": "Debug toolbar is enabled which logs database queries",
                    "risk": "The toolbar exposes sensitive information including database queries",
                }
            )
            recommendations.append("Disable the debug toolbar in production environments")

        if context.config_value("telescope.enabled", False):
            issues.append(
                {
                    "type": "telescope_enabled",
                    "severity": "critical" if production else "info",
                    "message": "Request inspector is enabled which records database queries",
                    "risk": "The inspector stores detailed application data including sensitive queries",
                }
            )
            recommendations.append(
                "Secure inspector access or disable in production"
                if production
                else "Ensure inspector data is regularly cleaned and access is restricted"
            )

        if issues:
            if production:
                critical = any(issue["severity"] == "critical" for issue in issues)
                severity = Severity.CRITICAL if critical else Severity.ERROR
            else:
                severity = Severity.WARNING
            return RuleResult.fail(
                "Database query logging configuration has security implications",
                severity,
                {
                    "environment": environment,
                    "issues": issues,
                    "recommendations": recommendations,
                    "query_logging_enabled": query_logging,
                },
            )

        return RuleResult.ok(
            "Database query logging is appropriately configured",
            {"environment": environment, "query_logging_enabled": query_logging},
        )
