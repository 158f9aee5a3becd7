"""Rules inspecting application configuration and environment variables."""

from __future__ import annotations

from typing import Any, List, Optional

from ...models import RuleResult, Severity
from ..base import AuditContext, Rule

_TRUTHY = {"1", "true", "yes", "on"}

# Environment variables that may instead be supplied through the app config.
CONFIG_KEYS = {
    "APP_NAME": "app.name",
    "APP_ENV": "app.env",
    "APP_KEY": "app.key",
    "APP_DEBUG": "app.debug",
    "APP_URL": "app.url",
    "DB_CONNECTION": "database.default",
    "DB_HOST": "database.host",
    "DB_PORT": "database.port",
    "DB_DATABASE": "database.database",
    "DB_USERNAME": "database.username",
    "DB_PASSWORD": "database.password",
}

SUSPICIOUS_KEYS = {
    "SomeRandomString",
    "YourAppKeyHere",
    "changeme",
    "base64:AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA=",
}


def lookup(context: AuditContext, env_var: str) -> Optional[Any]:
    """Return the value for ``env_var`` from the app config or the environment."""

    config_key = CONFIG_KEYS.get(env_var)
    if config_key:
        value = context.config_value(config_key)
        if value is not None:
            return value
    value = context.env.get(env_var)
    if value is None or value == "":
        return None
    return value


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


class AppKeyIsSet(Rule):
    rule_id = "app-key-is-set"
    description = "Verifies that the application encryption key is set and not a placeholder"
    severity = Severity.CRITICAL

    def check(self, context: AuditContext) -> RuleResult:
        app_key = lookup(context, "APP_KEY")

        if not app_key:
            return RuleResult.critical(
                "APP_KEY is not set - application encryption will not work",
                {
                    "recommendation": "Generate a random application key and store it in APP_KEY",
                    "security_impact": "Without APP_KEY, sessions and encrypted data cannot be secured",
                },
            )

        app_key = str(app_key)
        if app_key == "base64:" or len(app_key) < 10:
            return RuleResult.fail(
                "APP_KEY appears to be invalid or too short",
                Severity.ERROR,
                {
                    "current_key_length": len(app_key),
                    "recommendation": "Generate a new key of at least 32 random bytes",
                },
            )

        if app_key in SUSPICIOUS_KEYS:
            return RuleResult.fail(
                "APP_KEY appears to be a default/example value",
                Severity.ERROR,
                {"recommendation": "Generate a unique application key"},
            )

        return RuleResult.ok(
            "APP_KEY is properly configured",
            {
                "key_length": len(app_key),
                "has_base64_prefix": app_key.startswith("base64:"),
            },
        )


class AppDebugFalseInProduction(Rule):
    rule_id = "app-debug-false-in-production"
    description = "Ensures debug mode is disabled in production environments"
    severity = Severity.CRITICAL
    environments = ("production", "staging", "prod")

    def check(self, context: AuditContext) -> RuleResult:
        environment = context.environment
        debug_enabled = as_bool(lookup(context, "APP_DEBUG"))

        if environment == "production" and debug_enabled:
            return RuleResult.critical(
                "APP_DEBUG is enabled in production environment",
                {
                    "current_env": environment,
                    "debug_value": debug_enabled,
                    "recommendation": "Set APP_DEBUG=false for production",
                },
            )

        if debug_enabled and environment in ("staging", "prod"):
            return RuleResult.warning(
                f"APP_DEBUG is enabled in {environment} environment",
                {"current_env": environment, "debug_value": debug_enabled},
            )

        return RuleResult.ok(
            "APP_DEBUG is properly configured for this environment",
            {
                "current_environment": environment,
                "debug_status": "enabled" if debug_enabled else "disabled",
            },
        )


class EnvHasAllRequiredKeys(Rule):
    rule_id = "env-has-all-required-keys"
    description = "Verifies that all required environment variables are present"
    severity = Severity.ERROR

    def check(self, context: AuditContext) -> RuleResult:
        required: List[str] = [str(name) for name in context.setting("required_env_vars", []) or []]
        missing = [name for name in required if lookup(context, name) is None]

        if missing:
            return RuleResult.fail(
                "Missing required environment variables: " + ", ".join(missing),
                Severity.ERROR,
                {
                    "missing_variables": missing,
                    "total_required": len(required),
                    "recommendation": "Add these variables to your .env file",
                },
            )

        return RuleResult.ok(
            "All required environment variables are present",
            {"required_variables": required, "all_present": True},
        )
