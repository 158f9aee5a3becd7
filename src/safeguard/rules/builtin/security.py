"""Rules inspecting request protection and session settings."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from ...models import RuleResult, Severity
from ..base import AuditContext, Rule
from .configuration import as_bool, lookup

SECURE_SESSION_DRIVERS = {"database", "redis", "memcached", "dynamodb"}
DRIVER_RISKS = {
    "cookie": "Session data stored in user-controlled cookies, highly vulnerable",
    "file": "Session files on disk, vulnerable if file system is compromised",
    "array": "Sessions only in memory, lost between requests (testing only)",
}
MAX_SESSION_LIFETIME = 480
MIN_SESSION_LIFETIME = 30


class CsrfEnabled(Rule):
    rule_id = "csrf-enabled"
    description = "Verifies that CSRF protection is enabled"
    severity = Severity.ERROR

    def check(self, context: AuditContext) -> RuleResult:
        middleware = context.config_value("app.middleware_groups.web", []) or []
        if isinstance(middleware, str):
            middleware = [middleware]

        if not any("csrf" in str(entry).lower() for entry in middleware):
            return RuleResult.fail(
                "CSRF protection is disabled",
                Severity.ERROR,
                {
                    "current_setting": "disabled",
                    "recommendation": "Enable CSRF protection in your application configuration",
                    "security_impact": "Without CSRF protection, your application is vulnerable "
                    "to cross-site request forgery attacks",
                },
            )

        return RuleResult.ok("CSRF protection is properly enabled", {"csrf_status": "enabled"})


class SessionSecuritySettings(Rule):
    """Checks driver, lifetime, cookie flags, encryption and regeneration of sessions.

    Every problem is recorded as an issue with its own severity; the result
    severity is ``critical`` when any issue is, ``error`` for error issues in
    production and ``warning`` otherwise.
    """

    rule_id = "session-security-settings"
    description = "Verifies that session security settings are properly configured"
    severity = Severity.ERROR

    def check(self, context: AuditContext) -> RuleResult:
        environment = context.environment
        issues: List[Dict[str, Any]] = []
        recommendations: List[str] = []
        session: Dict[str, Any] = {}

        self._check_driver(context, issues, recommendations, session)
        self._check_lifetime(context, issues, recommendations, session)
        self._check_cookie(context, environment, issues, recommendations, session)
        self._check_encryption(context, issues, recommendations, session)
        self._check_regeneration(context, issues, recommendations, session)

        if issues:
            return RuleResult.fail(
                "Session security configuration issues detected",
                _overall_severity(issues, environment),
                {
                    "issues": issues,
                    "recommendations": recommendations,
                    "session_config": session,
                    "environment": environment,
                },
            )

        return RuleResult.ok(
            "Session security settings are properly configured",
            {"session_config": session, "environment": environment},
        )

    # ------------------------------------------------------------------
    def _check_driver(self, context, issues, recommendations, session) -> None:
        driver = context.config_value("session.driver")
        session["driver"] = driver

        if driver in DRIVER_RISKS:
            issues.append(
                {
                    "type": "insecure_session_driver",
                    "severity": "critical" if driver == "cookie" else "warning",
                    "message": f"Insecure session driver: {driver}",
                    "risk": DRIVER_RISKS[driver],
                }
            )
            recommendations.append(
                "Switch to a more secure session driver like database, redis, or memcached"
            )
        session["driver_security"] = "secure" if driver in SECURE_SESSION_DRIVERS else "insecure"

    def _check_lifetime(self, context, issues, recommendations, session) -> None:
        lifetime = context.config_value("session.lifetime", 120)
        session["lifetime"] = lifetime
        try:
            minutes = int(lifetime)
        except (TypeError, ValueError):
            return

        if minutes > MAX_SESSION_LIFETIME:
            issues.append(
                {
                    "type": "excessive_session_lifetime",
                    "severity": "warning",
                    "message": f"Session lifetime too long: {minutes} minutes",
                    "risk": "Long session lifetimes increase risk of session hijacking",
                }
            )
            recommendations.append("Reduce session lifetime to 480 minutes (8 hours) or less")
        elif minutes < MIN_SESSION_LIFETIME:
            issues.append(
                {
                    "type": "very_short_session_lifetime",
                    "severity": "info",
                    "message": f"Very short session lifetime: {minutes} minutes",
                }
            )
            recommendations.append(
                "Consider if 30+ minute session lifetime would improve user experience"
            )

    def _check_cookie(self, context, environment, issues, recommendations, session) -> None:
        secure = as_bool(context.config_value("session.secure"))
        session["secure"] = secure
        if environment == "production" and not secure:
            issues.append(
                {
                    "type": "insecure_session_cookie",
                    "severity": "critical",
                    "message": "Session cookies not marked as secure in production",
                    "risk": "Session cookies can be intercepted over unencrypted connections",
                }
            )
            recommendations.append("Set SESSION_SECURE_COOKIE=true in production environment")

        http_only = as_bool(context.config_value("session.http_only", True))
        session["http_only"] = http_only
        if not http_only:
            issues.append(
                {
                    "type": "session_cookie_not_http_only",
                    "severity": "error",
                    "message": "Session cookies not marked as HttpOnly",
                    "risk": "Session cookies vulnerable to XSS attacks",
                }
            )
            recommendations.append("Enable HttpOnly for session cookies")

        same_site = context.config_value("session.same_site")
        session["same_site"] = same_site
        if same_site not in ("strict", "lax"):
            issues.append(
                {
                    "type": "weak_same_site_policy",
                    "severity": "warning",
                    "message": f"Weak SameSite cookie policy: {same_site}",
                    "risk": "Cookies vulnerable to CSRF attacks",
                }
            )
            recommendations.append('Set SameSite to "strict" or "lax" for better CSRF protection')

    def _check_encryption(self, context, issues, recommendations, session) -> None:
        encrypt = as_bool(context.config_value("session.encrypt", False))
        session["encrypt"] = encrypt
        if not encrypt:
            issues.append(
                {
                    "type": "session_not_encrypted",
                    "severity": "warning",
                    "message": "Session data not encrypted",
                    "risk": "Session data can be read if storage is compromised",
                }
            )
            recommendations.append("Enable session encryption for sensitive applications")
        elif not lookup(context, "APP_KEY"):
            issues.append(
                {
                    "type": "missing_encryption_key",
                    "severity": "critical",
                    "message": "Session encryption enabled but APP_KEY not set",
                    "risk": "Application will fail to encrypt/decrypt session data",
                }
            )
            recommendations.append("Generate and set APP_KEY")

    def _check_regeneration(self, context, issues, recommendations, session) -> None:
        guards = context.config_value("auth.guards", {}) or {}
        regenerates = isinstance(guards, Mapping) and any(
            isinstance(guard, Mapping) and guard.get("driver") == "session"
            for guard in guards.values()
        )
        session["regenerate_on_login"] = regenerates
        if not regenerates:
            issues.append(
                {
                    "type": "no_session_regeneration",
                    "severity": "warning",
                    "message": "Session ID not regenerated on login",
                    "risk": "Vulnerable to session fixation attacks",
                }
            )
            recommendations.append("Implement session regeneration on user authentication")

        lottery = context.config_value("session.lottery", [2, 100])
        session["lottery"] = lottery
        if isinstance(lottery, (list, tuple)) and len(lottery) == 2 and lottery[1]:
            percentage = lottery[0] / lottery[1] * 100
            if percentage < 1:
                issues.append(
                    {
                        "type": "low_session_gc_probability",
                        "severity": "warning",
                        "message": f"Low session garbage collection probability: {percentage:g}%",
                        "risk": "Old sessions may accumulate and not be cleaned up regularly",
                    }
                )
                recommendations.append(
                    "Increase session garbage collection probability to at least 1%"
                )


def _overall_severity(issues: Sequence[Dict[str, Any]], environment: str) -> Severity:
    levels = {issue["severity"] for issue in issues}
    if "critical" in levels:
        return Severity.CRITICAL
    if environment == "production" and "error" in levels:
        return Severity.ERROR
    return Severity.WARNING
