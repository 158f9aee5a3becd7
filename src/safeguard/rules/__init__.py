"""Rule contract, registry, policy resolution and configuration loading."""

from .base import AuditContext, Rule
from .config_loader import DEFAULT_CONFIG, ConfigError, ConfigLoader, load_document
from .policy import PolicyConfig, resolve_enabled, resolve_environment, resolve_rules
from .registry import DuplicateRuleError, RuleRegistry

__all__ = [
    "AuditContext",
    "ConfigError",
    "ConfigLoader",
    "DEFAULT_CONFIG",
    "DuplicateRuleError",
    "PolicyConfig",
    "Rule",
    "RuleRegistry",
    "load_document",
    "resolve_enabled",
    "resolve_environment",
    "resolve_rules",
]
