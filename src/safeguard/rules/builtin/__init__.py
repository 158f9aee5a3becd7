"""Built-in security rules shipped with safeguard."""

from __future__ import annotations

from typing import List

from ..base import Rule
from .configuration import AppDebugFalseInProduction, AppKeyIsSet, EnvHasAllRequiredKeys
from .database import (
    DatabaseConnectionEncrypted,
    DatabaseCredentialsNotDefault,
    DatabaseQueryLogging,
)
from .filesystem import EnvFilePermissions, NoSecretsInCode
from .security import CsrfEnabled, SessionSecuritySettings

BUILTIN_RULES = (
    AppDebugFalseInProduction,
    AppKeyIsSet,
    EnvHasAllRequiredKeys,
    NoSecretsInCode,
    EnvFilePermissions,
    CsrfEnabled,
    SessionSecuritySettings,
    DatabaseCredentialsNotDefault,
    DatabaseConnectionEncrypted,
    DatabaseQueryLogging,
)


def default_rules() -> List[Rule]:
    """Return fresh instances of every built-in rule."""

    return [rule_class() for rule_class in BUILTIN_RULES]


__all__ = [
    "AppDebugFalseInProduction",
    "AppKeyIsSet",
    "BUILTIN_RULES",
    "CsrfEnabled",
    "DatabaseConnectionEncrypted",
    "DatabaseCredentialsNotDefault",
    "DatabaseQueryLogging",
    "EnvFilePermissions",
    "EnvHasAllRequiredKeys",
    "NoSecretsInCode",
    "SessionSecuritySettings",
    "default_rules",
]
