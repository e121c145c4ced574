"""Redaction of secrets before logging."""

import re
from collections.abc import Mapping
from typing import Any

SECRET_MARKERS = ("password", "token", "secret", "certificate_key", "join_command")

REDACTED = "***"

# echo <password> | [nohup ]sudo -S, with the password shell-quoted
SUDO_PASSWORD_RE = re.compile(r"echo ((?:'[^']*'|\"[^\"]*\"|[^\s'\"])+) \| (nohup )?sudo -S")


def redact_command(text: str) -> str:
    """Mask sudo passwords embedded in command text."""
    return SUDO_PASSWORD_RE.sub(f"echo {REDACTED} | \\2sudo -S", text)


def _redact_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return redact_params(value)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item) for item in value]
    if isinstance(value, str):
        return redact_command(value)
    return value


def redact_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Copy params with secret-looking values masked.

    Nested mappings and lists (the ``hops`` and ``commands`` arguments
    of a tool call, for example) are redacted too.

    Args:
        params: Action parameters

    Returns:
        New dict safe to log
    """
    clean: dict[str, Any] = {}
    for key, value in params.items():
        if any(marker in str(key).lower() for marker in SECRET_MARKERS) and value:
            clean[key] = REDACTED
        else:
            clean[key] = _redact_value(value)
    return clean
