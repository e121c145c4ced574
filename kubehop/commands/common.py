"""Parameter helpers shared by the command registrars."""

from collections.abc import Mapping
from typing import Any

from kubehop.models.command import Validator


def get_str(params: Mapping[str, Any], key: str, default: str = "") -> str:
    """Read a parameter as a stripped string.

    Non-string values (ints from JSON, for example) are converted.
    """
    value = params.get(key)
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def get_port(params: Mapping[str, Any], key: str = "port", default: int = 6443) -> int:
    """Read a TCP port parameter.

    Raises:
        ValueError: If the value is not an integer in 1..65535
    """
    raw = params.get(key)
    if raw is None or raw == "":
        return default
    try:
        port = int(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"'{key}' must be an integer, got {raw!r}") from e
    if not 0 < port < 65536:
        raise ValueError(f"'{key}' out of range: {port}")
    return port


def require(*keys: str) -> Validator:
    """Build a validator that rejects missing or empty parameters.

    Args:
        keys: Parameter names that must be present and non-empty

    Returns:
        Validator raising ValueError naming the first missing key
    """

    def validate(params: Mapping[str, Any]) -> None:
        for key in keys:
            value = params.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValueError(f"missing required parameter '{key}'")

    return validate


def get_int(params: Mapping[str, Any], key: str, default: int = 0) -> int:
    """Read a non-negative integer parameter.

    Raises:
        ValueError: If the value is not a non-negative integer
    """
    raw = params.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"'{key}' must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"'{key}' must not be negative: {value}")
    return value
