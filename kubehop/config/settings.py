"""KUBEHOP_* environment settings.

Invalid or non-positive numbers fall back to their defaults with a warning.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

ENV_PREFIX = "KUBEHOP_"


@dataclass
class Settings:
    """Timeouts, watcher limits, host key policy, transport and logging knobs."""

    # Timeouts (seconds)
    command_timeout: int = field(default=30)
    hop_timeout: int = field(default=120)

    # Detached install watcher (seconds)
    bootstrap_max_wait: int = field(default=1800)
    bootstrap_poll_interval: int = field(default=10)

    # SSH host keys
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=False)

    # Transport
    transport: str = field(default="http")
    http_host: str = field(default="0.0.0.0")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from KUBEHOP_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            command_timeout=cls._get_int("COMMAND_TIMEOUT", 30),
            hop_timeout=cls._get_int("HOP_TIMEOUT", 120),
            bootstrap_max_wait=cls._get_int("BOOTSTRAP_MAX_WAIT", 1800),
            bootstrap_poll_interval=cls._get_int("BOOTSTRAP_POLL_INTERVAL", 10),
            known_hosts=os.getenv(f"{ENV_PREFIX}KNOWN_HOSTS"),
            strict_host_key_checking=cls._get_bool("STRICT_HOST_KEY_CHECKING", False),
            transport=cls._get_transport(),
            http_host=os.getenv(f"{ENV_PREFIX}HTTP_HOST", "0.0.0.0"),
            http_port=cls._get_int("HTTP_PORT", 8000),
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
            log_payloads=cls._get_bool("LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(name: str, default: int) -> int:
        """Get a positive integer from KUBEHOP_<name>.

        Args:
            name: Variable name without the prefix
            default: Default value if unset or invalid

        Returns:
            Integer value from environment or default
        """
        key = f"{ENV_PREFIX}{name}"
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

        if parsed <= 0:
            logger.warning("Non-positive value for %s: %d, using default %d", key, parsed, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(name: str, default: bool) -> bool:
        """Get boolean from KUBEHOP_<name>.

        Args:
            name: Variable name without the prefix
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(f"{ENV_PREFIX}{name}")
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_transport() -> str:
        """KUBEHOP_TRANSPORT when it is http or stdio, otherwise http."""
        transport = os.getenv(f"{ENV_PREFIX}TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"
