"""known_hosts selection for hop chains.

Nodes being provisioned are usually not in any known_hosts file yet, so
host keys are only checked when KUBEHOP_KNOWN_HOSTS names a file.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DISABLED_VALUES = ("", "none", "off")


def resolve_known_hosts(value: str | None, strict: bool = False) -> str | None:
    """Turn the configured value into a known_hosts path for asyncssh.

    Args:
        value: Configured path, or None/"none"/"off" to skip checks
        strict: Raise instead of skipping checks when the file is missing

    Returns:
        Expanded path, or None when host keys are not checked

    Raises:
        FileNotFoundError: strict is set and the file does not exist
    """
    if value is None or value.strip().lower() in DISABLED_VALUES:
        logger.debug("Host key checking off: no known_hosts configured")
        return None

    path = Path(value).expanduser()
    if path.exists():
        return str(path)

    if strict:
        raise FileNotFoundError(
            f"KUBEHOP_STRICT_HOST_KEY_CHECKING is set but {path} does not exist. "
            f"Collect the node keys first (ssh-keyscan <host> >> {path}) "
            f"or unset KUBEHOP_KNOWN_HOSTS."
        )
    logger.warning("known_hosts file %s is missing, host keys will not be checked", path)
    return None


class HostKeyVerifier:
    """Holds the known_hosts path every hop of a chain is checked against."""

    def __init__(self, known_hosts_path: str | None = None, strict_checking: bool = False):
        self.strict_checking = strict_checking
        self._known_hosts = resolve_known_hosts(known_hosts_path, strict_checking)

    def get_known_hosts_path(self) -> str | None:
        return self._known_hosts

    def is_enabled(self) -> bool:
        return self._known_hosts is not None
