"""Application configuration.

Config pairs the environment Settings with the host key policy derived
from them. The dependency container reads timeouts through it.
"""

from dataclasses import dataclass

from kubehop.config.host_keys import HostKeyVerifier
from kubehop.config.settings import Settings


@dataclass
class Config:
    """Settings plus the resolved host key policy."""

    settings: Settings
    host_keys: HostKeyVerifier

    @classmethod
    def from_env(cls) -> "Config":
        """Build config from KUBEHOP_* variables.

        Raises:
            FileNotFoundError: Strict host key checking is on and the
                configured known_hosts file is missing
        """
        settings = Settings.from_env()
        host_keys = HostKeyVerifier(
            known_hosts_path=settings.known_hosts,
            strict_checking=settings.strict_host_key_checking,
        )
        return cls(settings=settings, host_keys=host_keys)

    @property
    def command_timeout(self) -> int:
        return self.settings.command_timeout

    @property
    def hop_timeout(self) -> int:
        return self.settings.hop_timeout

    @property
    def bootstrap_max_wait(self) -> int:
        return self.settings.bootstrap_max_wait

    @property
    def bootstrap_poll_interval(self) -> int:
        return self.settings.bootstrap_poll_interval

    @property
    def known_hosts_path(self) -> str | None:
        """known_hosts checked on every hop, None when checks are off."""
        return self.host_keys.get_known_hosts_path()
