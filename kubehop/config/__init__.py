"""Configuration module for kubehop.

- Config: Main configuration class (aggregates all components)
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
"""

from kubehop.config.host_keys import HostKeyVerifier
from kubehop.config.main import Config
from kubehop.config.settings import Settings

__all__ = ["Config", "HostKeyVerifier", "Settings"]
