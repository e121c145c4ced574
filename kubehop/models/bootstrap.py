"""Cluster bootstrap data models."""

from dataclasses import dataclass, field
from enum import Enum


class BootstrapState(str, Enum):
    """Lifecycle of a detached control-plane install."""

    PREPARING = "preparing"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass
class ExtractedCredential:
    """Join credentials recovered from the install log.

    Always re-derivable from the raw log, so never treated as a source
    of truth.
    """

    join_command: str
    certificate_key: str | None = None

    @property
    def control_plane_join_command(self) -> str | None:
        """Join command for an additional control-plane node."""
        if not self.certificate_key:
            return None
        return f"{self.join_command} {self.certificate_key}"


@dataclass
class ExtractionReport:
    """Outcome of running the extraction cascade over a log."""

    credential: ExtractedCredential | None = None
    join_heuristic: str | None = None
    certificate_heuristic: str | None = None
    candidates: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        """True when a join command was recovered."""
        return self.credential is not None


@dataclass
class BootstrapMarkers:
    """Raw contents of the remote marker files.

    Fields are None when the corresponding file is absent.
    """

    pid: str | None = None
    process_running: bool = False
    sentinel_seen: bool = False
    join_command: str | None = None
    certificate_key: str | None = None
    certificate_error: str | None = None
    extraction_failed: bool = False
    watcher_log: str = ""
    install_log_tail: str = ""


@dataclass
class BootstrapStatus:
    """State plus the markers it was inferred from."""

    state: BootstrapState
    markers: BootstrapMarkers
    credential: ExtractedCredential | None = None
