"""Data models for kubehop."""

from kubehop.models.bootstrap import (
    BootstrapMarkers,
    BootstrapState,
    BootstrapStatus,
    ExtractedCredential,
    ExtractionReport,
)
from kubehop.models.command import (
    CommandResult,
    CommandTemplate,
    ExecutionOutcome,
    Params,
)
from kubehop.models.hop import CommandTarget, HopDescriptor

__all__ = [
    "BootstrapMarkers",
    "BootstrapState",
    "BootstrapStatus",
    "CommandResult",
    "CommandTarget",
    "CommandTemplate",
    "ExecutionOutcome",
    "ExtractedCredential",
    "ExtractionReport",
    "HopDescriptor",
    "Params",
]
