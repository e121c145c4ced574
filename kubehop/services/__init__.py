"""Services for kubehop."""

from kubehop.services.errors import (
    AuthError,
    BuildFailed,
    CommandTimeout,
    ConnectError,
    ErrorKind,
    KubehopError,
    NoTarget,
    RemoteExecError,
    UnsupportedAction,
    ValidationFailed,
    classify_error,
)
from kubehop.services.hops import HopChainExecutor
from kubehop.services.lifecycle import LifecycleReport, NodeLifecycleController, StepOutcome
from kubehop.services.orchestrator import CommandOrchestrator
from kubehop.services.registry import CommandRegistry

__all__ = [
    "AuthError",
    "BuildFailed",
    "CommandOrchestrator",
    "CommandRegistry",
    "CommandTimeout",
    "ConnectError",
    "ErrorKind",
    "HopChainExecutor",
    "KubehopError",
    "LifecycleReport",
    "NoTarget",
    "NodeLifecycleController",
    "RemoteExecError",
    "StepOutcome",
    "UnsupportedAction",
    "ValidationFailed",
    "classify_error",
]
