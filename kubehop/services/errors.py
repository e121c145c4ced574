"""Error taxonomy for command orchestration.

Every failure the orchestrator surfaces is a KubehopError subclass.
Transport failures coming from asyncssh or asyncio are folded into
the taxonomy by classify_error, which only looks at the message text.
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kubehop.models import CommandResult


class ErrorKind(str, Enum):
    """Coarse failure category derived from an error message."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    AUTH = "auth"
    EXEC = "exec"


class KubehopError(Exception):
    """Base class for all orchestration errors."""

    kind: ErrorKind = ErrorKind.EXEC


class UnsupportedAction(KubehopError):
    """No template is registered under the requested action."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unsupported action: {action}")


class ValidationFailed(KubehopError):
    """The template validator rejected the parameters."""

    def __init__(self, action: str, reason: Exception | str):
        self.action = action
        self.reason = str(reason)
        super().__init__(f"Validation failed for {action}: {reason}")


class BuildFailed(KubehopError):
    """The template builder could not produce a command list."""

    def __init__(self, action: str, reason: Exception | str):
        self.action = action
        self.reason = str(reason)
        super().__init__(f"Build failed for {action}: {reason}")


class NoTarget(KubehopError):
    """The target carries zero hops."""

    def __init__(self, action: str = ""):
        self.action = action
        label = f" for {action}" if action else ""
        super().__init__(f"No target{label}: hop chain is empty")


class ConnectError(KubehopError):
    """Failed to establish or tunnel through an SSH hop."""

    kind = ErrorKind.CONNECTION

    def __init__(
        self,
        host_name: str,
        original_error: Exception | str,
        hop_index: int | None = None,
    ):
        """Initialize connection error.

        Args:
            host_name: Address of the hop that failed
            original_error: Underlying error or message
            hop_index: Zero-based position of the hop in the chain
        """
        self.host_name = host_name
        self.original_error = original_error
        self.hop_index = hop_index
        where = f"hop {hop_index} " if hop_index is not None else ""
        super().__init__(f"Cannot connect to {where}{host_name}: {original_error}")


class AuthError(ConnectError):
    """A hop rejected the supplied credentials."""

    kind = ErrorKind.AUTH


class CommandTimeout(KubehopError):
    """The shared deadline expired before all commands finished.

    Carries whatever results completed before the deadline.
    """

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str,
        results: "list[CommandResult] | None" = None,
    ):
        self.results = list(results or [])
        super().__init__(message)


class RemoteExecError(KubehopError):
    """A remote command exited non-zero and the caller treats that as fatal."""

    def __init__(self, action: str, result: "CommandResult"):
        self.action = action
        self.result = result
        detail = result.failure or result.error.strip() or f"exit code {result.exit_code}"
        super().__init__(f"{action}: command failed ({detail})")


_TIMEOUT_MARKERS = ("timeout", "timed out")
_CONNECTION_MARKERS = ("connection", "connect")
_AUTH_MARKERS = ("authentication", "auth")


def classify_error(error: BaseException | str) -> ErrorKind:
    """Classify an error by substring match on its message.

    Checks run in order: timeout, then connection, then authentication.
    Anything else is an execution error.

    Args:
        error: Exception or message to classify

    Returns:
        The matching ErrorKind
    """
    message = str(error).lower()
    if isinstance(error, BaseException) and not message:
        message = type(error).__name__.lower()

    if any(marker in message for marker in _TIMEOUT_MARKERS):
        return ErrorKind.TIMEOUT
    if any(marker in message for marker in _CONNECTION_MARKERS):
        return ErrorKind.CONNECTION
    if any(marker in message for marker in _AUTH_MARKERS):
        return ErrorKind.AUTH
    return ErrorKind.EXEC


def as_kubehop_error(error: Exception, target: str = "") -> KubehopError:
    """Map an arbitrary exception onto the taxonomy.

    Already-typed errors pass through unchanged.

    Args:
        error: Exception raised by the executor
        target: Target description used for connection errors

    Returns:
        KubehopError subclass matching classify_error
    """
    if isinstance(error, KubehopError):
        return error

    kind = classify_error(error)
    if kind is ErrorKind.TIMEOUT:
        return CommandTimeout(f"Execution timed out on {target or 'target'}: {error}")
    if kind is ErrorKind.CONNECTION:
        return ConnectError(target or "target", error)
    if kind is ErrorKind.AUTH:
        return AuthError(target or "target", error)
    return KubehopError(f"Execution failed on {target or 'target'}: {error}")
