"""Command execution data models."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

Params = Mapping[str, Any]
Validator = Callable[[Params], None]
Builder = Callable[[Params], list[str]]


@dataclass
class CommandResult:
    """Result of a single remote command."""

    command: str
    output: str = ""
    error: str = ""
    exit_code: int = 0
    duration: float = 0.0
    failure: str | None = None

    @property
    def ok(self) -> bool:
        """True when the command exited 0 and the transport did not fail."""
        return self.exit_code == 0 and self.failure is None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for tool responses."""
        return {
            "command": self.command,
            "output": self.output,
            "error": self.error,
            "exit_code": self.exit_code,
            "duration": round(self.duration, 3),
            "failure": self.failure,
        }


@dataclass
class CommandTemplate:
    """Parameterized command recipe registered under an action name.

    When ``build`` is None the static ``commands`` list is used as-is.
    When ``validate`` is None no pre-check runs. ``timeout`` replaces the
    orchestrator default for this action when the caller gives none.
    """

    commands: list[str] | None = None
    validate: Validator | None = None
    build: Builder | None = None
    description: str = ""
    timeout: float | None = None


@dataclass
class ExecutionOutcome:
    """Everything one orchestrator call produced."""

    action: str
    target: str
    results: list[CommandResult] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        """True when every command succeeded."""
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> list[CommandResult]:
        """Results that exited non-zero or hit a transport failure."""
        return [r for r in self.results if not r.ok]

    def raise_for_status(self) -> None:
        """Raise RemoteExecError for the first failed command, if any.

        Raises:
            RemoteExecError: If any command exited non-zero
        """
        from kubehop.services.errors import RemoteExecError

        for result in self.results:
            if not result.ok:
                raise RemoteExecError(self.action, result)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for tool responses."""
        return {
            "action": self.action,
            "target": self.target,
            "elapsed": round(self.elapsed, 3),
            "ok": self.ok,
            "results": [r.to_dict() for r in self.results],
        }
