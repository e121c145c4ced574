"""Protocol interfaces for dependency inversion.

The orchestrator and the workflows above it depend on these
interfaces instead of concrete classes, so tests can substitute
in-memory fakes for SSH.

Usage Example:

    from kubehop.protocols import HopExecutor

    class FakeExecutor:
        async def execute(self, hops, commands, timeout=None):
            return [CommandResult(command=c) for c in commands]

    orchestrator = CommandOrchestrator(registry, FakeExecutor())
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from kubehop.models import CommandResult, CommandTarget, ExecutionOutcome, HopDescriptor


@runtime_checkable
class HopExecutor(Protocol):
    """Protocol for running commands over a hop chain."""

    async def execute(
        self,
        hops: Sequence[HopDescriptor],
        commands: Sequence[str],
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Run commands on the final hop.

        Args:
            hops: Ordered hop chain, bastion first
            commands: Commands to run in order
            timeout: Seconds covering chain setup and all commands

        Returns:
            One result per command, in order

        Raises:
            ConnectError: If a hop cannot be reached
            CommandTimeout: If the deadline expires
        """
        ...


@runtime_checkable
class ActionRunner(Protocol):
    """Protocol for anything that can execute a registered action.

    Satisfied by CommandOrchestrator.
    """

    async def execute(
        self,
        action: str,
        params: Mapping[str, Any] | None = None,
        target: CommandTarget | None = None,
        timeout: float | None = None,
    ) -> ExecutionOutcome:
        """Prepare and run an action against a target."""
        ...
