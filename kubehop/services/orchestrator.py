"""Command orchestration: prepare, validate and dispatch actions.

The orchestrator never talks to asyncssh directly. It hands prepared
command lists to an executor that satisfies the HopExecutor protocol,
which keeps it testable with an in-memory fake.
"""

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from kubehop.actions import CUSTOM
from kubehop.models import CommandTarget, ExecutionOutcome
from kubehop.protocols import HopExecutor
from kubehop.services.errors import (
    BuildFailed,
    KubehopError,
    NoTarget,
    UnsupportedAction,
    ValidationFailed,
    as_kubehop_error,
)
from kubehop.services.registry import CommandRegistry
from kubehop.utils.redact import redact_params

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 30.0


class CommandOrchestrator:
    """Turns (action, params, target) into executed command results."""

    def __init__(
        self,
        registry: CommandRegistry,
        executor: HopExecutor,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        """Initialize orchestrator.

        Args:
            registry: Registry holding the action templates
            executor: Hop chain executor used to run commands
            timeout: Default seconds allowed per invocation
        """
        self.registry = registry
        self.executor = executor
        self.timeout = timeout

    def prepare(self, action: str, params: Mapping[str, Any] | None = None) -> list[str]:
        """Produce the command list for an action without executing it.

        Pure: the same action and params always yield the same list.

        Args:
            action: Registered action name
            params: Action parameters

        Returns:
            Ordered list of shell commands

        Raises:
            UnsupportedAction: If no template is registered for action
            ValidationFailed: If the template validator rejects params
            BuildFailed: If the template builder raises
        """
        template = self.registry.lookup(action)
        if template is None:
            raise UnsupportedAction(action)

        values: Mapping[str, Any] = params or {}

        if template.validate is not None:
            try:
                template.validate(values)
            except Exception as e:
                raise ValidationFailed(action, e) from e

        if template.build is None:
            return list(template.commands or [])

        try:
            commands = template.build(values)
        except Exception as e:
            raise BuildFailed(action, e) from e
        return list(commands)

    def timeout_for(self, action: str) -> float:
        """Seconds an action gets when the caller sets no timeout."""
        template = self.registry.lookup(action)
        if template is not None and template.timeout:
            return template.timeout
        return self.timeout

    async def execute(
        self,
        action: str,
        params: Mapping[str, Any] | None = None,
        target: CommandTarget | None = None,
        timeout: float | None = None,
    ) -> ExecutionOutcome:
        """Prepare an action and run it against a target.

        Args:
            action: Registered action name
            params: Action parameters
            target: Hop chain to run on. None counts as an empty target.
            timeout: Per-call override. Falls back to the template timeout,
                then to the orchestrator default.

        Returns:
            ExecutionOutcome with one result per prepared command

        Raises:
            UnsupportedAction, ValidationFailed, BuildFailed: From prepare()
            NoTarget: If the target has no hops
            ConnectError, AuthError, CommandTimeout, KubehopError: Classified
                executor failures
        """
        logger.info(
            "Executing action %s with params %s",
            action,
            redact_params(params or {}),
        )

        try:
            commands = self.prepare(action, params)
        except KubehopError as e:
            logger.warning("Failed to prepare %s: %s", action, e)
            raise

        logger.debug("Prepared %d command(s) for %s", len(commands), action)
        if not timeout or timeout <= 0:
            timeout = self.timeout_for(action)
        return await self._dispatch(action, commands, target or CommandTarget(), timeout)

    async def execute_commands(
        self,
        target: CommandTarget | None,
        commands: Sequence[str],
        timeout: float | None = None,
    ) -> ExecutionOutcome:
        """Run an ad-hoc command list that has no registered template.

        Args:
            target: Hop chain to run on
            commands: Commands to run in order
            timeout: Per-call override of the default timeout

        Returns:
            ExecutionOutcome labelled with action "custom"

        Raises:
            NoTarget: If the target has no hops
            ConnectError, AuthError, CommandTimeout, KubehopError: Classified
                executor failures
        """
        return await self._dispatch(CUSTOM, list(commands), target or CommandTarget(), timeout)

    async def _dispatch(
        self,
        action: str,
        commands: list[str],
        target: CommandTarget,
        timeout: float | None,
    ) -> ExecutionOutcome:
        """Send a prepared command list to the executor."""
        if not target.hops:
            raise NoTarget(action)

        budget = timeout if timeout and timeout > 0 else self.timeout
        description = target.description
        start = time.perf_counter()

        try:
            results = await self.executor.execute(target.hops, commands, budget)
        except Exception as e:
            elapsed = time.perf_counter() - start
            classified = as_kubehop_error(e, description)
            logger.error(
                "Action %s failed on %s after %.2fs: %s: %s",
                action,
                description,
                elapsed,
                type(classified).__name__,
                e,
            )
            if classified is e:
                raise
            raise classified from e

        elapsed = time.perf_counter() - start
        outcome = ExecutionOutcome(
            action=action,
            target=description,
            results=results,
            elapsed=elapsed,
        )
        logger.info(
            "Action %s completed on %s: %d result(s), %d failed [%.2fs]",
            action,
            description,
            len(results),
            len(outcome.failed),
            elapsed,
        )
        return outcome
