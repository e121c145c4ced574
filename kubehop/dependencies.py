"""Dependency injection container for kubehop.

Everything the tools need is built once at startup and passed around
explicitly. There is no module-level registry or executor.
"""

from dataclasses import dataclass

from kubehop.bootstrap import BootstrapWorkflow
from kubehop.commands import build_registry
from kubehop.config import Config
from kubehop.services import (
    CommandOrchestrator,
    CommandRegistry,
    HopChainExecutor,
    NodeLifecycleController,
)


@dataclass
class Dependencies:
    """Container for kubehop dependencies.

    Example:
        deps = Dependencies.create()
        outcome = await deps.orchestrator.execute("getNodeStatus", params, target)
    """

    config: Config
    registry: CommandRegistry
    executor: HopChainExecutor
    orchestrator: CommandOrchestrator
    workflow: BootstrapWorkflow
    lifecycle: NodeLifecycleController

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from environment configuration.

        Returns:
            Initialized Dependencies instance
        """
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(cls, config: Config) -> "Dependencies":
        """Create dependencies with custom configuration.

        Args:
            config: Config instance

        Returns:
            Dependencies wired from config
        """
        registry = build_registry(
            max_wait=config.bootstrap_max_wait,
            poll_interval=config.bootstrap_poll_interval,
        )
        executor = HopChainExecutor(
            known_hosts=config.known_hosts_path,
            default_timeout=config.hop_timeout,
        )
        orchestrator = CommandOrchestrator(registry, executor, timeout=config.command_timeout)
        return cls(
            config=config,
            registry=registry,
            executor=executor,
            orchestrator=orchestrator,
            workflow=BootstrapWorkflow(orchestrator),
            lifecycle=NodeLifecycleController(orchestrator),
        )

    async def cleanup(self) -> None:
        """Release resources.

        Hop chains are closed at the end of every call, so nothing stays
        open between calls.
        """
