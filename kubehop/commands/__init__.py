"""Command template registrars for kubehop."""

from kubehop.commands.docker import register_docker_commands
from kubehop.commands.haproxy import register_haproxy_commands
from kubehop.commands.kubernetes import register_kubernetes_commands
from kubehop.services.registry import CommandRegistry


def build_registry(
    max_wait: int | None = None,
    poll_interval: int | None = None,
) -> CommandRegistry:
    """Create a registry holding every built-in action.

    Args:
        max_wait: Install watcher limit in seconds, default when None
        poll_interval: Install watcher poll interval, default when None

    Returns:
        Populated CommandRegistry
    """
    registry = CommandRegistry()
    watcher_limits: dict[str, int] = {}
    if max_wait is not None:
        watcher_limits["max_wait"] = max_wait
    if poll_interval is not None:
        watcher_limits["poll_interval"] = poll_interval
    register_kubernetes_commands(registry, **watcher_limits)
    register_haproxy_commands(registry)
    register_docker_commands(registry)
    return registry


__all__ = [
    "build_registry",
    "register_docker_commands",
    "register_haproxy_commands",
    "register_kubernetes_commands",
]
