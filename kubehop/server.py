"""kubehop FastMCP server.

This is a thin wrapper that wires the MCP server to the tools. All
orchestration logic lives in services/, commands/ and bootstrap/.
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from kubehop import tools
from kubehop.config import Settings
from kubehop.dependencies import Dependencies
from kubehop.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from kubehop.utils.console import MCPRequestFormatter

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
)


def _configure_logging() -> None:
    """Configure colorful logging for the kubehop package.

    Runs at import time so logging is ready however the server is started.
    """
    log_level = os.getenv("KUBEHOP_LOG_LEVEL", "INFO").upper()
    use_colors = os.getenv("KUBEHOP_LOG_COLORS", "true").lower() != "false"

    if not sys.stderr.isatty():
        use_colors = False

    kubehop_logger = logging.getLogger("kubehop")
    kubehop_logger.setLevel(getattr(logging, log_level, logging.INFO))

    if not kubehop_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        kubehop_logger.addHandler(handler)
        kubehop_logger.propagate = False

    for name in NOISY_LOGGERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING)
        lg.handlers = []
        lg.propagate = False


_configure_logging()

logger = logging.getLogger(__name__)


def get_deps(server: FastMCP) -> Dependencies:
    """Return the server's dependency container, creating it on first use."""
    deps = getattr(server, "deps", None)
    if deps is None:
        deps = Dependencies.create()
        server.deps = deps  # type: ignore[attr-defined]
    return deps


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Build the dependency container at startup and release it at shutdown.

    Args:
        server: The FastMCP server instance

    Yields:
        Dict with the registered action names
    """
    logger.info("kubehop server starting up")
    deps = get_deps(server)
    actions = deps.registry.actions
    logger.info("Registered %d action(s)", len(actions))

    try:
        yield {"actions": actions}
    finally:
        logger.info("kubehop server shutting down")
        await deps.cleanup()


def configure_middleware(server: FastMCP, settings: Settings | None = None) -> None:
    """Configure middleware stack for the server.

    Adds middleware in order: ErrorHandling -> Logging (with integrated timing)

    Args:
        server: The FastMCP server to configure.
        settings: Logging settings. Read from the environment when None.
    """
    settings = settings or Settings.from_env()

    # First added = innermost
    server.add_middleware(ErrorHandlingMiddleware(include_traceback=settings.include_traceback))
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=float(settings.slow_threshold_ms),
        )
    )


def create_server(deps: Dependencies | None = None) -> FastMCP:
    """Create and configure the MCP server with middleware and tools.

    Args:
        deps: Pre-built dependency container. Created lazily from the
            environment when None.

    Returns:
        Configured FastMCP server instance
    """
    server = FastMCP("kubehop", lifespan=app_lifespan)
    if deps is not None:
        server.deps = deps  # type: ignore[attr-defined]

    configure_middleware(server, deps.config.settings if deps else None)

    async def run_action(
        action: str,
        hops: list[dict[str, Any]],
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Run a registered action on the last host of an SSH hop chain.

        Args:
            action: Action name, see list_actions
            hops: Hops as {host, port, username, password}, bastion first
            params: Action parameters
            timeout: Seconds allowed for the whole call
        """
        return await tools.run_action(get_deps(server), action, params, hops, timeout)

    async def run_commands(
        commands: list[str],
        hops: list[dict[str, Any]],
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Run shell commands in order on the last host of an SSH hop chain."""
        return await tools.run_commands(get_deps(server), commands, hops, timeout)

    async def list_actions() -> dict[str, Any]:
        """List every registered action with a short description."""
        return tools.list_actions(get_deps(server))

    async def bootstrap_launch(
        params: dict[str, Any],
        hops: list[dict[str, Any]],
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Start a detached first control-plane install and return immediately.

        Args:
            params: installFirstMaster parameters (password, lb_ip, port, ...)
            hops: Hop chain ending at the install host
            timeout: Seconds allowed for the launch commands
        """
        return await tools.bootstrap_launch(get_deps(server), params, hops, timeout)

    async def bootstrap_status(hops: list[dict[str, Any]], lines: int = 40) -> dict[str, Any]:
        """Report the state of a detached install from its marker files."""
        return await tools.bootstrap_status(get_deps(server), hops, lines)

    async def fetch_join_credentials(hops: list[dict[str, Any]]) -> dict[str, Any]:
        """Recover the kubeadm join command and certificate key."""
        return await tools.fetch_join_credentials(get_deps(server), hops)

    async def remove_node(
        role: str,
        server_name: str,
        password: str,
        hops: list[dict[str, Any]],
        main_hops: list[dict[str, Any]] | None = None,
        main_password: str | None = None,
        lb_hops: list[dict[str, Any]] | None = None,
        lb_password: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Drain, detach and reset a worker or control-plane node.

        Args:
            role: "worker" or "master"
            server_name: Kubernetes node name
            password: sudo password on the node
            hops: Hop chain to the node
            main_hops: Hop chain to a surviving control-plane node
            main_password: sudo password on that node
            lb_hops: Hop chain to the HAProxy host (masters only)
            lb_password: sudo password on the HAProxy host
            timeout: Seconds per step, each step has its own budget when unset
        """
        return await tools.remove_node(
            get_deps(server),
            role,
            server_name,
            password,
            hops,
            main_hops=main_hops,
            main_password=main_password,
            lb_hops=lb_hops,
            lb_password=lb_password,
            timeout=timeout,
        )

    for tool in (
        run_action,
        run_commands,
        list_actions,
        bootstrap_launch,
        bootstrap_status,
        fetch_join_credentials,
        remove_node,
    ):
        server.tool(output_schema=None)(tool)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


# Default server instance
mcp = create_server()
