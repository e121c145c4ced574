"""MCP tools for running actions over hop chains.

Each tool takes the Dependencies container first so the server can bind
it and tests can pass a container wired with fakes. Orchestration
errors are returned as ``{"error": ..., "kind": ...}`` instead of being
raised, so the caller always gets a structured answer.
"""

import logging
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from kubehop.bootstrap.state import LOG_TAIL_LINES
from kubehop.models import CommandTarget, HopDescriptor
from kubehop.services.errors import ErrorKind, KubehopError

if TYPE_CHECKING:
    from kubehop.dependencies import Dependencies

logger = logging.getLogger(__name__)

Hops = list[dict[str, Any]]

ROLES = ("worker", "master")


def build_target(hops: Hops | None) -> CommandTarget:
    """Turn a list of hop mappings into a CommandTarget.

    Args:
        hops: Mappings ordered from the bastion to the final host

    Returns:
        CommandTarget, empty when hops is empty or None

    Raises:
        ValueError: If a hop is missing host or username
    """
    return CommandTarget(hops=[HopDescriptor.from_dict(hop) for hop in hops or []])


def error_response(error: Exception) -> dict[str, Any]:
    """Structured error payload for a failed tool call."""
    kind = error.kind if isinstance(error, KubehopError) else ErrorKind.EXEC
    response: dict[str, Any] = {"error": str(error), "kind": kind.value}
    if isinstance(error, KubehopError):
        response["type"] = type(error).__name__
    results = getattr(error, "results", None)
    if results:
        response["results"] = [result.to_dict() for result in results]
    failed = getattr(error, "result", None)
    if failed is not None:
        response["failed_command"] = failed.to_dict()
    return response


async def run_action(
    deps: "Dependencies",
    action: str,
    params: dict[str, Any] | None = None,
    hops: Hops | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Run a registered action on the last host of a hop chain.

    Args:
        deps: Dependencies container
        action: Registered action name, e.g. "getNodeStatus"
        params: Action parameters
        hops: Hop chain, bastion first
        timeout: Seconds allowed for the whole call

    Returns:
        ExecutionOutcome as a dict, or an error payload
    """
    try:
        target = build_target(hops)
        outcome = await deps.orchestrator.execute(action, params or {}, target, timeout)
    except (KubehopError, ValueError) as e:
        logger.warning("run_action %s failed: %s", action, e)
        return error_response(e)
    return outcome.to_dict()


async def run_commands(
    deps: "Dependencies",
    commands: list[str],
    hops: Hops | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Run an ad-hoc command list on the last host of a hop chain."""
    try:
        target = build_target(hops)
        outcome = await deps.orchestrator.execute_commands(target, commands, timeout)
    except (KubehopError, ValueError) as e:
        logger.warning("run_commands failed: %s", e)
        return error_response(e)
    return outcome.to_dict()


def list_actions(deps: "Dependencies") -> dict[str, Any]:
    """List registered actions with their descriptions."""
    registry = deps.registry
    entries = []
    for name in registry.actions:
        template = registry.lookup(name)
        entries.append({"action": name, "description": template.description if template else ""})
    return {"actions": entries}


async def bootstrap_launch(
    deps: "Dependencies",
    params: dict[str, Any],
    hops: Hops,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Start a detached first control-plane install.

    Returns as soon as the install and watcher processes are running.
    Poll bootstrap_status afterwards.
    """
    try:
        outcome = await deps.workflow.launch(build_target(hops), params, timeout)
    except (KubehopError, ValueError) as e:
        logger.warning("bootstrap_launch failed: %s", e)
        return error_response(e)
    return outcome.to_dict()


async def bootstrap_status(
    deps: "Dependencies",
    hops: Hops,
    lines: int = LOG_TAIL_LINES,
) -> dict[str, Any]:
    """Read the install markers and report the inferred state."""
    try:
        status = await deps.workflow.status(build_target(hops), lines)
    except (KubehopError, ValueError) as e:
        logger.warning("bootstrap_status failed: %s", e)
        return error_response(e)

    response = asdict(status)
    response["state"] = status.state.value
    return response


async def fetch_join_credentials(deps: "Dependencies", hops: Hops) -> dict[str, Any]:
    """Recover the join command and certificate key from the install host."""
    try:
        report = await deps.workflow.fetch_credentials(build_target(hops))
    except (KubehopError, ValueError) as e:
        logger.warning("fetch_join_credentials failed: %s", e)
        return error_response(e)

    response = asdict(report)
    response["found"] = report.found
    if report.credential:
        response["control_plane_join_command"] = report.credential.control_plane_join_command
    return response


async def remove_node(
    deps: "Dependencies",
    role: str,
    server_name: str,
    password: str,
    hops: Hops,
    main_hops: Hops | None = None,
    main_password: str | None = None,
    lb_hops: Hops | None = None,
    lb_password: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Tear a node out of the cluster.

    Args:
        deps: Dependencies container
        role: "worker" or "master"
        server_name: Kubernetes node name
        password: sudo password on the node
        hops: Hop chain to the node
        main_hops: Hop chain to a surviving control-plane node
        main_password: sudo password on that node
        lb_hops: Hop chain to the HAProxy host (masters only)
        lb_password: sudo password on the HAProxy host
        timeout: Seconds per step. Each step has its own budget when None.

    Returns:
        LifecycleReport as a dict, or an error payload
    """
    if role not in ROLES:
        return {"error": f"Unknown role {role!r}, expected one of {', '.join(ROLES)}", "kind": "exec"}

    try:
        target = build_target(hops)
        main_target = build_target(main_hops) if main_hops else None
        lb_target = build_target(lb_hops) if lb_hops else None
    except ValueError as e:
        return error_response(e)

    if role == "worker":
        if main_target is None or not main_password:
            return {"error": "Removing a worker needs main_hops and main_password", "kind": "exec"}
        report = await deps.lifecycle.remove_worker(
            main_target, target, server_name, main_password, password, timeout=timeout
        )
    else:
        report = await deps.lifecycle.remove_master(
            target,
            server_name,
            password,
            main_target=main_target,
            main_password=main_password,
            lb_target=lb_target,
            lb_password=lb_password,
            timeout=timeout,
        )
    return report.to_dict()
