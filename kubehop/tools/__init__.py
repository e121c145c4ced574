"""MCP tools for kubehop."""

from kubehop.tools.actions import (
    bootstrap_launch,
    bootstrap_status,
    build_target,
    error_response,
    fetch_join_credentials,
    list_actions,
    remove_node,
    run_action,
    run_commands,
)

__all__ = [
    "bootstrap_launch",
    "bootstrap_status",
    "build_target",
    "error_response",
    "fetch_join_credentials",
    "list_actions",
    "remove_node",
    "run_action",
    "run_commands",
]
