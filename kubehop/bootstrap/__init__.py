"""Detached cluster bootstrap for kubehop."""

from kubehop.bootstrap.extraction import (
    extract_certificate_key,
    extract_credentials,
    extract_join_command,
)
from kubehop.bootstrap.scripts import (
    render_master_install_script,
    render_master_join_script,
    render_worker_join_script,
)
from kubehop.bootstrap.state import infer_state, parse_markers, status_commands
from kubehop.bootstrap.watcher import render_watcher_script
from kubehop.bootstrap.workflow import BootstrapWorkflow

__all__ = [
    "BootstrapWorkflow",
    "extract_certificate_key",
    "extract_credentials",
    "extract_join_command",
    "infer_state",
    "parse_markers",
    "render_master_install_script",
    "render_master_join_script",
    "render_watcher_script",
    "render_worker_join_script",
    "status_commands",
]
