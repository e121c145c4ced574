"""Utilities for kubehop."""

from kubehop.utils.console import ColorfulFormatter, MCPRequestFormatter
from kubehop.utils.redact import redact_command, redact_params
from kubehop.utils.shell import dq, heredoc, quote_arg, sudo

__all__ = [
    "ColorfulFormatter",
    "dq",
    "heredoc",
    "MCPRequestFormatter",
    "quote_arg",
    "redact_command",
    "redact_params",
    "sudo",
]
