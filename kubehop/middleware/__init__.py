"""kubehop MCP middleware components."""

from kubehop.middleware.base import KubehopMiddleware
from kubehop.middleware.errors import ErrorHandlingMiddleware
from kubehop.middleware.logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "KubehopMiddleware",
    "LoggingMiddleware",
]
