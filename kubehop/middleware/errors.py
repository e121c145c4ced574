"""Error logging middleware.

Tool functions turn orchestration failures into error payloads, so what
reaches this layer is either an argument validation error from fastmcp
or a genuine bug. Both are logged with their classified kind and counted.
"""

import logging
from collections import Counter
from collections.abc import Callable
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from kubehop.middleware.base import KubehopMiddleware
from kubehop.services.errors import classify_error

ErrorCallback = Callable[[Exception, MiddlewareContext], None]


def describe_request(context: MiddlewareContext) -> str:
    """MCP method, followed by the tool name for tool calls."""
    name = getattr(context.message, "name", None)
    if context.method == "tools/call" and isinstance(name, str):
        return f"{context.method} {name}"
    return str(context.method)


class ErrorHandlingMiddleware(KubehopMiddleware):
    """Logs every failed request and keeps per-type and per-kind counts.

    Example:
        >>> middleware = ErrorHandlingMiddleware(include_traceback=True)
        >>> mcp.add_middleware(middleware)
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
        error_callback: ErrorCallback | None = None,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Attach the traceback to each error record.
            error_callback: Called with (exception, context) after logging.
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self.error_callback = error_callback
        self._by_type: Counter[str] = Counter()
        self._by_kind: Counter[str] = Counter()

    def get_error_stats(self) -> dict[str, int]:
        """Error counts by exception class name."""
        return dict(self._by_type)

    def get_kind_stats(self) -> dict[str, int]:
        """Error counts by kind (auth, connection, timeout, exec)."""
        return dict(self._by_kind)

    def reset_stats(self) -> None:
        self._by_type.clear()
        self._by_kind.clear()

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log and count errors, then re-raise them."""
        try:
            return await call_next(context)
        except Exception as e:
            kind = getattr(e, "kind", None) or classify_error(e)
            self._by_type[type(e).__name__] += 1
            self._by_kind[kind.value] += 1

            hop_index = getattr(e, "hop_index", None)
            where = describe_request(context)
            if hop_index is not None:
                where = f"{where} (hop {hop_index})"

            self.logger.error(
                "Error in %s: %s [%s]: %s",
                where,
                type(e).__name__,
                kind.value,
                e,
                exc_info=self.include_traceback,
            )

            if self.error_callback:
                try:
                    self.error_callback(e, context)
                except Exception as callback_error:
                    self.logger.warning("Error callback failed: %s", callback_error)
            raise
