"""Tool call logging for the MCP server.

Each tool call is logged once on entry and once on exit. The entry line
names the action and the final hop when the tool takes them; the exit
line summarizes the result in kubehop terms (error kind, failed command
count, lifecycle steps or bootstrap state).
"""

import json
import logging
import time
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from kubehop.middleware.base import KubehopMiddleware
from kubehop.utils.redact import redact_command, redact_params


def describe_target(hops: Any) -> str | None:
    """``user@host:port`` of the last hop, plus the chain length when chained."""
    if not isinstance(hops, list) or not hops or not isinstance(hops[-1], dict):
        return None
    last = hops[-1]
    user = last.get("username") or last.get("user") or "?"
    endpoint = f"{user}@{last.get('host', '?')}:{last.get('port') or 22}"
    if len(hops) > 1:
        return f"{endpoint} ({len(hops)} hops)"
    return endpoint


def _summarize_dict(result: dict[str, Any]) -> str:
    if "error" in result:
        return f"error ({result.get('kind', 'exec')})"
    if "state" in result:
        return f"state={result['state']}"
    if "steps" in result:
        failed = sum(1 for step in result["steps"] if not step.get("ok"))
        return f"ok={result.get('ok')}, {len(result['steps'])} step(s), {failed} failed"
    if "results" in result:
        failed = sum(1 for r in result["results"] if r.get("exit_code") or r.get("failure"))
        return f"ok={result.get('ok')}, {len(result['results'])} command(s), {failed} failed"
    if "found" in result:
        return f"found={result['found']}"
    if "actions" in result:
        return f"{len(result['actions'])} action(s)"
    return f"{len(result)} keys"


def summarize_result(result: Any) -> str:
    """One-line summary of a tool result.

    Accepts the plain dicts the tools return as well as the ToolResult
    fastmcp wraps them in.
    """
    if result is None:
        return "null"
    if isinstance(result, dict):
        return _summarize_dict(result)

    structured = getattr(result, "structured_content", None)
    if isinstance(structured, dict):
        return _summarize_dict(structured)

    content = getattr(result, "content", None)
    if isinstance(content, (list, tuple)):
        if len(content) == 1 and isinstance(getattr(content[0], "text", None), str):
            try:
                decoded = json.loads(content[0].text)
            except ValueError:
                decoded = None
            if isinstance(decoded, dict):
                return _summarize_dict(decoded)
        return f"{len(content)} content item(s)"
    return type(result).__name__


class LoggingMiddleware(KubehopMiddleware):
    """Logs tool calls with their action, target and outcome.

    Arguments are redacted before they are logged, so passwords and join
    tokens never reach the log stream.

    Example:
        >>> mcp.add_middleware(LoggingMiddleware(slow_threshold_ms=5000))
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_payloads: bool = False,
        max_payload_length: int = 1000,
        slow_threshold_ms: float = 1000.0,
    ) -> None:
        """Initialize logging middleware.

        Args:
            logger: Optional custom logger.
            include_payloads: Also log redacted arguments and results at DEBUG.
            max_payload_length: Characters kept from each payload.
            slow_threshold_ms: Calls at least this long are logged at WARNING.
        """
        super().__init__(logger=logger)
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length
        self.slow_threshold_ms = slow_threshold_ms

    def _payload(self, data: Any) -> str:
        text = redact_command(json.dumps(data, default=str))
        if len(text) > self.max_payload_length:
            return text[: self.max_payload_length] + "... [truncated]"
        return text

    def _elapsed(self, start: float) -> tuple[float, str]:
        """Milliseconds since start and a label flagging slow calls."""
        duration_ms = (time.perf_counter() - start) * 1000
        label = f"{duration_ms:.1f}ms"
        if duration_ms >= self.slow_threshold_ms:
            label += " SLOW!"
        return duration_ms, label

    def describe_call(self, name: str, args: dict[str, Any]) -> str:
        """Tool name followed by the action, node and target it addresses."""
        parts = [name]
        if args.get("action"):
            parts.append(f"action={args['action']}")
        if args.get("role"):
            parts.append(f"role={args['role']}")
        if args.get("server_name"):
            parts.append(f"node={args['server_name']}")
        if isinstance(args.get("commands"), list):
            parts.append(f"commands={len(args['commands'])}")
        target = describe_target(args.get("hops"))
        if target:
            parts.append(f"on {target}")
        return " ".join(parts)

    async def on_call_tool(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log a tool call on entry and on exit."""
        name = getattr(context.message, "name", "unknown")
        args = getattr(context.message, "arguments", None) or {}
        call = self.describe_call(name, args)

        self.logger.info(">>> TOOL: %s", call)
        if self.include_payloads and args:
            self.logger.debug("    Args: %s", self._payload(redact_params(args)))

        start = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            _, elapsed = self._elapsed(start)
            self.logger.error("!!! TOOL: %s -> %s: %s [%s]", call, type(e).__name__, e, elapsed)
            raise

        duration_ms, elapsed = self._elapsed(start)
        level = logging.WARNING if duration_ms >= self.slow_threshold_ms else logging.INFO
        self.logger.log(level, "<<< TOOL: %s -> %s [%s]", call, summarize_result(result), elapsed)

        if self.include_payloads and result is not None:
            self.logger.debug("    Result: %s", self._payload(result))
        return result

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log other MCP traffic at DEBUG. Tool calls are left to on_call_tool."""
        method = context.method
        if method == "tools/call":
            return await call_next(context)

        start = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            _, elapsed = self._elapsed(start)
            self.logger.error("!!! MCP: %s -> %s: %s [%s]", method, type(e).__name__, e, elapsed)
            raise

        _, elapsed = self._elapsed(start)
        self.logger.debug("MCP %s [%s]", method, elapsed)
        return result
