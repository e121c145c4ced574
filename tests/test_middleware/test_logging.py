"""Tests for logging middleware."""

import json
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from kubehop.middleware.logging import LoggingMiddleware, describe_target, summarize_result

HOPS = [
    {"host": "bastion.example", "username": "jump", "password": "jump-secret"},
    {"host": "10.0.0.5", "port": 2222, "username": "ubuntu", "password": "node-secret"},
]


@pytest.fixture
def mock_tool_context() -> MagicMock:
    """Create a mock middleware context for tool calls."""
    context = MagicMock()
    context.method = "tools/call"
    context.source = "client"
    context.message = MagicMock()
    context.message.name = "run_action"
    context.message.arguments = {
        "action": "getNodeStatus",
        "params": {"type": "master", "password": "hunter2"},
        "hops": HOPS,
    }
    return context


@pytest.fixture
def mock_generic_context() -> MagicMock:
    """Create a mock middleware context for generic messages."""
    context = MagicMock()
    context.method = "prompts/get"
    context.source = "client"
    context.message = MagicMock()
    return context


@pytest.mark.asyncio
async def test_entry_line_names_action_and_target(mock_tool_context: MagicMock) -> None:
    """The entry line shows the action and the last hop."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)
    call_next = AsyncMock(return_value={"ok": True, "results": []})

    await middleware.on_call_tool(mock_tool_context, call_next)

    entry = mock_logger.info.call_args
    assert entry.args[0] == ">>> TOOL: %s"
    assert entry.args[1] == "run_action action=getNodeStatus on ubuntu@10.0.0.5:2222 (2 hops)"


@pytest.mark.asyncio
async def test_completion_summarizes_outcome(mock_tool_context: MagicMock) -> None:
    """The exit line counts commands and failures."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)
    outcome = {
        "ok": False,
        "results": [{"exit_code": 0}, {"exit_code": 1}],
    }

    await middleware.on_call_tool(mock_tool_context, AsyncMock(return_value=outcome))

    completion = mock_logger.log.call_args
    assert completion.args[0] == logging.INFO
    assert "<<< TOOL" in completion.args[1]
    assert completion.args[3] == "ok=False, 2 command(s), 1 failed"


@pytest.mark.asyncio
async def test_tool_arguments_are_redacted(mock_tool_context: MagicMock) -> None:
    """Passwords in params and hops never reach the log."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger, include_payloads=True)
    call_next = AsyncMock(return_value={"ok": True, "results": []})

    await middleware.on_call_tool(mock_tool_context, call_next)

    logged = str(mock_logger.info.call_args_list) + str(mock_logger.debug.call_args_list)
    assert "hunter2" not in logged
    assert "jump-secret" not in logged
    assert "node-secret" not in logged
    assert "***" in logged


@pytest.mark.asyncio
async def test_result_payload_masks_sudo_passwords(mock_tool_context: MagicMock) -> None:
    """Command text echoed back in results is masked too."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger, include_payloads=True)
    outcome = {"ok": True, "results": [{"command": "echo hunter2 | sudo -S ls", "exit_code": 0}]}

    await middleware.on_call_tool(mock_tool_context, AsyncMock(return_value=outcome))

    assert "hunter2" not in str(mock_logger.debug.call_args_list)


@pytest.mark.asyncio
async def test_error_results_are_summarized(mock_tool_context: MagicMock) -> None:
    """Error payloads are summarized by kind."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)
    call_next = AsyncMock(return_value={"error": "Cannot connect", "kind": "connection"})

    await middleware.on_call_tool(mock_tool_context, call_next)

    assert mock_logger.log.call_args.args[3] == "error (connection)"


@pytest.mark.asyncio
async def test_logs_tool_exceptions(mock_tool_context: MagicMock) -> None:
    """Exceptions are logged and re-raised."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)
    call_next = AsyncMock(side_effect=RuntimeError("exploded"))

    with pytest.raises(RuntimeError):
        await middleware.on_call_tool(mock_tool_context, call_next)

    assert "!!! TOOL" in str(mock_logger.error.call_args)
    assert "exploded" in str(mock_logger.error.call_args)


@pytest.mark.asyncio
async def test_slow_calls_log_warning(mock_tool_context: MagicMock) -> None:
    """Calls over the threshold are logged at WARNING with a marker."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger, slow_threshold_ms=100.0)
    call_next = AsyncMock(return_value={"state": "running"})

    with patch("kubehop.middleware.logging.time.perf_counter", side_effect=[0.0, 0.5]):
        await middleware.on_call_tool(mock_tool_context, call_next)

    args = mock_logger.log.call_args.args
    assert args[0] == logging.WARNING
    assert args[3] == "state=running"
    assert args[4] == "500.0ms SLOW!"


@pytest.mark.asyncio
async def test_on_message_skips_tool_methods(mock_tool_context: MagicMock) -> None:
    """Tool calls are left to on_call_tool."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)
    call_next = AsyncMock(return_value="r")

    assert await middleware.on_message(mock_tool_context, call_next) == "r"
    mock_logger.debug.assert_not_called()


@pytest.mark.asyncio
async def test_on_message_logs_other_methods(mock_generic_context: MagicMock) -> None:
    """Other MCP methods are logged at DEBUG."""
    mock_logger = MagicMock()
    middleware = LoggingMiddleware(logger=mock_logger)

    await middleware.on_message(mock_generic_context, AsyncMock(return_value=None))

    assert "prompts/get" in str(mock_logger.debug.call_args_list)


def test_payload_truncated() -> None:
    """Long payloads are cut at max_payload_length."""
    middleware = LoggingMiddleware(max_payload_length=10)
    assert middleware._payload({"x": "y" * 50}).endswith("... [truncated]")


def test_describe_call_for_node_removal() -> None:
    """remove_node calls show the role and node name."""
    middleware = LoggingMiddleware()
    args = {"role": "master", "server_name": "cp-2", "password": "pw", "hops": HOPS[1:]}
    assert middleware.describe_call("remove_node", args) == (
        "remove_node role=master node=cp-2 on ubuntu@10.0.0.5:2222"
    )
    assert middleware.describe_call("run_commands", {"commands": ["a", "b"]}) == (
        "run_commands commands=2"
    )


def test_describe_target_without_hops() -> None:
    """Missing or malformed hops give no target."""
    assert describe_target(None) is None
    assert describe_target([]) is None
    assert describe_target(["10.0.0.1"]) is None
    assert describe_target([{"host": "h", "username": "u"}]) == "u@h:22"


def test_summarize_result_shapes() -> None:
    """Results are summarized by the kubehop shape they carry."""
    assert summarize_result(None) == "null"
    assert summarize_result({"found": True, "join_command": "x"}) == "found=True"
    assert summarize_result({"actions": [{}, {}, {}]}) == "3 action(s)"
    assert summarize_result({"a": 1, "b": 2}) == "2 keys"
    report = {"ok": False, "steps": [{"ok": True}, {"ok": False}]}
    assert summarize_result(report) == "ok=False, 2 step(s), 1 failed"


def test_summarize_wrapped_tool_results() -> None:
    """ToolResult-like objects are unwrapped before summarizing."""
    structured = SimpleNamespace(structured_content={"state": "succeeded"}, content=[])
    assert summarize_result(structured) == "state=succeeded"

    text = SimpleNamespace(text=json.dumps({"error": "boom", "kind": "timeout"}))
    assert summarize_result(SimpleNamespace(structured_content=None, content=[text])) == (
        "error (timeout)"
    )
    assert summarize_result(SimpleNamespace(content=[1, 2])) == "2 content item(s)"
    assert summarize_result(3) == "int"
