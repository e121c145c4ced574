"""Tests for error classification and the exception hierarchy."""

import asyncio

import pytest

from kubehop.models import CommandResult
from kubehop.services.errors import (
    AuthError,
    CommandTimeout,
    ConnectError,
    ErrorKind,
    KubehopError,
    NoTarget,
    RemoteExecError,
    UnsupportedAction,
    ValidationFailed,
    as_kubehop_error,
    classify_error,
)


class TestClassifyError:
    """Tests for classify_error substring matching."""

    @pytest.mark.parametrize(
        ("message", "kind"),
        [
            ("Operation timeout", ErrorKind.TIMEOUT),
            ("read timed out after 30s", ErrorKind.TIMEOUT),
            ("Connection refused", ErrorKind.CONNECTION),
            ("could not connect to 10.0.0.1", ErrorKind.CONNECTION),
            ("Authentication failed", ErrorKind.AUTH),
            ("auth rejected by server", ErrorKind.AUTH),
            ("exit status 2", ErrorKind.EXEC),
        ],
    )
    def test_keywords(self, message: str, kind: ErrorKind) -> None:
        """Each keyword maps to its kind."""
        assert classify_error(message) is kind

    def test_timeout_checked_before_connection(self) -> None:
        """A message with both keywords is a timeout."""
        assert classify_error("connection timed out") is ErrorKind.TIMEOUT

    def test_connection_checked_before_auth(self) -> None:
        """A message with both keywords is a connection error."""
        assert classify_error("connection closed during auth") is ErrorKind.CONNECTION

    def test_case_insensitive(self) -> None:
        """Matching ignores case."""
        assert classify_error("TIMED OUT") is ErrorKind.TIMEOUT

    def test_empty_message_uses_type_name(self) -> None:
        """Exceptions without a message are classified by type name."""
        assert classify_error(asyncio.TimeoutError()) is ErrorKind.TIMEOUT

    def test_accepts_exceptions(self) -> None:
        """Exceptions are classified by their message."""
        assert classify_error(OSError("Connection reset by peer")) is ErrorKind.CONNECTION


class TestHierarchy:
    """Tests for the exception classes."""

    def test_all_derive_from_base(self) -> None:
        """Every error is a KubehopError."""
        for error in (
            UnsupportedAction("nope"),
            ValidationFailed("joinWorker", "missing"),
            NoTarget("drainNode"),
            ConnectError("10.0.0.1:22", "refused"),
            AuthError("10.0.0.1:22", "denied"),
            CommandTimeout("late"),
        ):
            assert isinstance(error, KubehopError)

    def test_kinds(self) -> None:
        """Typed errors carry their kind."""
        assert ConnectError("h", "x").kind is ErrorKind.CONNECTION
        assert AuthError("h", "x").kind is ErrorKind.AUTH
        assert CommandTimeout("x").kind is ErrorKind.TIMEOUT
        assert UnsupportedAction("x").kind is ErrorKind.EXEC

    def test_auth_is_connect_error(self) -> None:
        """AuthError can be caught as a ConnectError."""
        assert isinstance(AuthError("h", "denied", hop_index=1), ConnectError)

    def test_connect_error_mentions_hop(self) -> None:
        """ConnectError names the failing hop position."""
        error = ConnectError("10.0.0.9:22", "No route to host", hop_index=2)
        assert "hop 2" in str(error)
        assert error.hop_index == 2

    def test_timeout_keeps_partial_results(self) -> None:
        """CommandTimeout copies the results it was given."""
        results = [CommandResult(command="uptime")]
        error = CommandTimeout("late", results)
        results.append(CommandResult(command="other"))
        assert len(error.results) == 1

    def test_remote_exec_error_detail(self) -> None:
        """RemoteExecError prefers the transport failure, then stderr."""
        failed = CommandResult(command="x", exit_code=1, error="permission denied\n")
        assert "permission denied" in str(RemoteExecError("custom", failed))
        broken = CommandResult(command="x", exit_code=-1, failure="channel closed")
        assert "channel closed" in str(RemoteExecError("custom", broken))


class TestAsKubehopError:
    """Tests for mapping foreign exceptions."""

    def test_passes_typed_errors_through(self) -> None:
        """KubehopError instances are returned unchanged."""
        error = NoTarget("x")
        assert as_kubehop_error(error) is error

    def test_maps_timeouts(self) -> None:
        """Timeout messages become CommandTimeout."""
        assert isinstance(as_kubehop_error(RuntimeError("timed out")), CommandTimeout)

    def test_maps_connection(self) -> None:
        """Connection messages become ConnectError with the target."""
        error = as_kubehop_error(OSError("Connection refused"), "10.0.0.1:22")
        assert isinstance(error, ConnectError)
        assert error.host_name == "10.0.0.1:22"

    def test_maps_auth(self) -> None:
        """Auth messages become AuthError."""
        assert isinstance(as_kubehop_error(RuntimeError("Authentication failed")), AuthError)

    def test_maps_everything_else(self) -> None:
        """Other failures become a plain KubehopError."""
        error = as_kubehop_error(RuntimeError("boom"), "node-1")
        assert type(error) is KubehopError
        assert "node-1" in str(error)
