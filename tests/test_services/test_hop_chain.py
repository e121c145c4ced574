"""Tests for the hop chain executor."""

import asyncio
import time
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from kubehop.models import HopDescriptor
from kubehop.services.errors import AuthError, CommandTimeout, ConnectError
from kubehop.services.hops import COMMAND_TIMED_OUT, HopChainExecutor


def make_conn(name: str, closed: list[str] | None = None, returncode: int = 0) -> MagicMock:
    """Create a mock SSH connection that echoes each command."""
    conn = MagicMock(name=name)

    async def run(command: str, check: bool = False) -> MagicMock:
        return MagicMock(stdout=f"{name}:{command}\n", stderr="", returncode=returncode)

    conn.run = AsyncMock(side_effect=run)
    if closed is not None:
        conn.close = MagicMock(side_effect=lambda: closed.append(name))
    return conn


@pytest.fixture
def hops() -> list[HopDescriptor]:
    """Three-hop chain: bastion, jump host, node."""
    return [
        HopDescriptor(host="bastion.example.com", username="ops", password="b-pass"),
        HopDescriptor(host="10.0.0.2", username="jump", port=2222),
        HopDescriptor(host="10.0.1.5", username="ubuntu", password="n-pass"),
    ]


@pytest.fixture
def executor() -> HopChainExecutor:
    """Executor without host key verification."""
    return HopChainExecutor(known_hosts=None, default_timeout=5.0)


class TestChainSetup:
    """Tests for opening the chain."""

    @pytest.mark.asyncio
    async def test_each_hop_tunnels_through_previous(
        self, executor: HopChainExecutor, hops: list[HopDescriptor]
    ) -> None:
        """Hop 0 dials directly, later hops tunnel through the one before."""
        conns = [make_conn("c0"), make_conn("c1"), make_conn("c2")]

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = conns
            await executor.execute(hops, ["hostname"])

        calls = mock_connect.call_args_list
        assert [c.args[0] for c in calls] == ["bastion.example.com", "10.0.0.2", "10.0.1.5"]
        assert "tunnel" not in calls[0].kwargs
        assert calls[1].kwargs["tunnel"] is conns[0]
        assert calls[2].kwargs["tunnel"] is conns[1]
        assert calls[1].kwargs["port"] == 2222

    @pytest.mark.asyncio
    async def test_password_only_sent_when_set(
        self, executor: HopChainExecutor, hops: list[HopDescriptor]
    ) -> None:
        """Hops without a password leave auth to keys and agents."""
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = [make_conn("c0"), make_conn("c1"), make_conn("c2")]
            await executor.execute(hops, ["true"])

        calls = mock_connect.call_args_list
        assert calls[0].kwargs["password"] == "b-pass"
        assert "password" not in calls[1].kwargs
        assert calls[2].kwargs["known_hosts"] is None

    @pytest.mark.asyncio
    async def test_known_hosts_forwarded(self, hops: list[HopDescriptor]) -> None:
        """Configured known_hosts is passed to every hop."""
        executor = HopChainExecutor(known_hosts="/etc/ssh/known_hosts")
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = [make_conn("c0"), make_conn("c1"), make_conn("c2")]
            await executor.execute(hops, ["true"])

        for call in mock_connect.call_args_list:
            assert call.kwargs["known_hosts"] == "/etc/ssh/known_hosts"

    @pytest.mark.asyncio
    async def test_connect_failure_names_hop(
        self, executor: HopChainExecutor, hops: list[HopDescriptor]
    ) -> None:
        """A failure at hop k raises ConnectError with hop_index k."""
        closed: list[str] = []
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = [make_conn("c0", closed), OSError("No route to host")]
            with pytest.raises(ConnectError) as exc_info:
                await executor.execute(hops, ["hostname"])

        assert exc_info.value.hop_index == 1
        assert exc_info.value.host_name == "10.0.0.2:2222"
        assert not isinstance(exc_info.value, AuthError)
        assert closed == ["c0"]

    @pytest.mark.asyncio
    async def test_auth_failure(self, executor: HopChainExecutor, hops: list[HopDescriptor]) -> None:
        """Rejected credentials raise AuthError."""
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = asyncssh.PermissionDenied("bad password")
            with pytest.raises(AuthError) as exc_info:
                await executor.execute(hops, ["hostname"])

        assert exc_info.value.hop_index == 0

    @pytest.mark.asyncio
    async def test_connect_timeout(self, hops: list[HopDescriptor]) -> None:
        """A hop that never answers exhausts the shared deadline."""
        executor = HopChainExecutor(default_timeout=0.05)

        async def hang(*args: Any, **kwargs: Any) -> MagicMock:
            await asyncio.sleep(5)
            return make_conn("never")

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = hang
            with pytest.raises(CommandTimeout, match="hop 0"):
                await executor.execute(hops, ["hostname"])


class TestCommandExecution:
    """Tests for running commands on the final hop."""

    @pytest.mark.asyncio
    async def test_commands_run_in_order_on_final_hop(
        self, executor: HopChainExecutor, hops: list[HopDescriptor]
    ) -> None:
        """Every command runs on the last connection, in submission order."""
        conns = [make_conn("c0"), make_conn("c1"), make_conn("c2")]
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = conns
            results = await executor.execute(hops, ["one", "two", "three"])

        assert [r.command for r in results] == ["one", "two", "three"]
        assert [r.output for r in results] == ["c2:one\n", "c2:two\n", "c2:three\n"]
        conns[0].run.assert_not_called()
        conns[1].run.assert_not_called()

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_a_result(self, executor: HopChainExecutor) -> None:
        """Non-zero exits are reported, not raised, and later commands still run."""
        hop = [HopDescriptor(host="10.0.0.1", username="root")]
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = make_conn("c0", returncode=3)
            results = await executor.execute(hop, ["false", "true"])

        assert len(results) == 2
        assert all(r.exit_code == 3 for r in results)

    @pytest.mark.asyncio
    async def test_bytes_output_decoded(self, executor: HopChainExecutor) -> None:
        """Byte output is decoded and a None return code counts as 0."""
        conn = MagicMock()
        conn.run = AsyncMock(return_value=MagicMock(stdout=b"ok\n", stderr=None, returncode=None))
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = conn
            results = await executor.execute([HopDescriptor(host="h", username="u")], ["x"])

        assert results[0].output == "ok\n"
        assert results[0].error == ""
        assert results[0].exit_code == 0

    @pytest.mark.asyncio
    async def test_channel_error_recorded_as_failure(self, executor: HopChainExecutor) -> None:
        """A command that cannot start gets a failure entry and the list continues."""
        conn = MagicMock()
        conn.run = AsyncMock(
            side_effect=[OSError("channel open failed"), MagicMock(stdout="", stderr="", returncode=0)]
        )
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.return_value = conn
            results = await executor.execute([HopDescriptor(host="h", username="u")], ["a", "b"])

        assert results[0].failure == "channel open failed"
        assert results[0].exit_code == -1
        assert results[1].ok

    @pytest.mark.asyncio
    async def test_timeout_keeps_partial_results(self, hops: list[HopDescriptor]) -> None:
        """The deadline expiring mid-list raises with the results gathered so far."""
        executor = HopChainExecutor(default_timeout=5.0)
        final = MagicMock()

        async def run(command: str, check: bool = False) -> MagicMock:
            if command == "sleep":
                await asyncio.sleep(5)
            return MagicMock(stdout=f"{command}\n", stderr="", returncode=0)

        final.run = AsyncMock(side_effect=run)
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = [make_conn("c0"), make_conn("c1"), final]
            with pytest.raises(CommandTimeout) as exc_info:
                await executor.execute(hops, ["uptime", "sleep", "never"], timeout=0.2)

        results = exc_info.value.results
        assert [r.command for r in results] == ["uptime", "sleep"]
        assert results[0].ok
        assert results[1].failure == COMMAND_TIMED_OUT
        assert "1/3" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connections_closed_in_reverse(
        self, executor: HopChainExecutor, hops: list[HopDescriptor]
    ) -> None:
        """Connections close last-opened first."""
        closed: list[str] = []
        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = [
                make_conn("c0", closed),
                make_conn("c1", closed),
                make_conn("c2", closed),
            ]
            await executor.execute(hops, ["true"])

        assert closed == ["c2", "c1", "c0"]

    @pytest.mark.asyncio
    async def test_rejects_empty_inputs(self, executor: HopChainExecutor) -> None:
        """Empty hop or command lists are programming errors."""
        with pytest.raises(ValueError, match="at least one hop"):
            await executor.execute([], ["true"])
        with pytest.raises(ValueError, match="must not be empty"):
            await executor.execute([HopDescriptor(host="h", username="u")], [])

    @pytest.mark.asyncio
    async def test_open_chain_returns_final_connection(
        self, executor: HopChainExecutor, hops: list[HopDescriptor]
    ) -> None:
        """Chain setup hands back the last hop and rejects an empty chain."""
        conns = [make_conn("c0"), make_conn("c1"), make_conn("c2")]
        opened: list[Any] = []
        deadline = time.monotonic() + 60

        with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
            mock_connect.side_effect = conns
            final = await executor._open_chain(hops, opened, deadline)

            with pytest.raises(ValueError, match="at least one hop"):
                await executor._open_chain([], [], deadline)

        assert final is conns[2]
        assert opened == conns
        assert mock_connect.call_count == 3
