"""Run command lists across chained SSH hops.

Hop 0 is dialled directly. Every later hop is dialled through the
connection to the hop before it, so the final hop can sit on a private
network only the bastion can reach. Commands run one at a time on the
final hop in submission order.

A single deadline covers chain setup and every command.
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

import asyncssh

from kubehop.models import CommandResult, HopDescriptor
from kubehop.services.errors import AuthError, CommandTimeout, ConnectError

logger = logging.getLogger(__name__)

DEFAULT_HOP_TIMEOUT = 120.0
COMMAND_TIMED_OUT = "command timed out"


def _decode(value: Any) -> str:
    """Normalize asyncssh output, which may be bytes, str or None."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class HopChainExecutor:
    """Executes commands on the last hop of an SSH chain."""

    def __init__(
        self,
        known_hosts: str | None = None,
        default_timeout: float = DEFAULT_HOP_TIMEOUT,
    ) -> None:
        """Initialize executor.

        Args:
            known_hosts: Path to known_hosts file, or None to skip host key checks
            default_timeout: Seconds used when execute() gets no timeout
        """
        self._known_hosts = known_hosts
        self.default_timeout = default_timeout

        if self._known_hosts is None:
            logger.warning(
                "SSH host key verification DISABLED for hop chains. "
                "Set KUBEHOP_KNOWN_HOSTS to a known_hosts file path."
            )

    async def _connect(
        self,
        hop: HopDescriptor,
        tunnel: asyncssh.SSHClientConnection | None,
    ) -> asyncssh.SSHClientConnection:
        """Open one hop, optionally tunnelled through the previous one."""
        kwargs: dict[str, Any] = {
            "port": hop.port,
            "username": hop.username,
            "known_hosts": self._known_hosts,
        }
        if hop.password:
            kwargs["password"] = hop.password
        if tunnel is not None:
            kwargs["tunnel"] = tunnel
        return await asyncssh.connect(hop.host, **kwargs)

    async def _open_chain(
        self,
        hops: Sequence[HopDescriptor],
        connections: list[asyncssh.SSHClientConnection],
        deadline: float,
    ) -> asyncssh.SSHClientConnection:
        """Dial every hop in order, appending each connection as it opens.

        Raises:
            ValueError: If hops is empty
            AuthError: If a hop rejects the credentials
            ConnectError: If a hop cannot be reached or tunnelled through
            CommandTimeout: If the deadline expires during setup
        """
        if not hops:
            raise ValueError("Hop chain must contain at least one hop")

        for index, hop in enumerate(hops):
            tunnel = connections[-1] if connections else None
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CommandTimeout(f"Timed out before connecting to hop {index} {hop.address}")

            logger.debug(
                "Opening hop %d/%d %s@%s",
                index + 1,
                len(hops),
                hop.username,
                hop.address,
            )
            try:
                conn = await asyncio.wait_for(self._connect(hop, tunnel), remaining)
            except asyncio.TimeoutError as e:
                raise CommandTimeout(
                    f"Timed out connecting to hop {index} {hop.address}"
                ) from e
            except asyncssh.PermissionDenied as e:
                logger.warning("Authentication failed at hop %d (%s)", index, hop.address)
                raise AuthError(hop.address, e, hop_index=index) from e
            except Exception as e:
                logger.warning(
                    "Connection failed at hop %d (%s): %s",
                    index,
                    hop.address,
                    e,
                )
                raise ConnectError(hop.address, e, hop_index=index) from e

            connections.append(conn)

        return connections[-1]

    async def _run_one(
        self,
        conn: asyncssh.SSHClientConnection,
        command: str,
        remaining: float,
    ) -> CommandResult:
        """Run one command, converting its outcome into a CommandResult."""
        started = time.monotonic()
        try:
            completed = await asyncio.wait_for(conn.run(command, check=False), remaining)
        except asyncio.TimeoutError:
            return CommandResult(
                command=command,
                exit_code=-1,
                duration=time.monotonic() - started,
                failure=COMMAND_TIMED_OUT,
            )
        except (OSError, asyncssh.Error) as e:
            logger.warning("Command could not be started on channel: %s", e)
            return CommandResult(
                command=command,
                exit_code=-1,
                duration=time.monotonic() - started,
                failure=str(e),
            )

        return CommandResult(
            command=command,
            output=_decode(completed.stdout),
            error=_decode(completed.stderr),
            exit_code=completed.returncode if completed.returncode is not None else 0,
            duration=time.monotonic() - started,
        )

    async def execute(
        self,
        hops: Sequence[HopDescriptor],
        commands: Sequence[str],
        timeout: float | None = None,
    ) -> list[CommandResult]:
        """Run commands sequentially on the final hop of the chain.

        Args:
            hops: Ordered hop chain, bastion first
            commands: Commands to run in order
            timeout: Seconds covering chain setup and all commands

        Returns:
            One CommandResult per command, in submission order. Non-zero
            exit codes are results, not errors.

        Raises:
            ValueError: If hops or commands is empty
            ConnectError: If any hop cannot be reached
            AuthError: If any hop rejects its credentials
            CommandTimeout: If the deadline expires. Carries the results
                gathered before expiry.
        """
        if not hops:
            raise ValueError("Hop chain must contain at least one hop")
        if not commands:
            raise ValueError("Command list must not be empty")

        budget = timeout if timeout and timeout > 0 else self.default_timeout
        deadline = time.monotonic() + budget
        connections: list[asyncssh.SSHClientConnection] = []
        results: list[CommandResult] = []
        final = hops[-1]

        try:
            conn = await self._open_chain(hops, connections, deadline)
            logger.info(
                "Running %d command(s) on %s via %d hop(s)",
                len(commands),
                final.address,
                len(hops),
            )

            for command in commands:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise CommandTimeout(
                        f"Timed out after {len(results)}/{len(commands)} command(s) "
                        f"on {final.address}",
                        results,
                    )

                result = await self._run_one(conn, command, remaining)
                results.append(result)

                if result.failure == COMMAND_TIMED_OUT:
                    raise CommandTimeout(
                        f"Timed out after {len(results) - 1}/{len(commands)} command(s) "
                        f"on {final.address}",
                        results,
                    )
                if result.exit_code != 0:
                    logger.debug(
                        "Command exited %d on %s",
                        result.exit_code,
                        final.address,
                    )
        finally:
            for opened in reversed(connections):
                opened.close()

        return results
