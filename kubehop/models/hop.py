"""Hop chain data models."""

from dataclasses import dataclass, field


@dataclass
class HopDescriptor:
    """One SSH hop in a chain.

    Credentials are transient and never written anywhere.
    """

    host: str
    username: str
    password: str = field(default="", repr=False)
    port: int = 22

    def __post_init__(self) -> None:
        if not self.port:
            self.port = 22

    @property
    def address(self) -> str:
        """Host and port as ``host:port``."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "HopDescriptor":
        """Build a hop from a loosely typed mapping.

        Args:
            data: Mapping with host, port, username/user and password keys

        Returns:
            HopDescriptor with port defaulting to 22

        Raises:
            ValueError: If host or username is missing
        """
        host = str(data.get("host") or "").strip()
        username = str(data.get("username") or data.get("user") or "").strip()
        if not host:
            raise ValueError("Hop is missing 'host'")
        if not username:
            raise ValueError(f"Hop {host} is missing 'username'")

        raw_port = data.get("port") or 22
        try:
            port = int(raw_port)  # type: ignore[call-overload]
        except (TypeError, ValueError) as e:
            raise ValueError(f"Hop {host} has invalid port: {raw_port!r}") from e

        return cls(
            host=host,
            username=username,
            password=str(data.get("password") or ""),
            port=port,
        )


@dataclass
class CommandTarget:
    """Where a command list runs.

    The first hop is the bastion and the last hop is the machine that
    actually executes the commands.
    """

    hops: list[HopDescriptor] = field(default_factory=list)

    @property
    def final_hop(self) -> HopDescriptor | None:
        """The hop that runs the commands, or None for an empty target."""
        return self.hops[-1] if self.hops else None

    @property
    def description(self) -> str:
        """Short human-readable label for logs."""
        last = self.final_hop
        if last is None:
            return "no target"
        if len(self.hops) == 1:
            return last.address
        return f"{last.address} ({len(self.hops)} hops)"

    def __bool__(self) -> bool:
        return bool(self.hops)
