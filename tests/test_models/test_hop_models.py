"""Tests for hop chain models."""

import pytest

from kubehop.models import CommandTarget, HopDescriptor


class TestHopDescriptor:
    """Tests for HopDescriptor."""

    def test_port_defaults_to_22(self) -> None:
        """Missing or zero port falls back to 22."""
        assert HopDescriptor(host="10.0.0.1", username="ubuntu").port == 22
        assert HopDescriptor(host="10.0.0.1", username="ubuntu", port=0).port == 22

    def test_password_hidden_from_repr(self) -> None:
        """Passwords never show up in repr output."""
        hop = HopDescriptor(host="10.0.0.1", username="ubuntu", password="hunter2")
        assert "hunter2" not in repr(hop)

    def test_address(self) -> None:
        """Address combines host and port."""
        hop = HopDescriptor(host="bastion.example.com", username="ops", port=2222)
        assert hop.address == "bastion.example.com:2222"

    def test_from_dict_accepts_user_alias(self) -> None:
        """from_dict reads 'user' when 'username' is absent."""
        hop = HopDescriptor.from_dict({"host": "10.0.0.2", "user": "root", "port": "2200"})
        assert hop.username == "root"
        assert hop.port == 2200
        assert hop.password == ""

    def test_from_dict_missing_host(self) -> None:
        """from_dict rejects a hop without a host."""
        with pytest.raises(ValueError, match="host"):
            HopDescriptor.from_dict({"username": "root"})

    def test_from_dict_missing_username(self) -> None:
        """from_dict rejects a hop without a username."""
        with pytest.raises(ValueError, match="username"):
            HopDescriptor.from_dict({"host": "10.0.0.2"})

    def test_from_dict_invalid_port(self) -> None:
        """from_dict rejects a non-numeric port."""
        with pytest.raises(ValueError, match="invalid port"):
            HopDescriptor.from_dict({"host": "10.0.0.2", "username": "root", "port": "ssh"})


class TestCommandTarget:
    """Tests for CommandTarget."""

    def test_empty_target_is_falsy(self) -> None:
        """A target with no hops is falsy and has no final hop."""
        target = CommandTarget()
        assert not target
        assert target.final_hop is None
        assert target.description == "no target"

    def test_last_hop_is_final(self) -> None:
        """The last hop is the one that runs commands."""
        bastion = HopDescriptor(host="bastion", username="ops")
        node = HopDescriptor(host="10.0.0.5", username="ubuntu")
        target = CommandTarget(hops=[bastion, node])

        assert target.final_hop is node
        assert target.description == "10.0.0.5:22 (2 hops)"

    def test_single_hop_description(self) -> None:
        """A direct target is described by its address alone."""
        target = CommandTarget(hops=[HopDescriptor(host="10.0.0.5", username="ubuntu")])
        assert target.description == "10.0.0.5:22"
