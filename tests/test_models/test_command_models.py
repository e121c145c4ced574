"""Tests for command execution models."""

import pytest

from kubehop.models import CommandResult, ExecutionOutcome, ExtractedCredential, ExtractionReport
from kubehop.services.errors import RemoteExecError


class TestCommandResult:
    """Tests for CommandResult."""

    def test_ok_requires_zero_exit_and_no_failure(self) -> None:
        """Only exit 0 without a transport failure counts as ok."""
        assert CommandResult(command="true").ok
        assert not CommandResult(command="false", exit_code=1).ok
        assert not CommandResult(command="ls", exit_code=-1, failure="channel closed").ok

    def test_to_dict_rounds_duration(self) -> None:
        """to_dict rounds the duration to milliseconds."""
        data = CommandResult(command="ls", output="a\n", duration=0.123456).to_dict()
        assert data["duration"] == 0.123
        assert data["output"] == "a\n"
        assert data["failure"] is None


class TestExecutionOutcome:
    """Tests for ExecutionOutcome."""

    def test_failed_lists_bad_results(self) -> None:
        """failed contains only unsuccessful results, in order."""
        bad = CommandResult(command="false", exit_code=1)
        outcome = ExecutionOutcome(
            action="custom",
            target="10.0.0.1:22",
            results=[CommandResult(command="true"), bad],
        )
        assert not outcome.ok
        assert outcome.failed == [bad]

    def test_raise_for_status_raises_first_failure(self) -> None:
        """raise_for_status raises RemoteExecError naming the action."""
        outcome = ExecutionOutcome(
            action="installDocker",
            target="10.0.0.1:22",
            results=[CommandResult(command="apt-get update", exit_code=100, error="E: lock")],
        )
        with pytest.raises(RemoteExecError, match="installDocker") as exc_info:
            outcome.raise_for_status()
        assert exc_info.value.result.exit_code == 100

    def test_raise_for_status_passes_when_ok(self) -> None:
        """raise_for_status is silent when every command succeeded."""
        outcome = ExecutionOutcome(action="custom", target="t", results=[CommandResult(command="true")])
        outcome.raise_for_status()

    def test_to_dict(self) -> None:
        """to_dict includes ok and serialized results."""
        outcome = ExecutionOutcome(
            action="getNodeStatus",
            target="10.0.0.1:22",
            results=[CommandResult(command="echo hi", output="hi\n")],
            elapsed=1.23456,
        )
        data = outcome.to_dict()
        assert data["ok"] is True
        assert data["elapsed"] == 1.235
        assert data["results"][0]["command"] == "echo hi"


class TestCredentials:
    """Tests for extracted credential models."""

    def test_control_plane_join_command(self) -> None:
        """Control-plane join appends the certificate key fragment."""
        credential = ExtractedCredential(
            join_command="kubeadm join 10.0.0.1:6444 --token abc",
            certificate_key="--control-plane --certificate-key deadbeef",
        )
        assert credential.control_plane_join_command == (
            "kubeadm join 10.0.0.1:6444 --token abc --control-plane --certificate-key deadbeef"
        )

    def test_control_plane_join_needs_key(self) -> None:
        """Without a certificate key there is no control-plane join command."""
        credential = ExtractedCredential(join_command="kubeadm join x --token y")
        assert credential.control_plane_join_command is None

    def test_report_found(self) -> None:
        """found follows the presence of a credential."""
        assert not ExtractionReport().found
        assert ExtractionReport(credential=ExtractedCredential(join_command="kubeadm join")).found
