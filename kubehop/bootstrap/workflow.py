"""First control-plane bootstrap: launch, status and credential recovery."""

import logging
from datetime import datetime, timedelta

from kubehop import actions
from kubehop.bootstrap.extraction import clean_join_command, extract_credentials, is_complete_join
from kubehop.bootstrap.state import LOG_TAIL_LINES, infer_state, parse_markers
from kubehop.models import (
    BootstrapState,
    BootstrapStatus,
    CommandTarget,
    ExecutionOutcome,
    ExtractedCredential,
    ExtractionReport,
    Params,
)
from kubehop.protocols import ActionRunner

logger = logging.getLogger(__name__)

CREDENTIAL_MAX_AGE = timedelta(hours=2)
MARKER_HEURISTIC = "marker_file"


def _output(outcome: ExecutionOutcome, index: int) -> str:
    if index >= len(outcome.results):
        return ""
    return outcome.results[index].output.strip()


class BootstrapWorkflow:
    """Drives a detached first-master install through the action runner.

    The workflow keeps no state of its own. Everything it reports is
    read back from the target's marker files on each call.
    """

    def __init__(self, runner: ActionRunner) -> None:
        """Initialize workflow.

        Args:
            runner: Action runner, normally the CommandOrchestrator
        """
        self.runner = runner

    async def launch(
        self,
        target: CommandTarget,
        params: Params,
        timeout: float | None = None,
    ) -> ExecutionOutcome:
        """Write the install and watcher scripts and start them detached.

        Returns as soon as both processes are started. Failures inside
        the install only show up through status().

        Args:
            target: Hop chain ending at the first control-plane host
            params: installFirstMaster parameters (password, lb_ip, ...)
            timeout: Per-call override of the orchestrator timeout

        Returns:
            ExecutionOutcome of the launch commands

        Raises:
            RemoteExecError: If any launch command failed
        """
        outcome = await self.runner.execute(actions.INSTALL_FIRST_MASTER, params, target, timeout)
        outcome.raise_for_status()
        logger.info("Detached install launched on %s", outcome.target)
        return outcome

    async def status(
        self,
        target: CommandTarget,
        lines: int = LOG_TAIL_LINES,
    ) -> BootstrapStatus:
        """Read the marker files and infer the install state.

        Args:
            target: Hop chain ending at the install host
            lines: Install log lines to include in the markers

        Returns:
            BootstrapStatus with the credential when the watcher wrote one
        """
        outcome = await self.runner.execute(actions.GET_INSTALL_STATUS, {"lines": lines}, target)
        markers = parse_markers(outcome.results)
        state = infer_state(markers)
        logger.debug("Install on %s is %s", outcome.target, state.value)

        credential = None
        if state is BootstrapState.INSTALLED and markers.join_command:
            credential = ExtractedCredential(
                join_command=markers.join_command,
                certificate_key=markers.certificate_key,
            )
        return BootstrapStatus(state=state, markers=markers, credential=credential)

    async def fetch_credentials(self, target: CommandTarget) -> ExtractionReport:
        """Get the join credentials, re-deriving them from the log if needed.

        The watcher's marker files are used when they hold a complete
        join command. Otherwise the whole install log is read back and
        the extraction cascade runs locally.

        Args:
            target: Hop chain ending at the install host

        Returns:
            ExtractionReport, with candidate lines when nothing was found
        """
        markers = await self.runner.execute(actions.FETCH_JOIN_CREDENTIALS, {}, target)
        join_command = _output(markers, 0)
        certificate_key = _output(markers, 1)

        if is_complete_join(join_command):
            return ExtractionReport(
                credential=ExtractedCredential(
                    join_command=clean_join_command(join_command),
                    certificate_key=certificate_key or None,
                ),
                join_heuristic=MARKER_HEURISTIC,
                certificate_heuristic=MARKER_HEURISTIC if certificate_key else None,
            )

        logger.info("Join marker empty on %s, extracting from install log", markers.target)
        log = await self.runner.execute(actions.READ_INSTALL_LOG, {}, target)
        return extract_credentials(_output(log, 0))

    @staticmethod
    def credentials_stale(
        updated_at: datetime,
        now: datetime,
        max_age: timedelta = CREDENTIAL_MAX_AGE,
    ) -> bool:
        """True when stored credentials are older than max_age.

        kubeadm bootstrap tokens and uploaded certificates expire, so
        callers that keep credentials around re-fetch stale ones.
        """
        return now - updated_at > max_age
