"""Bootstrap state inferred from remote marker files.

Nothing about an install is remembered between calls. Each status
check re-reads the marker files and derives the state from them.
"""

from collections.abc import Sequence

from kubehop.bootstrap import paths
from kubehop.bootstrap.watcher import WATCHER_TIMEOUT_MESSAGE
from kubehop.models import BootstrapMarkers, BootstrapState, CommandResult

RUNNING = "RUNNING"
EXTRACTION_FAILED = "EXTRACTION_FAILED"
LOG_TAIL_LINES = 40


def status_commands(tail_lines: int = LOG_TAIL_LINES) -> list[str]:
    """Commands that collect every marker, one marker per command.

    The order is fixed; parse_markers relies on it.
    """
    pid = paths.INSTALL_PID
    return [
        f"cat {pid} 2>/dev/null || true",
        f'if [ -s {pid} ] && ps -p "$(cat {pid})" > /dev/null 2>&1; then echo {RUNNING}; else echo STOPPED; fi',
        f"grep -cF -- {paths.INSTALL_SENTINEL} {paths.INSTALL_LOG} 2>/dev/null || true",
        f"cat {paths.JOIN_COMMAND_FILE} 2>/dev/null || true",
        f"cat {paths.CERTIFICATE_KEY_FILE} 2>/dev/null || true",
        f"cat {paths.CERTIFICATE_ERROR_FILE} 2>/dev/null || true",
        f"[ -s {paths.ALL_JOIN_COMMANDS_FILE} ] && echo {EXTRACTION_FAILED} || true",
        f"tail -n 20 {paths.WATCHER_LOG} 2>/dev/null || true",
        f"tail -n {tail_lines} {paths.INSTALL_LOG} 2>/dev/null || true",
    ]


def _text(results: Sequence[CommandResult], index: int) -> str:
    if index >= len(results):
        return ""
    return results[index].output.strip()


def parse_markers(results: Sequence[CommandResult]) -> BootstrapMarkers:
    """Turn status_commands() results into BootstrapMarkers.

    Missing trailing results are treated as absent files.
    """
    sentinel_count = _text(results, 2)
    return BootstrapMarkers(
        pid=_text(results, 0) or None,
        process_running=_text(results, 1) == RUNNING,
        sentinel_seen=sentinel_count.isdigit() and int(sentinel_count) > 0,
        join_command=_text(results, 3) or None,
        certificate_key=_text(results, 4) or None,
        certificate_error=_text(results, 5) or None,
        extraction_failed=_text(results, 6) == EXTRACTION_FAILED,
        watcher_log=_text(results, 7),
        install_log_tail=_text(results, 8),
    )


def infer_state(markers: BootstrapMarkers) -> BootstrapState:
    """Derive the install state from marker contents.

    Rules, first match wins:
        no pid recorded                          -> PREPARING
        join command extracted                   -> INSTALLED
        watcher gave up waiting for the sentinel -> FAILED
        sentinel seen but extraction failed      -> FAILED
        install process alive                    -> INSTALLING
        install process gone, no sentinel        -> FAILED
        sentinel seen, watcher not done yet      -> INSTALLING

    Args:
        markers: Marker file contents

    Returns:
        The inferred BootstrapState
    """
    if not markers.pid:
        return BootstrapState.PREPARING
    if markers.join_command:
        return BootstrapState.INSTALLED
    if markers.certificate_error and WATCHER_TIMEOUT_MESSAGE in markers.certificate_error:
        return BootstrapState.FAILED
    if markers.sentinel_seen and markers.extraction_failed:
        return BootstrapState.FAILED
    if markers.process_running:
        return BootstrapState.INSTALLING
    if not markers.sentinel_seen:
        return BootstrapState.FAILED
    return BootstrapState.INSTALLING
