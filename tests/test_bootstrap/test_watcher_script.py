"""Tests for the rendered install watcher."""

from kubehop.bootstrap import paths
from kubehop.bootstrap.watcher import (
    CERTIFICATE_MISSING_MESSAGE,
    DEFAULT_MAX_WAIT,
    DEFAULT_POLL_INTERVAL,
    WATCHER_TIMEOUT_MESSAGE,
    render_watcher_script,
)


class TestRenderWatcherScript:
    """Tests for render_watcher_script."""

    def test_defaults(self) -> None:
        """Default limits are baked into the script."""
        script = render_watcher_script()
        assert script.startswith("#!/bin/bash\n")
        assert f"MAX_WAIT={DEFAULT_MAX_WAIT}" in script
        assert f"INTERVAL={DEFAULT_POLL_INTERVAL}" in script
        assert f'LOG="{paths.INSTALL_LOG}"' in script
        assert f'SENTINEL="{paths.INSTALL_SENTINEL}"' in script

    def test_custom_limits(self) -> None:
        """Limits and paths can be overridden."""
        script = render_watcher_script(max_wait=60, poll_interval=5, install_log="/tmp/x.log", sentinel="DONE")
        assert "MAX_WAIT=60" in script
        assert "INTERVAL=5" in script
        assert 'LOG="/tmp/x.log"' in script
        assert 'SENTINEL="DONE"' in script

    def test_writes_every_marker(self) -> None:
        """Each marker file is written somewhere in the script."""
        script = render_watcher_script()
        for marker in paths.MARKER_FILES:
            assert marker in script, marker

    def test_heuristics_in_order(self) -> None:
        """The shell cascade tries the heuristics in the same order as Python."""
        script = render_watcher_script()
        worker = script.index("heuristic worker_section matched")
        last_line = script.index("heuristic last_join_line matched")
        fragments = script.index("heuristic fragments matched")
        assert worker < last_line < fragments

    def test_timeout_path(self) -> None:
        """On timeout the watcher records the timeout and exits 1."""
        script = render_watcher_script()
        assert f'echo "{WATCHER_TIMEOUT_MESSAGE}" > {paths.CERTIFICATE_ERROR_FILE}' in script
        assert script.rstrip().endswith("exit 1")

    def test_missing_certificate_recorded(self) -> None:
        """A missing certificate key is written to the error marker."""
        script = render_watcher_script()
        assert f'echo "{CERTIFICATE_MISSING_MESSAGE}" > {paths.CERTIFICATE_ERROR_FILE}' in script

    def test_no_unrendered_braces(self) -> None:
        """Template escapes are fully rendered."""
        script = render_watcher_script()
        assert "{{" not in script
        assert "}}" not in script
        assert "{paths" not in script
