"""
Integration tests for the connectivity probe against real shell processes.
The reachability command is replaced by local commands with known behaviour,
and the budget is shortened so hangs resolve quickly.
"""

import shutil
import subprocess
import time

import pytest

from wifictl.errors import InternetStatusUndeterminedError
from wifictl.probe.connectivity import ConnectivityProbe
from wifictl.probe.process import ProcessControl


def make_probe(command, tmp_path, **kwargs):
    options = {
        "attempt_budget_seconds": 2.0,
        "poll_interval_seconds": 0.05,
    }
    options.update(kwargs)
    return ConnectivityProbe(command=command, scratch_dir=str(tmp_path), **options)


def processes_matching(pattern, settle_seconds=2.0):
    """Pids whose command line contains pattern, allowing a moment for SIGKILL to land."""
    deadline = time.monotonic() + settle_seconds
    while True:
        result = subprocess.run(["pgrep", "-f", pattern],
                                capture_output=True, text=True)
        pids = result.stdout.split()
        if not pids or time.monotonic() > deadline:
            return pids
        time.sleep(0.05)


class TestProbeWithRealProcesses:
    """Test complete probe attempts end to end."""

    def test_successful_check_means_connected(self, tmp_path):
        assert make_probe("true", tmp_path).is_connected() is True
        assert list(tmp_path.iterdir()) == []

    def test_failing_check_means_disconnected(self, tmp_path):
        assert make_probe("exit 7", tmp_path).is_connected() is False
        assert list(tmp_path.iterdir()) == []

    def test_output_of_check_is_discarded(self, tmp_path):
        """Test only the exit status lands in the result file."""
        assert make_probe("echo 1; echo 1 >&2; true", tmp_path).is_connected() is True

    def test_hanging_check_is_killed_and_reported(self, tmp_path):
        """Test a check that never returns ends in a terminal error."""
        control = ProcessControl()
        spawned = []
        original_spawn = control.spawn_detached

        def recording_spawn(script):
            pid = original_spawn(script)
            spawned.append(pid)
            return pid
        control.spawn_detached = recording_spawn

        probe = make_probe("sleep 30", tmp_path, process_control=control,
                           attempt_budget_seconds=0.3, max_attempts=2)

        started = time.monotonic()
        with pytest.raises(InternetStatusUndeterminedError):
            probe.is_connected()
        elapsed = time.monotonic() - started

        assert len(spawned) == 2
        assert list(tmp_path.iterdir()) == []
        assert elapsed < 10

    @pytest.mark.skipif(shutil.which("pgrep") is None, reason="pgrep not available")
    def test_hanging_check_leaves_no_process_behind(self, tmp_path):
        """Test the whole process group of a hung check is gone, not just the shell."""
        marker = "sleep 417"
        probe = make_probe(marker, tmp_path, attempt_budget_seconds=0.3, max_attempts=2)

        with pytest.raises(InternetStatusUndeterminedError):
            probe.is_connected()

        assert processes_matching(marker) == []
        assert list(tmp_path.iterdir()) == []
