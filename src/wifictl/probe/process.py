"""
Process control for background probe units.

Processes are started in their own session so that killing the process
group also takes down whatever the shell script launched.
"""

import logging
import os
import signal
import subprocess
from collections import OrderedDict
from typing import Dict

logger = logging.getLogger(__name__)


class ProcessControl:
    """Spawns, queries and kills detached shell processes."""

    # How long to wait for the kernel to deliver SIGKILL before giving up on reaping
    REAP_TIMEOUT_SECONDS = 1.0
    # Recently reaped pids kept so repeated kills are no-ops
    REAPED_HISTORY = 32

    def __init__(self):
        self._processes: Dict[int, subprocess.Popen] = {}
        # Reaped pids may be reused by the OS and must never be signalled again
        self._reaped: "OrderedDict[int, None]" = OrderedDict()

    def spawn_detached(self, script: str) -> int:
        """
        Start a shell script in the background.

        Args:
            script: Shell script text

        Returns:
            Process id of the shell

        Raises:
            OSError: If the process cannot be started
        """
        process = subprocess.Popen(
            ['/bin/sh', '-c', script],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True
        )
        self._processes[process.pid] = process
        self._reaped.pop(process.pid, None)
        logger.debug(f"Spawned background process {process.pid}")
        return process.pid

    def is_running(self, pid: int) -> bool:
        """Check whether a process is still executing, without blocking."""
        process = self._processes.get(pid)
        if process is not None:
            return process.poll() is None
        if pid in self._reaped:
            return False

        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists but belongs to someone else
            return True
        return True

    def kill(self, pid: int) -> None:
        """
        Force-kill a process and its group, then reap it.
        Safe to call on a process that has already exited.
        """
        if pid in self._reaped:
            return
        process = self._processes.get(pid)
        if process is None:
            self._kill_unknown(pid)
            return

        if process.poll() is None:
            try:
                os.killpg(pid, signal.SIGKILL)
                logger.debug(f"Sent SIGKILL to process group {pid}")
            except ProcessLookupError:
                pass
            except PermissionError:
                process.kill()

        try:
            process.wait(timeout=self.REAP_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            # Left tracked so a later kill() can still reap it
            logger.warning(f"Process {pid} did not exit after SIGKILL")
            return

        del self._processes[pid]
        self._reaped[pid] = None
        while len(self._reaped) > self.REAPED_HISTORY:
            self._reaped.popitem(last=False)

    def _kill_unknown(self, pid: int) -> None:
        try:
            os.kill(pid, signal.SIGKILL)
            logger.debug(f"Sent SIGKILL to process {pid}")
        except ProcessLookupError:
            pass
