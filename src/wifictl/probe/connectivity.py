"""
Hang-resistant internet connectivity probe.

The reachability check is an external command that can block forever when
the Wi-Fi interface goes down mid-request. Each attempt therefore runs it as
a detached background process that writes its exit status to a scratch file.
The caller polls the process for liveness within a fixed budget, kills it if
the budget runs out, and retries a bounded number of times.

Attempt lifecycle:
    launch -> poll -> (read result | kill as hung) -> release
"""

import logging
import os
import shlex
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from wifictl.errors import InternetStatusUndeterminedError, ProbeSpawnError
from wifictl.probe.process import ProcessControl

logger = logging.getLogger(__name__)

DEFAULT_REACHABILITY_COMMAND = "curl --silent --head https://www.google.com/"


class ProbeOutcome(Enum):
    """Result of a single probe attempt."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    HUNG = "hung"              # No answer within the attempt budget


class PollResult(Enum):
    """Result of waiting on a background probe process."""
    FINISHED = "finished"
    TIMED_OUT = "timed-out"


@dataclass
class ProbeHandle:
    """One in-flight background reachability check."""
    pid: int
    result_path: Path
    started_at: float


class ProbeLauncher:
    """Starts the reachability check in the background and collects its result."""

    SCRATCH_PREFIX = "wifictl-probe-"

    def __init__(
        self,
        command: str = DEFAULT_REACHABILITY_COMMAND,
        process_control: Optional[ProcessControl] = None,
        clock: Callable[[], float] = time.monotonic,
        scratch_dir: Optional[str] = None,
    ):
        """
        Args:
            command: Shell command whose exit status 0 means "connected"
            process_control: Process spawner/killer (default: ProcessControl())
            clock: Monotonic clock used to stamp handles
            scratch_dir: Directory for result files (default: system temp dir)
        """
        self.command = command
        self.process_control = process_control or ProcessControl()
        self.clock = clock
        self.scratch_dir = scratch_dir

    def build_script(self, result_path: Path) -> str:
        """Shell script that runs the check and records its exit status."""
        # Subshell so that an `exit` in the command cannot skip the echo
        return (f"( {self.command} ) > /dev/null 2>&1; "
                f"echo $? > {shlex.quote(str(result_path))}")

    def launch(self) -> ProbeHandle:
        """
        Start one background check without waiting for it.

        Returns:
            ProbeHandle for the started process

        Raises:
            ProbeSpawnError: If the background process cannot be started
        """
        fd, path = tempfile.mkstemp(
            prefix=self.SCRATCH_PREFIX, suffix=".status", dir=self.scratch_dir)
        os.close(fd)
        result_path = Path(path)

        try:
            pid = self.process_control.spawn_detached(
                self.build_script(result_path))
        except OSError as e:
            result_path.unlink(missing_ok=True)
            raise ProbeSpawnError(f"Could not start reachability check: {e}") from e

        handle = ProbeHandle(pid=pid, result_path=result_path,
                             started_at=self.clock())
        logger.debug(f"Launched probe pid={pid} result={result_path}")
        return handle

    def read_outcome(self, handle: ProbeHandle) -> ProbeOutcome:
        """Interpret the exit status written by a finished check."""
        try:
            content = handle.result_path.read_text(encoding='utf-8').strip()
        except FileNotFoundError:
            content = ''

        if not content:
            logger.warning(f"Probe pid={handle.pid} exited without a status")
            return ProbeOutcome.HUNG

        try:
            status = int(content)
        except ValueError:
            logger.warning(f"Probe pid={handle.pid} wrote unreadable status {content!r}")
            return ProbeOutcome.HUNG

        return ProbeOutcome.CONNECTED if status == 0 else ProbeOutcome.DISCONNECTED

    def release(self, handle: ProbeHandle) -> None:
        """Make sure the process is gone and the scratch file removed."""
        try:
            self.process_control.kill(handle.pid)
        finally:
            handle.result_path.unlink(missing_ok=True)


class LivenessPoller:
    """Waits, within a budget, for a background process to exit."""

    def __init__(
        self,
        process_control: ProcessControl,
        budget_seconds: float = 3.0,
        poll_interval_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.process_control = process_control
        self.budget_seconds = budget_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.clock = clock
        self.sleep = sleep

    def wait(self, handle: ProbeHandle) -> PollResult:
        """
        Poll until the process exits or the budget is spent.

        The process is queried for existence instead of being waited on:
        a blocking wait would hang along with the check itself.
        """
        deadline = handle.started_at + self.budget_seconds

        while True:
            if not self.process_control.is_running(handle.pid):
                return PollResult.FINISHED
            remaining = deadline - self.clock()
            if remaining <= 0:
                return PollResult.TIMED_OUT
            self.sleep(min(self.poll_interval_seconds, remaining))


class HangHandler:
    """Disposes of a probe that outlived its budget."""

    def __init__(self, process_control: ProcessControl):
        self.process_control = process_control

    def handle(self, handle: ProbeHandle) -> ProbeOutcome:
        try:
            self.process_control.kill(handle.pid)
        finally:
            handle.result_path.unlink(missing_ok=True)
        logger.warning(f"Probe pid={handle.pid} hung; killed")
        return ProbeOutcome.HUNG


class ConnectivityProbe:
    """
    Answers "is there a working path to the internet?" without hanging.

    Runs up to MAX_ATTEMPTS sequential attempts of at most
    ATTEMPT_BUDGET_SECONDS each, so a call takes roughly 9 seconds at worst.
    Attempts that hang or fail to start are retried; if none gives a
    definitive answer, InternetStatusUndeterminedError is raised rather than
    reporting "disconnected".
    """

    ATTEMPT_BUDGET_SECONDS = 3.0
    POLL_INTERVAL_SECONDS = 0.5
    MAX_ATTEMPTS = 3

    def __init__(
        self,
        command: str = DEFAULT_REACHABILITY_COMMAND,
        process_control: Optional[ProcessControl] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        attempt_budget_seconds: float = ATTEMPT_BUDGET_SECONDS,
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        scratch_dir: Optional[str] = None,
    ):
        process_control = process_control or ProcessControl()
        self.launcher = ProbeLauncher(
            command=command,
            process_control=process_control,
            clock=clock,
            scratch_dir=scratch_dir
        )
        self.poller = LivenessPoller(
            process_control,
            budget_seconds=attempt_budget_seconds,
            poll_interval_seconds=poll_interval_seconds,
            clock=clock,
            sleep=sleep
        )
        self.hang_handler = HangHandler(process_control)
        self.max_attempts = max_attempts

    def run_attempt(self) -> ProbeOutcome:
        """
        Run one launch/poll cycle.

        Raises:
            ProbeSpawnError: If the background check could not be started
        """
        handle = self.launcher.launch()
        try:
            if self.poller.wait(handle) is PollResult.TIMED_OUT:
                return self.hang_handler.handle(handle)
            return self.launcher.read_outcome(handle)
        finally:
            self.launcher.release(handle)

    def is_connected(self) -> bool:
        """
        Returns:
            True if connected, False if definitely not

        Raises:
            InternetStatusUndeterminedError: If every attempt was indeterminate
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                outcome = self.run_attempt()
            except ProbeSpawnError as e:
                logger.warning(f"Probe attempt {attempt}/{self.max_attempts}: {e}")
                continue

            logger.debug(
                f"Probe attempt {attempt}/{self.max_attempts}: {outcome.value}")
            if outcome is ProbeOutcome.CONNECTED:
                return True
            elif outcome is ProbeOutcome.DISCONNECTED:
                return False

        raise InternetStatusUndeterminedError(self.max_attempts)
