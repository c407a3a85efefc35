"""
Runs OS configuration utilities and captures their output.
stdout and stderr are merged, matching what an operator sees in a terminal.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from wifictl.errors import OsCommandError

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


@dataclass
class CommandResult:
    """Output and exit status of a finished command."""
    output: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


def command_text(command: Command) -> str:
    """Render a command for log and error messages."""
    if isinstance(command, str):
        return command
    return ' '.join(command)


class CommandRunner:
    """Executes commands synchronously via subprocess."""

    def __init__(self, verbose: bool = False,
                 timeout_seconds: Optional[float] = None):
        """
        Args:
            verbose: Log each command and its output at INFO instead of DEBUG
            timeout_seconds: Optional per-command timeout
        """
        self.verbose = verbose
        self.timeout_seconds = timeout_seconds

    def run(self, command: Command, raise_on_error: bool = True) -> CommandResult:
        """
        Run a command and return its merged output.

        Args:
            command: Shell string or argument list
            raise_on_error: Raise OsCommandError on non-zero exit

        Returns:
            CommandResult with output and exit status

        Raises:
            OsCommandError: If the command exits non-zero and raise_on_error is set
        """
        text = command_text(command)
        level = logging.INFO if self.verbose else logging.DEBUG
        logger.log(level, f"Running: {text}")

        try:
            completed = subprocess.run(
                command,
                shell=isinstance(command, str),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout_seconds
            )
        except FileNotFoundError as e:
            # 127 is what a shell reports for a missing executable
            raise OsCommandError(127, text, str(e)) from e
        except subprocess.TimeoutExpired as e:
            output = e.output or ''
            if isinstance(output, bytes):
                output = output.decode('utf-8', errors='replace')
            raise OsCommandError(-1, text,
                                 f"{output}timed out after {e.timeout}s") from e

        result = CommandResult(completed.stdout or '', completed.returncode)
        if result.output:
            logger.log(level, f"Output of {text}:\n{result.output.rstrip()}")

        if raise_on_error and not result.ok:
            raise OsCommandError(result.exit_status, text, result.output)
        return result
