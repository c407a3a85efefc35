"""
Exception types raised by wifictl.
"""

from typing import Optional


class WifiCtlError(RuntimeError):
    """Base class for wifictl errors."""


class OsCommandError(WifiCtlError):
    """An OS command exited with a non-zero status."""

    def __init__(self, exit_status: int, command: str, output: str):
        self.exit_status = exit_status
        self.command = command
        self.output = output
        super().__init__(
            f"Command exited with status {exit_status}: {command}\n{output}".rstrip())


class ProbeSpawnError(WifiCtlError):
    """The background reachability check could not be started."""


class InternetStatusUndeterminedError(WifiCtlError):
    """Every probe attempt ended without a definitive answer."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Could not determine internet status after {attempts} attempts")


class WaitTimeoutError(WifiCtlError):
    """A state wait exceeded its overall deadline."""

    def __init__(self, condition: str, timeout_seconds: float):
        self.condition = condition
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Condition {condition!r} not reached within {timeout_seconds}s")


class UnsupportedPlatformError(WifiCtlError):
    """No Wi-Fi adapter is available for the current platform."""

    def __init__(self, platform_name: str, detail: Optional[str] = None):
        self.platform_name = platform_name
        message = f"Unsupported platform: {platform_name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
