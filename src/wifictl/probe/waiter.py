"""
Blocking wait for a Wi-Fi or internet state to be reached.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional, Union

from wifictl.errors import WaitTimeoutError

logger = logging.getLogger(__name__)


class WaitCondition(Enum):
    """States a caller can wait for."""
    WIFI_ON = "on"
    WIFI_OFF = "off"
    INTERNET_CONNECTED = "conn"
    INTERNET_DISCONNECTED = "disc"

    @classmethod
    def parse(cls, value: Union["WaitCondition", str]) -> "WaitCondition":
        """
        Accept a member, its short value ('conn') or its name ('internet_connected').

        Raises:
            ValueError: If value names no condition
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        choices = ', '.join(member.value for member in cls)
        raise ValueError(f"Condition must be one of: {choices}. Was: {value!r}")


class StateWaiter:
    """Polls a boolean state until it becomes true."""

    DEFAULT_INTERVAL_SECONDS = 0.5

    def __init__(
        self,
        wifi_on: Callable[[], bool],
        internet_connected: Callable[[], bool],
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            wifi_on: Query of the Wi-Fi radio power state
            internet_connected: Connectivity check (may raise when undetermined)
            sleep: Sleep function between evaluations
            clock: Monotonic clock, only consulted when a timeout is given
        """
        self.wifi_on = wifi_on
        self.internet_connected = internet_connected
        self.sleep = sleep
        self.clock = clock

    def predicate_for(self, condition: WaitCondition) -> Callable[[], bool]:
        if condition is WaitCondition.WIFI_ON:
            return self.wifi_on
        elif condition is WaitCondition.WIFI_OFF:
            return lambda: not self.wifi_on()
        elif condition is WaitCondition.INTERNET_CONNECTED:
            return self.internet_connected
        elif condition is WaitCondition.INTERNET_DISCONNECTED:
            return lambda: not self.internet_connected()
        raise ValueError(f"Unhandled condition: {condition!r}")

    def wait_until(
        self,
        condition: Union[WaitCondition, str],
        interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """
        Block until the condition holds.

        With no timeout this never returns if the condition is never reached.

        Args:
            condition: WaitCondition or its string form
            interval_seconds: Pause between evaluations (default 0.5)
            timeout_seconds: Optional overall deadline

        Raises:
            ValueError: For an unknown condition or a negative interval
            WaitTimeoutError: If timeout_seconds elapses first
        """
        condition = WaitCondition.parse(condition)
        if interval_seconds is None:
            interval_seconds = self.DEFAULT_INTERVAL_SECONDS
        if interval_seconds < 0:
            raise ValueError(f"Interval must not be negative: {interval_seconds}")

        predicate = self.predicate_for(condition)
        deadline = None
        if timeout_seconds is not None:
            deadline = self.clock() + timeout_seconds

        logger.debug(
            f"Waiting for {condition.value} (interval={interval_seconds}s, "
            f"timeout={timeout_seconds})")
        while True:
            if predicate():
                logger.debug(f"Condition {condition.value} reached")
                return
            pause = interval_seconds
            if deadline is not None:
                remaining = deadline - self.clock()
                if remaining <= 0:
                    raise WaitTimeoutError(condition.value, timeout_seconds)
                pause = min(pause, remaining)
            self.sleep(pause)

    till = wait_until
