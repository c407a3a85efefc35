"""
Wi-Fi adapter interface over the host's configuration utilities.
Concrete adapters wrap networksetup (macOS) or nmcli (NetworkManager);
test doubles can be injected in CI environments.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import requests

from wifictl.commands.runner import CommandRunner
from wifictl.probe.connectivity import DEFAULT_REACHABILITY_COMMAND, ConnectivityProbe
from wifictl.probe.waiter import StateWaiter, WaitCondition

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_IP_URL = "https://ipinfo.io/json"


class WifiNetwork:
    """Represents a discovered Wi-Fi network."""

    def __init__(
            self,
            ssid: str,
            signal_strength: int,
            security: Optional[str] = None):
        """
        Args:
            ssid: Network SSID
            signal_strength: Signal strength in dBm or percentage (implementation-dependent)
            security: Security type (e.g., 'WPA2', 'WEP', 'Open')
        """
        self.ssid = ssid
        self.signal_strength = signal_strength
        self.security = security or "Open"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ssid": self.ssid,
            "signal_strength": self.signal_strength,
            "security": self.security,
        }

    def __repr__(self) -> str:
        return (f"WifiNetwork(ssid={self.ssid!r}, "
                f"strength={self.signal_strength}, security={self.security!r})")


def strongest_unique(networks: List[WifiNetwork]) -> List[WifiNetwork]:
    """Sort strongest first and keep one entry per SSID."""
    seen = set()
    result = []
    for network in sorted(networks, key=lambda n: n.signal_strength, reverse=True):
        if not network.ssid or network.ssid in seen:
            continue
        seen.add(network.ssid)
        result.append(network)
    return result


class WifiAdapter(ABC):
    """Abstract base class for Wi-Fi adapter implementations."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        probe: Optional[ConnectivityProbe] = None,
        probe_command: str = DEFAULT_REACHABILITY_COMMAND,
        public_ip_url: str = DEFAULT_PUBLIC_IP_URL,
    ):
        """
        Args:
            runner: Command runner (default: CommandRunner())
            probe: Connectivity probe (default: built lazily from probe_command)
            probe_command: Reachability command used when no probe is given
            public_ip_url: JSON endpoint describing the public address
        """
        self.runner = runner or CommandRunner()
        self._probe = probe
        self.probe_command = probe_command
        self.public_ip_url = public_ip_url
        self._interface: Optional[str] = None
        self.waiter = StateWaiter(
            wifi_on=lambda: self.wifi_on(),
            internet_connected=lambda: self.connected_to_internet()
        )

    # Interface detection

    def wifi_interface(self) -> str:
        """Wi-Fi device name, detected once and cached."""
        if self._interface is None:
            self._interface = self._detect_interface()
            logger.debug(f"Wi-Fi interface is {self._interface}")
        return self._interface

    def invalidate_interface_cache(self) -> None:
        """Forget the cached interface (e.g. after hardware changes)."""
        self._interface = None

    @abstractmethod
    def _detect_interface(self) -> str:
        """
        Find the Wi-Fi device name.

        Raises:
            WifiCtlError: If no Wi-Fi hardware is present
        """

    # Connectivity

    @property
    def probe(self) -> ConnectivityProbe:
        if self._probe is None:
            self._probe = ConnectivityProbe(command=self.probe_command)
        return self._probe

    def connected_to_internet(self) -> bool:
        """
        Raises:
            InternetStatusUndeterminedError: If the check kept hanging
        """
        return self.probe.is_connected()

    def till(
        self,
        condition: Union[WaitCondition, str],
        interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """Block until wifi/internet reaches the given state."""
        self.waiter.wait_until(condition, interval_seconds, timeout_seconds)

    def cycle_network(self) -> None:
        """Turn Wi-Fi off and back on."""
        self.turn_off()
        self.turn_on()

    def public_ip_info(self) -> Optional[Dict[str, Any]]:
        """
        Fetch public address details.

        Returns:
            Parsed JSON, or None if the lookup failed
        """
        try:
            response = requests.get(self.public_ip_url, timeout=5)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Public IP lookup failed: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Public IP response was not JSON: {e}")
            return None

    def info(self) -> Dict[str, Any]:
        """Snapshot of the current Wi-Fi and internet state."""
        wifi_on = self.wifi_on()
        internet_on = self.connected_to_internet()
        return {
            "wifi_on": wifi_on,
            "internet_on": internet_on,
            "interface": self.wifi_interface(),
            "network": self.connected_network_name() if wifi_on else None,
            "ip_address": self.ip_address(),
            "mac_address": self.mac_address(),
            "nameservers": self.nameservers(),
            "timestamp": datetime.now(),
            "public_ip": self.public_ip_info() if internet_on else None,
        }

    # Platform operations

    @abstractmethod
    def wifi_on(self) -> bool:
        """Whether the Wi-Fi radio is powered on."""

    @abstractmethod
    def turn_on(self) -> None:
        """Power the Wi-Fi radio on."""

    @abstractmethod
    def turn_off(self) -> None:
        """Power the Wi-Fi radio off."""

    @abstractmethod
    def available_networks(self) -> List[WifiNetwork]:
        """
        Scan for visible networks.

        Returns:
            Networks strongest first, one per SSID
        """

    @abstractmethod
    def connected_network_name(self) -> Optional[str]:
        """SSID of the associated network, or None."""

    @abstractmethod
    def connect(self, name: str, password: Optional[str] = None) -> None:
        """
        Join a network and verify the association.

        Raises:
            OsCommandError: If the join command fails
            WifiCtlError: If the join did not take effect
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Leave the current network without powering the radio off."""

    @abstractmethod
    def preferred_networks(self) -> List[str]:
        """Saved network names, sorted case-insensitively."""

    @abstractmethod
    def remove_preferred_networks(self, *names: str) -> List[str]:
        """
        Forget saved networks.

        Returns:
            Names that were saved and have been removed
        """

    @abstractmethod
    def preferred_network_password(self, name: str) -> Optional[str]:
        """Stored password for a saved network, or None if there is none."""

    @abstractmethod
    def ip_address(self) -> Optional[str]:
        """IPv4 address of the Wi-Fi interface, or None."""

    @abstractmethod
    def mac_address(self) -> Optional[str]:
        """Hardware address of the Wi-Fi interface."""

    @abstractmethod
    def nameservers(self) -> List[str]:
        """DNS servers configured for Wi-Fi."""
