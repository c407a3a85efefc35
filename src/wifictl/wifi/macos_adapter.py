"""
macOS Wi-Fi adapter.
Shells out to networksetup, airport, security, ipconfig and ifconfig.
"""

import logging
import re
from typing import List, Optional

from wifictl.errors import OsCommandError, WifiCtlError
from wifictl.wifi.adapter import WifiAdapter, WifiNetwork, strongest_unique

logger = logging.getLogger(__name__)

AIRPORT_COMMAND = ("/System/Library/PrivateFrameworks/Apple80211.framework/"
                   "Versions/Current/Resources/airport")

# `security` exit status when no keychain item matches
KEYCHAIN_ITEM_NOT_FOUND = 44

# SSID (right aligned, may contain spaces), BSSID, RSSI, CHANNEL, HT, CC, SECURITY
_SCAN_LINE = re.compile(
    r'^\s*(?P<ssid>.+?)\s+(?P<bssid>(?:[0-9a-f]{1,2}:){5}[0-9a-f]{1,2})\s+'
    r'(?P<rssi>-?\d+)\s+\S+\s+\S+\s+\S+\s+(?P<security>.+?)\s*$',
    re.IGNORECASE)


class MacOsAdapter(WifiAdapter):
    """Wi-Fi adapter implementation for macOS."""

    HARDWARE_PORT_NAMES = ("Wi-Fi", "AirPort")

    # Set alongside the interface; older systems call the port "AirPort"
    _hardware_port = "Wi-Fi"

    def wifi_service_name(self) -> str:
        """Network service name of the detected Wi-Fi hardware port."""
        self.wifi_interface()
        return self._hardware_port

    def _detect_interface(self) -> str:
        output = self.runner.run(['networksetup', '-listallhardwareports']).output
        lines = output.splitlines()
        for i, line in enumerate(lines):
            if not line.startswith('Hardware Port:'):
                continue
            port = line.split(':', 1)[1].strip()
            if port not in self.HARDWARE_PORT_NAMES:
                continue
            for following in lines[i + 1:i + 3]:
                if following.startswith('Device:'):
                    self._hardware_port = port
                    return following.split(':', 1)[1].strip()
        raise WifiCtlError("No Wi-Fi hardware port found")

    def wifi_on(self) -> bool:
        output = self.runner.run(
            ['networksetup', '-getairportpower', self.wifi_interface()]).output
        return output.strip().endswith('On')

    def turn_on(self) -> None:
        self.runner.run(
            ['networksetup', '-setairportpower', self.wifi_interface(), 'on'])

    def turn_off(self) -> None:
        self.runner.run(
            ['networksetup', '-setairportpower', self.wifi_interface(), 'off'])

    def available_networks(self) -> List[WifiNetwork]:
        output = self.runner.run([AIRPORT_COMMAND, '-s']).output
        networks = []
        for line in output.splitlines()[1:]:  # Skip header
            match = _SCAN_LINE.match(line)
            if not match:
                continue
            networks.append(WifiNetwork(
                match.group('ssid').strip(),
                int(match.group('rssi')),
                self._parse_security(match.group('security'))
            ))
        logger.info(f"Scan found {len(networks)} networks")
        return strongest_unique(networks)

    @staticmethod
    def _parse_security(field: str) -> str:
        # "WPA(PSK/AES,TKIP/TKIP) WPA2(PSK/AES,TKIP/TKIP)" -> "WPA2"
        labels = re.findall(r'([A-Za-z0-9]+)\(', field)
        if labels:
            return labels[-1]
        if field.strip().upper() == 'NONE':
            return 'Open'
        return field.strip()

    def connected_network_name(self) -> Optional[str]:
        output = self.runner.run(
            ['networksetup', '-getairportnetwork', self.wifi_interface()]).output
        prefix = 'Current Wi-Fi Network:'
        line = output.strip()
        if line.startswith(prefix):
            return line[len(prefix):].strip() or None
        return None

    def connect(self, name: str, password: Optional[str] = None) -> None:
        command = ['networksetup', '-setairportnetwork', self.wifi_interface(), name]
        if password:
            command.append(password)
        output = self.runner.run(command).output

        # networksetup exits 0 even when the join fails
        if 'Failed to join' in output or 'Could not find network' in output:
            raise WifiCtlError(f"Could not connect to {name!r}: {output.strip()}")

        current = self.connected_network_name()
        if current != name:
            raise WifiCtlError(
                f"Connect to {name!r} did not take effect; current network is {current!r}")
        logger.info(f"Connected to Wi-Fi network: {name}")

    def disconnect(self) -> None:
        self.runner.run(['sudo', AIRPORT_COMMAND, '-z'])

    def preferred_networks(self) -> List[str]:
        output = self.runner.run(
            ['networksetup', '-listpreferredwirelessnetworks',
             self.wifi_interface()]).output
        names = [line.strip() for line in output.splitlines()[1:] if line.strip()]
        return sorted(names, key=str.lower)

    def remove_preferred_networks(self, *names: str) -> List[str]:
        saved = set(self.preferred_networks())
        removed = []
        for name in names:
            if name not in saved:
                logger.info(f"{name!r} is not a preferred network")
                continue
            self.runner.run(
                ['sudo', 'networksetup', '-removepreferredwirelessnetwork',
                 self.wifi_interface(), name])
            removed.append(name)
        return removed

    def preferred_network_password(self, name: str) -> Optional[str]:
        result = self.runner.run(
            ['security', 'find-generic-password',
             '-D', 'AirPort network password', '-a', name, '-w'],
            raise_on_error=False)
        if result.exit_status == KEYCHAIN_ITEM_NOT_FOUND:
            return None
        if not result.ok:
            raise OsCommandError(result.exit_status,
                                 f"security find-generic-password -a {name}",
                                 result.output)
        return result.output.rstrip('\n')

    def ip_address(self) -> Optional[str]:
        result = self.runner.run(
            ['ipconfig', 'getifaddr', self.wifi_interface()], raise_on_error=False)
        address = result.output.strip()
        return address if result.ok and address else None

    def mac_address(self) -> Optional[str]:
        output = self.runner.run(['ifconfig', self.wifi_interface()]).output
        for line in output.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[0] == 'ether':
                return parts[1]
        return None

    def nameservers(self) -> List[str]:
        output = self.runner.run(
            ['networksetup', '-getdnsservers', self.wifi_service_name()]).output
        if "aren't any DNS Servers" in output:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]
