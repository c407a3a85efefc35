"""
NetworkManager-based Wi-Fi adapter implementation.
Uses nmcli in terse mode, where ':' separates fields and '\\:' is a literal colon.
"""

import logging
import re
from typing import List, Optional

from wifictl.errors import WifiCtlError
from wifictl.wifi.adapter import WifiAdapter, WifiNetwork, strongest_unique

logger = logging.getLogger(__name__)

WIRELESS_CONNECTION_TYPE = '802-11-wireless'


def split_terse(line: str) -> List[str]:
    """Split an `nmcli -t` line on unescaped colons."""
    fields = re.split(r'(?<!\\):', line)
    return [field.replace('\\:', ':').replace('\\\\', '\\') for field in fields]


class NetworkManagerAdapter(WifiAdapter):
    """Wi-Fi adapter implementation using NetworkManager."""

    def _detect_interface(self) -> str:
        output = self.runner.run(['nmcli', '-t', '-f', 'DEVICE,TYPE', 'device']).output
        for line in output.splitlines():
            fields = split_terse(line)
            if len(fields) >= 2 and fields[1] == 'wifi':
                return fields[0]
        raise WifiCtlError("No Wi-Fi device known to NetworkManager")

    def wifi_on(self) -> bool:
        output = self.runner.run(['nmcli', 'radio', 'wifi']).output
        return output.strip() == 'enabled'

    def turn_on(self) -> None:
        self.runner.run(['nmcli', 'radio', 'wifi', 'on'])

    def turn_off(self) -> None:
        self.runner.run(['nmcli', 'radio', 'wifi', 'off'])

    def available_networks(self) -> List[WifiNetwork]:
        output = self.runner.run(
            ['nmcli', '-t', '-f', 'SSID,SIGNAL,SECURITY', 'device', 'wifi', 'list',
             '--rescan', 'yes']).output

        networks = []
        for line in output.splitlines():
            fields = split_terse(line)
            if len(fields) < 3 or not fields[0]:
                continue
            try:
                signal = int(fields[1])  # Percentage
            except ValueError:
                continue
            security = fields[2] if fields[2] not in ('', '--') else 'Open'
            networks.append(WifiNetwork(fields[0], signal, security))

        logger.info(f"Scan found {len(networks)} networks")
        return strongest_unique(networks)

    def connected_network_name(self) -> Optional[str]:
        output = self.runner.run(
            ['nmcli', '-t', '-f', 'ACTIVE,SSID', 'device', 'wifi']).output
        for line in output.splitlines():
            fields = split_terse(line)
            if len(fields) >= 2 and fields[0] == 'yes' and fields[1]:
                return fields[1]
        return None

    def connect(self, name: str, password: Optional[str] = None) -> None:
        command = ['nmcli', 'device', 'wifi', 'connect', name]
        if password:
            command.extend(['password', password])
        command.extend(['ifname', self.wifi_interface()])
        self.runner.run(command)

        current = self.connected_network_name()
        if current != name:
            raise WifiCtlError(
                f"Connect to {name!r} did not take effect; current network is {current!r}")
        logger.info(f"Connected to Wi-Fi network: {name}")

    def disconnect(self) -> None:
        self.runner.run(['nmcli', 'device', 'disconnect', self.wifi_interface()])

    def preferred_networks(self) -> List[str]:
        output = self.runner.run(
            ['nmcli', '-t', '-f', 'NAME,TYPE', 'connection', 'show']).output
        names = []
        for line in output.splitlines():
            fields = split_terse(line)
            if len(fields) >= 2 and fields[1] == WIRELESS_CONNECTION_TYPE:
                names.append(fields[0])
        return sorted(names, key=str.lower)

    def remove_preferred_networks(self, *names: str) -> List[str]:
        saved = set(self.preferred_networks())
        removed = []
        for name in names:
            if name not in saved:
                logger.info(f"{name!r} is not a saved connection")
                continue
            self.runner.run(['nmcli', 'connection', 'delete', 'id', name])
            removed.append(name)
        return removed

    def preferred_network_password(self, name: str) -> Optional[str]:
        if name not in self.preferred_networks():
            return None
        output = self.runner.run(
            ['nmcli', '-s', '-g', '802-11-wireless-security.psk',
             'connection', 'show', 'id', name]).output
        return output.strip() or None

    def _device_field(self, field: str) -> str:
        return self.runner.run(
            ['nmcli', '-g', field, 'device', 'show', self.wifi_interface()]).output.strip()

    def ip_address(self) -> Optional[str]:
        value = self._device_field('IP4.ADDRESS')
        if not value:
            return None
        # "192.168.1.20/24 | 10.0.0.3/8" -> first address
        return value.split('|')[0].strip().split('/')[0]

    def mac_address(self) -> Optional[str]:
        value = self._device_field('GENERAL.HWADDR')
        return value.replace('\\:', ':') or None

    def nameservers(self) -> List[str]:
        value = self._device_field('IP4.DNS')
        return [server.strip() for server in value.split('|') if server.strip()]
