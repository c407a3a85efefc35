"""
Chooses the Wi-Fi adapter for the running platform.
"""

import logging
import platform
from typing import Optional

from wifictl.commands.runner import CommandRunner
from wifictl.errors import UnsupportedPlatformError
from wifictl.probe.connectivity import DEFAULT_REACHABILITY_COMMAND
from wifictl.wifi.adapter import DEFAULT_PUBLIC_IP_URL, WifiAdapter
from wifictl.wifi.macos_adapter import MacOsAdapter
from wifictl.wifi.nm_adapter import NetworkManagerAdapter

logger = logging.getLogger(__name__)

ADAPTERS = {
    'macos': MacOsAdapter,
    'networkmanager': NetworkManagerAdapter,
}

PLATFORM_ADAPTERS = {
    'Darwin': 'macos',
    'Linux': 'networkmanager',
}


def select_wifi_adapter(
    name: str = 'auto',
    runner: Optional[CommandRunner] = None,
    probe_command: str = DEFAULT_REACHABILITY_COMMAND,
    public_ip_url: str = DEFAULT_PUBLIC_IP_URL,
    system: Optional[str] = None,
) -> WifiAdapter:
    """
    Build the adapter named by `name`, or the one for this OS when 'auto'.

    Raises:
        UnsupportedPlatformError: If no adapter fits
    """
    if name == 'auto':
        system = system or platform.system()
        name = PLATFORM_ADAPTERS.get(system)
        if name is None:
            raise UnsupportedPlatformError(system)
        logger.debug(f"Platform {system} uses the {name} adapter")

    adapter_class = ADAPTERS.get(name)
    if adapter_class is None:
        raise UnsupportedPlatformError(
            system or platform.system(), f"unknown adapter {name!r}")

    return adapter_class(
        runner=runner,
        probe_command=probe_command,
        public_ip_url=public_ip_url
    )
