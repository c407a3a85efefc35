"""
Command-line interface for wifictl.

Examples:
    wifictl ci                  # connected to the internet?
    wifictl till conn 1.0       # wait for internet, checking every second
    wifictl -o y info           # info as YAML
    wifictl shell               # interactive mode
"""

import argparse
import shlex
import sys
from typing import Any, Callable, List, Optional

from wifictl.commands.runner import CommandRunner
from wifictl.config import get_setting, load_config
from wifictl.errors import WifiCtlError
from wifictl.formatting import OUTPUT_FORMATS, format_output
from wifictl.logging import configure_logging, get_logger
from wifictl.probe.connectivity import DEFAULT_REACHABILITY_COMMAND
from wifictl.probe.waiter import WaitCondition
from wifictl.wifi.adapter import DEFAULT_PUBLIC_IP_URL, WifiAdapter
from wifictl.wifi.factory import ADAPTERS, select_wifi_adapter

logger = get_logger("cli")

SHELL_EXIT_WORDS = ('q', 'x', 'quit', 'exit')


def _cmd_avail_nets(adapter: WifiAdapter, args) -> Any:
    return adapter.available_networks()


def _cmd_ci(adapter: WifiAdapter, args) -> Any:
    return adapter.connected_to_internet()


def _cmd_connect(adapter: WifiAdapter, args) -> Any:
    adapter.connect(args.name, args.password)
    return None


def _cmd_cycle(adapter: WifiAdapter, args) -> Any:
    adapter.cycle_network()
    return None


def _cmd_disconnect(adapter: WifiAdapter, args) -> Any:
    adapter.disconnect()
    return None


def _cmd_forget(adapter: WifiAdapter, args) -> Any:
    return adapter.remove_preferred_networks(*args.names)


def _cmd_info(adapter: WifiAdapter, args) -> Any:
    return adapter.info()


def _cmd_nameservers(adapter: WifiAdapter, args) -> Any:
    return adapter.nameservers()


def _cmd_network_name(adapter: WifiAdapter, args) -> Any:
    return adapter.connected_network_name()


def _cmd_off(adapter: WifiAdapter, args) -> Any:
    adapter.turn_off()
    return None


def _cmd_on(adapter: WifiAdapter, args) -> Any:
    adapter.turn_on()
    return None


def _cmd_password(adapter: WifiAdapter, args) -> Any:
    return adapter.preferred_network_password(args.name)


def _cmd_pref_nets(adapter: WifiAdapter, args) -> Any:
    return adapter.preferred_networks()


def _cmd_till(adapter: WifiAdapter, args) -> Any:
    adapter.till(args.condition, args.interval, args.timeout)
    return None


def _cmd_wifi_on(adapter: WifiAdapter, args) -> Any:
    return adapter.wifi_on()


def _non_negative_float(text: str) -> float:
    value = float(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wifictl",
        description="Inspect and control the host's Wi-Fi and internet state",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log OS commands and debug output")
    parser.add_argument("-o", "--output-format", choices=sorted(OUTPUT_FORMATS),
                        help="Output format: " + ", ".join(
                            f"{k}={v}" for k, v in OUTPUT_FORMATS.items()))
    parser.add_argument("-c", "--config", help="Path to YAML config file")
    parser.add_argument("--adapter", choices=['auto'] + sorted(ADAPTERS),
                        help="Wi-Fi backend (default: auto)")

    subparsers = parser.add_subparsers(dest="command")

    def add(name: str, aliases: List[str], help_text: str,
            handler: Callable) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, aliases=aliases, help=help_text)
        sub.set_defaults(handler=handler)
        return sub

    add("avail_nets", ["a"], "List available networks", _cmd_avail_nets)
    add("ci", [], "Connected to the internet?", _cmd_ci)

    sub = add("connect", ["co"], "Join a network", _cmd_connect)
    sub.add_argument("name", help="Network SSID")
    sub.add_argument("password", nargs="?", help="Network password")

    add("cycle", ["cy"], "Turn Wi-Fi off and back on", _cmd_cycle)
    add("disconnect", ["d"], "Leave the current network", _cmd_disconnect)

    sub = add("forget", ["f"], "Remove saved networks", _cmd_forget)
    sub.add_argument("names", nargs="+", help="Network names")

    add("info", ["i"], "Wi-Fi and internet details", _cmd_info)
    add("nameservers", ["na"], "Configured DNS servers", _cmd_nameservers)
    add("network_name", ["ne"], "Name of the current network", _cmd_network_name)
    add("off", ["of"], "Turn Wi-Fi off", _cmd_off)
    add("on", [], "Turn Wi-Fi on", _cmd_on)

    sub = add("password", ["pa"], "Stored password of a saved network", _cmd_password)
    sub.add_argument("name", help="Network name")

    add("pref_nets", ["pr"], "List saved networks", _cmd_pref_nets)

    sub = add("till", ["t"], "Wait for a Wi-Fi or internet state", _cmd_till)
    sub.add_argument("condition",
                     help="One of: " + ", ".join(c.value for c in WaitCondition))
    sub.add_argument("interval", nargs="?", type=_non_negative_float,
                     help="Seconds between checks (default 0.5)")
    sub.add_argument("--timeout", type=_non_negative_float,
                     help="Give up after this many seconds (default: wait forever)")

    add("wifi_on", ["w"], "Is the Wi-Fi radio on?", _cmd_wifi_on)
    subparsers.add_parser("shell", help="Interactive mode")

    return parser


def _wait_interval(cfg) -> Optional[float]:
    """Configured default for `till` checks; a non-numeric value raises ValueError."""
    value = get_setting(cfg, 'wait.interval_seconds')
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(
            f"wait.interval_seconds must be a number. Was: {value!r}") from e


def _apply_defaults(args, wait_interval: Optional[float]) -> None:
    if args.command in ("till", "t") and args.interval is None:
        args.interval = wait_interval


def execute(adapter: WifiAdapter, args, output_format: Optional[str] = None) -> None:
    """Run one parsed command and print its result."""
    result = args.handler(adapter, args)
    text = format_output(result, args.output_format or output_format)
    if text:
        print(text)


def run_shell(
    adapter: WifiAdapter,
    parser: argparse.ArgumentParser,
    output_format: Optional[str] = None,
    read_line: Callable[[str], str] = input,
    wait_interval: Optional[float] = None,
) -> int:
    """
    Read and run commands until an exit word or end of input.
    Errors are reported and the loop continues.
    """
    while True:
        try:
            line = read_line("wifictl> ")
        except EOFError:
            print()
            return 0

        try:
            tokens = shlex.split(line)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            continue
        if not tokens:
            continue
        if tokens[0] in SHELL_EXIT_WORDS:
            return 0

        try:
            args = parser.parse_args(tokens)
        except SystemExit:
            # argparse already printed the usage error
            continue

        if args.command in (None, "shell"):
            continue

        try:
            _apply_defaults(args, wait_interval)
            execute(adapter, args, output_format)
        except WifiCtlError as e:
            logger.debug(f"Shell command failed: {e}")
            print(f"Error: {e}", file=sys.stderr)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)


def main(argv: Optional[List[str]] = None,
         adapter: Optional[WifiAdapter] = None) -> int:
    """wifictl entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = load_config(args.config)
    configure_logging(
        log_level="DEBUG" if args.verbose else get_setting(cfg, 'log_level', 'WARNING'),
        log_file=get_setting(cfg, 'log_file')
    )

    if not args.command:
        parser.print_help()
        return 0

    try:
        wait_interval = _wait_interval(cfg)
        if adapter is None:
            adapter = select_wifi_adapter(
                args.adapter or get_setting(cfg, 'adapter', 'auto'),
                runner=CommandRunner(verbose=args.verbose),
                probe_command=get_setting(
                    cfg, 'probe.command', DEFAULT_REACHABILITY_COMMAND),
                public_ip_url=get_setting(
                    cfg, 'public_ip_url', DEFAULT_PUBLIC_IP_URL)
            )

        if args.command == "shell":
            return run_shell(adapter, parser, args.output_format,
                             wait_interval=wait_interval)

        _apply_defaults(args, wait_interval)
        execute(adapter, args)
        return 0

    except WifiCtlError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
