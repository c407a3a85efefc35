"""
Integration tests for the wifictl command line.
Commands run against an in-memory adapter; no OS utilities are called.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import yaml

from wifictl.cli import build_parser, main, run_shell
from wifictl.errors import InternetStatusUndeterminedError, OsCommandError
from wifictl.wifi.adapter import WifiAdapter, WifiNetwork


class MockWifiAdapter(WifiAdapter):
    """In-memory Wi-Fi state for CLI tests."""

    def __init__(self, internet_results=(True,)):
        probe = MagicMock()
        probe.is_connected.side_effect = list(internet_results)
        super().__init__(probe=probe)
        self.powered = True
        self.connected_ssid = "HomeNet"
        self.saved = {"HomeNet": "homepass123", "GuestNet": None}
        self.waiter.sleep = MagicMock()

    def _detect_interface(self):
        return "wlan0"

    def wifi_on(self):
        return self.powered

    def turn_on(self):
        self.powered = True

    def turn_off(self):
        self.powered = False
        self.connected_ssid = None

    def available_networks(self):
        return [
            WifiNetwork(ssid="HomeNet", signal_strength=80, security="WPA2"),
            WifiNetwork(ssid="GuestNet", signal_strength=60, security="WPA"),
        ]

    def connected_network_name(self):
        return self.connected_ssid

    def connect(self, name, password=None):
        if self.saved.get(name) != password:
            raise OsCommandError(1, f"connect {name}", "Failed to join network")
        self.connected_ssid = name

    def disconnect(self):
        self.connected_ssid = None

    def preferred_networks(self):
        return sorted(self.saved, key=str.lower)

    def remove_preferred_networks(self, *names):
        removed = [name for name in names if name in self.saved]
        for name in removed:
            del self.saved[name]
        return removed

    def preferred_network_password(self, name):
        return self.saved.get(name)

    def ip_address(self):
        return "192.168.1.100"

    def mac_address(self):
        return "aa:bb:cc:dd:ee:ff"

    def nameservers(self):
        return ["192.168.1.1"]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config lookup at an empty location."""
    monkeypatch.setenv("WIFICTL_CONFIG", str(tmp_path / "missing.yaml"))


class TestCommands:
    """Test individual commands."""

    def test_ci_connected(self, capsys):
        assert main(["ci"], adapter=MockWifiAdapter()) == 0
        assert capsys.readouterr().out.strip() == "Yes"

    def test_ci_json(self, capsys):
        assert main(["-o", "j", "ci"], adapter=MockWifiAdapter([False])) == 0
        assert json.loads(capsys.readouterr().out) is False

    def test_ci_undetermined_is_an_error(self, capsys):
        adapter = MockWifiAdapter([InternetStatusUndeterminedError(3)])

        assert main(["ci"], adapter=adapter) == 1
        assert "Could not determine internet status" in capsys.readouterr().err

    def test_avail_nets_alias(self, capsys):
        assert main(["a"], adapter=MockWifiAdapter()) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("HomeNet")
        assert lines[1].startswith("GuestNet")

    def test_avail_nets_yaml(self, capsys):
        main(["-o", "y", "avail_nets"], adapter=MockWifiAdapter())
        data = yaml.safe_load(capsys.readouterr().out)
        assert data[0] == {"ssid": "HomeNet", "signal_strength": 80, "security": "WPA2"}

    def test_connect_and_network_name(self, capsys):
        adapter = MockWifiAdapter()
        assert main(["co", "GuestNet"], adapter=adapter) == 0
        assert main(["ne"], adapter=adapter) == 0
        assert capsys.readouterr().out.strip() == "GuestNet"

    def test_connect_failure(self, capsys):
        assert main(["connect", "HomeNet", "wrong"], adapter=MockWifiAdapter()) == 1
        assert "Failed to join" in capsys.readouterr().err

    def test_off_on_and_wifi_on(self, capsys):
        adapter = MockWifiAdapter()
        main(["of"], adapter=adapter)
        main(["w"], adapter=adapter)
        main(["on"], adapter=adapter)
        main(["w"], adapter=adapter)
        assert capsys.readouterr().out.split() == ["No", "Yes"]

    def test_forget(self, capsys):
        adapter = MockWifiAdapter()
        main(["-o", "j", "f", "GuestNet", "Nope"], adapter=adapter)
        assert json.loads(capsys.readouterr().out) == ["GuestNet"]
        assert adapter.preferred_networks() == ["HomeNet"]

    def test_password(self, capsys):
        main(["pa", "HomeNet"], adapter=MockWifiAdapter())
        assert capsys.readouterr().out.strip() == "homepass123"

    def test_info_json(self, capsys):
        adapter = MockWifiAdapter([False])
        assert main(["-o", "k", "info"], adapter=adapter) == 0
        info = json.loads(capsys.readouterr().out)
        assert info["interface"] == "wlan0"
        assert info["internet_on"] is False
        assert info["public_ip"] is None

    def test_till_connected(self):
        adapter = MockWifiAdapter([False, False, True])
        assert main(["till", "conn", "2"], adapter=adapter) == 0
        assert adapter.waiter.sleep.call_count == 2
        adapter.waiter.sleep.assert_called_with(2.0)

    def test_till_bogus_condition(self, capsys):
        adapter = MockWifiAdapter()
        assert main(["t", "bogus"], adapter=adapter) == 2
        assert "Condition must be one of" in capsys.readouterr().err
        adapter.probe.is_connected.assert_not_called()

    def test_till_interval_from_config(self, tmp_path, monkeypatch):
        config = tmp_path / "config.yaml"
        config.write_text("wait:\n  interval_seconds: 3\n")
        adapter = MockWifiAdapter([False, True])

        main(["-c", str(config), "till", "conn"], adapter=adapter)

        adapter.waiter.sleep.assert_called_once_with(3)

    def test_till_interval_from_config_given_as_text(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("wait:\n  interval_seconds: '1'\n")
        adapter = MockWifiAdapter([False, True])

        assert main(["-c", str(config), "till", "conn"], adapter=adapter) == 0
        adapter.waiter.sleep.assert_called_once_with(1.0)

    def test_till_non_numeric_interval_in_config(self, tmp_path, capsys):
        config = tmp_path / "config.yaml"
        config.write_text("wait:\n  interval_seconds: soon\n")
        adapter = MockWifiAdapter()

        assert main(["-c", str(config), "till", "on"], adapter=adapter) == 2
        assert "wait.interval_seconds must be a number" in capsys.readouterr().err
        adapter.waiter.sleep.assert_not_called()

    def test_negative_interval_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["till", "on", "-1"])

    def test_no_command_prints_help(self, capsys):
        assert main([], adapter=MockWifiAdapter()) == 0
        assert "usage" in capsys.readouterr().out


class TestShell:
    """Test interactive mode."""

    def _lines(self, *lines):
        feed = iter(lines)

        def read_line(prompt):
            try:
                return next(feed)
            except StopIteration:
                raise EOFError
        return read_line

    def test_runs_commands_until_quit(self, capsys):
        adapter = MockWifiAdapter()
        code = run_shell(adapter, build_parser(),
                         read_line=self._lines("ne", "d", "ne", "q", "ne"))

        assert code == 0
        assert capsys.readouterr().out.strip() == "HomeNet"
        assert adapter.connected_ssid is None

    def test_errors_do_not_end_the_shell(self, capsys):
        adapter = MockWifiAdapter()
        code = run_shell(adapter, build_parser(), read_line=self._lines(
            "co HomeNet wrong", "nonsense", "t bogus", "'unbalanced", "pa HomeNet"))

        captured = capsys.readouterr()
        assert code == 0
        assert "homepass123" in captured.out
        assert "Failed to join" in captured.err

    def test_till_in_shell_uses_configured_interval(self):
        adapter = MockWifiAdapter([False, True, False, True])
        run_shell(adapter, build_parser(), wait_interval=4.0,
                  read_line=self._lines("t conn", "till conn 0.25"))

        assert [c.args[0] for c in adapter.waiter.sleep.call_args_list] == [4.0, 0.25]

    @patch('wifictl.cli.run_shell', return_value=0)
    def test_shell_started_from_main_gets_configured_interval(self, mock_shell, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("wait:\n  interval_seconds: 2\n")

        assert main(["-c", str(config), "shell"], adapter=MockWifiAdapter()) == 0
        assert mock_shell.call_args.kwargs["wait_interval"] == 2.0

    def test_output_format_applies_to_shell(self, capsys):
        run_shell(MockWifiAdapter(), build_parser(), output_format="j",
                  read_line=self._lines("pr"))
        assert json.loads(capsys.readouterr().out.strip()) == ["GuestNet", "HomeNet"]
