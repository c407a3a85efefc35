"""
Unit tests for logging configuration.
"""

import logging

from wifictl.logging import configure_logging, get_logger


class TestConfigureLogging:

    def test_sets_level_and_console_handler(self):
        logger = configure_logging(log_level="debug")

        assert logger.name == "wifictl"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_reconfigure_does_not_duplicate_handlers(self):
        configure_logging()
        logger = configure_logging()
        assert len(logger.handlers) == 1

    def test_unknown_level_falls_back_to_warning(self):
        assert configure_logging(log_level="chatty").level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "wifictl.log"
        logger = configure_logging(log_file=str(log_file), console_output=False)

        get_logger("probe").warning("probe hung")
        for handler in logger.handlers:
            handler.flush()

        assert "probe hung" in log_file.read_text()
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_module_loggers_are_children(self):
        assert get_logger("cli").name == "wifictl.cli"
        assert logging.getLogger("wifictl.probe.connectivity").parent.name in (
            "wifictl", "wifictl.probe")
