"""Unit tests for sentinel logging setup."""

import logging
import re

from bloat_sentinel.sentinel_log import (
    ALERT,
    MONITOR,
    ColorFormatter,
    SentinelFormatter,
    level_label,
    setup_logging,
)


def make_record(level, msg="hello"):
    return logging.LogRecord("bloat_sentinel.test", level, __file__, 1, msg, None, None)


class TestLevels:
    def test_custom_levels_registered(self):
        assert logging.getLevelName(MONITOR) == "MONITOR"
        assert logging.getLevelName(ALERT) == "ALERT"
        assert logging.INFO < MONITOR < logging.WARNING
        assert logging.ERROR < ALERT < logging.CRITICAL

    def test_warning_label_is_short(self):
        assert level_label(logging.WARNING) == "WARN"
        assert level_label(ALERT) == "ALERT"


class TestFormatters:
    def test_file_line_format(self):
        line = SentinelFormatter().format(make_record(MONITOR, "Layer 4: x"))
        assert re.fullmatch(r"\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[MONITOR\] Layer 4: x", line)

    def test_color_tag(self):
        line = ColorFormatter().format(make_record(ALERT, "boom"))
        assert line == "\033[0;31m[ALERT]\033[0m boom"

    def test_uncoloured_level(self):
        assert ColorFormatter().format(make_record(logging.DEBUG, "d")) == "[DEBUG] d"


class TestSetupLogging:
    def test_writes_to_file(self, tmp_path, package_logger):
        log_file = tmp_path / "logs" / "bloat-sentinel.log"

        setup_logging(log_file, interactive=False)
        logging.getLogger("bloat_sentinel.intervention").log(ALERT, "LAYER 1 INTERVENTION: test")
        for handler in package_logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "[ALERT] LAYER 1 INTERVENTION: test" in content

    def test_interactive_adds_console(self, tmp_path, package_logger):
        logger = setup_logging(tmp_path / "s.log", interactive=True)
        assert len(logger.handlers) == 2
        assert isinstance(logger.handlers[1].formatter, ColorFormatter)

    def test_repeated_setup_replaces_handlers(self, tmp_path, package_logger):
        setup_logging(tmp_path / "a.log", interactive=False)
        logger = setup_logging(tmp_path / "b.log", interactive=False)
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_level_filters(self, tmp_path, package_logger):
        log_file = tmp_path / "s.log"
        setup_logging(log_file, interactive=False, level=logging.WARNING)
        logging.getLogger("bloat_sentinel.classifier").log(MONITOR, "quiet")
        logging.getLogger("bloat_sentinel.classifier").warning("loud")
        for handler in package_logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "quiet" not in content
        assert "[WARN] loud" in content
