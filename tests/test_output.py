"""Tests for logging setup and formatting."""

import json
import logging

from timew_import.output import ColoredConsoleHandler, StructuredFormatter, setup_logging


def make_record(msg: str = "Inserted 2 intervals", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("timew_import.importer", level, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_json_output(self) -> None:
        formatter = StructuredFormatter(use_json=True, run_mode={"subcommand": "fetch", "dry_run": False})

        data = json.loads(formatter.format(make_record(record_index=3, reason="bad_order")))

        assert data["message"] == "Inserted 2 intervals"
        assert data["level"] == "INFO"
        assert data["record_index"] == 3
        assert data["reason"] == "bad_order"
        assert data["run_mode"] == {"subcommand": "fetch", "dry_run": False}

    def test_json_without_extra_fields(self) -> None:
        data = json.loads(StructuredFormatter(use_json=True).format(make_record()))

        assert "record_index" not in data
        assert "run_mode" not in data

    def test_human_output_appends_context(self) -> None:
        line = StructuredFormatter().format(make_record(date_range="a - b", offset="+08:00"))

        assert "INFO: Inserted 2 intervals (date_range=a - b, offset=+08:00)" in line


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_and_console_handlers(self, tmp_path) -> None:
        log_file = tmp_path / "test.log"

        setup_logging(
            json_format=True,
            log_level=logging.DEBUG,
            console_log_level=logging.WARNING,
            log_file=str(log_file),
        )
        root_logger = logging.getLogger()

        assert root_logger.level == logging.DEBUG
        assert any(isinstance(h, ColoredConsoleHandler) for h in root_logger.handlers)
        assert any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)

        logging.getLogger("timew_import.test").info("hello", extra={"offset": "+08:00"})
        for handler in root_logger.handlers:
            handler.flush()

        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["message"] == "hello"
        assert data["offset"] == "+08:00"

    def test_console_disabled(self) -> None:
        setup_logging(log_level=logging.INFO, console_log_level=0)
        root_logger = logging.getLogger()

        assert root_logger.level == logging.INFO
        assert not any(isinstance(h, ColoredConsoleHandler) for h in root_logger.handlers)
