"""Logging and output utilities for timew-import."""

import json
import logging
import sys
from datetime import UTC, datetime

from termcolor import cprint

# Extra fields that callers may attach via ``logger.info(..., extra={...})``
STRUCTURED_FIELDS = ("record_index", "reason", "date_range", "offset")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured logs with all relevant context.
    Can output in JSON format for later analysis of import runs.
    """

    def __init__(self, use_json: bool = False, run_mode: dict = None) -> None:
        super().__init__()
        self.use_json = use_json
        self.run_mode = run_mode or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Run mode lets log analysis separate dry runs from real imports
        if self.run_mode:
            log_data["run_mode"] = self.run_mode

        for key in STRUCTURED_FIELDS:
            if hasattr(record, key):
                val = getattr(record, key)
                log_data[key] = val if isinstance(val, int) else str(val)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.use_json:
            return json.dumps(log_data)
        return self._format_human(log_data)

    def _format_human(self, log_data: dict) -> str:
        """Format log data as a single human-readable line."""
        now = datetime.now().strftime("%H:%M:%S")
        msg = log_data["message"]

        context = [f"{key}={log_data[key]}" for key in STRUCTURED_FIELDS if key in log_data]
        if context:
            msg = f"{msg} ({', '.join(context)})"
        if "exception" in log_data:
            msg = f"{msg}\n{log_data['exception']}"

        return f"{now} {log_data['level']}: {msg}"


class ColoredConsoleHandler(logging.StreamHandler):
    """
    Console handler that adds colors based on log level.
    Warnings are bold, errors/criticals are bold and red.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            attrs = []
            color = None

            if record.levelno > logging.ERROR:
                attrs = ["bold", "blink"]
                color = "red"
            elif record.levelno > logging.WARNING:
                attrs = ["bold"]
                color = "red"
            elif record.levelno > logging.INFO:
                attrs = ["bold"]
            elif record.levelno == logging.INFO:
                color = "yellow"

            if color or attrs:
                cprint(msg, color=color, attrs=attrs, file=self.stream)
            else:
                self.stream.write(msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    json_format: bool = False,
    log_level: int = logging.DEBUG,
    console_log_level: int = logging.ERROR,
    log_file: str = None,
    run_mode: dict = None,
) -> None:
    """
    Set up the logging system.

    Args:
        json_format: If True, write the log file in JSON format
        log_level: Logging level (default: DEBUG)
        console_log_level: Console logging level (default: ERROR), 0 disables the console
        log_file: Optional file path to write logs to. If None, logs to console only.
        run_mode: Optional dict with run mode info (subcommand, dry_run) for filtering logs
    """
    root_logger = logging.getLogger()
    levels = [level for level in (log_level, console_log_level) if level]
    root_logger.setLevel(min(levels) if levels else logging.CRITICAL)

    root_logger.handlers.clear()

    if log_file and log_level:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter(use_json=json_format, run_mode=run_mode))
        root_logger.addHandler(file_handler)
    if console_log_level:
        console_handler = ColoredConsoleHandler(sys.stderr)
        console_handler.setLevel(console_log_level)
        console_handler.setFormatter(StructuredFormatter(run_mode=run_mode))
        root_logger.addHandler(console_handler)


def user_output(msg: str, color: str = None, attrs: list = None) -> None:
    """
    Output message to the user (program output, not debug logging).

    Args:
        msg: Message to display to the user
        color: Optional color (e.g., 'yellow', 'red', 'green')
        attrs: Optional attributes (e.g., ['bold'])
    """
    if color or attrs:
        cprint(msg, color=color, attrs=attrs)
    else:
        print(msg)
