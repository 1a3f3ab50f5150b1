"""Timewarrior as the source of intervals.

This is the ONLY place that knows about timew commands. All exports go
through TimewSource; it returns raw records, validation happens in
admission.
"""

import json
import logging
import subprocess
from datetime import date, timedelta
from typing import Any

from .boundaries import boundaries_for
from .errors import SourceError

logger = logging.getLogger(__name__)

# timew accepts ISO-8601 instants with a trailing Z
TIMEW_RANGE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_export_output(output: str) -> list[dict[str, Any]]:
    """
    Parse the JSON printed by ``timew export``.

    Args:
        output: Raw stdout

    Returns:
        List of raw interval records (empty output means no records)

    Raises:
        SourceError: If the output is not a JSON array of objects with a start
    """
    if not output or not output.strip():
        return []

    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise SourceError(f"Failed to parse timew export output: {e}") from e

    if not isinstance(data, list):
        raise SourceError("Timewarrior output must be an array")

    for entry in data:
        if not isinstance(entry, dict) or "start" not in entry:
            raise SourceError("Invalid timewarrior entry structure: missing start time")

    return data


class TimewSource:
    """Runs ``timew export`` and returns raw interval records."""

    def __init__(
        self,
        command: list[str] | None = None,
        timeout: float = 30,
        capture_commands: list | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            command: How to invoke timew, e.g. ["wsl", "timew"] (defaults to ["timew"])
            timeout: Seconds before an export is abandoned
            capture_commands: Optional list to capture commands for testing
        """
        self.command = list(command) if command else ["timew"]
        self.timeout = timeout
        self.capture_commands = capture_commands

    def build_export_command(
        self,
        first_day: date | None = None,
        last_day: date | None = None,
        offset: int = 0,
    ) -> list[str]:
        """Build the export command for a range of local days.

        The range is given to timew as UTC instants, from local midnight of
        first_day to local midnight after last_day, so timew's own timezone
        setting does not matter. Without dates, everything is exported.
        """
        cmd = self.command + ["export"]
        if first_day is None:
            return cmd

        last_day = last_day or first_day
        range_start = boundaries_for(first_day, offset).start
        range_end = boundaries_for(last_day + timedelta(days=1), offset).start
        return cmd + [
            range_start.strftime(TIMEW_RANGE_FORMAT),
            "-",
            range_end.strftime(TIMEW_RANGE_FORMAT),
        ]

    def _run(self, cmd: list[str]) -> str:
        if self.capture_commands is not None:
            self.capture_commands.append(cmd)

        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=True, timeout=self.timeout
            )
        except FileNotFoundError as e:
            raise SourceError(f"timew not found: {self.command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise SourceError(f"Command timeout after {self.timeout}s: {' '.join(cmd)}") from e
        except subprocess.CalledProcessError as e:
            raise SourceError(f"Failed to run {' '.join(cmd)}: {e.stderr}") from e

        if result.stderr and result.stderr.strip():
            logger.warning(f"timew reported: {result.stderr.strip()}")
        return result.stdout

    def export(
        self,
        first_day: date | None = None,
        last_day: date | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Export raw records for a range of local days (or everything)."""
        records = parse_export_output(self._run(self.build_export_command(first_day, last_day, offset)))
        logger.info(f"Exported {len(records)} intervals from timew")
        return records

    def version(self) -> str | None:
        """Return the timew version string, or None if timew cannot be run."""
        try:
            output = self._run(self.command + ["--version"])
        except SourceError:
            return None
        return output.strip() or None
