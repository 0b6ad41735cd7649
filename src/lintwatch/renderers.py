"""Pluggable renderers for lint results.

Two interchangeable strategies: InteractiveRenderer prints diagnostics to the
terminal, ExportRenderer appends them to a CSV report. A run uses exactly one.
"""

import csv
import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Protocol

from rich.console import Console
from rich.text import Text

from lintwatch_core.config import DEFAULT_REPORT_PATH
from lintwatch_core.models import DiagnosticMessage, FileLintResult

logger = logging.getLogger(__name__)

CLEAN_INDICATOR = "**** Clean ****"
MESSAGE_WIDTH = 90
LOCATION_WIDTH = 8
SEVERITY_WIDTH = 7
MISSING_RULE = "-"


class Renderer(Protocol):
    """Protocol for result renderers - host can provide custom implementation."""

    def render(self, file_path: Path, result: FileLintResult) -> None:
        """Present the diagnostics of one dispatched file."""
        ...


def format_message(message: DiagnosticMessage) -> Text:
    """Build the console line for one diagnostic."""
    location = f"{message.line}:{message.column}"
    if message.is_error:
        location_style, severity_style = "bright_red", "bold bright_red"
    else:
        location_style, severity_style = "yellow", "bright_yellow"
    return Text.assemble(
        " ",
        (f"{location:<{LOCATION_WIDTH}}", location_style),
        "  ",
        (f"{message.severity.label:>{SEVERITY_WIDTH}}", severity_style),
        "  ",
        f"{message.message:<{MESSAGE_WIDTH}}",
        "  ",
        message.rule_id or MISSING_RULE,
    )


def format_summary(result: FileLintResult, rendered_at: datetime) -> Text:
    """Build the "N Errors, M Warnings [time]" footer."""
    return Text.assemble(
        " ",
        (str(result.error_count), "bright_red"),
        " Errors, ",
        (str(result.warning_count), "bright_yellow"),
        " Warnings [",
        (rendered_at.strftime("%H:%M:%S"), "bright_magenta"),
        "]",
    )


class InteractiveRenderer:
    """Print diagnostics to the terminal as they arrive."""

    def __init__(self, console: Console | None = None, clock: Callable[[], datetime] = datetime.now):
        """Initialize renderer.

        Args:
            console: Rich console to print to (defaults to stdout)
            clock: Source of the render timestamp
        """
        self.console = console or Console(highlight=False)
        self.clock = clock
        self._lock = threading.Lock()

    def render(self, file_path: Path, result: FileLintResult) -> None:
        # One file's lines must never interleave with another's
        with self._lock:
            self.console.print()
            self.console.print(Text(str(file_path), style="bright_cyan"), soft_wrap=True)
            if result.is_clean:
                self.console.print(Text(CLEAN_INDICATOR, style="bright_green"))
                return
            for message in result.messages:
                self.console.print(format_message(message), soft_wrap=True)
            self.console.print()
            self.console.print(format_summary(result, self.clock()))
            self.console.print()


class ExportRenderer:
    """Append one CSV row per diagnostic to a cumulative report file.

    Row layout: file path, line, column, severity code, message, rule id.
    The sink is created on first write and never truncated.
    """

    def __init__(self, sink: str | Path = DEFAULT_REPORT_PATH):
        self.sink = Path(sink)
        self.rows_written = 0
        self._lock = threading.Lock()

    def append(self, file_path: Path | str, message: DiagnosticMessage) -> None:
        """Write a single diagnostic record."""
        self._write_rows([self._row(file_path, message)])

    def render(self, file_path: Path, result: FileLintResult) -> None:
        self._write_rows(self._row(file_path, message) for message in result.messages)
        logger.info(f"{file_path}: {result.error_count} Errors, {result.warning_count} Warnings")

    @staticmethod
    def _row(file_path: Path | str, message: DiagnosticMessage) -> list:
        return [
            str(file_path),
            message.line,
            message.column,
            int(message.severity),
            message.message,
            message.rule_id or "",
        ]

    def _write_rows(self, rows: Iterable[list]) -> None:
        rows = list(rows)
        if not rows:
            return
        with self._lock:
            try:
                if self.sink.parent != Path():
                    self.sink.parent.mkdir(parents=True, exist_ok=True)
                with open(self.sink, "a", newline="", encoding="utf-8") as f:
                    csv.writer(f).writerows(rows)
            except OSError as e:
                logger.error(f"Cannot write to file {self.sink}: {e}")
                return
            self.rows_written += len(rows)
