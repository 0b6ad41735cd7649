"""Shared data models for lintwatch_core."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path


class ChangeKind(str, Enum):
    """Kinds of change notification the watch engine distinguishes."""

    MODIFIED = "modified"
    OTHER = "other"


@dataclass(frozen=True)
class ChangeEvent:
    """A single change notification for a path under the workspace."""

    path: Path
    """Path reported by the notification primitive."""

    kind: ChangeKind = ChangeKind.MODIFIED
    """Content modification or anything else (rename, remove, chmod...)."""


@dataclass(frozen=True)
class LintRequest:
    """One file's content as sent to the lint service."""

    file_path: Path
    """Path of the file on disk."""

    file_content: str
    """Full file content, read at dispatch time."""


class Severity(IntEnum):
    """ESLint severity codes."""

    WARNING = 1
    ERROR = 2

    @property
    def label(self) -> str:
        """Human readable label ("Warning" / "Error")."""
        return self.name.capitalize()


@dataclass(frozen=True)
class Fix:
    """Autofix suggestion attached to a diagnostic."""

    range: tuple[int, int]
    """Character offsets the replacement applies to."""

    text: str
    """Replacement text."""


@dataclass(frozen=True)
class DiagnosticMessage:
    """One reported rule violation."""

    rule_id: str | None
    """Rule identifier; None for fatal parse errors."""

    severity: Severity
    message: str
    line: int
    column: int
    node_type: str | None = None
    end_line: int | None = None
    end_column: int | None = None
    fix: Fix | None = None
    message_id: str | None = None
    fatal: bool = False

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True)
class FileLintResult:
    """Diagnostics produced for a single linted file."""

    file_path: str
    """Path as reported by the service (may differ from the submitted path)."""

    messages: tuple[DiagnosticMessage, ...] = ()
    """Diagnostics in the order the service returned them."""

    error_count: int = 0
    warning_count: int = 0
    fixable_error_count: int = 0
    fixable_warning_count: int = 0

    @property
    def is_clean(self) -> bool:
        """True when the file has no diagnostics."""
        return not self.messages

    @classmethod
    def clean(cls, file_path: str | Path) -> "FileLintResult":
        """Build an empty result for a file the service reported nothing for."""
        return cls(file_path=str(file_path))


class DispatchStatus(str, Enum):
    """Outcome of dispatching one file."""

    SKIPPED = "skipped"
    CLEAN = "clean"
    LINTED = "linted"
    READ_FAILED = "read_failed"
    TRANSPORT_FAILED = "transport_failed"
    DECODE_FAILED = "decode_failed"


@dataclass(frozen=True)
class DispatchOutcome:
    """What happened when a single path went through the dispatch pipeline."""

    path: Path
    status: DispatchStatus
    result: FileLintResult | None = None
    error: Exception | None = None

    @property
    def attempted(self) -> bool:
        """True when the lint service was actually called for this path."""
        return self.status not in (DispatchStatus.SKIPPED, DispatchStatus.READ_FAILED)

    @property
    def failed(self) -> bool:
        return self.status in (
            DispatchStatus.READ_FAILED,
            DispatchStatus.TRANSPORT_FAILED,
            DispatchStatus.DECODE_FAILED,
        )


@dataclass
class ScanSummary:
    """Counters collected by a full workspace scan."""

    files_seen: int = 0
    dispatched: int = 0
    skipped: int = 0
    failed: int = 0
    errors: int = 0
    warnings: int = 0
    failed_paths: list[Path] = field(default_factory=list)

    def record(self, outcome: DispatchOutcome) -> None:
        """Fold one dispatch outcome into the counters."""
        self.files_seen += 1
        if outcome.status is DispatchStatus.SKIPPED:
            self.skipped += 1
            return
        if outcome.attempted:
            self.dispatched += 1
        if outcome.failed:
            self.failed += 1
            self.failed_paths.append(outcome.path)
        if outcome.result is not None:
            self.errors += outcome.result.error_count
            self.warnings += outcome.result.warning_count
