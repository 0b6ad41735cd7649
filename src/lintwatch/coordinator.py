"""Drive files through the lint service and route results to a renderer."""

import logging
import os
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from lintwatch_core.config import DEFAULT_EXTENSIONS
from lintwatch_core.decoder import first_result, parse_payload
from lintwatch_core.errors import DecodeError, RootRegistrationError, TransportError
from lintwatch_core.models import (
    DispatchOutcome,
    DispatchStatus,
    FileLintResult,
    LintRequest,
    ScanSummary,
)
from lintwatch_core.transport import LintTransport

from lintwatch.renderers import Renderer

logger = logging.getLogger(__name__)


def iter_workspace_files(root: Path, ignore_dirs: tuple[str, ...] = ()) -> Iterator[Path]:
    """Yield every regular file under root in a stable order."""

    def on_walk_error(error: OSError) -> None:
        logger.warning(f"Error occurred walking {error.filename}: {error.strerror or error}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error):
        dirnames[:] = sorted(d for d in dirnames if d not in ignore_dirs)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_file():
                yield path


class DispatchCoordinator:
    """Send lint-relevant files to the service, one request per file."""

    def __init__(
        self,
        transport: LintTransport,
        renderer: Renderer,
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
        ignore_dirs: tuple[str, ...] = (),
    ):
        """Initialize coordinator.

        Args:
            transport: Connection to the lint service (shared by all dispatches)
            renderer: Receives every decoded result
            extensions: Lint-relevant file extensions
            ignore_dirs: Directory names skipped by scan_all()
        """
        self.transport = transport
        self.renderer = renderer
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.ignore_dirs = ignore_dirs

    def is_lint_relevant(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def dispatch(self, path: Path | str) -> DispatchOutcome:
        """Lint one file and render the result.

        Never raises for per-file failures; they are logged and reported in the
        returned outcome so the caller can keep going.
        """
        path = Path(path)
        if not self.is_lint_relevant(path):
            return DispatchOutcome(path, DispatchStatus.SKIPPED)

        # Read now rather than at event time so the latest write wins
        try:
            content = path.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read file to send to server: {path}: {e}")
            return DispatchOutcome(path, DispatchStatus.READ_FAILED, error=e)

        try:
            raw = self.transport.lint_file(LintRequest(file_path=path, file_content=content))
        except TransportError as e:
            logger.error(f"Error when calling LintFile: {e}")
            return DispatchOutcome(path, DispatchStatus.TRANSPORT_FAILED, error=e)

        try:
            results = parse_payload(raw)
        except DecodeError as e:
            logger.error(f"Error occurred while parsing server response for {path}: {e}")
            return DispatchOutcome(path, DispatchStatus.DECODE_FAILED, error=e)

        result = first_result(results) or FileLintResult.clean(path)
        self.renderer.render(path, result)
        status = DispatchStatus.CLEAN if result.is_clean else DispatchStatus.LINTED
        return DispatchOutcome(path, status, result=result)

    def scan_all(self, root: Path | str, workers: int = 1) -> ScanSummary:
        """Dispatch every file under root once.

        Args:
            root: Workspace root
            workers: Maximum concurrent dispatches; 1 keeps file order

        Raises:
            RootRegistrationError: If root is not a directory
        """
        root = Path(root)
        if not root.is_dir():
            raise RootRegistrationError(root, "not a directory")

        logger.info(f"Scanning all files in {root}")
        summary = ScanSummary()
        files = iter_workspace_files(root, self.ignore_dirs)
        if workers <= 1:
            for path in files:
                summary.record(self.dispatch(path))
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lintwatch-scan") as pool:
                for outcome in pool.map(self.dispatch, files):
                    summary.record(outcome)

        logger.info(
            f"Scan finished: {summary.dispatched} dispatched, {summary.skipped} skipped, "
            f"{summary.failed} failed"
        )
        return summary
