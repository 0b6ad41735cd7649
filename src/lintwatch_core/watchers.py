"""Abstract watch engine protocol and the start-time registration walk."""

import logging
import os
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Protocol

from lintwatch_core.errors import RegistrationError, RootRegistrationError
from lintwatch_core.models import ChangeEvent

logger = logging.getLogger(__name__)


class WatchEngine(Protocol):
    """Protocol for watch engine implementations."""

    def start(self, root: Path) -> AsyncIterator[ChangeEvent]:
        """Register the tree under root and return the change stream.

        Raises:
            RootRegistrationError: If the root itself cannot be watched
        """
        ...

    def stop_all(self) -> None:
        """Release every registered target and end the stream."""
        ...

    @property
    def closed_unexpectedly(self) -> bool:
        """True when the stream ended without stop_all()."""
        ...


def register_tree(
    root: Path,
    register: Callable[[Path], None],
    ignore_dirs: tuple[str, ...] = (),
) -> frozenset[Path]:
    """Start one recursive watch on root and walk it once to collect targets.

    Every directory the walk can list becomes a watch target. Directories
    created later, ignored directories and directories that cannot be listed
    are not targets, so their events are dropped by the engine.

    Args:
        root: Workspace root
        register: Callback that starts watching root recursively; raises on failure
        ignore_dirs: Directory names to skip

    Returns:
        The set of watched directories (the watch targets)

    Raises:
        RootRegistrationError: If root is missing or cannot be registered
    """
    if not root.is_dir():
        raise RootRegistrationError(root, "not a directory")

    try:
        register(root)
    except (OSError, RegistrationError) as e:
        raise RootRegistrationError(root, str(e)) from e

    targets: set[Path] = set()
    failures: list[RegistrationError] = []

    def on_walk_error(error: OSError) -> None:
        failures.append(RegistrationError(error.filename or root, error.strerror or str(error)))

    for dirpath, dirnames, _ in os.walk(root, onerror=on_walk_error):
        targets.add(Path(dirpath))
        dirnames[:] = sorted(d for d in dirnames if d not in ignore_dirs)

    for failure in failures:
        if failure.path == root:
            raise RootRegistrationError(root, failure.reason)
        logger.warning(f"Error occurred watching filesystem: {failure}")

    return frozenset(targets)
