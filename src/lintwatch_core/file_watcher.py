"""Watch engine implementation using watchdog."""

import asyncio
import logging
import os
from pathlib import Path

from watchdog.events import EVENT_TYPE_MODIFIED, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from lintwatch_core.errors import NotificationChannelError, RootRegistrationError
from lintwatch_core.models import ChangeEvent, ChangeKind
from lintwatch_core.watchers import register_tree

logger = logging.getLogger(__name__)

_CLOSED = object()


class _ChangeHandler(FileSystemEventHandler):
    """Translate watchdog events into ChangeEvents for the engine."""

    def __init__(self, engine: "WatchdogEngine"):
        self.engine = engine

    def dispatch(self, event: FileSystemEvent) -> None:
        # Runs on the observer thread; never let an exception kill it
        try:
            super().dispatch(event)
        except Exception as e:
            self.engine._post(NotificationChannelError(f"Failed to handle {event.event_type} event: {e}"))

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        kind = ChangeKind.MODIFIED if event.event_type == EVENT_TYPE_MODIFIED else ChangeKind.OTHER
        self.engine._accept(ChangeEvent(path=Path(os.fsdecode(event.src_path)), kind=kind))


class ChangeStream:
    """Async iterator over the change events of one engine."""

    def __init__(self, engine: "WatchdogEngine", liveness_interval: float):
        self._engine = engine
        self._liveness_interval = liveness_interval
        self._done = False

    def __aiter__(self) -> "ChangeStream":
        return self

    async def __anext__(self) -> ChangeEvent:
        while not self._done:
            try:
                item = await asyncio.wait_for(self._engine._queue.get(), timeout=self._liveness_interval)
            except asyncio.TimeoutError:
                if not self._engine._channel_open():
                    self._engine._mark_closed()
                    self._done = True
                continue

            if item is _CLOSED:
                self._done = True
            elif isinstance(item, NotificationChannelError):
                logger.error(f"error: {item}")
            else:
                return item
        raise StopAsyncIteration


class WatchdogEngine:
    """Watches every directory of a workspace and streams file modifications.

    One instance watches one root once. The root is scheduled recursively
    on a single observer, which keeps one OS watch per directory, and only
    directories found by the start-time walk are reported.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        ignore_dirs: tuple[str, ...] = (),
        observer_factory=Observer,
        liveness_interval: float = 1.0,
    ):
        """Initialize engine.

        Args:
            loop: Event loop the change stream is consumed on
            ignore_dirs: Directory names not to watch
            observer_factory: Callable returning a watchdog observer
            liveness_interval: Seconds between observer liveness checks while idle
        """
        self.loop = loop
        self.ignore_dirs = ignore_dirs
        self.observer = None
        self._observer_factory = observer_factory
        self._liveness_interval = liveness_interval
        self._queue: asyncio.Queue = asyncio.Queue()
        self._targets: frozenset[Path] = frozenset()
        self._started = False
        self._stopped = False
        self._closed_unexpectedly = False

    @property
    def targets(self) -> frozenset[Path]:
        """Directories currently registered for change notification."""
        return self._targets

    @property
    def closed_unexpectedly(self) -> bool:
        return self._closed_unexpectedly

    def start(self, root: Path) -> ChangeStream:
        """Register the tree under root and return its change stream.

        Raises:
            RootRegistrationError: If the root cannot be watched
            RuntimeError: If the engine was already started
        """
        if self._started:
            raise RuntimeError("WatchdogEngine cannot be restarted; create a new instance")
        self._started = True
        root = Path(root)

        # Start first so schedule() registers synchronously and raises on failure
        self.observer = self._observer_factory()
        self.observer.start()
        handler = _ChangeHandler(self)

        def register(directory: Path) -> None:
            self.observer.schedule(handler, str(directory), recursive=True)

        try:
            self._targets = register_tree(root, register, self.ignore_dirs)
        except RootRegistrationError:
            self._stopped = True
            self._stop_observer()
            raise

        logger.info(f"Watching {len(self._targets)} directories under {root}")
        return ChangeStream(self, self._liveness_interval)

    def stop_all(self) -> None:
        """Release every watch and end the change stream."""
        if self._stopped:
            return
        self._stopped = True
        if self.observer is not None:
            self.observer.unschedule_all()
            self._stop_observer()
        self._targets = frozenset()
        self._post(_CLOSED)
        logger.info("Stopped file watcher")

    def _stop_observer(self) -> None:
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=2.0)

    def _accept(self, event: ChangeEvent) -> None:
        """Forward content modifications of files inside a watched directory."""
        if event.kind is not ChangeKind.MODIFIED:
            return
        if event.path.parent not in self._targets:
            return
        logger.debug(f"File change detected: {event.path}")
        self._post(event)

    def _post(self, item: object) -> None:
        try:
            self.loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping {item!r}")

    def _channel_open(self) -> bool:
        if self._stopped:
            # _CLOSED is already queued
            return True
        return self.observer is not None and self.observer.is_alive()

    def _mark_closed(self) -> None:
        if not self._stopped:
            self._closed_unexpectedly = True
            logger.error("Notification channel closed, file changes are no longer observed")
