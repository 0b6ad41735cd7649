"""Watch-mode controller: change intake, work queue and dispatch workers."""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from lintwatch_core.config import DEFAULT_QUEUE_SIZE
from lintwatch_core.errors import NotificationChannelClosed
from lintwatch_core.file_watcher import WatchdogEngine
from lintwatch_core.models import DispatchOutcome
from lintwatch_core.watchers import WatchEngine

from lintwatch.coordinator import DispatchCoordinator

logger = logging.getLogger(__name__)

EngineFactory = Callable[[asyncio.AbstractEventLoop], WatchEngine]


class Lifetime:
    """Token that keeps a watch session alive until cancelled."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class LintAgentController:
    """Connect a watch engine to a dispatch coordinator.

    Event intake and dispatch run as separate tasks joined by a bounded queue,
    so a slow lint call never stops new change events from being collected.
    Dispatches run in a thread pool because transport calls block.
    """

    def __init__(
        self,
        coordinator: DispatchCoordinator,
        engine_factory: EngineFactory | None = None,
        workers: int = 1,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        ignore_dirs: tuple[str, ...] = (),
    ):
        """Initialize controller.

        Args:
            coordinator: Dispatches one path at a time
            engine_factory: Builds the watch engine for the running loop (defaults to watchdog)
            workers: Number of concurrent dispatches; 1 keeps event order
            queue_size: Capacity of the pending dispatch queue
            ignore_dirs: Directory names the default engine does not watch
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.coordinator = coordinator
        self.engine_factory = engine_factory or (lambda loop: WatchdogEngine(loop, ignore_dirs=ignore_dirs))
        self.workers = workers
        self.queue_size = queue_size
        self.dispatched = 0
        self.coalesced = 0
        self._engine: WatchEngine | None = None

        # Outbound event (host wires this)
        self.on_dispatched: Callable[[DispatchOutcome], None] | None = None

    @property
    def running(self) -> bool:
        return self._engine is not None

    def stop_all(self) -> None:
        """Release every watch; watch() returns once queued work is done."""
        if self._engine is not None:
            self._engine.stop_all()

    async def watch(self, root: Path | str, lifetime: Lifetime) -> None:
        """Watch root and lint changed files until lifetime is cancelled.

        Raises:
            RootRegistrationError: If the root cannot be watched
            NotificationChannelClosed: If notifications stop without being asked to
        """
        if self._engine is not None:
            raise RuntimeError("Controller is already watching")

        loop = asyncio.get_running_loop()
        engine = self.engine_factory(loop)
        stream = engine.start(Path(root))
        self._engine = engine

        queue: asyncio.Queue[Path] = asyncio.Queue(maxsize=self.queue_size)
        pending: set[Path] = set()
        executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="lintwatch-dispatch")

        intake = asyncio.create_task(self._intake(stream, queue, pending), name="lintwatch-intake")
        workers = [
            asyncio.create_task(self._worker(queue, pending, executor), name=f"lintwatch-worker-{i}")
            for i in range(self.workers)
        ]
        stop = asyncio.create_task(lifetime.wait(), name="lintwatch-lifetime")

        tasks = [intake, stop, *workers]
        intake_error: BaseException | None = None
        try:
            await asyncio.wait({intake, stop}, return_when=asyncio.FIRST_COMPLETED)
            if intake.done() and not intake.cancelled():
                intake_error = intake.exception()
                if intake_error is None and not lifetime.cancelled:
                    # Stream ended: finish what was already queued
                    drained = asyncio.create_task(queue.join())
                    tasks.append(drained)
                    await asyncio.wait({drained, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            engine.stop_all()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            executor.shutdown(wait=False, cancel_futures=True)
            self._engine = None

        if intake_error is not None:
            raise intake_error
        if engine.closed_unexpectedly:
            raise NotificationChannelClosed("File change notifications stopped; the workspace is no longer watched")
        logger.info(f"Watch session ended after {self.dispatched} dispatches")

    async def _intake(self, stream, queue: asyncio.Queue, pending: set[Path]) -> None:
        async for event in stream:
            if event.path in pending:
                # Still queued; content is read at dispatch time anyway
                self.coalesced += 1
                logger.debug(f"Already queued: {event.path}")
                continue
            pending.add(event.path)
            await queue.put(event.path)

    async def _worker(self, queue: asyncio.Queue, pending: set[Path], executor: ThreadPoolExecutor) -> None:
        loop = asyncio.get_running_loop()
        while True:
            path = await queue.get()
            pending.discard(path)
            try:
                outcome = await loop.run_in_executor(executor, self.coordinator.dispatch, path)
            except Exception as e:
                logger.exception(f"Unexpected error dispatching {path}: {e}")
                continue
            finally:
                queue.task_done()

            if outcome.attempted:
                self.dispatched += 1
            if self.on_dispatched:
                try:
                    self.on_dispatched(outcome)
                except Exception as e:
                    logger.error(f"on_dispatched callback failed for {path}: {e}")
