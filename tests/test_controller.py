"""Tests for LintAgentController - watch mode wiring."""

import asyncio
import threading
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from conftest import FakeEngine, FakeTransport, RecordingRenderer, eslint_message, eslint_payload, modified
from lintwatch.controller import Lifetime, LintAgentController
from lintwatch.coordinator import DispatchCoordinator
from lintwatch.renderers import InteractiveRenderer
from lintwatch_core.errors import NotificationChannelClosed, RootRegistrationError
from lintwatch_core.models import DispatchStatus

A_JS_PAYLOAD = eslint_payload(
    eslint_message(rule_id="no-undef", severity=2, line=1, column=1),
    eslint_message(rule_id="semi", severity=1, line=1, column=11),
)


def make_controller(engine, transport, renderer=None, **kwargs):
    coordinator = DispatchCoordinator(transport, renderer or RecordingRenderer())
    controller = LintAgentController(coordinator, engine_factory=lambda loop: engine, **kwargs)
    outcomes = []
    controller.on_dispatched = outcomes.append
    return controller, outcomes


class TestLifetime:
    @pytest.mark.asyncio
    async def test_cancel(self):
        lifetime = Lifetime()
        assert not lifetime.cancelled
        lifetime.cancel()
        assert lifetime.cancelled
        await asyncio.wait_for(lifetime.wait(), timeout=1.0)


class TestWatchScenarios:
    @pytest.mark.asyncio
    async def test_only_relevant_file_is_dispatched(self, workspace):
        """Modifying a.js and b.txt once each yields one dispatch with 1 error and 1 warning."""
        output = StringIO()
        renderer = InteractiveRenderer(Console(file=output, color_system=None, width=200))
        transport = FakeTransport({"a.js": A_JS_PAYLOAD})
        engine = FakeEngine([modified(workspace / "a.js"), modified(workspace / "b.txt")])
        controller, outcomes = make_controller(engine, transport, renderer)

        await asyncio.wait_for(controller.watch(workspace, Lifetime()), timeout=5.0)

        assert transport.linted_names == ["a.js"]
        assert controller.dispatched == 1
        assert [o.status for o in outcomes] == [DispatchStatus.LINTED, DispatchStatus.SKIPPED]
        assert "1 Errors, 1 Warnings" in output.getvalue()
        assert engine.started_with == workspace
        assert engine.stopped

    @pytest.mark.asyncio
    async def test_transport_failure_does_not_stop_session(self, tmp_path, connection_reset, caplog):
        (tmp_path / "c.js").write_text("c")
        (tmp_path / "d.js").write_text("d")
        transport = FakeTransport({"c.js": connection_reset, "d.js": A_JS_PAYLOAD})
        renderer = RecordingRenderer()
        engine = FakeEngine([modified(tmp_path / "c.js"), modified(tmp_path / "d.js")])
        controller, outcomes = make_controller(engine, transport, renderer)

        await asyncio.wait_for(controller.watch(tmp_path, Lifetime()), timeout=5.0)

        assert [o.status for o in outcomes] == [DispatchStatus.TRANSPORT_FAILED, DispatchStatus.LINTED]
        assert [path.name for path, _ in renderer.rendered] == ["d.js"]
        assert "Connection reset by peer" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_payload_then_next_file(self, workspace):
        transport = FakeTransport({"a.js": "<html>502</html>", "main.js": A_JS_PAYLOAD})
        renderer = RecordingRenderer()
        engine = FakeEngine([modified(workspace / "a.js"), modified(workspace / "app" / "main.js")])
        controller, outcomes = make_controller(engine, transport, renderer)

        await asyncio.wait_for(controller.watch(workspace, Lifetime()), timeout=5.0)

        assert [o.status for o in outcomes] == [DispatchStatus.DECODE_FAILED, DispatchStatus.LINTED]
        assert len(renderer.rendered) == 1

    @pytest.mark.asyncio
    async def test_single_worker_preserves_event_order(self, workspace):
        transport = FakeTransport()
        names = ["a.js", "app/main.js", "app/components/widget.js"]
        engine = FakeEngine([modified(workspace / name) for name in names])
        controller, outcomes = make_controller(engine, transport)

        await asyncio.wait_for(controller.watch(workspace, Lifetime()), timeout=5.0)

        assert [o.path for o in outcomes] == [workspace / name for name in names]


class TestQueueing:
    @pytest.mark.asyncio
    async def test_slow_dispatch_does_not_block_intake(self, workspace):
        """Events keep being collected while a lint call is stuck."""
        release = threading.Event()
        entered = threading.Event()

        class SlowTransport(FakeTransport):
            def lint_file(self, request):
                if request.file_path.name == "a.js":
                    entered.set()
                    release.wait(timeout=5.0)
                return super().lint_file(request)

        transport = SlowTransport()
        consumed = []

        class TrackingEngine(FakeEngine):
            async def _stream(self):
                for event in self.events:
                    consumed.append(event.path.name)
                    yield event

        engine = TrackingEngine(
            [modified(workspace / "a.js"), modified(workspace / "app" / "main.js"), modified(workspace / "b.txt")]
        )
        controller, outcomes = make_controller(engine, transport)

        watch = asyncio.create_task(controller.watch(workspace, Lifetime()))
        await asyncio.get_running_loop().run_in_executor(None, entered.wait, 5.0)
        await asyncio.sleep(0.05)

        assert consumed == ["a.js", "main.js", "b.txt"]

        release.set()
        await asyncio.wait_for(watch, timeout=5.0)
        assert len(outcomes) == 3

    @pytest.mark.asyncio
    async def test_queued_duplicates_are_coalesced(self, workspace):
        release = threading.Event()

        class BlockingTransport(FakeTransport):
            def lint_file(self, request):
                release.wait(timeout=5.0)
                return super().lint_file(request)

        transport = BlockingTransport()
        events = [modified(workspace / "app" / "main.js")] + [modified(workspace / "a.js")] * 3
        engine = FakeEngine(events)
        controller, outcomes = make_controller(engine, transport)

        watch = asyncio.create_task(controller.watch(workspace, Lifetime()))
        await asyncio.sleep(0.1)
        release.set()
        await asyncio.wait_for(watch, timeout=5.0)

        assert transport.linted_names == ["main.js", "a.js"]
        assert controller.coalesced == 2

    @pytest.mark.asyncio
    async def test_parallel_workers_dispatch_everything(self, workspace):
        transport = FakeTransport()
        names = ["a.js", "app/main.js", "app/components/widget.js"]
        engine = FakeEngine([modified(workspace / name) for name in names])
        controller, outcomes = make_controller(engine, transport, workers=3, queue_size=1)

        await asyncio.wait_for(controller.watch(workspace, Lifetime()), timeout=5.0)

        assert sorted(transport.linted_names) == ["a.js", "main.js", "widget.js"]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_lifetime_cancel_stops_watch(self, workspace):
        class EndlessEngine(FakeEngine):
            async def _stream(self):
                await asyncio.Event().wait()
                yield  # pragma: no cover

        engine = EndlessEngine([])
        controller, _ = make_controller(engine, FakeTransport())
        lifetime = Lifetime()

        watch = asyncio.create_task(controller.watch(workspace, lifetime))
        await asyncio.sleep(0.05)
        assert controller.running

        lifetime.cancel()
        await asyncio.wait_for(watch, timeout=2.0)

        assert engine.stopped
        assert not controller.running

    @pytest.mark.asyncio
    async def test_unexpected_close_is_surfaced(self, workspace):
        engine = FakeEngine([modified(workspace / "a.js")], closed_unexpectedly=True)
        controller, outcomes = make_controller(engine, FakeTransport())

        with pytest.raises(NotificationChannelClosed):
            await asyncio.wait_for(controller.watch(workspace, Lifetime()), timeout=5.0)

        assert len(outcomes) == 1

    @pytest.mark.asyncio
    async def test_root_registration_error_propagates(self, tmp_path):
        class FailingEngine(FakeEngine):
            def start(self, root):
                raise RootRegistrationError(root, "not a directory")

        controller, _ = make_controller(FailingEngine([]), FakeTransport())

        with pytest.raises(RootRegistrationError):
            await controller.watch(tmp_path / "missing", Lifetime())

        assert not controller.running

    @pytest.mark.asyncio
    async def test_watch_twice_concurrently_is_rejected(self, workspace):
        class EndlessEngine(FakeEngine):
            async def _stream(self):
                await asyncio.Event().wait()
                yield  # pragma: no cover

        controller, _ = make_controller(EndlessEngine([]), FakeTransport())
        lifetime = Lifetime()
        watch = asyncio.create_task(controller.watch(workspace, lifetime))
        await asyncio.sleep(0.05)

        with pytest.raises(RuntimeError, match="already watching"):
            await controller.watch(workspace, Lifetime())

        lifetime.cancel()
        await asyncio.wait_for(watch, timeout=2.0)

    @pytest.mark.asyncio
    async def test_stop_all_ends_watch(self, workspace):
        stream_stopped = asyncio.Event()

        class StoppableEngine(FakeEngine):
            async def _stream(self):
                await stream_stopped.wait()
                return
                yield  # pragma: no cover

            def stop_all(self):
                super().stop_all()
                stream_stopped.set()

        engine = StoppableEngine([])
        controller, _ = make_controller(engine, FakeTransport())
        watch = asyncio.create_task(controller.watch(workspace, Lifetime()))
        await asyncio.sleep(0.05)

        controller.stop_all()
        await asyncio.wait_for(watch, timeout=2.0)

        assert engine.stopped

    def test_workers_must_be_positive(self):
        coordinator = DispatchCoordinator(FakeTransport(), RecordingRenderer())
        with pytest.raises(ValueError):
            LintAgentController(coordinator, workers=0)

    def test_default_engine_factory(self):
        coordinator = DispatchCoordinator(FakeTransport(), RecordingRenderer())
        controller = LintAgentController(coordinator, ignore_dirs=("node_modules",))

        loop = asyncio.new_event_loop()
        try:
            engine = controller.engine_factory(loop)
        finally:
            loop.close()

        assert engine.ignore_dirs == ("node_modules",)
        assert isinstance(engine.targets, frozenset)
