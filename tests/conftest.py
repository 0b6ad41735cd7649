"""Pytest configuration and fixtures."""

import json
import sys
import threading
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from lintwatch_core.errors import TransportError  # noqa: E402
from lintwatch_core.models import ChangeEvent, ChangeKind  # noqa: E402


def eslint_message(rule_id="no-unused-vars", severity=2, message="'x' is defined but never used.", line=1, column=5):
    """Build one ESLint message object as the server sends it."""
    return {
        "ruleId": rule_id,
        "severity": severity,
        "message": message,
        "line": line,
        "column": column,
        "nodeType": "Identifier",
        "endLine": line,
        "endColumn": column + 1,
    }


def eslint_payload(*messages, file_path="tempfile.js"):
    """Serialize an ESLint result list the way the server does."""
    errors = sum(1 for m in messages if m["severity"] == 2)
    return json.dumps(
        [
            {
                "filePath": file_path,
                "messages": list(messages),
                "errorCount": errors,
                "warningCount": len(messages) - errors,
                "fixableErrorCount": 0,
                "fixableWarningCount": 0,
            }
        ]
    )


class FakeTransport:
    """LintTransport that answers from a table keyed by file name."""

    def __init__(self, responses=None, default=""):
        self.responses = dict(responses or {})
        self.default = default
        self.requests = []
        self.closed = False
        self._lock = threading.Lock()

    def lint_file(self, request):
        with self._lock:
            self.requests.append(request)
        answer = self.responses.get(request.file_path.name, self.default)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self):
        self.closed = True

    @property
    def linted_names(self):
        return [r.file_path.name for r in self.requests]


class RecordingRenderer:
    """Renderer that keeps every (path, result) pair it receives."""

    def __init__(self):
        self.rendered = []

    def render(self, file_path, result):
        self.rendered.append((file_path, result))


class FakeEngine:
    """WatchEngine that replays a fixed list of events and then closes."""

    def __init__(self, events, closed_unexpectedly=False):
        self.events = list(events)
        self.started_with = None
        self.stopped = False
        self._closed_unexpectedly = closed_unexpectedly

    @property
    def closed_unexpectedly(self):
        return self._closed_unexpectedly

    def start(self, root):
        self.started_with = root
        return self._stream()

    async def _stream(self):
        for event in self.events:
            yield event

    def stop_all(self):
        self.stopped = True


def modified(path):
    return ChangeEvent(path=Path(path), kind=ChangeKind.MODIFIED)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def workspace(tmp_path):
    """Workspace with lint-relevant and irrelevant files in nested folders."""
    root = tmp_path / "ws"
    (root / "app" / "components").mkdir(parents=True)
    (root / "a.js").write_text("var x = 1;\n")
    (root / "b.txt").write_text("notes\n")
    (root / "app" / "main.js").write_text("console.log('hi')\n")
    (root / "app" / "components" / "widget.js").write_text("export default 1;\n")
    (root / "app" / "README.md").write_text("# app\n")
    return root


@pytest.fixture
def connection_reset():
    return TransportError("c.js", "Connection reset by peer", code="UNAVAILABLE")
