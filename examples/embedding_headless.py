#!/usr/bin/env python3
"""
Example: Headless Lint Session
Shows how to use LintAgentController without the CLI for programmatic control.

This example demonstrates:
- Connecting to the lint server yourself
- Plugging in a custom renderer
- Reacting to dispatch outcomes
- Stopping the watch loop from your own code
"""

import asyncio
import sys
from pathlib import Path

try:
    from lintwatch import DispatchCoordinator, Lifetime, LintAgentController
    from lintwatch_core import DispatchOutcome, FileLintResult, ServiceConnectionError
    from lintwatch_core.transport import connect
except ImportError:
    print("Error: Install lintwatch first: pip install lintwatch")
    exit(1)


class TallyRenderer:
    """Keep per-file counts instead of printing every diagnostic."""

    def __init__(self):
        self.totals: dict[Path, tuple[int, int]] = {}

    def render(self, file_path: Path, result: FileLintResult) -> None:
        self.totals[file_path] = (result.error_count, result.warning_count)
        status = "clean" if result.is_clean else f"{result.error_count}E/{result.warning_count}W"
        print(f"  {file_path.name:<40} {status}")


async def watch_for(root: Path, server: str, seconds: float) -> TallyRenderer:
    """Watch root for a fixed time, then stop."""
    renderer = TallyRenderer()
    with connect(server, timeout=10.0) as transport:
        controller = LintAgentController(DispatchCoordinator(transport, renderer))

        def on_dispatched(outcome: DispatchOutcome) -> None:
            if outcome.failed:
                print(f"  ! {outcome.path.name}: {outcome.error}")

        controller.on_dispatched = on_dispatched

        lifetime = Lifetime()
        asyncio.get_running_loop().call_later(seconds, lifetime.cancel)
        print(f"Watching {root} for {seconds:g}s ...")
        await controller.watch(root, lifetime)
    return renderer


def main():
    root = Path(sys.argv[1] if len(sys.argv) > 1 else ".").resolve()
    server = sys.argv[2] if len(sys.argv) > 2 else "localhost:4040"
    try:
        renderer = asyncio.run(watch_for(root, server, seconds=60))
    except ServiceConnectionError as e:
        print(f"❌ {e}")
        exit(1)

    errors = sum(e for e, _ in renderer.totals.values())
    warnings = sum(w for _, w in renderer.totals.values())
    print(f"\n✓ {len(renderer.totals)} files linted: {errors} Errors, {warnings} Warnings")


if __name__ == "__main__":
    main()
