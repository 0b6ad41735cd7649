"""CLI entry point for lintwatch: connect to the lint server, then watch or scan."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.text import Text

from lintwatch_core.config import DEFAULT_CONFIG_NAME, AgentConfig, load_agent_config
from lintwatch_core.errors import (
    ConfigError,
    NotificationChannelClosed,
    RootRegistrationError,
    ServiceConnectionError,
)
from lintwatch_core.models import ScanSummary
from lintwatch_core.transport import LintTransport, connect

from lintwatch import __version__
from lintwatch.controller import Lifetime, LintAgentController
from lintwatch.coordinator import DispatchCoordinator
from lintwatch.renderers import ExportRenderer, InteractiveRenderer

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="lintwatch",
        description="Watch a workspace and lint changed files on a remote ESLint server.",
        epilog="Examples:\n"
        "  lintwatch                                  # Watch using lintwatch.toml\n"
        "  lintwatch --src ./app --server host:4040   # Override workspace and server\n"
        "  lintwatch --report                         # Scan everything into report.csv",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_NAME,
        help=f"Path to config file (default: {DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument(
        "--src",
        default=None,
        help="Path to the source code directory, defaults to 'workspace_path' in the config file",
    )
    parser.add_argument(
        "--server",
        default=None,
        help="host:port of the lint server, defaults to 'server_url' in the config file",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Scan all lint-relevant files in the workspace once and append the results to a CSV "
        "report instead of watching. This sends every file to the server and may take a while.",
    )
    parser.add_argument(
        "--report-file",
        default=None,
        help="CSV file used with --report (default: 'report_path' in the config file, else report.csv)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def run_report(
    config: AgentConfig,
    transport: LintTransport,
    console: Console,
    report_file: str | Path | None = None,
) -> ScanSummary:
    """Scan the whole workspace once and export every diagnostic."""
    renderer = ExportRenderer(report_file or config.report_path)
    coordinator = DispatchCoordinator(transport, renderer, config.extensions, config.ignore_dirs)

    console.print(Text(f"Scanning all files in [{config.workspace_path}] ...", style="bright_cyan"))
    summary = coordinator.scan_all(config.workspace_path, workers=config.workers)
    console.print(
        Text(
            f"Scanned {summary.dispatched} files: {summary.errors} Errors, {summary.warnings} Warnings, "
            f"{summary.failed} failed. {renderer.rows_written} rows appended to {renderer.sink}",
            style="bright_green" if not summary.failed else "bright_magenta",
        )
    )
    return summary


async def watch_workspace(
    config: AgentConfig,
    transport: LintTransport,
    console: Console,
    lifetime: Lifetime | None = None,
) -> None:
    """Watch the workspace until the lifetime token is cancelled."""
    lifetime = lifetime or Lifetime()
    coordinator = DispatchCoordinator(
        transport, InteractiveRenderer(console), config.extensions, config.ignore_dirs
    )
    controller = LintAgentController(
        coordinator,
        workers=config.workers,
        queue_size=config.queue_size,
        ignore_dirs=config.ignore_dirs,
    )

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, lifetime.cancel)
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGTERM handler not supported on this platform")

    console.print(
        Text(f"\n------- Monitoring directory [{config.workspace_path}] for changes -------\n", style="bright_cyan")
    )
    await controller.watch(config.workspace_path, lifetime)


def run(
    config: AgentConfig,
    report: bool = False,
    report_file: str | Path | None = None,
    console: Console | None = None,
    connector=connect,
) -> ScanSummary | None:
    """Connect to the lint server and run the selected mode.

    Raises:
        ServiceConnectionError: If the server is unreachable
        RootRegistrationError: If the workspace cannot be watched
        NotificationChannelClosed: If file notifications stop
    """
    console = console or Console(highlight=False)
    console.print()
    console.print(Text(f"Connecting to lint server [ {config.server_url} ] ...", style="bright_green"))

    transport = connector(config.server_url, timeout=config.connect_timeout, call_timeout=config.call_timeout)
    try:
        console.print(Text("Successfully connected to the lint server", style="bright_green"))
        if report:
            return run_report(config, transport, console, report_file)
        asyncio.run(watch_workspace(config, transport, console))
        return None
    finally:
        transport.close()


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for lintwatch CLI.

    Handles:
    - Argument parsing and logging setup
    - Loading configuration
    - Running watch or report mode
    - Error handling and exit codes
    """
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )

    try:
        config = load_agent_config(args.config, workspace_override=args.src, server_override=args.server)
        run(config, report=args.report, report_file=args.report_file)
    except KeyboardInterrupt:
        # Gracefully handle Ctrl+C
        sys.exit(130)
    except ConfigError as e:
        print(f"Error: {e}\nRun lintwatch --help for more details.", file=sys.stderr)
        sys.exit(2)
    except ServiceConnectionError as e:
        print(
            f"Error: {e}\nMake sure the lint server is running and 'server_url' is configured correctly.",
            file=sys.stderr,
        )
        sys.exit(1)
    except (RootRegistrationError, NotificationChannelClosed) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
