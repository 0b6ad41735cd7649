"""Configuration parsing for lintwatch."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from lintwatch_core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "lintwatch.toml"
DEFAULT_EXTENSIONS = (".js",)
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_QUEUE_SIZE = 64
DEFAULT_REPORT_PATH = Path("report.csv")


@dataclass(frozen=True)
class AgentConfig:
    """Settings for one lintwatch run."""

    workspace_path: Path
    """Absolute path of the workspace root."""

    server_url: str
    """host:port of the lint service."""

    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    """Lint-relevant file extensions (lower case, with leading dot)."""

    ignore_dirs: tuple[str, ...] = ()
    """Directory names skipped by the watcher and the full scan."""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    """Seconds to wait for the service connection at startup."""

    call_timeout: float | None = None
    """Optional deadline for a single lint call; None means no deadline."""

    workers: int = 1
    """Number of concurrent dispatches."""

    queue_size: int = DEFAULT_QUEUE_SIZE
    """Capacity of the pending dispatch queue."""

    report_path: Path = field(default=DEFAULT_REPORT_PATH)
    """CSV sink used in report mode."""


def load_agent_config(
    path: str | Path,
    workspace_override: str | None = None,
    server_override: str | None = None,
) -> AgentConfig:
    """Load configuration from a TOML file and apply command-line overrides.

    Args:
        path: Path to TOML config file
        workspace_override: Value of --src, wins over workspace_path
        server_override: Value of --server, wins over server_url

    Returns:
        Validated AgentConfig

    Raises:
        ConfigError: If a required setting is missing or a value is invalid
    """
    path = Path(path)
    raw: dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, "rb") as f:
                document = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse config file {path}: {e}") from e
        section = document.get("agent", {})
        if not isinstance(section, dict):
            raise ConfigError(f"[agent] in {path} must be a table")
        raw = section
    else:
        logger.debug(f"Config file not found: {path}, relying on command-line values")

    base_dir = path.parent if path.exists() else Path.cwd()

    workspace_raw = workspace_override or _optional_str(raw, "workspace_path")
    if not workspace_raw:
        raise ConfigError(
            "Invalid configuration. Could not get the source directory. Either configure "
            f"'workspace_path' in {path.name} or pass it on the command line with --src."
        )
    server_url = server_override or _optional_str(raw, "server_url")
    if not server_url:
        raise ConfigError(
            "Invalid configuration. Could not get the lint server address. Either configure "
            f"'server_url' in {path.name} or pass it on the command line with --server."
        )

    workspace_path = Path(workspace_raw).expanduser()
    if not workspace_path.is_absolute():
        # Command-line paths are relative to cwd, config paths to the config file
        anchor = Path.cwd() if workspace_override else base_dir
        workspace_path = anchor / workspace_path
    workspace_path = workspace_path.resolve()
    if not workspace_path.is_dir():
        raise ConfigError(f"Workspace path is not a directory: {workspace_path}")

    extensions = tuple(
        _normalize_extension(ext) for ext in _str_list(raw, "extensions", list(DEFAULT_EXTENSIONS))
    )
    if not extensions:
        raise ConfigError("agent.extensions must list at least one extension")

    call_timeout = _positive_float(raw, "call_timeout", 0.0, allow_zero=True)

    report_raw = raw.get("report_path", str(DEFAULT_REPORT_PATH))
    if not isinstance(report_raw, str) or not report_raw:
        raise ConfigError("agent.report_path must be a non-empty string")

    return AgentConfig(
        workspace_path=workspace_path,
        server_url=server_url.strip(),
        extensions=extensions,
        ignore_dirs=tuple(_str_list(raw, "ignore_dirs", [])),
        connect_timeout=_positive_float(raw, "connect_timeout", DEFAULT_CONNECT_TIMEOUT),
        call_timeout=call_timeout or None,
        workers=_positive_int(raw, "workers", 1),
        queue_size=_positive_int(raw, "queue_size", DEFAULT_QUEUE_SIZE),
        report_path=Path(report_raw),
    )


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"agent.{key} must be a string")
    return value.strip() or None


def _str_list(raw: dict[str, Any], key: str, default: list[str]) -> list[str]:
    value = raw.get(key, default)
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"agent.{key} must be a list of strings")
    return value


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if not ext:
        raise ConfigError("agent.extensions must not contain empty entries")
    return ext if ext.startswith(".") else f".{ext}"


def _positive_float(raw: dict[str, Any], key: str, default: float, allow_zero: bool = False) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"agent.{key} must be numeric")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"agent.{key} must be positive")
    return float(value)


def _positive_int(raw: dict[str, Any], key: str, default: int) -> int:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"agent.{key} must be an integer")
    if value < 1:
        raise ConfigError(f"agent.{key} must be at least 1")
    return value
