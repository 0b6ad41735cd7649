"""Error taxonomy for the watch, dispatch and render pipeline.

Fatal errors (ConfigError, ServiceConnectionError, RootRegistrationError,
NotificationChannelClosed) are propagated to the CLI, which terminates the
process. Everything else is logged and the offending item is skipped.
"""

from pathlib import Path


class LintwatchError(Exception):
    """Base class for all lintwatch errors."""


class ConfigError(LintwatchError):
    """Raised when settings are missing or invalid."""


class ServiceConnectionError(LintwatchError):
    """Raised when the lint service cannot be reached at startup."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Could not connect to the lint server [{target}]: {reason}")


class RegistrationError(LintwatchError):
    """Raised when a single path cannot be registered for change notification."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not watch {self.path}: {reason}")


class RootRegistrationError(RegistrationError):
    """Raised when the workspace root itself cannot be watched."""


class TransportError(LintwatchError):
    """Raised when a single lint call fails."""

    def __init__(self, path: Path | str, reason: str, code: str | None = None):
        self.path = Path(path)
        self.reason = reason
        self.code = code
        detail = f"{code}: {reason}" if code else reason
        super().__init__(f"Lint call failed for {self.path}: {detail}")


class DecodeError(LintwatchError):
    """Raised when a lint service payload cannot be parsed."""


class NotificationChannelError(LintwatchError):
    """Raised when the notification primitive reports an internal error."""


class NotificationChannelClosed(LintwatchError):
    """Raised when change notifications stop arriving for good."""
