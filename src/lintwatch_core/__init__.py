"""lintwatch-core: Data model, transport and watch engine for lintwatch."""

__version__ = "0.1.0"

# Config
from lintwatch_core.config import AgentConfig, load_agent_config

# Decoding
from lintwatch_core.decoder import decode, first_result, parse_payload

# Errors
from lintwatch_core.errors import (
    ConfigError,
    DecodeError,
    LintwatchError,
    NotificationChannelClosed,
    NotificationChannelError,
    RegistrationError,
    RootRegistrationError,
    ServiceConnectionError,
    TransportError,
)

# Models
from lintwatch_core.models import (
    ChangeEvent,
    ChangeKind,
    DiagnosticMessage,
    DispatchOutcome,
    DispatchStatus,
    FileLintResult,
    Fix,
    LintRequest,
    ScanSummary,
    Severity,
)

__all__ = [
    "__version__",
    # Models
    "ChangeEvent",
    "ChangeKind",
    "DiagnosticMessage",
    "DispatchOutcome",
    "DispatchStatus",
    "FileLintResult",
    "Fix",
    "LintRequest",
    "ScanSummary",
    "Severity",
    # Errors
    "ConfigError",
    "DecodeError",
    "LintwatchError",
    "NotificationChannelClosed",
    "NotificationChannelError",
    "RegistrationError",
    "RootRegistrationError",
    "ServiceConnectionError",
    "TransportError",
    # Config
    "AgentConfig",
    "load_agent_config",
    # Decoding
    "decode",
    "first_result",
    "parse_payload",
]
