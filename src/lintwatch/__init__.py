"""lintwatch: Watch a workspace and lint changed files on a remote ESLint server."""

__version__ = "0.1.0"

# Public API
from lintwatch.controller import Lifetime, LintAgentController
from lintwatch.coordinator import DispatchCoordinator
from lintwatch.renderers import ExportRenderer, InteractiveRenderer, Renderer

__all__ = [
    "__version__",
    # Primary components
    "DispatchCoordinator",
    "LintAgentController",
    "Lifetime",
    # Renderers
    "Renderer",
    "InteractiveRenderer",
    "ExportRenderer",
]
