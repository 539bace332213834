"""UI package exports for the CLI and plain-text rendering."""

from qms_audit.ui.cli import CLIError, build_parser, main, run_cli
from qms_audit.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "main",
    "run_cli",
]
