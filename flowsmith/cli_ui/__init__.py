"""CLI UI components for terminal-based workflow visualization."""

from flowsmith.cli_ui.graph_renderer import DiagnosticsTableRenderer, TerminalGraphRenderer

__all__ = [
    "DiagnosticsTableRenderer",
    "TerminalGraphRenderer",
]
