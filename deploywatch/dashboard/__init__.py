# deploywatch dashboard
"""Terminal dashboard and line formatting for deploywatch."""

from .terminal import TerminalDashboard

__all__ = ["TerminalDashboard"]
