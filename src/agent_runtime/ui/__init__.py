"""UI module for the agent runtime.

This module provides the developer CLI (Typer-based). It can be run directly:
    python -m agent_runtime.ui.cli tools list

Note: We don't export CLI components from __init__.py to avoid
module loading issues when running as a script.
"""

__all__ = []  # CLI is run directly, no exports needed
