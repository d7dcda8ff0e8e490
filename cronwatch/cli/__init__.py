"""CLI package for cronwatch.

Provides a command-line interface for:
- Job management (create, update, delete, start, stop)
- Execution history inspection
- Next-run previews
- Running the scheduler
"""

from .main import cli

__all__ = ["cli"]
