"""CLI command modules.

- jobs: Manage jobs and inspect their history
- next_run: Preview when an expression fires
- serve: Run the scheduler until interrupted
"""

from . import jobs, next_run, serve

__all__ = ["jobs", "next_run", "serve"]
