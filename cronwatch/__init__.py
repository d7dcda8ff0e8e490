"""cronwatch - self-hosted cron scheduler for health-check sweeps."""

__version__ = "0.1.0"
