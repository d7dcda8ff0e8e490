"""Public job lifecycle surface."""

from .manager import JobLifecycleManager, create_manager

__all__ = ["JobLifecycleManager", "create_manager"]
