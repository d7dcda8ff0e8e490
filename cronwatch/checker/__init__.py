"""Health-check sweep collaborators."""

from .base import Checker, SweepResult, TargetResult
from .http import HttpChecker

__all__ = ["Checker", "HttpChecker", "SweepResult", "TargetResult"]
