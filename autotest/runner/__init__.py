"""External test tooling: framework detection, test runs and coverage."""

from .execution import TestExecutor, parse_coverage
from .frameworks import detect_framework

__all__ = ["TestExecutor", "detect_framework", "parse_coverage"]
