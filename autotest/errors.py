"""Exception types raised across the autotest pipeline."""

from __future__ import annotations


class AutotestError(RuntimeError):
    """Base class for autotest failures."""


class NoExportedSymbolsError(AutotestError):
    """Raised when a source file exposes nothing to test."""

    def __init__(self, path: str) -> None:
        super().__init__(f"no exported symbols found in {path}")
        self.path = path


class GeneratorError(AutotestError):
    """Raised when an enhanced generator is unavailable or returns nothing usable."""


class GitError(AutotestError):
    """Raised when git cannot answer a change-detection query."""


class GenerationFailedError(AutotestError):
    """Raised when every unit of a generation run failed."""


class FrameworkNotFoundError(AutotestError):
    """Raised when neither jest nor vitest can be detected for a project."""


class DirtyWorkingTreeError(AutotestError):
    """Raised when the working tree has uncommitted changes and dirty runs are not allowed."""


class CoverageThresholdError(AutotestError):
    """Raised when measured coverage is below the configured minimum."""

    def __init__(self, coverage: float, minimum: float) -> None:
        super().__init__(f"coverage {coverage:.1f}% is below minimum {minimum:.1f}%")
        self.coverage = coverage
        self.minimum = minimum


__all__ = [
    "AutotestError",
    "CoverageThresholdError",
    "DirtyWorkingTreeError",
    "FrameworkNotFoundError",
    "GenerationFailedError",
    "GeneratorError",
    "GitError",
    "NoExportedSymbolsError",
]
