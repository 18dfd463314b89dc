"""Git integration helpers."""

from .diff import ChangeDetector

__all__ = ["ChangeDetector"]
