"""Scenario and test-code synthesis."""

from .renderer import FRAMEWORK_JEST, FRAMEWORK_VITEST, TestRenderer
from .scenarios import scenarios_for, scenarios_for_symbol

__all__ = [
    "FRAMEWORK_JEST",
    "FRAMEWORK_VITEST",
    "TestRenderer",
    "scenarios_for",
    "scenarios_for_symbol",
]
