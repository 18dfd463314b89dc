"""Deterministic test scenarios derived from a symbol's shape."""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from ..models import Parameter, Scenario, Symbol

EXPECT_SUCCESS = "success"
EXPECT_ERROR_OR_DEFAULT = "error or default"
EXPECT_RESOLVED = "resolved"

# Checked in order against the lower-cased type hint; first hit wins.
_SAMPLE_TABLE: Sequence[Tuple[str, Any]] = (
    ("string", "sample"),
    ("number", 42),
    ("boolean", True),
    ("array", []),
    ("object", {}),
)


def sample_value(type_hint: str) -> Any:
    """Return a representative value for a free-text TypeScript type hint."""
    lowered = type_hint.lower()
    for needle, value in _SAMPLE_TABLE:
        if needle in lowered:
            return copy.copy(value)
    if lowered.strip().endswith("[]"):
        return []
    return None


def sample_inputs(parameters: Iterable[Parameter]) -> Dict[str, Any]:
    return {param.name: sample_value(param.type_hint) for param in parameters}


def scenarios_for_symbol(symbol: Symbol) -> List[Scenario]:
    """Return happy path, null input, empty input and async resolution scenarios.

    Null input only appears when the symbol takes parameters and async
    resolution only when it is async; the order never changes.
    """
    name = symbol.name
    scenarios = [
        Scenario(
            name=f"{name} - happy path",
            description=f"Test {name} with valid inputs",
            inputs=sample_inputs(symbol.parameters),
            expected=EXPECT_SUCCESS,
        )
    ]
    if symbol.parameters:
        scenarios.append(
            Scenario(
                name=f"{name} - null input",
                description=f"Test {name} with null input",
                inputs={param.name: None for param in symbol.parameters},
                expected=EXPECT_ERROR_OR_DEFAULT,
                edge_case=True,
            )
        )
    scenarios.append(
        Scenario(
            name=f"{name} - empty input",
            description=f"Test {name} with empty input",
            inputs={},
            expected=EXPECT_ERROR_OR_DEFAULT,
            edge_case=True,
        )
    )
    if symbol.is_async:
        scenarios.append(
            Scenario(
                name=f"{name} - async resolution",
                description=f"Test {name} async behavior",
                inputs=sample_inputs(symbol.parameters),
                expected=EXPECT_RESOLVED,
            )
        )
    return scenarios


def scenarios_for(symbols: Iterable[Symbol]) -> List[Scenario]:
    scenarios: List[Scenario] = []
    for symbol in symbols:
        scenarios.extend(scenarios_for_symbol(symbol))
    return scenarios


__all__ = [
    "EXPECT_ERROR_OR_DEFAULT",
    "EXPECT_RESOLVED",
    "EXPECT_SUCCESS",
    "sample_inputs",
    "sample_value",
    "scenarios_for",
    "scenarios_for_symbol",
]
