"""Tests for autotest.synthesis.scenarios."""

from __future__ import annotations

import pytest

from autotest.models import Parameter, Symbol, SymbolKind
from autotest.synthesis import scenarios_for, scenarios_for_symbol
from autotest.synthesis.scenarios import sample_value


def _symbol(name: str, *params: Parameter, is_async: bool = False) -> Symbol:
    return Symbol(name=name, kind=SymbolKind.FUNCTION, is_async=is_async, parameters=params)


def test_sync_symbol_with_params_orders_happy_null_empty() -> None:
    symbol = _symbol("add", Parameter("a", "number"), Parameter("b", "number"))

    scenarios = scenarios_for_symbol(symbol)

    assert [scenario.name for scenario in scenarios] == [
        "add - happy path",
        "add - null input",
        "add - empty input",
    ]
    assert dict(scenarios[0].inputs) == {"a": 42, "b": 42}
    assert scenarios[0].expected == "success"
    assert scenarios[0].edge_case is False
    assert dict(scenarios[1].inputs) == {"a": None, "b": None}
    assert scenarios[1].edge_case is True
    assert scenarios[2].inputs == {}
    assert scenarios[2].expected == "error or default"


def test_zero_param_sync_symbol_has_happy_and_empty_only() -> None:
    scenarios = scenarios_for_symbol(_symbol("now"))

    assert [scenario.name for scenario in scenarios] == ["now - happy path", "now - empty input"]


def test_async_symbol_appends_resolution_with_happy_inputs() -> None:
    symbol = _symbol("load", Parameter("url", "string"), is_async=True)

    scenarios = scenarios_for_symbol(symbol)

    assert [scenario.name for scenario in scenarios] == [
        "load - happy path",
        "load - null input",
        "load - empty input",
        "load - async resolution",
    ]
    assert scenarios[-1].inputs == scenarios[0].inputs == {"url": "sample"}
    assert scenarios[-1].expected == "resolved"


@pytest.mark.parametrize(
    ("type_hint", "expected"),
    [
        ("string", "sample"),
        ("String", "sample"),
        ("number", 42),
        ("boolean", True),
        ("Array<number>", 42),
        ("ReadonlyArray<Item>", []),
        ("Item[]", []),
        ("object", {}),
        ("Record<string, unknown>", "sample"),
        ("Date", None),
        ("", None),
    ],
)
def test_sample_value_decision_table(type_hint: str, expected: object) -> None:
    assert sample_value(type_hint) == expected


def test_sample_values_are_not_shared_between_scenarios() -> None:
    symbol = _symbol("push", Parameter("items", "Item[]"), Parameter("meta", "object"))

    first, second = scenarios_for_symbol(symbol)[0], scenarios_for_symbol(symbol)[0]

    assert first.inputs["items"] is not second.inputs["items"]
    assert first.inputs["meta"] is not second.inputs["meta"]


def test_scenarios_for_concatenates_in_symbol_order() -> None:
    symbols = [_symbol("b"), _symbol("a", Parameter("x"))]

    names = [scenario.name for scenario in scenarios_for(symbols)]

    assert names == ["b - happy path", "b - empty input", "a - happy path", "a - null input", "a - empty input"]
