"""Rendering of complete Jest/Vitest test files from the symbol model."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from ..errors import NoExportedSymbolsError
from ..models import Scenario, Symbol, SymbolKind

FRAMEWORK_JEST = "jest"
FRAMEWORK_VITEST = "vitest"

FRAMEWORK_IMPORTS = {
    FRAMEWORK_VITEST: "import { describe, it, expect, beforeEach, afterEach, vi } from 'vitest';",
    FRAMEWORK_JEST: "import { describe, it, expect, beforeEach, afterEach, jest } from '@jest/globals';",
}

MOCK_CALLS = {
    FRAMEWORK_VITEST: "vi.mock",
    FRAMEWORK_JEST: "jest.mock",
}

MODE_STANDARD = "standard"
MODE_CONTEXT = "context"

_MODE_TITLES = {
    MODE_STANDARD: "Auto-generated test file",
    MODE_CONTEXT: "Auto-generated test file (project context)",
}

DEFAULT_EXPORT_BINDING = "defaultExport"
RESULT_BINDING = "result"
EDGE_CASE_PREFIX = "[EDGE CASE] "
ASSERT_PLACEHOLDER = "// TODO: Add specific assertions based on expected behavior"

_INDENT = "  "

# Title labels that differ from the kind value.
_KIND_LABELS = {SymbolKind.ARROW_CONST: "function"}


def module_specifier(path: str) -> str:
    """Return the ``../``-rebased import specifier for a source path."""
    posix = PurePosixPath(path.replace("\\", "/"))
    text = posix.as_posix()
    if text.startswith("./"):
        text = text[2:]
    if posix.suffix in {".ts", ".tsx"}:
        text = text[: -len(posix.suffix)]
    return f"../{text}"


def format_literal(value: Any) -> str:
    """Format a sample value as a TypeScript literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f"'{_quote(value)}'"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[]"
    if isinstance(value, dict):
        return "{}"
    return "null"


def _quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'")


def binding_name(symbol: Symbol) -> str:
    """Return the identifier the generated test uses for ``symbol``."""
    if symbol.kind is SymbolKind.DEFAULT and symbol.name == "default":
        return DEFAULT_EXPORT_BINDING
    return symbol.name


def unique_symbols(symbols: Sequence[Symbol]) -> List[Symbol]:
    """Drop repeated names, keeping the first; one binding per name in the test file."""
    seen: Set[str] = set()
    unique: List[Symbol] = []
    for symbol in symbols:
        if symbol.name in seen:
            continue
        seen.add(symbol.name)
        unique.append(symbol)
    return unique


def local_names(symbol: Symbol) -> Dict[str, str]:
    """Map each parameter to a test-local name that cannot shadow ``result`` or the symbol."""
    reserved = {RESULT_BINDING, binding_name(symbol)}
    taken = reserved | set(symbol.param_names)
    names: Dict[str, str] = {}
    for name in symbol.param_names:
        local = name
        if name in reserved:
            local = f"input{name[:1].upper()}{name[1:]}"
            while local in taken:
                local = f"_{local}"
            taken.add(local)
        names[name] = local
    return names


class TestRenderer:
    """Renders test files for one framework; output depends only on its inputs."""

    __test__ = False

    def __init__(self, framework: str = FRAMEWORK_JEST) -> None:
        if framework not in FRAMEWORK_IMPORTS:
            raise ValueError(f"Unsupported framework '{framework}'")
        self.framework = framework

    def render(
        self,
        path: str,
        symbols: Sequence[Symbol],
        scenarios: Sequence[Scenario],
        related_files: Optional[Mapping[str, str]] = None,
        mode: Optional[str] = None,
    ) -> str:
        if mode is None:
            mode = MODE_CONTEXT if related_files is not None else MODE_STANDARD
        if mode not in _MODE_TITLES:
            raise ValueError(f"Unknown render mode '{mode}'")
        symbols = unique_symbols(symbols)
        if not symbols:
            raise NoExportedSymbolsError(path)

        blocks: List[str] = [
            self._header(path, mode, related_files is not None),
            self._source_imports(path, symbols),
            FRAMEWORK_IMPORTS[self.framework] + "\n",
        ]
        if related_files:
            blocks.append(self._mock_hints(related_files))
        for symbol in symbols:
            blocks.append(self._describe_block(symbol, scenarios))
        return "\n".join(blocks)

    # ------------------------------------------------------------------
    # File sections

    @staticmethod
    def _header(path: str, mode: str, has_context: bool) -> str:
        lines = ["/**", f" * {_MODE_TITLES[mode]}", f" * Source: {path}"]
        if has_context:
            lines.append(" * Generated with project-wide context analysis")
        lines.append(" */")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _source_imports(path: str, symbols: Sequence[Symbol]) -> str:
        default_import: Optional[str] = None
        named: List[str] = []
        for symbol in symbols:
            if symbol.kind is SymbolKind.DEFAULT:
                if default_import is None:
                    default_import = binding_name(symbol)
                continue
            if symbol.name not in named:
                named.append(symbol.name)

        clauses: List[str] = []
        if default_import is not None:
            clauses.append(default_import)
        if named:
            clauses.append("{ " + ", ".join(named) + " }")
        return f"import {', '.join(clauses)} from '{module_specifier(path)}';\n"

    def _mock_hints(self, related_files: Mapping[str, str]) -> str:
        lines = ["// Mock setup for related dependencies"]
        for related in sorted(related_files):
            lines.append(f"// {MOCK_CALLS[self.framework]}('{module_specifier(related)}');")
        return "\n".join(lines) + "\n"

    def _describe_block(self, symbol: Symbol, scenarios: Sequence[Scenario]) -> str:
        binding = binding_name(symbol)
        lines = [f"describe('{_quote(symbol.name)}', () => {{"]
        prefix = f"{symbol.name} - "
        for scenario in scenarios:
            if not scenario.name.startswith(prefix):
                continue
            lines.extend(self._test_case(symbol, scenario))
            lines.append("")

        lines.extend(
            [
                f"{_INDENT}it('should be defined', () => {{",
                f"{_INDENT * 2}expect({binding}).toBeDefined();",
                f"{_INDENT}}});",
                "",
            ]
        )
        lines.extend(self._typeof_check(symbol, binding))
        lines.append("});")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _typeof_check(symbol: Symbol, binding: str) -> List[str]:
        if symbol.kind is SymbolKind.DEFAULT:
            return [
                f"{_INDENT}it('should be a function or object', () => {{",
                f"{_INDENT * 2}expect(['function', 'object']).toContain(typeof {binding});",
                f"{_INDENT}}});",
            ]
        return [
            f"{_INDENT}it('should be a {_KIND_LABELS.get(symbol.kind, symbol.kind.value)}', () => {{",
            f"{_INDENT * 2}expect(typeof {binding}).toBe('function');",
            f"{_INDENT}}});",
        ]

    @staticmethod
    def _test_case(symbol: Symbol, scenario: Scenario) -> List[str]:
        title = scenario.name
        if scenario.edge_case:
            title = EDGE_CASE_PREFIX + title
        runner = "async () =>" if symbol.is_async else "() =>"
        lines = [f"{_INDENT}it('{_quote(title)}', {runner} {{"]

        locals_ = local_names(symbol)
        if scenario.inputs:
            lines.append(f"{_INDENT * 2}// Arrange")
            for name, value in scenario.inputs.items():
                local = locals_.get(name, name)
                lines.append(f"{_INDENT * 2}const {local} = {format_literal(value)};")
            lines.append("")

        args = ", ".join(
            locals_[name] if name in scenario.inputs else "undefined" for name in symbol.param_names
        )
        call = f"{binding_name(symbol)}({args})"
        if symbol.kind is SymbolKind.CLASS:
            call = f"new {call}"
        if symbol.is_async:
            call = f"await {call}"
        lines.extend(
            [
                f"{_INDENT * 2}// Act",
                f"{_INDENT * 2}const {RESULT_BINDING} = {call};",
                "",
                f"{_INDENT * 2}// Assert",
                f"{_INDENT * 2}expect({RESULT_BINDING}).toBeDefined();",
                f"{_INDENT * 2}{ASSERT_PLACEHOLDER}",
                f"{_INDENT}}});",
            ]
        )
        return lines


__all__ = [
    "DEFAULT_EXPORT_BINDING",
    "FRAMEWORK_IMPORTS",
    "FRAMEWORK_JEST",
    "FRAMEWORK_VITEST",
    "MODE_CONTEXT",
    "MODE_STANDARD",
    "TestRenderer",
    "binding_name",
    "format_literal",
    "local_names",
    "module_specifier",
    "unique_symbols",
]
