"""Pattern-based extraction of exported TypeScript declarations.

The extractor does not parse TypeScript. It runs an ordered set of
independent matchers over the source text, one per supported declaration
form, and merges their hits by source offset:

* ``export [async] function name(params)``
* ``export const name[: Type] = [async] (params)[: Return] =>``
* ``export [abstract] class Name``
* ``export default [async] [abstract] [function|class] [name]`` (first occurrence only)

Names are unique within a file: overload signatures and an
``export default foo`` that re-exports a named export keep only the first
declaration seen.

Declarations must start a line (leading indentation is allowed), which keeps
commented-out code from matching. Known unsupported forms: export lists
(``export { a, b }``), re-exports (``export * from``), generator functions
(``export function*``), single-parameter arrows without parentheses and
``export let``/``export var`` bindings. Destructured parameters are kept
positionally under placeholder names (``arg1``, ``arg2``...).
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .base import DeclarationMatcher
from ..models import Parameter, Symbol, SymbolKind

_IDENT = r"[A-Za-z_$][\w$]*"
_GENERICS = r"(?:<(?:[^<>()]|<[^<>()]*>)*>)?"

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}
_QUOTES = {'"', "'", "`"}

# Words that can follow ``export default`` without naming the export.
_NON_NAMES = {
    "new",
    "function",
    "class",
    "async",
    "await",
    "typeof",
    "void",
    "null",
    "true",
    "false",
    "extends",
    "implements",
    "interface",
    "abstract",
}


def find_closing_paren(text: str, open_index: int) -> Optional[int]:
    """Return the index of the ``)`` matching ``text[open_index]`` or None if unbalanced."""
    if open_index >= len(text) or text[open_index] != "(":
        return None
    stack: List[str] = []
    index = open_index
    quote: Optional[str] = None
    while index < len(text):
        char = text[index]
        if quote is not None:
            if char == "\\":
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in _CLOSERS:
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return index
        index += 1
    return None


def split_top_level(params: str, separator: str = ",") -> List[str]:
    """Split ``params`` on separators that are not nested in brackets, generics or strings."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    angle = 0
    quote: Optional[str] = None
    previous = ""
    for char in params:
        if quote is not None:
            current.append(char)
            if char == quote and previous != "\\":
                quote = None
            previous = char
            continue
        if char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(depth - 1, 0)
        elif char == "<":
            angle += 1
        elif char == ">" and previous != "=" and angle > 0:
            angle -= 1
        elif char == separator and depth == 0 and angle == 0:
            parts.append("".join(current))
            current = []
            previous = char
            continue
        current.append(char)
        previous = char
    if current:
        parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def parse_params(params: str) -> Tuple[Parameter, ...]:
    """Turn a raw parameter list into named parameters with their type hints."""
    parsed: List[Parameter] = []
    for position, raw in enumerate(split_top_level(params), start=1):
        type_hint = ""
        name_part = raw
        # Arrow tokens are masked so only a real default marker splits.
        default_split = split_top_level(raw.replace("=>", "\x00"), "=")
        if default_split:
            name_part = default_split[0].replace("\x00", "=>")
        colon_parts = split_top_level(name_part, ":")
        if colon_parts:
            name_part = colon_parts[0]
            type_hint = ":".join(colon_parts[1:]).strip()
        name = name_part.strip()
        if name.startswith("..."):
            name = name[3:].strip()
        name = name.rstrip("?").strip()
        if name == "this":
            continue
        if not re.fullmatch(_IDENT, name):
            # Destructured patterns keep their position under a placeholder.
            name = f"arg{position}"
        parsed.append(Parameter(name=name, type_hint=type_hint))
    return tuple(parsed)


class _ParamMatcher(DeclarationMatcher):
    """Shared logic for matchers whose pattern ends at the opening parenthesis."""

    pattern: re.Pattern[str]

    def find(self, text: str) -> Iterable[Tuple[int, Symbol]]:
        for match in self.pattern.finditer(text):
            open_index = match.end() - 1
            close_index = find_closing_paren(text, open_index)
            if close_index is None:
                continue
            if not self._accept_tail(text, close_index + 1):
                continue
            params = parse_params(text[open_index + 1 : close_index])
            yield match.start(), Symbol(
                name=match.group("name"),
                kind=self.kind,
                is_async=bool(match.group("async")),
                parameters=params,
            )

    def _accept_tail(self, text: str, index: int) -> bool:
        return True


class FunctionMatcher(_ParamMatcher):
    """``export [async] function name(...)``"""

    kind = SymbolKind.FUNCTION
    pattern = re.compile(
        rf"^[ \t]*export\s+(?P<async>async\s+)?function\s+(?P<name>{_IDENT})\s*{_GENERICS}\s*\(",
        re.MULTILINE,
    )


class ArrowConstMatcher(_ParamMatcher):
    """``export const name = [async] (...) =>``"""

    kind = SymbolKind.ARROW_CONST
    pattern = re.compile(
        rf"^[ \t]*export\s+const\s+(?P<name>{_IDENT})\s*(?::[^=;]+)?=\s*"
        rf"(?P<async>async\s*)?{_GENERICS}\s*\(",
        re.MULTILINE,
    )
    _tail = re.compile(r"\s*(?::[^=;{]*?)?\s*=>")

    def _accept_tail(self, text: str, index: int) -> bool:
        return self._tail.match(text, index) is not None


class ClassMatcher(DeclarationMatcher):
    """``export [abstract] class Name``"""

    kind = SymbolKind.CLASS
    pattern = re.compile(
        rf"^[ \t]*export\s+(?:abstract\s+)?class\s+(?P<name>{_IDENT})",
        re.MULTILINE,
    )

    def find(self, text: str) -> Iterable[Tuple[int, Symbol]]:
        for match in self.pattern.finditer(text):
            yield match.start(), Symbol(name=match.group("name"), kind=self.kind)


class DefaultExportMatcher(DeclarationMatcher):
    """``export default ...``; only the first default export counts."""

    kind = SymbolKind.DEFAULT
    pattern = re.compile(
        rf"^[ \t]*export\s+default\s+(?P<async>async\s+)?(?:abstract\s+(?=class\b))?"
        rf"(?:(?P<keyword>function|class)\b\s*)?(?P<name>{_IDENT})?",
        re.MULTILINE,
    )

    def find(self, text: str) -> Iterable[Tuple[int, Symbol]]:
        match = self.pattern.search(text)
        if match is None:
            return
        name = match.group("name")
        if not name or name in _NON_NAMES:
            name = "default"
        parameters: Tuple[Parameter, ...] = ()
        if match.group("keyword") == "function":
            open_index = text.find("(", match.end())
            between = text[match.end() : open_index] if open_index != -1 else ""
            if open_index != -1 and re.fullmatch(rf"\s*{_GENERICS}\s*", between):
                close_index = find_closing_paren(text, open_index)
                if close_index is None:
                    return
                parameters = parse_params(text[open_index + 1 : close_index])
        yield match.start(), Symbol(
            name=name,
            kind=self.kind,
            is_async=bool(match.group("async")),
            parameters=parameters,
        )


DEFAULT_MATCHERS: Tuple[DeclarationMatcher, ...] = (
    FunctionMatcher(),
    ArrowConstMatcher(),
    ClassMatcher(),
    DefaultExportMatcher(),
)


class SymbolExtractor:
    """Runs the declaration matchers and returns symbols in first-seen order."""

    def __init__(self, matchers: Sequence[DeclarationMatcher] | None = None) -> None:
        self.matchers = tuple(matchers) if matchers is not None else DEFAULT_MATCHERS

    def extract(self, text: str) -> Tuple[Symbol, ...]:
        hits: List[Tuple[int, int, Symbol]] = []
        for order, matcher in enumerate(self.matchers):
            for offset, symbol in matcher.find(text):
                hits.append((offset, order, symbol))
        hits.sort(key=lambda item: (item[0], item[1]))
        # Names are unique per file; overloads and re-exported defaults keep the first hit.
        seen: Set[str] = set()
        symbols: List[Symbol] = []
        for _, _, symbol in hits:
            if symbol.name in seen:
                continue
            seen.add(symbol.name)
            symbols.append(symbol)
        return tuple(symbols)


def extract_symbols(text: str) -> Tuple[Symbol, ...]:
    """Extract exported symbols using the default matcher set."""
    return SymbolExtractor().extract(text)


__all__ = [
    "ArrowConstMatcher",
    "ClassMatcher",
    "DefaultExportMatcher",
    "FunctionMatcher",
    "SymbolExtractor",
    "extract_symbols",
    "find_closing_paren",
    "parse_params",
    "split_top_level",
]
