"""Core data models shared across autotest components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class SymbolKind(str, Enum):
    """Declaration forms recognised by the symbol extractor."""

    FUNCTION = "function"
    ARROW_CONST = "const"
    CLASS = "class"
    DEFAULT = "default"


@dataclass(frozen=True)
class Parameter:
    """A declared parameter and its free-text type hint (may be empty)."""

    name: str
    type_hint: str = ""


@dataclass(frozen=True)
class Symbol:
    """One exported declaration recognised in a source file."""

    name: str
    kind: SymbolKind
    is_async: bool = False
    parameters: Tuple[Parameter, ...] = ()

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(param.name for param in self.parameters)


@dataclass(frozen=True)
class SourceFile:
    """A project file with its extracted symbols and raw import targets."""

    path: str
    text: str
    symbols: Tuple[Symbol, ...] = ()
    imports: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectIndex:
    """Read-only snapshot mapping project-relative paths to indexed files."""

    root: str
    files: Mapping[str, SourceFile] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.files, MappingProxyType):
            object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __len__(self) -> int:
        return len(self.files)

    def get(self, path: str) -> Optional[SourceFile]:
        return self.files.get(path)

    def symbols(self, path: str) -> Tuple[Symbol, ...]:
        entry = self.files.get(path)
        return entry.symbols if entry else ()

    def imports(self, path: str) -> Tuple[str, ...]:
        entry = self.files.get(path)
        return entry.imports if entry else ()

    def text(self, path: str) -> Optional[str]:
        entry = self.files.get(path)
        return entry.text if entry else None

    def stats(self) -> Dict[str, Any]:
        """Return aggregate counts describing the indexed project."""
        file_count = len(self.files)
        total_exports = sum(len(entry.symbols) for entry in self.files.values())
        total_dependencies = sum(len(entry.imports) for entry in self.files.values())
        average = total_exports / file_count if file_count else 0.0
        return {
            "files_indexed": file_count,
            "total_exports": total_exports,
            "total_dependencies": total_dependencies,
            "avg_exports_per_file": average,
        }


@dataclass(frozen=True)
class Scenario:
    """A synthesized test case for one symbol."""

    name: str
    description: str
    inputs: Mapping[str, Any]
    expected: str
    edge_case: bool = False


@dataclass(frozen=True)
class WorkItem:
    """A unit of generation work submitted to the orchestrator."""

    source_path: Path
    text: Optional[str] = None


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one unit: rendered test code on success, a reason on failure."""

    source_path: Path
    test_path: Path
    code: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.code is not None


@dataclass
class RunReport:
    """Summary of a full generation run."""

    results: Tuple[GenerationResult, ...]
    framework: str
    dry_run: bool = False
    written: Tuple[Path, ...] = ()
    coverage: Optional[float] = None

    @property
    def generated(self) -> Tuple[GenerationResult, ...]:
        return tuple(result for result in self.results if result.ok)

    @property
    def failed(self) -> Tuple[GenerationResult, ...]:
        return tuple(result for result in self.results if not result.ok)


__all__ = [
    "GenerationResult",
    "Parameter",
    "ProjectIndex",
    "RunReport",
    "Scenario",
    "SourceFile",
    "Symbol",
    "SymbolKind",
    "WorkItem",
]
