"""Cross-file context lookups over a built project index."""

from __future__ import annotations

import posixpath
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from jinja2 import Environment, FileSystemLoader

from ..extractors import is_relative
from ..models import ProjectIndex, Symbol
from .indexer import ProjectIndexer

# Tried in order against a joined import target; first indexed hit wins.
RESOLUTION_SUFFIXES: Sequence[str] = ("", ".ts", ".tsx", "/index.ts", "/index.tsx")

DEFAULT_SIMILAR_LIMIT = 3

_TEMPLATES_DIR = Path(__file__).with_name("templates")


def _create_env(templates_dir: Path) -> Environment:
    loader = FileSystemLoader(str(templates_dir))
    return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


def describe_symbol(symbol: Symbol, *, emphasise: bool = False) -> str:
    name = f"**{symbol.name}**" if emphasise else symbol.name
    label = f"{name} ({symbol.kind.value})"
    if symbol.is_async:
        label += " [async]"
    return label


class ContextResolver:
    """Answers related-file and similar-file questions for one indexed project."""

    def __init__(
        self,
        indexer: ProjectIndexer,
        *,
        similar_limit: int = DEFAULT_SIMILAR_LIMIT,
        templates_dir: Path | None = None,
    ) -> None:
        self.indexer = indexer
        self.similar_limit = similar_limit
        self._env = _create_env(templates_dir or _TEMPLATES_DIR)

    def _snapshot(self) -> Optional[ProjectIndex]:
        return self.indexer.index if self.indexer.ready else None

    def resolve_import(self, owner: str, target: str) -> Optional[str]:
        """Return the indexed path ``target`` refers to from ``owner``, if any."""
        index = self._snapshot()
        if index is None or not is_relative(target):
            return None
        joined = posixpath.normpath(posixpath.join(posixpath.dirname(owner), target))
        if joined.startswith("../") or joined == "..":
            return None
        for suffix in RESOLUTION_SUFFIXES:
            candidate = f"{joined}{suffix}"
            if candidate in index:
                return candidate
        return None

    def related_files(self, path: str | Path) -> Dict[str, str]:
        """Map each resolved relative import of ``path`` to its indexed text."""
        index = self._snapshot()
        if index is None:
            return {}
        key = self.indexer.relative_key(path)
        related: Dict[str, str] = {}
        for target in index.imports(key):
            resolved = self.resolve_import(key, target)
            if resolved is None or resolved in related:
                continue
            related[resolved] = index.text(resolved) or ""
        return related

    def similar_files(self, path: str | Path, limit: int | None = None) -> List[str]:
        """Rank other files by how many exported names they share with ``path``."""
        if limit is None:
            limit = self.similar_limit
        index = self._snapshot()
        if index is None or limit <= 0:
            return []
        key = self.indexer.relative_key(path)
        target_names = [symbol.name for symbol in index.symbols(key)]
        if not target_names:
            return []

        owners: Dict[str, Set[str]] = {}
        for other_path, entry in index.files.items():
            if other_path == key:
                continue
            for symbol in entry.symbols:
                owners.setdefault(symbol.name, set()).add(other_path)

        scores: Counter[str] = Counter()
        for name in target_names:
            for other_path in owners.get(name, ()):
                scores[other_path] += 1

        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return [other_path for other_path, _ in ranked[:limit]]

    def export_context(self, path: str | Path) -> Dict[str, Tuple[Symbol, ...]]:
        index = self._snapshot()
        if index is None:
            return {}
        return {related: index.symbols(related) for related in self.related_files(path)}

    def file_context(self, path: str | Path) -> Dict[str, Any]:
        """Bundle everything the enhanced generator may want to know about ``path``."""
        index = self._snapshot()
        if index is None:
            return {}
        key = self.indexer.relative_key(path)
        return {
            "file": key,
            "exports": index.symbols(key),
            "dependencies": index.imports(key),
            "related_files": self.related_files(key),
            "similar_files": self.similar_files(key, self.similar_limit),
        }

    def contextual_prompt(self, path: str | Path, text: str) -> str:
        """Render the markdown context block used to brief an enhanced generator."""
        key = self.indexer.relative_key(path)
        exports = [describe_symbol(symbol, emphasise=True) for symbol in self.indexer.symbols(key)]
        related = [
            (related_path, [describe_symbol(symbol) for symbol in symbols])
            for related_path, symbols in self.export_context(key).items()
        ]
        template = self._env.get_template("context.md.j2")
        return template.render(path=key, exports=exports, related=related, source=text)


__all__ = ["ContextResolver", "DEFAULT_SIMILAR_LIMIT", "RESOLUTION_SUFFIXES", "describe_symbol"]
