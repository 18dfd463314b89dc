"""Project-wide index of exported symbols and import targets."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from ..extractors import DependencyExtractor, SymbolExtractor
from ..logging import get_logger
from ..models import ProjectIndex, SourceFile, Symbol
from ..repo_scanner import IgnoreRule, iter_source_files, load_ignore_rules


class ProjectIndexer:
    """Walks a TypeScript project once and freezes the result into a ``ProjectIndex``.

    Until :meth:`build` completes the indexer reports ``ready == False`` and
    every lookup returns an empty result.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        symbol_extractor: SymbolExtractor | None = None,
        dependency_extractor: DependencyExtractor | None = None,
        ignore_rules: Sequence[IgnoreRule] | None = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.symbol_extractor = symbol_extractor or SymbolExtractor()
        self.dependency_extractor = dependency_extractor or DependencyExtractor()
        self._ignore_rules = ignore_rules
        self._index: Optional[ProjectIndex] = None
        self.logger = get_logger("index")

    @property
    def ready(self) -> bool:
        return self._index is not None

    @property
    def index(self) -> Optional[ProjectIndex]:
        return self._index

    def build(self) -> ProjectIndex:
        if not self.root.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {self.root}")

        rules = self._ignore_rules
        if rules is None:
            rules = load_ignore_rules(self.root)

        files: Dict[str, SourceFile] = {}
        for path in iter_source_files(self.root, rules):
            key = path.relative_to(self.root).as_posix()
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self.logger.warning("Skipping %s during indexing: %s", key, exc)
                continue
            files[key] = SourceFile(
                path=key,
                text=text,
                symbols=self.symbol_extractor.extract(text),
                imports=self.dependency_extractor.extract(text),
            )

        self._index = ProjectIndex(root=str(self.root), files=files)
        self.logger.info("Indexed %d file(s) under %s", len(files), self.root)
        return self._index

    def relative_key(self, path: str | Path) -> str:
        """Map an absolute or project-relative path to its index key."""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.root)
            except ValueError:
                return candidate.as_posix()
        return candidate.as_posix()

    def symbols(self, path: str | Path) -> Tuple[Symbol, ...]:
        if self._index is None:
            return ()
        return self._index.symbols(self.relative_key(path))

    def imports(self, path: str | Path) -> Tuple[str, ...]:
        if self._index is None:
            return ()
        return self._index.imports(self.relative_key(path))

    def stats(self) -> Dict[str, Any]:
        if self._index is None:
            return {}
        return self._index.stats()


__all__ = ["ProjectIndexer"]
