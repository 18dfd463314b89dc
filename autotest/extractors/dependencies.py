"""Extraction of raw import targets from TypeScript source."""

from __future__ import annotations

import re
from typing import List, Tuple

_FROM_CLAUSE = re.compile(r"\bfrom\s*(['\"])(?P<target>[^'\"]+)\1")


class DependencyExtractor:
    """Collects module specifiers from single-line ``import ... from '...'`` statements.

    Targets are returned in source order and may repeat; resolution and
    de-duplication belong to the context resolver. Imports whose ``from``
    clause sits on a continuation line are not recognised.
    """

    def extract(self, text: str) -> Tuple[str, ...]:
        targets: List[str] = []
        for line in text.splitlines():
            stripped = line.strip()
            if not stripped.startswith("import "):
                continue
            match = _FROM_CLAUSE.search(stripped)
            if match:
                targets.append(match.group("target"))
        return tuple(targets)


def extract_dependencies(text: str) -> Tuple[str, ...]:
    """Extract raw import targets from ``text``."""
    return DependencyExtractor().extract(text)


def is_relative(target: str) -> bool:
    """Return True when ``target`` points into the project rather than a package."""
    return target.startswith(".")


__all__ = ["DependencyExtractor", "extract_dependencies", "is_relative"]
