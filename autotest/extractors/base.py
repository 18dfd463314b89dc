"""Base classes for declaration matchers."""

from abc import ABC, abstractmethod
from typing import Iterable, Tuple

from ..models import Symbol, SymbolKind


class DeclarationMatcher(ABC):
    """Contract for matchers that recognise one exported declaration form."""

    kind: SymbolKind

    @abstractmethod
    def find(self, text: str) -> Iterable[Tuple[int, Symbol]]:
        """Yield ``(offset, symbol)`` pairs for every well-formed match in ``text``."""
