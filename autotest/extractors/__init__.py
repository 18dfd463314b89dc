"""Static extractors for exported symbols and import targets."""

from __future__ import annotations

from .base import DeclarationMatcher
from .dependencies import DependencyExtractor, extract_dependencies, is_relative
from .symbols import SymbolExtractor, extract_symbols

__all__ = [
    "DeclarationMatcher",
    "DependencyExtractor",
    "SymbolExtractor",
    "extract_dependencies",
    "extract_symbols",
    "is_relative",
]
