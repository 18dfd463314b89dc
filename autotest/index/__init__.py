"""Project indexing and cross-file context resolution."""

from .indexer import ProjectIndexer
from .resolver import ContextResolver

__all__ = ["ContextResolver", "ProjectIndexer"]
