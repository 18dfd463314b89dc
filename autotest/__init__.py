"""Scaffold Jest/Vitest unit tests for TypeScript modules that lack them."""

__version__ = "0.1.0"
