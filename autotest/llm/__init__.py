"""Pluggable enhanced (AI) test generators."""

from .generator import (
    CLIGenerator,
    GenerationContext,
    GeneratorRequest,
    HTTPGenerator,
    PromptBuilder,
    TestGenerator,
    build_generator,
    extract_code,
)

__all__ = [
    "CLIGenerator",
    "GenerationContext",
    "GeneratorRequest",
    "HTTPGenerator",
    "PromptBuilder",
    "TestGenerator",
    "build_generator",
    "extract_code",
]
