"""Configuration loading for autotest (.autotest.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".autotest.yml"

FRAMEWORK_CHOICES = ("auto", "jest", "vitest")
PROVIDER_CHOICES = ("none", "cli", "http")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GeneratorConfig:
    """Enhanced (AI) generator settings from .autotest.yml."""

    provider: Optional[str] = None
    executable: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: Optional[float] = None


@dataclass
class ContextConfig:
    """Project-index context settings."""

    enabled: bool = False
    similar_limit: int = 3


@dataclass
class AutotestConfig:
    """Represents the settings defined in .autotest.yml."""

    root: Path
    framework: Optional[str] = None
    out_dir: Optional[Path] = None
    max_workers: Optional[int] = None
    min_coverage: Optional[float] = None
    diff_base: Optional[str] = None
    unit_timeout: Optional[float] = None
    exclude_paths: List[str] = field(default_factory=list)
    generator: Optional[GeneratorConfig] = None
    context: ContextConfig = field(default_factory=ContextConfig)


def load_config(config_path: Path) -> AutotestConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return AutotestConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    framework = _as_str(data.get("framework"))
    if framework is not None:
        framework = framework.lower()
        if framework not in FRAMEWORK_CHOICES:
            raise ConfigError(
                f"Unsupported framework '{framework}' (expected one of {', '.join(FRAMEWORK_CHOICES)})"
            )

    out_dir_str = _as_str(data.get("out_dir"))
    out_dir = root / out_dir_str if out_dir_str else None

    max_workers = _as_int(data.get("max_workers"))
    if max_workers is not None and max_workers < 1:
        raise ConfigError("max_workers must be at least 1")

    min_coverage = _as_float(data.get("min_coverage"))
    if min_coverage is not None and not 0 <= min_coverage <= 100:
        raise ConfigError("min_coverage must be between 0 and 100")

    generator_data = _as_dict(data.get("generator"))
    generator = None
    if generator_data:
        generator = GeneratorConfig(
            provider=_as_str(generator_data.get("provider")),
            executable=_as_str(generator_data.get("executable")),
            model=_as_str(generator_data.get("model")),
            base_url=_as_str(generator_data.get("base_url")),
            api_key=_as_str(generator_data.get("api_key")),
            request_timeout=_as_float(generator_data.get("request_timeout")),
        )
        if generator.provider is not None:
            generator.provider = generator.provider.lower()
            if generator.provider not in PROVIDER_CHOICES:
                raise ConfigError(f"Unsupported generator provider '{generator.provider}'")
        if not any(
            (
                generator.provider,
                generator.executable,
                generator.model,
                generator.base_url,
                generator.api_key,
                generator.request_timeout,
            )
        ):
            generator = None

    context_data = _as_dict(data.get("context"))
    context = ContextConfig()
    if context_data:
        enabled = _as_bool(context_data.get("enabled"))
        context.enabled = bool(enabled) if enabled is not None else False
        similar_limit = _as_int(context_data.get("similar_limit"))
        if similar_limit is not None:
            context.similar_limit = similar_limit

    return AutotestConfig(
        root=root,
        framework=framework,
        out_dir=out_dir,
        max_workers=max_workers,
        min_coverage=min_coverage,
        diff_base=_as_str(data.get("diff_base")),
        unit_timeout=_as_float(data.get("unit_timeout")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        generator=generator,
        context=context,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "AutotestConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "ContextConfig",
    "FRAMEWORK_CHOICES",
    "GeneratorConfig",
    "PROVIDER_CHOICES",
    "load_config",
]
