"""Test framework detection from package.json and lockfiles."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Sequence

from ..errors import FrameworkNotFoundError

# Preference order when a project declares both.
SUPPORTED_FRAMEWORKS: Sequence[str] = ("vitest", "jest")
LOCKFILES: Sequence[str] = ("pnpm-lock.yaml", "yarn.lock", "package-lock.json")


def read_package_json(root: Path) -> Dict[str, Any]:
    path = root / "package.json"
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FrameworkNotFoundError(f"package.json not found in {root}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise FrameworkNotFoundError(f"failed to parse package.json: {exc}") from exc
    if not isinstance(data, dict):
        raise FrameworkNotFoundError("package.json must contain an object")
    return data


def has_script(root: Path, name: str) -> bool:
    try:
        scripts = read_package_json(root).get("scripts")
    except FrameworkNotFoundError:
        return False
    return isinstance(scripts, dict) and name in scripts


def detect_framework(root: str | Path) -> str:
    """Return ``"vitest"`` or ``"jest"`` for the project at ``root``.

    Declared dependencies win; lockfiles are only searched when the project
    uses pnpm, matching how pnpm workspaces often hoist test runners.
    """
    root_path = Path(root)
    package = read_package_json(root_path)

    declared = set()
    for field in ("dependencies", "devDependencies"):
        section = package.get(field)
        if isinstance(section, dict):
            declared.update(section)

    for framework in SUPPORTED_FRAMEWORKS:
        if framework in declared:
            return framework

    if (root_path / "pnpm-lock.yaml").exists():
        for framework in SUPPORTED_FRAMEWORKS:
            if _mentioned_in_lockfiles(root_path, framework):
                return framework

    raise FrameworkNotFoundError("no test framework detected (jest or vitest required)")


def _mentioned_in_lockfiles(root: Path, framework: str) -> bool:
    for name in LOCKFILES:
        try:
            content = (root / name).read_text(encoding="utf-8", errors="ignore")
        except OSError:
            continue
        if framework in content:
            return True
    return False


__all__ = ["LOCKFILES", "SUPPORTED_FRAMEWORKS", "detect_framework", "has_script", "read_package_json"]
