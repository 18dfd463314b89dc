"""Repository scanning: eligible source files, existing tests and test paths."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from .config import ConfigError, load_config
from .logging import get_logger

SOURCE_SUFFIXES = (".ts", ".tsx")
DECLARATION_SUFFIX = ".d.ts"
TEST_MARKERS = (".test.", ".spec.")
EXISTING_TEST_SUFFIXES = (".test.ts", ".test.tsx", ".spec.ts", ".spec.tsx")

TEST_SUFFIX_BY_FRAMEWORK = {
    "jest": ".test.ts",
    "vitest": ".spec.ts",
}

_EXCLUDED_DIRS = {
    "node_modules",
    ".git",
    ".hg",
    ".svn",
    "build",
    "dist",
    "coverage",
    ".next",
    ".autotest",
}

_logger = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .autotest.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        target = rel_path
        if self.anchored or self.has_slash:
            if fnmatchcase(target, self.pattern):
                return True
            if self.directory_only and target.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in target.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def _build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = _build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _parse_config_excludes(root: Path) -> List[IgnoreRule]:
    try:
        config = load_config(root)
    except ConfigError as exc:
        _logger.warning("Ignoring exclude_paths from invalid config: %s", exc)
        return []

    rules: List[IgnoreRule] = []
    for pattern in config.exclude_paths:
        rule = _build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def load_ignore_rules(root: Path) -> List[IgnoreRule]:
    """Combine .gitignore rules with the configured exclude paths."""
    rules = _parse_gitignore(root / ".gitignore")
    rules.extend(_parse_config_excludes(root))
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def is_test_file(path: str) -> bool:
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    return any(marker in name for marker in TEST_MARKERS)


def is_eligible(path: str) -> bool:
    """Return True for TypeScript sources that are not declarations, tests or build output."""
    normalized = path.replace("\\", "/")
    if not normalized.endswith(SOURCE_SUFFIXES):
        return False
    if normalized.endswith(DECLARATION_SUFFIX):
        return False
    if is_test_file(normalized):
        return False
    if "node_modules" in normalized:
        return False
    wrapped = f"/{normalized}"
    if "/build/" in wrapped or "/dist/" in wrapped:
        return False
    return True


def has_test(source: Path) -> bool:
    """Return True when a sibling test file already covers ``source``."""
    base = source.with_suffix("")
    return any(Path(f"{base}{suffix}").exists() for suffix in EXISTING_TEST_SUFFIXES)


def default_test_path(
    source: Path,
    framework: str,
    out_dir: Path | None = None,
    *,
    cwd: Path | None = None,
) -> Path:
    """Return where the generated test for ``source`` should be written.

    Without ``out_dir`` the test sits beside the source. With ``out_dir`` the
    source path, taken relative to the working directory, is mirrored under it.
    """
    suffix = TEST_SUFFIX_BY_FRAMEWORK.get(framework, TEST_SUFFIX_BY_FRAMEWORK["jest"])
    if out_dir is None:
        return Path(f"{source.with_suffix('')}{suffix}")

    base_dir = (cwd or Path.cwd()).resolve()
    try:
        relative = source.resolve().relative_to(base_dir)
    except ValueError:
        relative = Path(source.name)
    return out_dir / f"{relative.with_suffix('')}{suffix}"


def iter_source_files(root: Path, rules: Sequence[IgnoreRule] = ()) -> Iterator[Path]:
    """Yield eligible TypeScript files below ``root``, pruning excluded directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        filtered_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            filtered_dirs.append(name)
        dirnames[:] = filtered_dirs

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if not is_eligible(rel_path):
                continue
            if _should_ignore(rel_path, False, rules):
                continue
            yield current_dir / filename


class RepoScanner:
    """Finds TypeScript files under a project root that still need tests."""

    def find_candidates(
        self,
        root: str | Path,
        changed: Iterable[Path] | None = None,
    ) -> List[Path]:
        """Return eligible, untested files, optionally narrowed to ``changed`` paths."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Project path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        if changed is None:
            rules = load_ignore_rules(root_path)
            sources: Iterable[Path] = iter_source_files(root_path, rules)
        else:
            sources = [path for path in changed if is_eligible(path.as_posix())]

        candidates: List[Path] = []
        for source in sources:
            if has_test(source):
                _logger.debug("Skipping %s; test already exists", source)
                continue
            candidates.append(source)
        candidates.sort()
        _logger.debug("Found %d candidate file(s) under %s", len(candidates), root_path)
        return candidates


__all__ = [
    "EXISTING_TEST_SUFFIXES",
    "IgnoreRule",
    "RepoScanner",
    "SOURCE_SUFFIXES",
    "TEST_SUFFIX_BY_FRAMEWORK",
    "default_test_path",
    "has_test",
    "is_eligible",
    "is_test_file",
    "iter_source_files",
    "load_ignore_rules",
]
