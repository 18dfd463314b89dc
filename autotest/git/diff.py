"""Git-backed change detection."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..errors import GitError
from ..logging import get_logger
from ..repo_scanner import is_eligible


class ChangeDetector:
    """Lists eligible files changed against an upstream ref and reports dirty trees."""

    DEFAULT_BASES: Sequence[str] = ("origin/main", "origin/master")

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def changed_files(self, root: str | Path, diff_base: str | None = None) -> List[Path]:
        """Return eligible files under ``root`` touched between ``diff_base`` and HEAD."""
        root_path = Path(root).expanduser().resolve()
        toplevel = Path(self._git(["rev-parse", "--show-toplevel"], root_path).strip())
        base = diff_base or self._default_base(root_path)

        output = self._git(["diff", "--name-only", f"{base}...HEAD"], root_path)
        changed: List[Path] = []
        for line in output.splitlines():
            name = line.strip()
            if not name or not is_eligible(name):
                continue
            path = (toplevel / name).resolve()
            if not path.is_relative_to(root_path):
                continue
            if not path.exists():
                self.logger.debug("Ignoring deleted file %s", name)
                continue
            changed.append(path)
        self.logger.debug("%d eligible file(s) changed since %s", len(changed), base)
        return sorted(changed)

    def is_dirty(self, root: str | Path) -> bool:
        output = self._git(["status", "--porcelain"], Path(root).expanduser().resolve())
        return bool(output.strip())

    # ------------------------------------------------------------------
    # Internals

    def _default_base(self, root: Path) -> str:
        for candidate in self.DEFAULT_BASES:
            try:
                self._git(["rev-parse", "--verify", "--quiet", f"refs/remotes/{candidate}"], root)
            except GitError:
                continue
            return candidate
        raise GitError("failed to find origin/main or origin/master")

    def _git(self, args: Iterable[str], cwd: Path) -> str:
        command = ["git", *args]
        try:
            return self._runner(command, cwd=cwd, capture_output=True)
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip() if isinstance(exc.stderr, str) else ""
            raise GitError(f"{' '.join(command)} failed: {stderr or exc.returncode}") from exc
        except FileNotFoundError as exc:
            raise GitError("git executable not found") from exc

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


__all__ = ["ChangeDetector"]
