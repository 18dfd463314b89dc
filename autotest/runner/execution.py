"""Running generated tests and measuring coverage through npm scripts."""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from ..logging import get_logger
from .frameworks import has_script

# Searched in order; prefix markers are followed by the number, suffix markers preceded by it.
COVERAGE_MARKERS: Sequence[str] = (
    "Coverage: ",
    "coverage: ",
    "Statements: ",
    "Statements   : ",
    "% coverage",
    "% Statements",
)

_NUMBER_AFTER = re.compile(r"\s*(\d+(?:\.\d+)?)")
_NUMBER_BEFORE = re.compile(r"(\d+(?:\.\d+)?)\s*$")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


def parse_coverage(output: str) -> float:
    """Extract a coverage percentage from test output; 0.0 when no marker matches."""
    for marker in COVERAGE_MARKERS:
        index = output.find(marker)
        if index == -1:
            continue
        if marker.startswith("%"):
            match = _NUMBER_BEFORE.search(output[max(0, index - 10) : index])
        else:
            match = _NUMBER_AFTER.match(output, index + len(marker))
        if match:
            return float(match.group(1))
    return 0.0


class TestExecutor:
    """Invokes the project's npm test scripts."""

    __test__ = False

    def __init__(self, runner: Runner | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("runner")

    def run_tests(self, test_paths: Iterable[Path], root: str | Path) -> bool:
        """Run ``npm run test`` scoped to every generated path; False on a failed run."""
        root_path = Path(root).resolve()
        args = [self._display_path(path, root_path) for path in test_paths]
        if not args:
            return True
        completed = self._invoke(["npm", "run", "test", "--", *args], root_path, capture_output=False)
        if completed is None:
            return False
        if completed.returncode != 0:
            self.logger.warning("Test run exited with status %d", completed.returncode)
            return False
        return True

    def measure_coverage(self, root: str | Path) -> Optional[float]:
        """Run a coverage-enabled test pass and parse the percentage from its output."""
        root_path = Path(root).resolve()
        if has_script(root_path, "test:coverage"):
            command = ["npm", "run", "test:coverage"]
        else:
            command = ["npm", "run", "test", "--", "--coverage"]
        completed = self._invoke(command, root_path, capture_output=True)
        if completed is None:
            return None
        if completed.returncode != 0:
            self.logger.warning("Coverage run exited with status %d", completed.returncode)
        return parse_coverage(completed.stdout or "")

    def _invoke(
        self, args: List[str], cwd: Path, *, capture_output: bool
    ) -> Optional["subprocess.CompletedProcess[str]"]:
        self.logger.debug("Running %s in %s", " ".join(args), cwd)
        try:
            return self._runner(args, cwd=cwd, capture_output=capture_output)
        except (FileNotFoundError, subprocess.SubprocessError) as exc:
            self.logger.warning("Unable to run %s: %s", " ".join(args), exc)
            return None

    @staticmethod
    def _display_path(path: Path, root: Path) -> str:
        try:
            return Path(path).resolve().relative_to(root).as_posix()
        except ValueError:
            return str(path)

    @staticmethod
    def _default_runner(
        args: Sequence[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> "subprocess.CompletedProcess[str]":
        if not capture_output:
            return subprocess.run(list(args), cwd=str(cwd), check=False, text=True)
        return subprocess.run(
            list(args),
            cwd=str(cwd),
            check=False,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )


__all__ = ["COVERAGE_MARKERS", "TestExecutor", "parse_coverage"]
