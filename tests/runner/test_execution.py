"""Tests for autotest.runner.execution."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Tuple

import pytest

from autotest.runner import TestExecutor, parse_coverage


class FakeRunner:
    def __init__(self, returncode: int = 0, stdout: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.calls: List[Tuple[List[str], Path, bool]] = []

    def __call__(self, args, *, cwd, capture_output=False):
        self.calls.append((list(args), cwd, capture_output))
        return subprocess.CompletedProcess(args, self.returncode, stdout=self.stdout)


@pytest.mark.parametrize(
    ("output", "expected"),
    [
        ("Coverage: 85.5%", 85.5),
        ("coverage: 70%", 70.0),
        ("Statements   : 91.3% ( 100/109 )", 91.3),
        ("All files 64 % coverage", 64.0),
        ("done, 77.25% Statements covered", 77.25),
        ("no numbers here", 0.0),
        ("", 0.0),
    ],
)
def test_parse_coverage(output: str, expected: float) -> None:
    assert parse_coverage(output) == expected


def test_run_tests_passes_every_path_relative_to_root(repo_builder) -> None:
    root = repo_builder.path()
    runner = FakeRunner()
    executor = TestExecutor(runner=runner)

    ok = executor.run_tests([root / "src" / "a.test.ts", root / "src" / "b.test.ts"], root)

    assert ok is True
    args, cwd, capture = runner.calls[0]
    assert args == ["npm", "run", "test", "--", "src/a.test.ts", "src/b.test.ts"]
    assert cwd == root.resolve()
    assert capture is False


def test_run_tests_reports_failure_on_nonzero_exit(repo_builder, caplog) -> None:
    runner = FakeRunner(returncode=1)
    executor = TestExecutor(runner=runner)

    with caplog.at_level("WARNING", logger="autotest.runner"):
        ok = executor.run_tests([repo_builder.path("a.test.ts")], repo_builder.path())

    assert ok is False
    assert "exited with status 1" in caplog.text


def test_run_tests_without_paths_skips_runner(repo_builder) -> None:
    runner = FakeRunner()

    assert TestExecutor(runner=runner).run_tests([], repo_builder.path()) is True
    assert runner.calls == []


def test_run_tests_missing_npm_returns_false(repo_builder) -> None:
    def missing(args, *, cwd, capture_output=False):
        raise FileNotFoundError("npm")

    assert TestExecutor(runner=missing).run_tests([repo_builder.path("a.test.ts")], repo_builder.path()) is False


def test_measure_coverage_prefers_coverage_script(repo_builder) -> None:
    repo_builder.package_json(scripts={"test": "jest", "test:coverage": "jest --coverage"})
    runner = FakeRunner(stdout="Statements   : 88.1%\n")

    coverage = TestExecutor(runner=runner).measure_coverage(repo_builder.path())

    assert coverage == 88.1
    args, _, capture = runner.calls[0]
    assert args == ["npm", "run", "test:coverage"]
    assert capture is True


def test_measure_coverage_falls_back_to_coverage_flag(repo_builder) -> None:
    repo_builder.package_json(scripts={"test": "vitest"})
    runner = FakeRunner(stdout="nothing to see")

    coverage = TestExecutor(runner=runner).measure_coverage(repo_builder.path())

    assert coverage == 0.0
    assert runner.calls[0][0] == ["npm", "run", "test", "--", "--coverage"]


def test_measure_coverage_returns_none_when_command_cannot_run(repo_builder) -> None:
    def broken(args, *, cwd, capture_output=False):
        raise subprocess.SubprocessError("boom")

    assert TestExecutor(runner=broken).measure_coverage(repo_builder.path()) is None
