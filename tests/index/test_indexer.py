"""Tests for autotest.index.indexer."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from autotest.index import ProjectIndexer
from autotest.models import SymbolKind
from tests._fixtures.repo_builder import RepoBuilder


def _sample_project(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/math.ts": """
                import { round } from './util';
                export function add(a: number, b: number) { return round(a + b) }
                export const sub = (a: number, b: number) => a - b;
            """,
            "src/util/index.ts": "export function round(n: number) { return Math.round(n) }\n",
            "src/math.test.ts": "import { add } from './math';\n",
            "src/env.d.ts": "declare const VERSION: string;\n",
            "node_modules/lib/index.ts": "export const lib = () => 1;\n",
            ".git/hooks/x.ts": "export const hook = () => 1;\n",
            "coverage/report.ts": "export const report = () => 1;\n",
        }
    )


def test_build_indexes_eligible_files_only(repo_builder: RepoBuilder) -> None:
    _sample_project(repo_builder)

    index = repo_builder.indexer().index

    assert index is not None
    assert sorted(index.files) == ["src/math.ts", "src/util/index.ts"]
    math = index.get("src/math.ts")
    assert math is not None
    assert [symbol.name for symbol in math.symbols] == ["add", "sub"]
    assert math.symbols[1].kind is SymbolKind.ARROW_CONST
    assert math.imports == ("./util",)


def test_indexer_is_empty_until_built(repo_builder: RepoBuilder) -> None:
    _sample_project(repo_builder)
    indexer = ProjectIndexer(repo_builder.path())

    assert indexer.ready is False
    assert indexer.symbols("src/math.ts") == ()
    assert indexer.imports("src/math.ts") == ()
    assert indexer.stats() == {}

    indexer.build()

    assert indexer.ready is True
    assert [symbol.name for symbol in indexer.symbols("src/math.ts")] == ["add", "sub"]
    assert indexer.symbols(repo_builder.path("src/math.ts").resolve())[0].name == "add"


def test_index_snapshot_is_read_only(repo_builder: RepoBuilder) -> None:
    _sample_project(repo_builder)
    index = repo_builder.indexer().index
    assert index is not None

    with pytest.raises(TypeError):
        index.files["src/new.ts"] = index.files["src/math.ts"]  # type: ignore[index]


def test_stats_summarise_index(repo_builder: RepoBuilder) -> None:
    _sample_project(repo_builder)

    stats = repo_builder.indexer().stats()

    assert stats == {
        "files_indexed": 2,
        "total_exports": 3,
        "total_dependencies": 1,
        "avg_exports_per_file": 1.5,
    }


def test_unreadable_file_is_skipped_with_warning(
    repo_builder: RepoBuilder, caplog: pytest.LogCaptureFixture
) -> None:
    repo_builder.write({"src/good.ts": "export const good = () => 1;\n"})
    (repo_builder.path("src") / "bad.ts").write_bytes(b"\xff\xfe\x00export")

    with caplog.at_level(logging.WARNING, logger="autotest.index"):
        index = repo_builder.indexer().index

    assert index is not None
    assert list(index.files) == ["src/good.ts"]
    assert "src/bad.ts" in caplog.text


def test_build_rejects_missing_root(tmp_path: Path) -> None:
    with pytest.raises(NotADirectoryError):
        ProjectIndexer(tmp_path / "missing").build()
