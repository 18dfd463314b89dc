"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from autotest.config import ConfigError
from autotest.errors import DirtyWorkingTreeError
from autotest.models import GenerationResult, RunReport
from autotest.service import create_app


class _StubOrchestrator:
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []
        self.error: Exception | None = None

    def run(self, path, options):
        self.calls.append((path, options))
        if self.error is not None:
            raise self.error
        root = Path(path)
        return RunReport(
            results=(
                GenerationResult(root / "src/a.ts", root / "src/a.test.ts", code="one\ntwo\n"),
                GenerationResult(root / "src/b.ts", root / "src/b.test.ts", error="no exported symbols found in src/b.ts"),
            ),
            framework=options.framework or "jest",
            dry_run=options.dry_run,
        )


@pytest.fixture
def orchestrator() -> _StubOrchestrator:
    return _StubOrchestrator()


@pytest.fixture
def client(orchestrator: _StubOrchestrator) -> TestClient:
    return TestClient(create_app(lambda: orchestrator))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_plan_is_a_dry_run(client: TestClient, orchestrator: _StubOrchestrator) -> None:
    response = client.post("/plan", json={"path": "/work/app", "framework": "vitest", "max_workers": 2})

    assert response.status_code == 200
    payload = response.json()
    assert payload["framework"] == "vitest"
    assert payload["generated"] == [
        {"source_path": "/work/app/src/a.ts", "test_path": "/work/app/src/a.test.ts", "lines": 2, "error": None}
    ]
    assert payload["failed"][0]["error"] == "no exported symbols found in src/b.ts"

    path, options = orchestrator.calls[0]
    assert path == "/work/app"
    assert options.dry_run is True
    assert options.run_tests is False
    assert options.allow_dirty is True
    assert options.max_workers == 2


def test_plan_maps_autotest_errors_to_400(client: TestClient, orchestrator: _StubOrchestrator) -> None:
    orchestrator.error = DirtyWorkingTreeError("working tree has uncommitted changes")

    response = client.post("/plan", json={"path": "/work/app", "allow_dirty": False})

    assert response.status_code == 400
    assert "uncommitted" in response.json()["detail"]


def test_plan_maps_config_errors_to_400(client: TestClient, orchestrator: _StubOrchestrator) -> None:
    orchestrator.error = ConfigError("max_workers must be at least 1")

    response = client.post("/plan", json={"path": "/work/app"})

    assert response.status_code == 400


def test_plan_missing_path_returns_404(client: TestClient, orchestrator: _StubOrchestrator) -> None:
    orchestrator.error = FileNotFoundError("Project path not found: /nowhere")

    response = client.post("/plan", json={"path": "/nowhere"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Project path not found: /nowhere"


def test_index_endpoint_reports_stats(client: TestClient, repo_builder) -> None:
    repo_builder.write(
        {
            "src/a.ts": "import { b } from './b';\nexport const a = () => b;\n",
            "src/b.ts": "export function b() {}\n",
        }
    )

    response = client.post("/index", json={"path": str(repo_builder.path())})

    assert response.status_code == 200
    payload = response.json()
    assert payload["files_indexed"] == 2
    assert payload["total_exports"] == 2
    assert payload["total_dependencies"] == 1
    assert payload["avg_exports_per_file"] == 1.0


def test_index_missing_directory_returns_404(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/index", json={"path": str(tmp_path / "absent")})

    assert response.status_code == 404


@pytest.mark.parametrize(
    "payload",
    [
        {"path": "/work/app", "framework": "mocha"},
        {"path": "/work/app", "max_workers": 0},
    ],
)
def test_plan_rejects_invalid_options(client: TestClient, orchestrator: _StubOrchestrator, payload) -> None:
    response = client.post("/plan", json=payload)

    assert response.status_code == 422
    assert orchestrator.calls == []


def test_plan_accepts_auto_framework(client: TestClient, orchestrator: _StubOrchestrator) -> None:
    response = client.post("/plan", json={"path": "/work/app", "framework": "auto"})

    assert response.status_code == 200
    assert orchestrator.calls[0][1].framework == "auto"
