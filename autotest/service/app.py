"""FastAPI application entrypoint for autotest service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Literal, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import ConfigError
from ..errors import AutotestError
from ..index import ProjectIndexer
from ..models import RunReport
from ..orchestrator import Orchestrator, RunOptions


class PlanRequest(BaseModel):
    path: str
    framework: Optional[Literal["auto", "jest", "vitest"]] = None
    changed_only: bool = False
    diff_base: Optional[str] = None
    max_workers: Optional[int] = Field(default=None, ge=1)
    use_context: Optional[bool] = None
    allow_dirty: bool = True


class PlannedFile(BaseModel):
    source_path: str
    test_path: str
    lines: Optional[int] = None
    error: Optional[str] = None


class PlanResponse(BaseModel):
    framework: str
    generated: List[PlannedFile]
    failed: List[PlannedFile]


class IndexRequest(BaseModel):
    path: str


class IndexResponse(BaseModel):
    root: str
    files_indexed: int
    total_exports: int
    total_dependencies: int
    avg_exports_per_file: float


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _to_plan(report: RunReport) -> PlanResponse:
    return PlanResponse(
        framework=report.framework,
        generated=[
            PlannedFile(
                source_path=str(result.source_path),
                test_path=str(result.test_path),
                lines=(result.code or "").count("\n"),
            )
            for result in report.generated
        ],
        failed=[
            PlannedFile(
                source_path=str(result.source_path),
                test_path=str(result.test_path),
                error=result.error,
            )
            for result in report.failed
        ],
    )


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing autotest operations."""
    app = FastAPI(title="autotest service", version="0.1.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/plan", response_model=PlanResponse)
    async def plan(
        payload: PlanRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> PlanResponse:
        options = RunOptions(
            framework=payload.framework,
            dry_run=True,
            changed_only=payload.changed_only,
            diff_base=payload.diff_base,
            max_workers=payload.max_workers,
            allow_dirty=payload.allow_dirty,
            use_context=payload.use_context,
            run_tests=False,
        )

        def _run_plan() -> RunReport:
            return orchestrator.run(payload.path, options)

        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, _run_plan)
        return _to_plan(report)

    @app.post("/index", response_model=IndexResponse)
    async def index_project(payload: IndexRequest) -> IndexResponse:
        indexer = ProjectIndexer(payload.path)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, indexer.build)
        stats: Dict[str, Any] = indexer.stats()
        return IndexResponse(root=str(indexer.root), **stats)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(AutotestError)
    async def autotest_error_handler(_: Any, exc: AutotestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
