"""Pipeline orchestration: candidate selection, bounded generation and the post-run steps."""

from __future__ import annotations

import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .config import AutotestConfig, load_config
from .errors import (
    CoverageThresholdError,
    DirtyWorkingTreeError,
    GenerationFailedError,
    GeneratorError,
    NoExportedSymbolsError,
)
from .extractors import SymbolExtractor
from .git.diff import ChangeDetector
from .index import ContextResolver, ProjectIndexer
from .llm import GenerationContext, TestGenerator, build_generator
from .logging import get_logger
from .models import GenerationResult, RunReport, WorkItem
from .repo_scanner import RepoScanner, default_test_path
from .runner import TestExecutor, detect_framework
from .synthesis import TestRenderer, scenarios_for

CANCELLED_REASON = "cancelled"


@dataclass
class RunOptions:
    """Caller overrides for a run; ``None`` defers to .autotest.yml, then to defaults."""

    framework: Optional[str] = None
    out_dir: Optional[Path] = None
    dry_run: bool = False
    changed_only: bool = False
    diff_base: Optional[str] = None
    max_workers: Optional[int] = None
    min_coverage: Optional[float] = None
    allow_dirty: bool = False
    use_context: Optional[bool] = None
    provider: Optional[str] = None
    unit_timeout: Optional[float] = None
    run_tests: bool = True


class Orchestrator:
    """Coordinates scanning, indexing, synthesis and verification for a project."""

    def __init__(
        self,
        scanner: RepoScanner | None = None,
        change_detector: ChangeDetector | None = None,
        executor: TestExecutor | None = None,
        generator: TestGenerator | None = None,
        symbol_extractor: SymbolExtractor | None = None,
        framework_detector: Callable[[Path], str] | None = None,
    ) -> None:
        self.scanner = scanner or RepoScanner()
        self.change_detector = change_detector or ChangeDetector()
        self.executor = executor or TestExecutor()
        self.symbol_extractor = symbol_extractor or SymbolExtractor()
        self.framework_detector = framework_detector or detect_framework
        self._generator = generator
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Bounded generation

    def generate(
        self,
        candidates: Iterable[Path | WorkItem],
        limit: int | None = None,
        *,
        framework: str,
        root: Path | None = None,
        out_dir: Path | None = None,
        indexer: ProjectIndexer | None = None,
        resolver: ContextResolver | None = None,
        generator: TestGenerator | None = None,
        unit_timeout: float | None = None,
        cancel_event: threading.Event | None = None,
        require_success: bool = False,
    ) -> List[GenerationResult]:
        """Run one synthesis unit per candidate with at most ``limit`` in flight.

        Every unit yields exactly one result; failures never stop other units.
        Results come back sorted by source path.
        """
        if limit is None:
            limit = os.cpu_count() or 1
        if limit < 1:
            raise ValueError("concurrency limit must be at least 1")

        items = [item if isinstance(item, WorkItem) else WorkItem(Path(item)) for item in candidates]
        base = (root or Path.cwd()).resolve()
        renderer = TestRenderer(framework)
        slots = threading.BoundedSemaphore(limit)
        completed: "queue.Queue[GenerationResult]" = queue.Queue()

        def unit(item: WorkItem) -> None:
            with slots:
                test_path = default_test_path(item.source_path, framework, out_dir)
                if cancel_event is not None and cancel_event.is_set():
                    completed.put(_failure(item, test_path, CANCELLED_REASON))
                    return
                try:
                    result = self._synthesize(
                        item,
                        test_path,
                        base=base,
                        renderer=renderer,
                        indexer=indexer,
                        resolver=resolver,
                        generator=generator,
                        unit_timeout=unit_timeout,
                    )
                except Exception as exc:  # pragma: no cover
                    self._log_exception(f"Generation crashed for {item.source_path}", exc)
                    result = _failure(item, test_path, str(exc) or exc.__class__.__name__)
                completed.put(result)

        self.logger.debug("Generating %d unit(s) with concurrency %d", len(items), limit)
        with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="autotest-unit") as pool:
            for item in items:
                pool.submit(unit, item)

        results: List[GenerationResult] = []
        while True:
            try:
                results.append(completed.get_nowait())
            except queue.Empty:
                break
        results.sort(key=lambda result: str(result.source_path))

        for result in results:
            if not result.ok:
                self.logger.warning("Failed %s: %s", result.source_path, result.error)

        if require_success and results and not any(result.ok for result in results):
            raise GenerationFailedError("all generations failed")
        return results

    def _synthesize(
        self,
        item: WorkItem,
        test_path: Path,
        *,
        base: Path,
        renderer: TestRenderer,
        indexer: ProjectIndexer | None,
        resolver: ContextResolver | None,
        generator: TestGenerator | None,
        unit_timeout: float | None,
    ) -> GenerationResult:
        source = item.source_path
        try:
            text = item.text if item.text is not None else source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return _failure(item, test_path, f"failed to read {source}: {exc}")

        display = _display_path(source, base)
        symbols = indexer.symbols(display) if indexer is not None and indexer.ready else ()
        if not symbols:
            symbols = self.symbol_extractor.extract(text)
        if not symbols:
            return _failure(item, test_path, str(NoExportedSymbolsError(display)))

        if generator is not None:
            context = GenerationContext(
                framework=renderer.framework,
                project_context=resolver.contextual_prompt(display, text) if resolver else "",
                timeout=unit_timeout,
            )
            try:
                code = generator.generate(display, text, context)
            except GeneratorError as exc:
                self.logger.warning("Enhanced generation failed for %s; using local synthesis: %s", display, exc)
            else:
                return GenerationResult(source_path=source, test_path=test_path, code=code)

        related = resolver.related_files(display) if resolver is not None else None
        code = renderer.render(display, symbols, scenarios_for(symbols), related_files=related)
        return GenerationResult(source_path=source, test_path=test_path, code=code)

    # ------------------------------------------------------------------
    # Full run

    def run(self, root: str | Path, options: RunOptions | None = None) -> RunReport:
        """Scan, generate, then write, test and gate on coverage unless dry-running."""
        options = options or RunOptions()
        root_path = Path(root).expanduser().resolve()
        config = load_config(root_path)
        self.logger.info("Starting run for %s", root_path)

        if not options.allow_dirty and self.change_detector.is_dirty(root_path):
            raise DirtyWorkingTreeError(
                "working tree has uncommitted changes; commit them or pass --allow-dirty"
            )

        framework = options.framework or config.framework or "auto"
        if framework == "auto":
            framework = self.framework_detector(root_path)
        self.logger.info("Using %s", framework)

        changed = None
        if options.changed_only:
            diff_base = options.diff_base or config.diff_base
            changed = self.change_detector.changed_files(root_path, diff_base)

        candidates = self.scanner.find_candidates(root_path, changed)
        report = RunReport(results=(), framework=framework, dry_run=options.dry_run)
        if not candidates:
            self.logger.info("No files need tests")
            return report

        indexer = None
        resolver = None
        use_context = options.use_context if options.use_context is not None else config.context.enabled
        if use_context:
            indexer = ProjectIndexer(root_path)
            indexer.build()
            resolver = ContextResolver(indexer, similar_limit=config.context.similar_limit)

        generator = self._generator or build_generator(config.generator, provider=options.provider)
        results = self.generate(
            candidates,
            options.max_workers or config.max_workers,
            framework=framework,
            root=root_path,
            out_dir=_resolve_out_dir(options.out_dir, config),
            indexer=indexer,
            resolver=resolver,
            generator=generator,
            unit_timeout=options.unit_timeout or config.unit_timeout,
            require_success=True,
        )
        report.results = tuple(results)
        self.logger.info(
            "Generated %d test file(s), %d failed", len(report.generated), len(report.failed)
        )

        if options.dry_run:
            return report

        report.written = tuple(self._write_results(report.generated))
        if report.written and options.run_tests:
            self.executor.run_tests(report.written, root_path)

        minimum = options.min_coverage if options.min_coverage is not None else config.min_coverage
        if minimum:
            report.coverage = self.executor.measure_coverage(root_path)
            if report.coverage is not None:
                self.logger.info("Coverage: %.1f%%", report.coverage)
                if report.coverage < minimum:
                    raise CoverageThresholdError(report.coverage, minimum)
        return report

    def _write_results(self, results: Sequence[GenerationResult]) -> List[Path]:
        written: List[Path] = []
        for result in results:
            try:
                result.test_path.parent.mkdir(parents=True, exist_ok=True)
                result.test_path.write_text(result.code or "", encoding="utf-8")
            except OSError as exc:
                self.logger.error("Failed to write %s: %s", result.test_path, exc)
                continue
            self.logger.info("Wrote %s", result.test_path)
            written.append(result.test_path)
        return written

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


def _failure(item: WorkItem, test_path: Path, reason: str) -> GenerationResult:
    return GenerationResult(source_path=item.source_path, test_path=test_path, error=reason)


def _display_path(path: Path, base: Path) -> str:
    try:
        return path.resolve().relative_to(base).as_posix()
    except ValueError:
        return path.as_posix()


def _resolve_out_dir(out_dir: Optional[Path], config: AutotestConfig) -> Optional[Path]:
    if out_dir is not None:
        return out_dir
    return config.out_dir


__all__ = ["CANCELLED_REASON", "Orchestrator", "RunOptions"]
