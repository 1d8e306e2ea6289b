"""Concurrent analysis of many packages, and fix application."""

import asyncio
import logging
from typing import Dict, List, Optional

from .analyzer import BlockSpacingAnalyzer
from .config import AnalyzerConfig, detect_goroot
from .fixes import apply_fixes
from .loader import PackageLoader
from .models import AnalysisResult, Diagnostic
from .source import SourceFile

logger = logging.getLogger(__name__)


class DiagnosticSink:
    """Collects diagnostics from concurrently analyzed packages."""

    def __init__(self):
        self._diagnostics: List[Diagnostic] = []
        self._lock = asyncio.Lock()

    async def extend(self, diagnostics: List[Diagnostic]) -> None:
        async with self._lock:
            self._diagnostics.extend(diagnostics)

    def by_path(self) -> Dict[str, List[Diagnostic]]:
        grouped: Dict[str, List[Diagnostic]] = {}
        for diagnostic in self._diagnostics:
            grouped.setdefault(diagnostic.path, []).append(diagnostic)
        return grouped

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)


class AnalysisRunner:
    """Runs the analyzer over a set of paths, one worker thread per package."""

    def __init__(self, config: AnalyzerConfig):
        """Initialize runner.

        Args:
            config: Run configuration; GOROOT is detected if not set
        """
        self.config = config
        goroot = config.goroot or detect_goroot()
        self.analyzer = BlockSpacingAnalyzer(config, PackageLoader(goroot))
        self._semaphore: Optional[asyncio.Semaphore] = None

    async def _analyze_package(self, directory: str, targets: List[str], sink: DiagnosticSink) -> List[str]:
        async with self._semaphore:
            diagnostics, failed = await asyncio.to_thread(self.analyzer.analyze_package, directory, targets)
        await sink.extend(diagnostics)
        return failed

    async def run(self, paths: List[str]) -> AnalysisResult:
        """Analyze all packages named by paths.

        Args:
            paths: Files, directories, or `dir/...` patterns

        Returns:
            Collected diagnostics and per-file bookkeeping

        Raises:
            FileNotFoundError: If an input path does not exist
        """
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent)
        packages, skipped = self.analyzer.collect_packages(paths)

        result = AnalysisResult(skipped_files=skipped)
        sink = DiagnosticSink()

        directories = list(packages)
        tasks = [self._analyze_package(d, packages[d], sink) for d in directories]
        # Use return_exceptions=True so one broken package does not stop the run
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for directory, outcome in zip(directories, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Error analyzing package {directory}: {outcome}", exc_info=outcome)
                result.failed_files.extend(packages[directory])
                continue

            result.failed_files.extend(outcome)
            result.analyzed_files.extend(f for f in packages[directory] if f not in outcome)

        result.diagnostics = sorted(sink.diagnostics, key=lambda d: (d.path, d.position))

        if self.config.fix:
            result.fixed_files = self.apply(sink.by_path())

        logger.info(
            f"Analyzed {len(result.analyzed_files)} files: {len(result.diagnostics)} diagnostics, "
            f"{len(result.failed_files)} failed, {len(result.skipped_files)} excluded"
        )
        return result

    @staticmethod
    def apply(diagnostics_by_path: Dict[str, List[Diagnostic]]) -> List[str]:
        """Rewrite each file with its suggested fixes applied.

        Returns:
            Paths of the files that were changed
        """
        fixed = []
        for path, diagnostics in sorted(diagnostics_by_path.items()):
            source = SourceFile.from_path(path)
            updated = apply_fixes(source, diagnostics)
            if updated == source.content:
                continue

            with open(path, "wb") as f:
                f.write(updated)
            fixed.append(path)
            logger.info(f"Fixed {len(diagnostics)} diagnostics in {path}")
        return fixed


def run_analysis(paths: List[str], config: Optional[AnalyzerConfig] = None) -> AnalysisResult:
    """Synchronous entry point around AnalysisRunner.run."""
    return asyncio.run(AnalysisRunner(config or AnalyzerConfig.from_env()).run(paths))
