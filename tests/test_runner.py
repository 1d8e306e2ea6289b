"""Tests for package discovery and the concurrent runner."""

from pathlib import Path

import pytest

from newline_after_block.config import AnalyzerConfig
from newline_after_block.exclude import ExcludePatterns
from newline_after_block.runner import AnalysisRunner, DiagnosticSink, run_analysis
from newline_after_block.scanner import BLOCK_MESSAGE

VIOLATION = """package {name}

func f(x int) {{
	if x > 0 {{
		x--
	}}
	x++
}}
"""

CLEAN = """package {name}

func g() {{
	for {{
		break
	}}
}}
"""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A small module tree with violations in two packages."""
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "a.go").write_text(VIOLATION.format(name="a"))
    (tmp_path / "a" / "clean.go").write_text(CLEAN.format(name="a"))
    (tmp_path / "a" / "a_test.go").write_text(VIOLATION.format(name="a"))

    (tmp_path / "a" / "b").mkdir()
    (tmp_path / "a" / "b" / "b.go").write_text(VIOLATION.format(name="b"))

    for skipped in ("vendor", "testdata", ".hidden", "_scratch"):
        (tmp_path / skipped).mkdir()
        (tmp_path / skipped / "x.go").write_text(VIOLATION.format(name="x"))

    (tmp_path / "notes.txt").write_text("not go")
    return tmp_path


class TestCollectPackages:
    """Tests for expanding command-line paths."""

    def test_recursive_pattern(self, workspace: Path) -> None:
        runner = AnalysisRunner(AnalyzerConfig())
        packages, skipped = runner.analyzer.collect_packages([f"{workspace}/..."])

        assert sorted(packages) == [str(workspace / "a"), str(workspace / "a" / "b")]
        assert sorted(Path(f).name for f in packages[str(workspace / "a")]) == ["a.go", "a_test.go", "clean.go"]
        assert skipped == []

    def test_directory_is_not_recursive(self, workspace: Path) -> None:
        runner = AnalysisRunner(AnalyzerConfig())
        packages, _ = runner.analyzer.collect_packages([str(workspace / "a")])
        assert list(packages) == [str(workspace / "a")]

    def test_single_file(self, workspace: Path) -> None:
        runner = AnalysisRunner(AnalyzerConfig())
        target = str(workspace / "a" / "a.go")
        packages, _ = runner.analyzer.collect_packages([target, target])
        assert packages == {str(workspace / "a"): [target]}

    def test_exclusion(self, workspace: Path) -> None:
        runner = AnalysisRunner(AnalyzerConfig(exclude=ExcludePatterns([r"_test\.go$"])))
        packages, skipped = runner.analyzer.collect_packages([str(workspace / "a")])

        assert [Path(f).name for f in skipped] == ["a_test.go"]
        assert sorted(Path(f).name for f in packages[str(workspace / "a")]) == ["a.go", "clean.go"]

    def test_gitignore(self, workspace: Path) -> None:
        (workspace / ".gitignore").write_text("b.go\n")

        runner = AnalysisRunner(AnalyzerConfig())
        packages, _ = runner.analyzer.collect_packages([f"{workspace}/..."])
        assert list(packages) == [str(workspace / "a")]

        runner = AnalysisRunner(AnalyzerConfig(follow_gitignore=False))
        packages, _ = runner.analyzer.collect_packages([f"{workspace}/..."])
        assert len(packages) == 2

    def test_missing_path(self, tmp_path: Path) -> None:
        runner = AnalysisRunner(AnalyzerConfig())
        with pytest.raises(FileNotFoundError):
            runner.analyzer.collect_packages([str(tmp_path / "missing.go")])

        with pytest.raises(FileNotFoundError):
            runner.analyzer.collect_packages([f"{tmp_path}/missing/..."])


class TestAnalysisRunner:
    """Tests for running packages concurrently."""

    @pytest.mark.asyncio
    async def test_run(self, workspace: Path) -> None:
        runner = AnalysisRunner(AnalyzerConfig(max_concurrent=1))
        result = await runner.run([f"{workspace}/..."])

        assert [(Path(d.path).name, d.line, d.message) for d in result.diagnostics] == [
            ("a.go", 6, BLOCK_MESSAGE),
            ("a_test.go", 6, BLOCK_MESSAGE),
            ("b.go", 6, BLOCK_MESSAGE),
        ]
        assert len(result.analyzed_files) == 4
        assert result.failed_files == []
        assert result.fixed_files == []

    @pytest.mark.asyncio
    async def test_fix(self, workspace: Path) -> None:
        runner = AnalysisRunner(AnalyzerConfig(fix=True))
        result = await runner.run([str(workspace / "a" / "b")])

        assert result.fixed_files == [str(workspace / "a" / "b" / "b.go")]
        assert "\t}\n\n\tx++" in (workspace / "a" / "b" / "b.go").read_text()

        rerun = await AnalysisRunner(AnalyzerConfig()).run([str(workspace / "a" / "b")])
        assert rerun.diagnostics == []

    @pytest.mark.asyncio
    async def test_failing_package_does_not_stop_others(self, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        runner = AnalysisRunner(AnalyzerConfig())
        original = runner.analyzer.analyze_package

        def analyze_package(directory, targets):
            if directory.endswith("b"):
                raise RuntimeError("boom")
            return original(directory, targets)

        monkeypatch.setattr(runner.analyzer, "analyze_package", analyze_package)
        result = await runner.run([f"{workspace}/..."])

        assert result.failed_files == [str(workspace / "a" / "b" / "b.go")]
        assert {Path(d.path).name for d in result.diagnostics} == {"a.go", "a_test.go"}

    @pytest.mark.asyncio
    async def test_sink(self) -> None:
        sink = DiagnosticSink()
        await sink.extend([])
        assert sink.diagnostics == []
        assert sink.by_path() == {}

    def test_run_analysis(self, workspace: Path) -> None:
        result = run_analysis([str(workspace / "a" / "a.go")], AnalyzerConfig())
        assert [d.line for d in result.diagnostics] == [6]
