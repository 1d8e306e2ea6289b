"""Pytest fixtures for newline-after-block tests."""

from pathlib import Path
from typing import Callable, List

import pytest

from newline_after_block.analyzer import BlockSpacingAnalyzer, analyze_source
from newline_after_block.config import AnalyzerConfig
from newline_after_block.loader import PackageLoader
from newline_after_block.models import Diagnostic

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def testdata() -> Path:
    """Root of the Go fixture tree."""
    return TESTDATA


@pytest.fixture
def goroot() -> str:
    """Miniature GOROOT holding the standard library signatures fixtures use."""
    return str(TESTDATA / "goroot")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of configuration defaults."""
    for name in ("GOROOT", "NLAB_EXCLUDE", "NLAB_MAX_CONCURRENT", "NLAB_FOLLOW_GITIGNORE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def loader(goroot: str) -> PackageLoader:
    return PackageLoader(goroot)


@pytest.fixture
def analyzer(goroot: str) -> BlockSpacingAnalyzer:
    config = AnalyzerConfig(goroot=goroot)
    return BlockSpacingAnalyzer(config, PackageLoader(goroot))


@pytest.fixture
def analyze(loader: PackageLoader) -> Callable[[str], List[Diagnostic]]:
    """Analyze a Go snippet as a single-file package."""

    def _analyze(code: str) -> List[Diagnostic]:
        return analyze_source(code.encode("utf-8"), "snippet.go", loader)

    return _analyze


@pytest.fixture
def go_package(tmp_path: Path) -> Callable[..., Path]:
    """Write Go files into a fresh package directory."""

    def _write(files: dict, name: str = "pkg") -> Path:
        package_dir = tmp_path / name
        package_dir.mkdir(parents=True, exist_ok=True)
        for filename, content in files.items():
            (package_dir / filename).write_text(content)
        return package_dir

    return _write
