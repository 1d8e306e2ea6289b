"""Golden tests: fixtures annotated with `// want "message"` comments."""

import re
from collections import Counter
from pathlib import Path

import pytest

from newline_after_block.analyzer import BlockSpacingAnalyzer
from newline_after_block.config import AnalyzerConfig
from newline_after_block.exclude import ExcludePatterns
from newline_after_block.loader import PackageLoader

WANT_PATTERN = re.compile(r'//\s*want\s+((?:"[^"]*"\s*)+)$')
MESSAGE_PATTERN = re.compile(r'"([^"]*)"')


def expected_diagnostics(package_dir: Path, skip: tuple = ()) -> Counter:
    expected = Counter()
    for go_file in sorted(package_dir.glob("*.go")):
        if go_file.name in skip:
            continue

        for line_number, line in enumerate(go_file.read_text().splitlines(), start=1):
            match = WANT_PATTERN.search(line)
            if match is None:
                continue
            for message in MESSAGE_PATTERN.findall(match.group(1)):
                expected[(go_file.name, line_number, message)] += 1
    return expected


def run_package(package_dir: Path, goroot: str, exclude: tuple = ()) -> Counter:
    config = AnalyzerConfig(exclude=ExcludePatterns(exclude), goroot=goroot)
    analyzer = BlockSpacingAnalyzer(config, PackageLoader(goroot))

    packages, _ = analyzer.collect_packages([str(package_dir)])
    reported = Counter()
    for directory, targets in packages.items():
        diagnostics, failed = analyzer.analyze_package(directory, targets)
        assert failed == []
        for diagnostic in diagnostics:
            reported[(Path(diagnostic.path).name, diagnostic.line, diagnostic.message)] += 1
    return reported


class TestGoldenPackages:
    """Each fixture package reports exactly what its annotations expect."""

    @pytest.mark.parametrize(
        "package",
        ["blockstatements", "caseclauses", "comments", "deferpattern", "structliterals"],
    )
    def test_package(self, testdata: Path, goroot: str, package: str) -> None:
        package_dir = testdata / "src" / package
        exclude = (r"_excluded\.go$",) if package == "blockstatements" else ()

        expected = expected_diagnostics(package_dir)
        reported = run_package(package_dir, goroot, exclude)

        assert expected, f"fixture {package} has no annotations"
        assert reported == expected

    def test_excluded_file_reports_when_not_excluded(self, testdata: Path, goroot: str) -> None:
        package_dir = testdata / "src" / "blockstatements"
        reported = run_package(package_dir, goroot)

        excluded = [key for key in reported if key[0] == "blockstatements_excluded.go"]
        assert excluded

    def test_structliterals_without_type_information(self, testdata: Path) -> None:
        # Nothing in this package depends on resolving imports
        package_dir = testdata / "src" / "structliterals"
        assert run_package(package_dir, goroot=None) == expected_diagnostics(package_dir)

    def test_error_guards_need_type_information(self, testdata: Path) -> None:
        package_dir = testdata / "src" / "deferpattern"
        with_types = expected_diagnostics(package_dir)
        without_types = run_package(package_dir, goroot=None)

        # os.Open cannot be resolved, so those guards are no longer exempt
        assert sum(without_types.values()) > sum(with_types.values())
