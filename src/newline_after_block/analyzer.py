"""Tree walking and per-package analysis."""

import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import AnalyzerConfig
from .grammars import (
    ARM_NODES,
    BLOCK_NODE,
    SELECTION_NODES,
    arm_statements,
    block_statements,
    is_go_file,
    selection_arms,
    walk,
)
from .loader import PackageLoader, package_name
from .models import Diagnostic
from .scanner import AdjacencyScanner
from .source import SourceFile
from .typeinfo import PackageInfo, TypeInfo, TypeResolver

logger = logging.getLogger(__name__)

# Directories the go tool ignores when expanding `./...`
IGNORED_DIRS = {"vendor", "testdata", "node_modules"}


def inspect_file(source: SourceFile, types: Optional[TypeInfo] = None) -> List[Diagnostic]:
    """Run every spacing check over one parsed file.

    Bodies are visited parents first, in source order, so diagnostics come
    out in traversal order.

    Args:
        source: Parsed file
        types: Type information for error-guard detection (optional)

    Returns:
        Diagnostics for the file
    """
    scanner = AdjacencyScanner(source, types)

    for node in walk(source.root):
        if node.type == BLOCK_NODE:
            scanner.scan_statements(block_statements(node))

        elif node.type in ARM_NODES:
            scanner.scan_statements(arm_statements(node))

        elif node.type in SELECTION_NODES:
            scanner.scan_arms(selection_arms(node))

    return scanner.diagnostics


def analyze_source(content: bytes, path: str = "<source>", loader: Optional[PackageLoader] = None) -> List[Diagnostic]:
    """Analyze a single file's content as a package of its own."""
    source = SourceFile(path, content)
    package = PackageInfo.from_sources(str(Path(path).parent), package_name(source) or "", [source])
    resolver = TypeResolver(loader)
    return inspect_file(source, TypeInfo(resolver, package.scopes[path]))


class BlockSpacingAnalyzer:
    """Finds Go packages and analyzes them."""

    def __init__(self, config: Optional[AnalyzerConfig] = None, loader: Optional[PackageLoader] = None):
        """Initialize analyzer.

        Args:
            config: Run configuration (defaults read from the environment)
            loader: Package loader shared by all packages of the run
        """
        self.config = config or AnalyzerConfig.from_env()
        self.loader = loader or PackageLoader(self.config.goroot)
        self.resolver = TypeResolver(self.loader)

    def analyze_package(self, directory: str, targets: List[str]) -> Tuple[List[Diagnostic], List[str]]:
        """Analyze target files of one directory.

        Every Go file of the directory is parsed, so that declarations in
        files that are not targets still resolve.

        Args:
            directory: Package directory
            targets: Files of the directory to report on

        Returns:
            (diagnostics, files that could not be read)
        """
        target_set = {os.path.abspath(t) for t in targets}
        sources: List[SourceFile] = []
        failed: List[str] = []

        for file_path in self._directory_files(directory, targets):
            try:
                sources.append(SourceFile.from_path(file_path))
            except OSError as e:
                logger.error(f"Error reading file {file_path}: {e}")
                if os.path.abspath(file_path) in target_set:
                    failed.append(file_path)

        # A directory may hold a package and its external _test package
        by_package: Dict[Optional[str], List[SourceFile]] = defaultdict(list)
        for source in sources:
            by_package[package_name(source)].append(source)

        diagnostics: List[Diagnostic] = []
        for name, members in by_package.items():
            package = PackageInfo.from_sources(directory, name or "", members)
            for source in members:
                if os.path.abspath(source.path) not in target_set:
                    continue

                types = TypeInfo(self.resolver, package.scopes[source.path])
                found = inspect_file(source, types)
                logger.info(f"Analyzed {source.path}: {len(found)} diagnostics")
                diagnostics.extend(found)

        return diagnostics, failed

    @staticmethod
    def _directory_files(directory: str, targets: List[str]) -> List[str]:
        files = [str(p) for p in sorted(Path(directory).glob("*.go")) if p.is_file()]
        known = {os.path.abspath(f) for f in files}
        # Explicit targets may live elsewhere or lack the .go suffix
        files.extend(t for t in targets if os.path.abspath(t) not in known)
        return files

    def collect_packages(self, paths: List[str]) -> Tuple[Dict[str, List[str]], List[str]]:
        """Expand command-line paths into target files grouped by directory.

        Args:
            paths: Files, directories, or `dir/...` for a recursive walk

        Returns:
            (directory -> target files, excluded files)
        """
        packages: Dict[str, List[str]] = defaultdict(list)
        skipped: List[str] = []

        for raw in paths:
            for file_path in self._expand(raw):
                if self.config.exclude.should_skip(file_path):
                    skipped.append(file_path)
                    continue

                directory = str(Path(file_path).parent)
                if file_path not in packages[directory]:
                    packages[directory].append(file_path)

        logger.info(
            f"Found {sum(len(f) for f in packages.values())} files in {len(packages)} packages "
            f"({len(skipped)} excluded)"
        )
        return dict(packages), skipped

    def _expand(self, raw: str) -> List[str]:
        if raw == "..." or raw.endswith("/..."):
            root = raw[: -len("...")].rstrip("/") or "."
            return self._walk_directory(root)

        path = Path(raw)
        if path.is_dir():
            return [str(p) for p in sorted(path.glob("*.go")) if p.is_file()]

        if not path.exists():
            raise FileNotFoundError(f"Input path does not exist: {raw}")
        return [raw]

    def _walk_directory(self, root: str) -> List[str]:
        """Recursively list Go files below root.

        Skips vendor and testdata directories, directories starting with
        `.` or `_`, and (when enabled) files matched by root's .gitignore.
        """
        root_path = Path(root)
        if not root_path.is_dir():
            raise FileNotFoundError(f"Input path does not exist: {root}")

        gitignore_matcher = None
        if self.config.follow_gitignore:
            gitignore_path = root_path / ".gitignore"
            if gitignore_path.exists():
                from gitignore_parser import parse_gitignore

                try:
                    gitignore_matcher = parse_gitignore(gitignore_path)
                    logger.info(f"Loaded .gitignore from {gitignore_path}")
                except Exception as e:
                    logger.warning(f"Error parsing .gitignore: {e}")

        files = []
        for directory, dirnames, filenames in os.walk(root_path):
            dirnames[:] = sorted(
                d for d in dirnames if d not in IGNORED_DIRS and not d.startswith((".", "_"))
            )
            for filename in sorted(filenames):
                if not is_go_file(filename):
                    continue

                file_path = os.path.join(directory, filename)
                if gitignore_matcher and gitignore_matcher(os.path.abspath(file_path)):
                    continue
                files.append(file_path)
        return files
