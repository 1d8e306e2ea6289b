"""Locating and indexing Go packages for type resolution."""

import logging
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .grammars import is_go_file, node_text
from .source import SourceFile
from .typeinfo import PackageInfo

logger = logging.getLogger(__name__)


def package_name(source: SourceFile) -> Optional[str]:
    """Read the name from a file's package clause."""
    for node in source.root.named_children:
        if node.type == "package_clause":
            for child in node.named_children:
                if child.type == "package_identifier":
                    return node_text(child)
    return None


def find_module(directory: str) -> Optional[Tuple[str, Path]]:
    """Find the module enclosing a directory.

    Args:
        directory: Directory to start searching from

    Returns:
        (module path, module root) or None outside of a module
    """
    current = Path(directory).resolve()
    for candidate in [current, *current.parents]:
        go_mod = candidate / "go.mod"
        if not go_mod.is_file():
            continue

        with open(go_mod, "r") as f:
            for line in f:
                parts = line.split()
                if len(parts) >= 2 and parts[0] == "module":
                    return parts[1].strip('"'), candidate
        return None
    return None


class PackageLoader:
    """Loads imported packages on demand and caches them for one run."""

    def __init__(self, goroot: Optional[str] = None):
        """Initialize package loader.

        Args:
            goroot: Go installation root; standard library imports are
                looked up under its `src` directory
        """
        self.goroot = Path(goroot) if goroot else None
        self._packages: Dict[str, Optional[PackageInfo]] = {}
        self._lock = threading.RLock()

    def locate(self, import_path: str, from_dir: str) -> Optional[Path]:
        """Map an import path to a directory on disk.

        Args:
            import_path: Import path as written in the import spec
            from_dir: Directory of the importing package

        Returns:
            Package directory or None if it cannot be found
        """
        if self.goroot is not None:
            candidate = self.goroot / "src" / import_path
            if candidate.is_dir():
                return candidate

        module = find_module(from_dir)
        if module is not None:
            module_path, root = module
            if import_path == module_path:
                return root
            if import_path.startswith(module_path + "/"):
                candidate = root / import_path[len(module_path) + 1 :]
                if candidate.is_dir():
                    return candidate

            candidate = root / "vendor" / import_path
            if candidate.is_dir():
                return candidate

        return None

    def load_import(self, import_path: str, from_dir: str) -> Optional[PackageInfo]:
        directory = self.locate(import_path, from_dir)
        if directory is None:
            logger.debug(f"Cannot locate package {import_path} imported from {from_dir}")
            return None
        return self.load_directory(str(directory))

    def load_directory(self, directory: str) -> Optional[PackageInfo]:
        """Parse and index the non-test files of a package directory."""
        key = str(Path(directory).resolve())
        with self._lock:
            if key in self._packages:
                return self._packages[key]

            package = self._index_directory(key)
            self._packages[key] = package
            return package

    def _index_directory(self, directory: str) -> Optional[PackageInfo]:
        sources: List[SourceFile] = []
        for file_path in sorted(Path(directory).iterdir()):
            if not file_path.is_file() or not is_go_file(file_path.name):
                continue
            if file_path.name.endswith("_test.go"):
                continue

            try:
                sources.append(SourceFile.from_path(str(file_path)))
            except OSError as e:
                logger.warning(f"Error reading {file_path}: {e}")

        names = Counter(package_name(source) for source in sources)
        names.pop(None, None)
        if len(names) > 1:
            names.pop("main", None)
        if not names:
            logger.warning(f"No Go package found in {directory}")
            return None

        name = names.most_common(1)[0][0]
        members = [source for source in sources if package_name(source) == name]
        logger.debug(f"Loaded package {name} from {directory} ({len(members)} files)")
        return PackageInfo.from_sources(directory, name, members)
