"""File exclusion by regular expression."""

import logging
import os
import re
from typing import Iterable, List, Optional, Pattern

from .exceptions import InvalidPatternError

logger = logging.getLogger(__name__)


class ExcludePatterns:
    """An ordered list of regular expressions matched against file paths."""

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self._compiled: List[Pattern[str]] = []
        self.raw: List[str] = []
        for pattern in patterns or []:
            self.add(pattern)

    def __str__(self) -> str:
        return ",".join(self.raw)

    def __len__(self) -> int:
        return len(self.raw)

    def add(self, pattern: str) -> None:
        """Validate and append a pattern.

        Raises:
            InvalidPatternError: If the pattern does not compile
        """
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise InvalidPatternError(pattern, str(e)) from e

        self._compiled.append(compiled)
        self.raw.append(pattern)

    def matches(self, path: str) -> bool:
        """Check if any pattern occurs anywhere in path."""
        return any(regex.search(path) for regex in self._compiled)

    def should_skip(self, file_path: str, working_dir: Optional[str] = None) -> bool:
        """Decide whether a file is excluded, matching its path relative to
        the working directory when one can be computed.

        Args:
            file_path: Path of the file as discovered
            working_dir: Base directory (defaults to the current directory)

        Returns:
            True if the file must not be analyzed
        """
        if not self._compiled:
            return False

        try:
            relative = os.path.relpath(file_path, working_dir or os.getcwd())
        except ValueError:
            relative = file_path

        if self.matches(relative):
            logger.debug(f"Excluding {relative} (patterns: {self})")
            return True
        return False
