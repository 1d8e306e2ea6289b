"""Blank-line adjacency scanning for statement sequences and case arms."""

import logging
from typing import Any, List, Optional

from .errorguard import is_error_guard
from .fixes import create_diagnostic
from .grammars import arm_statements
from .models import Diagnostic
from .source import SourceFile
from .statements import block_end, classify, is_deferred_call, needs_trailing_blank
from .typeinfo import TypeInfo

logger = logging.getLogger(__name__)

BLOCK_MESSAGE = "missing newline after block statement"
CASE_MESSAGE = "missing newline after case block"


class AdjacencyScanner:
    """Checks that block statements are followed by a blank line.

    One scanner is created per file; it appends to `diagnostics` in the
    order the bodies are scanned.
    """

    def __init__(self, source: SourceFile, types: Optional[TypeInfo] = None):
        """Initialize scanner.

        Args:
            source: Parsed file with line index and comment groups
            types: Type information for error-guard detection
        """
        self.source = source
        self.types = types
        self.diagnostics: List[Diagnostic] = []

    def _report(self, boundary: int, message: str) -> None:
        diagnostic = create_diagnostic(self.source, boundary, message)
        logger.debug(f"{self.source.path}:{diagnostic.line}: {message}")
        self.diagnostics.append(diagnostic)

    def _first_comment_between(self, boundary: int, limit: Optional[int], boundary_line: int) -> Optional[int]:
        """Line of the first comment after boundary that does not share its line.

        Comments on the boundary's own line trail the closing brace and are
        passed over. Only comments starting before limit count.
        """
        for group in self.source.comments_after(boundary):
            if limit is not None and group.start >= limit:
                return None
            if group.start_line == boundary_line:
                continue
            return group.start_line
        return None

    def _check_gap(self, boundary: int, limit: Optional[int], message: str, followed: bool = True) -> None:
        """Report boundary if the next comment, or the code at limit, follows
        without a blank line.

        Args:
            boundary: Offset just past the closing delimiter
            limit: Start of the next statement or arm (None: no bound)
            message: Diagnostic message
            followed: False when nothing follows in the body, so only
                comments are considered
        """
        boundary_line = self.source.line_of(boundary)
        comment_line = self._first_comment_between(boundary, limit, boundary_line)

        if comment_line is not None:
            if comment_line == boundary_line + 1:
                self._report(boundary, message)
            return

        if followed and limit is not None and self.source.line_of(limit) == boundary_line + 1:
            self._report(boundary, message)

    def scan_statements(self, statements: List[Any]) -> None:
        """Check every adjacent pair of a compound body, then its last statement.

        The last statement is checked against the first comment after it,
        wherever that comment sits.
        """
        classified = [classify(node) for node in statements]

        for current, following in zip(classified, classified[1:]):
            if is_deferred_call(following):
                # Cleanup may sit directly under the error check it belongs to,
                # and a run of defers is one unit
                if is_deferred_call(current) or is_error_guard(current, self.types):
                    continue

            if not needs_trailing_blank(current):
                continue

            boundary = block_end(current)
            if boundary is None:
                continue

            self._check_gap(boundary, following.node.start_byte, BLOCK_MESSAGE)

        if classified:
            self._check_last_statement(classified[-1])

    def _check_last_statement(self, last: Any) -> None:
        if not needs_trailing_blank(last):
            return

        boundary = block_end(last)
        if boundary is None:
            return

        self._check_gap(boundary, None, BLOCK_MESSAGE, followed=False)

    def scan_arms(self, arms: List[Any]) -> None:
        """Check that each non-empty arm but the last is followed by a blank line."""
        for current, following in zip(arms, arms[1:]):
            body = arm_statements(current)
            if not body:
                continue

            self._check_gap(body[-1].end_byte, following.start_byte, CASE_MESSAGE)
