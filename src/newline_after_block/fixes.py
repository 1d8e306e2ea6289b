"""Suggested fixes: where to insert the blank line, and applying edits."""

import logging
from typing import Iterable, List

from .models import Diagnostic, SuggestedFix, TextEdit
from .source import SourceFile

logger = logging.getLogger(__name__)

FIX_MESSAGE = "Insert blank line after block statement"


def insertion_point(source: SourceFile, boundary: int) -> int:
    """Return the offset at which to insert the blank line for a boundary.

    This is the start of the line after the boundary's line, so the new
    line lands after any comment trailing the closing brace. On the last
    line it is the end of the file.
    """
    line = source.line_of(boundary)
    if line < source.line_count:
        return source.line_start(line + 1)
    return source.size


def create_diagnostic(source: SourceFile, boundary: int, message: str) -> Diagnostic:
    """Build a diagnostic anchored at a boundary, with its blank-line fix."""
    insert_at = insertion_point(source, boundary)
    return Diagnostic(
        path=source.path,
        position=boundary,
        line=source.line_of(boundary),
        column=source.column_of(boundary),
        message=message,
        suggested_fixes=[
            SuggestedFix(
                message=FIX_MESSAGE,
                edits=[TextEdit(start=insert_at, end=insert_at, new_text="\n")],
            )
        ],
    )


def apply_edits(content: bytes, edits: Iterable[TextEdit]) -> bytes:
    """Apply edits to content.

    Identical edits are applied once. Edits are applied from the end of
    the file backwards so earlier offsets stay valid.
    """
    unique: List[TextEdit] = sorted(set(edits), key=lambda e: (e.start, e.end), reverse=True)
    for edit in unique:
        content = content[: edit.start] + edit.new_text.encode("utf-8") + content[edit.end :]
    return content


def apply_fixes(source: SourceFile, diagnostics: Iterable[Diagnostic]) -> bytes:
    """Return the source content with all suggested fixes applied."""
    edits = [
        edit
        for diagnostic in diagnostics
        if diagnostic.path == source.path
        for fix in diagnostic.suggested_fixes
        for edit in fix.edits
    ]
    logger.debug(f"Applying {len(edits)} edits to {source.path}")
    return apply_edits(source.content, edits)
