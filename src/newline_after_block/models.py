"""Data models for block spacing analysis."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class TextEdit:
    """A replacement of the byte range [start, end) with new_text."""

    start: int
    end: int
    new_text: str


@dataclass(frozen=True)
class SuggestedFix:
    """A human-readable description plus the edits that implement it."""

    message: str
    edits: List[TextEdit]


@dataclass
class Diagnostic:
    """Represents a single spacing violation."""

    path: str
    position: int  # byte offset just past the flagged closing delimiter
    line: int  # 1-based
    column: int  # 1-based, in bytes
    message: str
    suggested_fixes: List[SuggestedFix] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Render the diagnostic the way `go vet -json` does."""
        return {
            "posn": f"{self.path}:{self.line}:{self.column}",
            "message": self.message,
            "suggested_fixes": [
                {
                    "message": fix.message,
                    "edits": [
                        {"start": edit.start, "end": edit.end, "new": edit.new_text}
                        for edit in fix.edits
                    ],
                }
                for fix in self.suggested_fixes
            ],
        }


@dataclass
class CommentGroup:
    """A contiguous run of comments, positioned by byte offset."""

    start: int
    end: int
    start_line: int
    end_line: int


@dataclass
class AnalysisResult:
    """Outcome of one analysis run."""

    diagnostics: List[Diagnostic] = field(default_factory=list)
    analyzed_files: List[str] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)
    fixed_files: List[str] = field(default_factory=list)
