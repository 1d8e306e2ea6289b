"""Parsed source files: line index and comment groups."""

import bisect
import logging
from typing import Any, List, Optional

from .grammars import COMMENT_NODE, find_nodes_by_type, parse_source
from .models import CommentGroup

logger = logging.getLogger(__name__)


class SourceFile:
    """A Go file together with its syntax tree and position tables.

    Offsets are byte offsets into `content`; lines are 1-based. A newline
    that ends the file does not start another line.
    """

    def __init__(self, path: str, content: bytes, tree: Optional[Any] = None):
        self.path = path
        self.content = content
        self.tree = tree if tree is not None else parse_source(content, path)
        self.root = self.tree.root_node
        self.line_starts = self._build_line_index(content)
        self.comments = self._group_comments()
        self._comment_starts = [group.start for group in self.comments]

    @classmethod
    def from_path(cls, path: str) -> "SourceFile":
        with open(path, "rb") as f:
            content = f.read()
        return cls(path, content)

    @staticmethod
    def _build_line_index(content: bytes) -> List[int]:
        starts = [0]
        offset = content.find(b"\n")
        while offset != -1:
            if offset + 1 < len(content):
                starts.append(offset + 1)
            offset = content.find(b"\n", offset + 1)
        return starts

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    @property
    def size(self) -> int:
        return len(self.content)

    def line_of(self, offset: int) -> int:
        """Map a byte offset to its 1-based line number."""
        return bisect.bisect_right(self.line_starts, offset)

    def line_start(self, line: int) -> int:
        """Byte offset of the first character of a 1-based line."""
        return self.line_starts[line - 1]

    def column_of(self, offset: int) -> int:
        return offset - self.line_start(self.line_of(offset)) + 1

    def _has_code_before(self, offset: int) -> bool:
        line_start = self.line_start(self.line_of(offset))
        return bool(self.content[line_start:offset].strip())

    def _group_comments(self) -> List[CommentGroup]:
        """Collect comments into groups.

        A comment trailing code on its line only groups with comments on
        that same line. Otherwise comments on consecutive lines form one
        group.
        """
        groups: List[CommentGroup] = []
        trailing = False

        for node in find_nodes_by_type(self.root, [COMMENT_NODE]):
            start_line = self.line_of(node.start_byte)
            end_line = self.line_of(node.end_byte)

            if groups:
                last = groups[-1]
                limit = last.end_line if trailing else last.end_line + 1
                if start_line <= limit and not self._has_code_before(node.start_byte):
                    last.end = node.end_byte
                    last.end_line = end_line
                    continue

            trailing = self._has_code_before(node.start_byte)
            groups.append(
                CommentGroup(
                    start=node.start_byte,
                    end=node.end_byte,
                    start_line=start_line,
                    end_line=end_line,
                )
            )

        logger.debug(f"Found {len(groups)} comment groups in {self.path}")
        return groups

    def comments_after(self, offset: int) -> List[CommentGroup]:
        """Comment groups starting strictly after offset, in source order."""
        return self.comments[bisect.bisect_right(self._comment_starts, offset) :]
