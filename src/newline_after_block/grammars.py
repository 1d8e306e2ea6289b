"""Go grammar configuration and tree helpers for tree-sitter."""

import logging
from typing import Any, Iterator, List, Optional

import tree_sitter_go as tsgo
from tree_sitter import Language, Parser, Tree

logger = logging.getLogger(__name__)

GO_LANGUAGE = Language(tsgo.language())

GO_EXTENSIONS = [".go"]

# Node kinds whose body is an ordered statement sequence
BLOCK_NODE = "block"
STATEMENT_LIST_NODE = "statement_list"
COMMENT_NODE = "comment"

IF_NODE = "if_statement"
FOR_NODE = "for_statement"
RANGE_CLAUSE_NODE = "range_clause"
SWITCH_NODE = "expression_switch_statement"
TYPE_SWITCH_NODE = "type_switch_statement"
SELECT_NODE = "select_statement"
DEFER_NODE = "defer_statement"
SHORT_VAR_NODE = "short_var_declaration"
ASSIGNMENT_NODE = "assignment_statement"
VAR_DECLARATION_NODE = "var_declaration"
FUNC_LITERAL_NODE = "func_literal"

SELECTION_NODES = frozenset({SWITCH_NODE, TYPE_SWITCH_NODE, SELECT_NODE})

ARM_NODES = frozenset(
    {
        "expression_case",
        "type_case",
        "communication_case",
        "default_case",
    }
)


def create_parser() -> Parser:
    """Create a parser for Go source.

    Parsers keep per-parse state, so callers running in worker threads
    must not share one.
    """
    parser = Parser()
    parser.language = GO_LANGUAGE
    return parser


def parse_source(source: bytes, path: str = "<source>") -> Tree:
    """Parse Go source into a tree-sitter tree.

    Args:
        source: Raw file content
        path: File path, used for log messages only

    Returns:
        The parsed tree (partial if the source has syntax errors)
    """
    tree = create_parser().parse(source)
    if tree.root_node.has_error:
        logger.warning(f"Parse errors in {path}")
    return tree


def is_go_file(file_path: str) -> bool:
    return any(file_path.endswith(ext) for ext in GO_EXTENSIONS)


def node_text(node: Any) -> str:
    return node.text.decode("utf-8")


def _named_statements(children: List[Any]) -> List[Any]:
    statements = []
    for child in children:
        if child.type == STATEMENT_LIST_NODE:
            statements.extend(_named_statements(child.children))
        elif child.is_named and child.type != COMMENT_NODE:
            statements.append(child)
    return statements


def block_statements(block: Any) -> List[Any]:
    """Return the statements of a `block` node in source order.

    Newer grammar releases wrap the statements in a `statement_list`
    node, older ones put them directly under the block. Both are handled.
    """
    return _named_statements(block.children)


def arm_statements(arm: Any) -> List[Any]:
    """Return the body statements of a case/default/communication arm.

    The arm's own label (case values, types or channel operation) sits
    before the colon and is not part of the body.
    """
    children = arm.children
    for index, child in enumerate(children):
        if child.type == ":":
            return _named_statements(children[index + 1 :])
    return []


def selection_arms(node: Any) -> List[Any]:
    """Return the arms of a switch, type switch or select statement."""
    return [child for child in node.named_children if child.type in ARM_NODES]


def closing_brace(node: Any) -> Optional[Any]:
    """Return the final `}` token of a braced construct, if present."""
    if node.child_count == 0:
        return None

    last = node.children[-1]
    if last.type == "}" and not last.is_missing:
        return last
    return None


def walk(node: Any) -> Iterator[Any]:
    """Yield nodes depth-first, parents before children, in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def find_nodes_by_type(node: Any, node_types: List[str]) -> List[Any]:
    """Find all nodes of the given types below (and including) node.

    Args:
        node: Root node to search from
        node_types: List of node types to find

    Returns:
        List of matching nodes in source order
    """
    return [current for current in walk(node) if current.type in node_types]
