"""Statement classification and block boundary resolution.

Every statement node is mapped onto exactly one variant below. The
variants carry only what the spacing rules need: the node itself, its
body (or the construct whose closing brace ends it) and, for
conditionals, the alternative branch.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from .grammars import (
    ASSIGNMENT_NODE,
    DEFER_NODE,
    FOR_NODE,
    FUNC_LITERAL_NODE,
    IF_NODE,
    RANGE_CLAUSE_NODE,
    SELECT_NODE,
    SHORT_VAR_NODE,
    SWITCH_NODE,
    TYPE_SWITCH_NODE,
    VAR_DECLARATION_NODE,
    closing_brace,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conditional:
    node: Any
    consequence: Optional[Any]
    alternative: Optional[Any]  # block or nested if_statement


@dataclass(frozen=True)
class CountingLoop:
    node: Any
    body: Optional[Any]


@dataclass(frozen=True)
class IteratingLoop:
    node: Any
    body: Optional[Any]


@dataclass(frozen=True)
class Switch:
    node: Any


@dataclass(frozen=True)
class TypeSwitch:
    node: Any


@dataclass(frozen=True)
class Selection:
    node: Any


@dataclass(frozen=True)
class DeferredCall:
    node: Any


@dataclass(frozen=True)
class Assignment:
    node: Any
    function_value: Optional[Any]  # func_literal on the right-hand side


@dataclass(frozen=True)
class Declaration:
    node: Any
    function_value: Optional[Any]


@dataclass(frozen=True)
class Other:
    node: Any


Statement = Union[
    Conditional,
    CountingLoop,
    IteratingLoop,
    Switch,
    TypeSwitch,
    Selection,
    DeferredCall,
    Assignment,
    Declaration,
    Other,
]


def extract_function_value(expr: Any) -> Optional[Any]:
    """Return expr if it is a function literal that is not invoked in place.

    `func() {}()` parses as a call expression and ends with `)`, not with
    the literal's closing brace, so it never qualifies. Neither does a
    parenthesized literal.
    """
    if expr.type == FUNC_LITERAL_NODE:
        return expr
    return None


def _first_function_value(expressions: List[Any]) -> Optional[Any]:
    for expr in expressions:
        literal = extract_function_value(expr)
        if literal is not None:
            return literal
    return None


def _assignment_function_value(node: Any) -> Optional[Any]:
    right = node.child_by_field_name("right")
    if right is None:
        return None
    return _first_function_value(right.named_children)


def _var_specs(node: Any) -> List[Any]:
    specs = []
    for child in node.named_children:
        if child.type == "var_spec":
            specs.append(child)
        elif child.type == "var_spec_list":
            specs.extend(c for c in child.named_children if c.type == "var_spec")
    return specs


def _declaration_function_value(node: Any) -> Optional[Any]:
    for spec in _var_specs(node):
        value = spec.child_by_field_name("value")
        if value is None:
            continue

        literal = _first_function_value(value.named_children)
        if literal is not None:
            return literal
    return None


def _is_range_loop(node: Any) -> bool:
    return any(child.type == RANGE_CLAUSE_NODE for child in node.named_children)


def classify(node: Any) -> Statement:
    """Map a statement node onto its variant."""
    kind = node.type

    if kind == IF_NODE:
        return Conditional(
            node=node,
            consequence=node.child_by_field_name("consequence"),
            alternative=node.child_by_field_name("alternative"),
        )

    if kind == FOR_NODE:
        body = node.child_by_field_name("body")
        if _is_range_loop(node):
            return IteratingLoop(node=node, body=body)
        return CountingLoop(node=node, body=body)

    if kind == SWITCH_NODE:
        return Switch(node=node)

    if kind == TYPE_SWITCH_NODE:
        return TypeSwitch(node=node)

    if kind == SELECT_NODE:
        return Selection(node=node)

    if kind == DEFER_NODE:
        return DeferredCall(node=node)

    if kind in (SHORT_VAR_NODE, ASSIGNMENT_NODE):
        return Assignment(node=node, function_value=_assignment_function_value(node))

    if kind == VAR_DECLARATION_NODE:
        return Declaration(node=node, function_value=_declaration_function_value(node))

    return Other(node=node)


def is_deferred_call(stmt: Statement) -> bool:
    return isinstance(stmt, DeferredCall)


def needs_trailing_blank(stmt: Statement) -> bool:
    """Decide whether a statement must be followed by a blank line.

    Composite literals fall under Assignment/Declaration/Other and never
    qualify. The consecutive-defer and error-guard exceptions are applied
    by the scanner, not here.
    """
    if isinstance(
        stmt,
        (Conditional, CountingLoop, IteratingLoop, Switch, TypeSwitch, Selection, DeferredCall),
    ):
        return True

    if isinstance(stmt, (Assignment, Declaration)):
        return stmt.function_value is not None

    return False


def _alternative_end(node: Any) -> Optional[int]:
    if node.type == IF_NODE:
        return block_end(classify(node))
    return node.end_byte


def block_end(stmt: Statement) -> Optional[int]:
    """Return the byte offset just past the statement's closing delimiter.

    For an if/else-if/else chain this is the closing brace of the final
    branch. Returns None when no boundary can be resolved; callers skip
    the statement.
    """
    if isinstance(stmt, Conditional):
        if stmt.alternative is not None:
            return _alternative_end(stmt.alternative)
        if stmt.consequence is not None:
            return stmt.consequence.end_byte
        return None

    if isinstance(stmt, (CountingLoop, IteratingLoop)):
        return stmt.body.end_byte if stmt.body is not None else None

    if isinstance(stmt, (Switch, TypeSwitch, Selection)):
        brace = closing_brace(stmt.node)
        return brace.end_byte if brace is not None else None

    if isinstance(stmt, (Assignment, Declaration)):
        if stmt.function_value is None:
            return None

        body = stmt.function_value.child_by_field_name("body")
        return body.end_byte if body is not None else None

    if isinstance(stmt, DeferredCall):
        return stmt.node.end_byte

    return None
