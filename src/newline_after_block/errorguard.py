"""Recognition of `if <error> != nil` guards."""

from typing import Any, Optional

from .statements import Conditional, Statement
from .typeinfo import TypeInfo


def _is_error_against_nil(candidate: Any, other: Any, types: Optional[TypeInfo]) -> bool:
    if candidate.type != "identifier" or other.type != "nil":
        return False

    # Without type information the guard cannot be confirmed
    if types is None:
        return False

    return types.satisfies_error(types.type_of(candidate))


def is_error_guard(stmt: Statement, types: Optional[TypeInfo]) -> bool:
    """Check whether a statement is a conditional of the form `x != nil`
    where x's static type implements `error`.

    The variable name does not matter, and operands may appear in either
    order. Only a bare binary comparison qualifies; a parenthesized
    condition does not.

    Args:
        stmt: Classified statement
        types: Type information for the file, or None if unavailable

    Returns:
        True if the statement is an error guard
    """
    if not isinstance(stmt, Conditional):
        return False

    condition = stmt.node.child_by_field_name("condition")
    if condition is None or condition.type != "binary_expression":
        return False

    operator = condition.child_by_field_name("operator")
    if operator is None or operator.type != "!=":
        return False

    left = condition.child_by_field_name("left")
    right = condition.child_by_field_name("right")
    if left is None or right is None:
        return False

    return _is_error_against_nil(left, right, types) or _is_error_against_nil(right, left, types)
