"""
Filter Operators — Predicate Evaluation for StructuredQuery Filters
===================================================================

OPERATOR SEMANTICS
------------------
    =    strings: case-insensitive substring containment
         numbers: equality
         mappings (reward_structure): some key contains the value
    ==   strings: case-insensitive equality
         numbers: equality
         mappings: some key equals the value
    > < >= <=
         numbers: numeric comparison (numeric strings are coerced)
         strings: case-insensitive lexicographic comparison, which orders
                  ISO dates correctly

A missing (None) field value satisfies only ``== None``.  Type mismatches
(a string compared against a number with ">") evaluate to False, never raise.

FilterGroup nodes are evaluated recursively: OR → any, AND → all.
"""

import logging
import operator as _op
from typing import Any, Mapping, Union

from card_record import CardRecord, to_number
from query_decomposer import FilterClause, FilterGroup

logger = logging.getLogger(__name__)


_ORDERING = {
    ">": _op.gt,
    "<": _op.lt,
    ">=": _op.ge,
    "<=": _op.le,
}


def _casefold(value: Any) -> str:
    return str(value).strip().casefold()


def _compare_mapping(mapping: Mapping, operator: str, target: Any) -> bool:
    if target is None:
        return False
    needle = _casefold(target)
    if operator == "=":
        return any(needle in _casefold(key) for key in mapping)
    if operator == "==":
        return any(needle == _casefold(key) for key in mapping)
    return False


def evaluate(value: Any, operator: str, target: Any) -> bool:
    """Apply one operator to a field value; False on any type mismatch."""
    if value is None:
        return operator == "==" and target is None
    if target is None:
        return False

    if isinstance(value, Mapping):
        return _compare_mapping(value, operator, target)

    if isinstance(value, bool) or isinstance(target, bool):
        if operator in ("=", "==") and isinstance(value, bool) and isinstance(target, bool):
            return value == target
        return False

    left, right = to_number(value), to_number(target)
    if left is not None and right is not None:
        if operator in ("=", "=="):
            return left == right
        compare = _ORDERING.get(operator)
        return bool(compare and compare(left, right))

    left_text, right_text = _casefold(value), _casefold(target)
    if operator == "=":
        return right_text in left_text
    if operator == "==":
        return left_text == right_text
    if isinstance(value, str) and isinstance(target, str):
        compare = _ORDERING.get(operator)
        return bool(compare and compare(left_text, right_text))
    return False


def matches(node: Union[FilterClause, FilterGroup], record: CardRecord) -> bool:
    """True when ``record`` satisfies a clause or a boolean group."""
    if isinstance(node, FilterGroup):
        results = (matches(child, record) for child in node.clauses)
        if node.logic == "OR":
            return any(results)
        return all(results)
    return evaluate(record.get(node.field), node.operator, node.value)
