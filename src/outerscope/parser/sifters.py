"""
Sifters: aggregate scope-tree occurrences into hint indexes.
"""

from typing import Callable, Dict, Iterable, List

from outerscope.hints import Token, make_token
from outerscope.scope import Scope


AssociationTable = Dict[str, Dict[str, int]]


def sift_positions(scope: Scope, walk: Callable[[Scope], Iterable], key: str) -> List[Token]:
    """
    Walk the scope to find all occurrences of one kind, grouped by key.

    Args:
        scope: root of the scope tree
        walk: an unbound traversal, e.g. ``Scope.walk_down_identifiers``
        key: record attribute to group by ("name" or "value")

    Returns:
        One token per distinct key with ascending start offsets. Token order
        is unspecified.
    """
    occurrences: Dict[object, List[int]] = {}
    for record in walk(scope):
        occurrences.setdefault(getattr(record, key), []).append(record.range[0])

    return [make_token(value, sorted(positions)) for value, positions in occurrences.items()]


def sift_associations(scope: Scope) -> AssociationTable:
    """Count how often each property is accessed on each named object."""
    table: AssociationTable = {}
    for assoc in scope.walk_down_associations():
        props = table.setdefault(assoc.object.name, {})
        props[assoc.property.name] = props.get(assoc.property.name, 0) + 1
    return table
