"""
Scope Serialization — JSON conversion for scope trees and messages.

Keeps to json and the scope types so the worker process can serialize
responses without pulling in anything heavier.

Usage:
    from outerscope.parser.scope_serde import scope_to_dict, serialize_message
"""

import json
from typing import Any, Dict, Union

from outerscope.scope import Scope


def scope_to_dict(scope: Scope) -> Dict[str, Any]:
    """
    Convert a scope tree to a plain dict.

    Only the shape of the tree travels: ranges, declared names and
    children. Occurrences are already in the response's token lists.
    """
    return {
        "range": list(scope.range),
        "declarations": sorted(scope.declarations),
        "functions": sorted(scope.functions),
        "children": [scope_to_dict(child) for child in scope.children],
    }


def count_scopes(scope_dict: Dict[str, Any]) -> int:
    """Count scopes in a serialized scope tree."""
    return 1 + sum(count_scopes(child) for child in scope_dict.get("children", []))


def serialize_message(message: Dict[str, Any]) -> str:
    """Serialize a protocol message to a single compact JSON line."""
    return json.dumps(message, separators=(",", ":"))


def deserialize_message(data: Union[bytes, str]) -> Dict[str, Any]:
    """Deserialize a protocol message from JSON bytes or string."""
    if isinstance(data, bytes):
        return json.loads(data.decode("utf-8"))
    return json.loads(data)
