"""
Lexical Scope Tree

Builds nested scopes from an esprima syntax tree. The program is the root
scope; every function (declaration, expression or arrow) and every catch
clause opens a child scope. Each scope records the identifier, property and
literal occurrences found directly inside it, plus ``object.property``
associations, and exposes depth-first generators over itself and all of its
descendants.

Block scoping of ``let``/``const`` is not modeled; declarations land in the
nearest function-level scope.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class NameOccurrence:
    """An identifier or property name at a source range."""
    name: str
    range: Tuple[int, int]


@dataclass(frozen=True)
class LiteralOccurrence:
    """A string or numeric literal at a source range."""
    value: Union[str, int, float]
    range: Tuple[int, int]


@dataclass(frozen=True)
class Association:
    """An ``object.property`` access where both sides are plain names."""
    object: NameOccurrence
    property: NameOccurrence


# Node types that open a new scope
FUNCTION_TYPES = frozenset({
    "FunctionDeclaration",
    "FunctionExpression",
    "ArrowFunctionExpression",
})

# Node attributes that never hold child syntax
_SKIP_KEYS = frozenset({
    "type", "range", "loc", "leadingComments", "trailingComments",
    "innerComments", "comments", "errors", "tokens",
})


def _is_node(value: Any) -> bool:
    return isinstance(getattr(value, "type", None), str)


def _range_of(node) -> Optional[Tuple[int, int]]:
    r = getattr(node, "range", None)
    if not r:
        return None
    return (r[0], r[1])


class Scope:
    """
    A lexical scope and everything that occurs directly inside it.

    Usage:
        tree = esprima.parseScript(text, range=True)
        scope = Scope(tree)
        names = [occ.name for occ in scope.walk_down_identifiers()]
    """

    def __init__(self, tree, parent: Optional["Scope"] = None):
        self.parent = parent
        self.children: List[Scope] = []
        self.range: Tuple[int, int] = _range_of(tree) or (0, 0)

        self.declarations: Dict[str, NameOccurrence] = {}
        self.functions: Dict[str, NameOccurrence] = {}
        self.identifiers: List[NameOccurrence] = []
        self.properties: List[NameOccurrence] = []
        self.literals: List[LiteralOccurrence] = []
        self.associations: List[Association] = []

        self._build(tree)

    def __repr__(self):
        return f"Scope({self.range[0]}-{self.range[1]}, {len(self.children)} children)"

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def _walk_down(self, attr: str) -> Iterator[Any]:
        yield from getattr(self, attr)
        for child in self.children:
            yield from child._walk_down(attr)

    def walk_down_identifiers(self) -> Iterator[NameOccurrence]:
        """Identifier occurrences in this scope and all nested scopes."""
        return self._walk_down("identifiers")

    def walk_down_properties(self) -> Iterator[NameOccurrence]:
        """Property-name occurrences in this scope and all nested scopes."""
        return self._walk_down("properties")

    def walk_down_literals(self) -> Iterator[LiteralOccurrence]:
        """Literal occurrences in this scope and all nested scopes."""
        return self._walk_down("literals")

    def walk_down_associations(self) -> Iterator[Association]:
        """Object/property associations in this scope and all nested scopes."""
        return self._walk_down("associations")

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _build(self, tree) -> None:
        node_type = tree.type
        if node_type in FUNCTION_TYPES:
            # A function declaration's name belongs to the enclosing scope
            if node_type != "FunctionDeclaration" and getattr(tree, "id", None) is not None:
                self._declare_pattern(tree.id)
            for param in getattr(tree, "params", None) or []:
                self._declare_pattern(param)
            self._visit(tree.body)
        elif node_type == "CatchClause":
            if getattr(tree, "param", None) is not None:
                self._declare_pattern(tree.param)
            self._visit(tree.body)
        else:
            self._visit_children(tree)

    def _spawn(self, tree) -> None:
        self.children.append(Scope(tree, parent=self))

    def _add_identifier(self, node) -> Optional[NameOccurrence]:
        rng = _range_of(node)
        if rng is None or not isinstance(node.name, str):
            return None
        occ = NameOccurrence(node.name, rng)
        self.identifiers.append(occ)
        return occ

    def _add_property(self, node) -> Optional[NameOccurrence]:
        rng = _range_of(node)
        if rng is None or not isinstance(node.name, str):
            return None
        occ = NameOccurrence(node.name, rng)
        self.properties.append(occ)
        return occ

    def _add_literal(self, node) -> None:
        rng = _range_of(node)
        value = node.value
        if rng is None or isinstance(value, bool):
            return
        # JSON has no spelling for overflowed numbers such as 1e999
        if isinstance(value, float) and not math.isfinite(value):
            return
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, (str, int, float)):
            self.literals.append(LiteralOccurrence(value, rng))

    def _declare_pattern(self, node) -> None:
        if node is None:
            return
        node_type = node.type
        if node_type == "Identifier":
            occ = self._add_identifier(node)
            if occ is not None:
                self.declarations.setdefault(occ.name, occ)
        elif node_type == "AssignmentPattern":
            self._declare_pattern(node.left)
            self._visit(node.right)
        elif node_type == "RestElement":
            self._declare_pattern(node.argument)
        elif node_type == "ArrayPattern":
            for element in node.elements or []:
                self._declare_pattern(element)
        elif node_type == "ObjectPattern":
            for prop in node.properties or []:
                if prop.type == "Property":
                    if not prop.computed and prop.key is not None and prop.key.type == "Identifier":
                        self._add_property(prop.key)
                    elif prop.computed:
                        self._visit(prop.key)
                    self._declare_pattern(prop.value)
                else:
                    self._declare_pattern(prop)
        else:
            self._visit(node)

    def _visit(self, node) -> None:
        if node is None:
            return
        if isinstance(node, list):
            for item in node:
                self._visit(item)
            return
        if not _is_node(node):
            return

        node_type = node.type
        if node_type == "Identifier":
            self._add_identifier(node)
        elif node_type == "Literal":
            self._add_literal(node)
        elif node_type == "FunctionDeclaration":
            if getattr(node, "id", None) is not None:
                occ = self._add_identifier(node.id)
                if occ is not None:
                    self.functions.setdefault(occ.name, occ)
            self._spawn(node)
        elif node_type in FUNCTION_TYPES or node_type == "CatchClause":
            self._spawn(node)
        elif node_type == "VariableDeclarator":
            self._declare_pattern(node.id)
            self._visit(getattr(node, "init", None))
        elif node_type == "MemberExpression":
            self._visit_member(node)
        elif node_type == "Property":
            self._visit_property(node)
        elif node_type == "MethodDefinition":
            self._visit_key(node.key, getattr(node, "computed", False))
            self._visit(node.value)
        elif node_type in ("ClassDeclaration", "ClassExpression"):
            if getattr(node, "id", None) is not None:
                occ = self._add_identifier(node.id)
                if occ is not None and node_type == "ClassDeclaration":
                    self.declarations.setdefault(occ.name, occ)
            self._visit(getattr(node, "superClass", None))
            self._visit(node.body)
        elif node_type == "LabeledStatement":
            self._visit(node.body)
        elif node_type in ("BreakStatement", "ContinueStatement"):
            return
        elif node_type == "MetaProperty":
            # new.target and import.meta are syntax, not names
            return
        else:
            self._visit_children(node)

    def _visit_children(self, node) -> None:
        for key, value in vars(node).items():
            if key in _SKIP_KEYS:
                continue
            if isinstance(value, list):
                for item in value:
                    if _is_node(item):
                        self._visit(item)
            elif _is_node(value):
                self._visit(value)

    def _visit_key(self, key, computed) -> Optional[NameOccurrence]:
        if key is None:
            return None
        if not computed and key.type == "Identifier":
            return self._add_property(key)
        self._visit(key)
        return None

    def _visit_member(self, node) -> None:
        self._visit(node.object)
        if node.computed:
            self._visit(node.property)
            return
        prop = self._add_property(node.property)
        obj = node.object
        if prop is not None and obj is not None and obj.type == "Identifier":
            obj_range = _range_of(obj)
            if obj_range is not None:
                self.associations.append(Association(NameOccurrence(obj.name, obj_range), prop))

    def _visit_property(self, node) -> None:
        # Shorthand { a } records both a property and an identifier at one range
        self._visit_key(node.key, getattr(node, "computed", False))
        self._visit(node.value)
