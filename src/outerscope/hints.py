"""
Hint Tokens and Static Vocabulary

A token pairs a hintable value (identifier name, property name, literal
value) with every offset at which it occurs in a document. This module also
holds the vocabulary that never changes at runtime: JavaScript keywords,
literal keywords and the JSLint environment presets used by
``/*jslint ...*/`` directives.
"""

import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union


TokenValue = Union[str, int, float]

_IDENTIFIER_CHAR = re.compile(r"[0-9a-z_.$]", re.IGNORECASE)


@dataclass(frozen=True)
class Token:
    """A hintable value and the ascending offsets where it occurs."""
    value: TokenValue
    positions: Tuple[int, ...] = ()
    # Decorations, filled in by the annotate_* helpers below
    is_global: bool = False
    path: Optional[str] = None
    literal: bool = False
    kind: Optional[str] = None

    def __repr__(self):
        return f"Token({self.value!r}, {list(self.positions)})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        data: Dict[str, Any] = {
            "value": self.value,
            "positions": list(self.positions),
        }
        if self.is_global:
            data["global"] = True
        if self.path is not None:
            data["path"] = self.path
        if self.literal:
            data["literal"] = True
            data["kind"] = self.kind
        return data


def make_token(value: TokenValue, positions: Optional[Iterable[int]] = None) -> Token:
    """Build a token; positions default to empty for static vocabulary."""
    return Token(value=value, positions=tuple(positions) if positions is not None else ())


def maybe_identifier(key: str) -> bool:
    """Is the string key perhaps a valid JavaScript identifier?"""
    return bool(_IDENTIFIER_CHAR.search(key)) or key.startswith(('"', "'"))


def split_path(path: str) -> Dict[str, str]:
    """
    Divide a path into directory and filename parts.

    The file part keeps its leading separator so ``dir + file`` rebuilds the
    original path.
    """
    index = path.rfind("/")
    if index < 0:
        return {"dir": "", "file": path}
    return {"dir": path[:index], "file": path[index:]}


# =============================================================================
# DECORATION
# =============================================================================

def annotate_globals(tokens: Iterable[Token]) -> List[Token]:
    """Mark tokens as coming from a global annotation."""
    return [replace(t, is_global=True) for t in tokens]


def annotate_with_path(tokens: Iterable[Token], directory: str, filename: str) -> List[Token]:
    """Tag tokens with the document they were found in."""
    path = directory + filename
    return [replace(t, path=path) for t in tokens]


def annotate_literals(tokens: Iterable[Token], kind: Optional[str] = None) -> List[Token]:
    """
    Mark tokens as literals.

    Without an explicit kind, numbers are tagged ``"number"`` and everything
    else ``"string"``.
    """
    result = []
    for t in tokens:
        tag = kind
        if tag is None:
            tag = "number" if isinstance(t.value, (int, float)) else "string"
        result.append(replace(t, literal=True, kind=tag))
    return result


# =============================================================================
# STATIC VOCABULARY
# =============================================================================

SCOPE_MSG_TYPE = "scopeAnalysis"

KEYWORDS: Tuple[Token, ...] = tuple(make_token(k) for k in (
    "break", "case", "catch", "continue", "debugger", "default", "delete",
    "do", "else", "finally", "for", "function", "if", "in", "instanceof",
    "new", "return", "switch", "this", "throw", "try", "typeof", "var",
    "void", "while", "with",
))

LITERALS: Tuple[Token, ...] = tuple(make_token(k) for k in (
    "true", "false", "null", "undefined",
))

_JSL_GLOBALS: Mapping[str, Token] = MappingProxyType({name: make_token(name) for name in (
    "clearInterval", "clearTimeout", "document", "event", "frames",
    "history", "Image", "location", "name", "navigator", "Option",
    "parent", "screen", "setInterval", "setTimeout", "window",
    "XMLHttpRequest", "alert", "confirm", "console", "Debug", "opera",
    "prompt", "WSH", "Buffer", "exports", "global", "module", "process",
    "querystring", "require", "__filename", "__dirname", "defineClass",
    "deserialize", "gc", "help", "load", "loadClass", "print", "quit",
    "readFile", "readUrl", "runCommand", "seal", "serialize", "spawn",
    "sync", "toint32", "version", "ActiveXObject", "CScript", "Enumerator",
    "System", "VBArray", "WScript",
)})


def _preset(*names: str) -> Tuple[Token, ...]:
    return tuple(_JSL_GLOBALS[n] for n in names)


# Environment presets enabled by /*jslint <preset>: true */
JSL_GLOBAL_DEFS: Mapping[str, Tuple[Token, ...]] = MappingProxyType({
    "browser": _preset(
        "clearInterval", "clearTimeout", "document", "event", "frames",
        "history", "Image", "location", "name", "navigator", "Option",
        "parent", "screen", "setInterval", "setTimeout", "window",
        "XMLHttpRequest",
    ),
    "devel": _preset(
        "alert", "confirm", "console", "Debug", "opera", "prompt", "WSH",
    ),
    "node": _preset(
        "Buffer", "clearInterval", "clearTimeout", "console", "exports",
        "global", "module", "process", "querystring", "require",
        "setInterval", "setTimeout", "__filename", "__dirname",
    ),
    "rhino": _preset(
        "defineClass", "deserialize", "gc", "help", "load", "loadClass",
        "print", "quit", "readFile", "readUrl", "runCommand", "seal",
        "serialize", "spawn", "sync", "toint32", "version",
    ),
    "windows": _preset(
        "ActiveXObject", "CScript", "Debug", "Enumerator", "System",
        "VBArray", "WScript", "WSH",
    ),
})
