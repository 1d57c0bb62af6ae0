"""
Grammar adapter around esprima.

Parses a JavaScript script with source ranges, tolerant mode and comment
capture, and translates esprima's fatal errors into FatalSyntaxError so the
rest of the package never imports esprima directly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

import esprima
from esprima.error_handler import Error as EsprimaError

from outerscope.parser.errors import FatalSyntaxError, ParseDiagnostic


GRAMMAR_OPTIONS: Dict[str, bool] = {
    "range": True,      # [start, end) offsets on every node
    "tolerant": True,   # collect recoverable errors instead of raising
    "comment": True,    # keep comments on the program node
}


@dataclass
class ParsedSource:
    """Syntax tree plus what the parser collected along the way."""
    tree: Any
    comments: List[Any] = field(default_factory=list)
    diagnostics: List[ParseDiagnostic] = field(default_factory=list)


def _diagnostic(error) -> ParseDiagnostic:
    return ParseDiagnostic(
        line=getattr(error, "lineNumber", None) or 0,
        column=getattr(error, "column", None) or 0,
        index=getattr(error, "index", None) or 0,
        message=getattr(error, "description", None) or str(error),
    )


def parse_javascript(text: str) -> ParsedSource:
    """
    Parse JavaScript source text.

    Raises:
        FatalSyntaxError: if esprima cannot build a tree
    """
    try:
        tree = esprima.parseScript(text, dict(GRAMMAR_OPTIONS))
    except EsprimaError as e:
        raise FatalSyntaxError(
            getattr(e, "description", None) or getattr(e, "message", None) or str(e),
            line_number=getattr(e, "lineNumber", None),
            index=getattr(e, "index", None),
            column=getattr(e, "column", None),
        ) from e
    except RecursionError as e:
        # Nesting too deep for the recursive descent; no line to blank
        raise FatalSyntaxError("source nested too deeply to parse") from e

    comments = list(getattr(tree, "comments", None) or [])
    diagnostics = [_diagnostic(err) for err in (getattr(tree, "errors", None) or [])]
    return ParsedSource(tree=tree, comments=comments, diagnostics=diagnostics)
