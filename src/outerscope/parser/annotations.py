"""
JSLint global annotations.

Two block-comment directives declare names that exist without a local
declaration:

    /*global foo, bar:true */      explicit names (":value" suffix ignored)
    /*jslint node: true */          environment presets from hints.JSL_GLOBAL_DEFS

Malformed entries are skipped rather than reported.
"""

from typing import Iterable, List

from outerscope.hints import JSL_GLOBAL_DEFS, Token, make_token, maybe_identifier


GLOBAL_MARKER = "global"
JSLINT_MARKER = "jslint"

# Directive word plus the separator that follows it
_BODY_OFFSET = 7


def _explicit_names(body: str) -> List[Token]:
    tokens = []
    for entry in body.split(","):
        name = entry.split(":", 1)[0].strip()
        if maybe_identifier(name):
            tokens.append(make_token(name))
    return tokens


def _preset_names(body: str) -> List[Token]:
    tokens: List[Token] = []
    for entry in body.split(","):
        if ":" not in entry:
            continue
        key, value = entry.split(":", 1)
        key = key.strip()
        if value.strip() == "true" and key in JSL_GLOBAL_DEFS:
            tokens.extend(JSL_GLOBAL_DEFS[key])
    return tokens


def extract_globals(comments: Iterable) -> List[Token]:
    """
    Collect global-name tokens from JSLint directives in block comments.

    Args:
        comments: comment nodes with ``type`` ("Block" or "Line") and ``value``

    Returns:
        Zero-position tokens sorted by value
    """
    found: List[Token] = []

    for comment in comments or []:
        if getattr(comment, "type", None) != "Block":
            continue
        value = getattr(comment, "value", None)
        if not value:
            continue
        if value.startswith(GLOBAL_MARKER):
            found.extend(_explicit_names(value[_BODY_OFFSET:]))
        elif value.startswith(JSLINT_MARKER):
            found.extend(_preset_names(value[_BODY_OFFSET:]))

    found.sort(key=lambda t: str(t.value))
    return found
