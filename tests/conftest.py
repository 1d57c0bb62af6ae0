"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Import outerscope modules
from outerscope.parser import Analyzer, FatalSyntaxError, parse_javascript
from outerscope.scope import Scope


# =============================================================================
# SOURCE FIXTURES
# =============================================================================

@pytest.fixture
def simple_source():
    """A small, valid program with a nested function."""
    return (
        "var a = 1;\n"
        "function f(b) {\n"
        "    return a + b;\n"
        "}\n"
        "f(a);\n"
    )


@pytest.fixture
def broken_source():
    """Valid except for an unterminated string on line 3."""
    return (
        "var a = 1;\n"
        "var b = 2;\n"
        "var c = 'oops;\n"
        "var d = a + b;\n"
    )


# =============================================================================
# ANALYZER FIXTURES
# =============================================================================

@pytest.fixture
def analyzer():
    """Analyzer with the real grammar parser and the default budget."""
    return Analyzer()


class ScriptedParse:
    """
    Stand-in grammar parser.

    Raises a fatal error on each scripted line in turn, then hands the text
    to the real parser. Every call's text is recorded.
    """

    def __init__(self, fail_lines, then=parse_javascript):
        self.fail_lines = list(fail_lines)
        self.then = then
        self.calls = []

    def __call__(self, text):
        self.calls.append(text)
        if self.fail_lines:
            line = self.fail_lines.pop(0)
            raise FatalSyntaxError("Unexpected token ILLEGAL", line_number=line, index=0, column=0)
        return self.then(text)


@pytest.fixture
def scripted_parse():
    """Factory for ScriptedParse instances."""
    return ScriptedParse


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def scope_of(text: str) -> Scope:
    """Parse text and build its scope tree."""
    return Scope(parse_javascript(text).tree)


def offsets_of(text: str, needle: str) -> list:
    """All start offsets of needle in text."""
    result = []
    start = text.find(needle)
    while start >= 0:
        result.append(start)
        start = text.find(needle, start + 1)
    return result


def token_map(tokens) -> dict:
    """Map token value -> list of positions."""
    return {t.value: list(t.positions) for t in tokens}
