"""
Analysis errors and parse diagnostics.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


class AnalysisError(Exception):
    """Base class for errors raised while analyzing a document."""


class FatalSyntaxError(AnalysisError):
    """The grammar parser could not produce a tree."""
    def __init__(self, description: str, line_number: Optional[int] = None,
                 index: Optional[int] = None, column: Optional[int] = None):
        self.description = description
        self.line_number = line_number
        self.index = index
        self.column = column
        if line_number:
            super().__init__(f"Syntax error at line {line_number}, column {column or 0}: {description}")
        else:
            super().__init__(f"Syntax error: {description}")


class AnalysisCancelled(AnalysisError):
    """The host cancelled a request between repair attempts."""
    def __init__(self, source: str, attempts: int):
        self.source = source
        self.attempts = attempts
        super().__init__(f"Analysis of {source} cancelled after {attempts} parse attempts")


@dataclass(frozen=True)
class ParseDiagnostic:
    """A recoverable error reported by the grammar parser in tolerant mode."""
    line: int
    column: int
    index: int
    message: str
    severity: str = "warning"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line": self.line,
            "column": self.column,
            "index": self.index,
            "message": self.message,
            "severity": self.severity,
        }
