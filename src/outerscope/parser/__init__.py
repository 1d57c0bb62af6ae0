"""
outerscope.parser - Resilient JavaScript analysis

Parses a document with damage repair, builds its scope tree and sifts it
into hint indexes.
"""

from outerscope.parser.errors import (
    AnalysisError,
    FatalSyntaxError,
    AnalysisCancelled,
    ParseDiagnostic,
)
from outerscope.parser.grammar import ParsedSource, parse_javascript
from outerscope.parser.annotations import extract_globals
from outerscope.parser.sifters import sift_positions, sift_associations
from outerscope.parser.resilient import (
    MAX_RETRIES,
    RepairState,
    ParseSession,
    ResilientParser,
    blank_line,
)
from outerscope.parser.response import (
    AnalysisResponse,
    ScopeAnalysis,
    FailedAnalysis,
    ScopeOutcome,
    assemble,
)
from outerscope.parser.pipeline import Analyzer, analyze

__all__ = [
    # Errors
    "AnalysisError",
    "FatalSyntaxError",
    "AnalysisCancelled",
    "ParseDiagnostic",
    # Grammar
    "ParsedSource",
    "parse_javascript",
    # Indexing
    "extract_globals",
    "sift_positions",
    "sift_associations",
    # Repair loop
    "MAX_RETRIES",
    "RepairState",
    "ParseSession",
    "ResilientParser",
    "blank_line",
    # Responses
    "AnalysisResponse",
    "ScopeAnalysis",
    "FailedAnalysis",
    "ScopeOutcome",
    "assemble",
    "Analyzer",
    "analyze",
]
