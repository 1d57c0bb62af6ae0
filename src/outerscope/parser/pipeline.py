"""
Analysis pipeline: resilient parse, scope tree, globals, response.

Usage:
    from outerscope.parser.pipeline import analyze

    response = analyze("/project/src", "/main.js", text, allow_repair=True)
    if response.success:
        names = [t.value for t in response.identifiers]
"""

import logging
from typing import Callable, Optional

from outerscope.parser.annotations import extract_globals
from outerscope.parser.grammar import ParsedSource, parse_javascript
from outerscope.parser.resilient import MAX_RETRIES, ParseSession, ResilientParser
from outerscope.parser.response import AnalysisResponse, ScopeOutcome, assemble
from outerscope.scope import Scope

logger = logging.getLogger(__name__)


class Analyzer:
    """
    Turns one document's text into an AnalysisResponse.

    Holds no per-request state, so one instance can serve any number of
    requests in sequence.
    """

    def __init__(self, parse_fn: Callable[[str], ParsedSource] = parse_javascript,
                 max_retries: int = MAX_RETRIES,
                 build_scope: Callable[..., Scope] = Scope):
        self.parser = ResilientParser(parse_fn, max_retries)
        self.build_scope = build_scope

    def analyze(self, directory: str, filename: str, text: str,
                allow_repair: bool) -> AnalysisResponse:
        session = self.parser.parse(text, allow_repair, source=directory + filename)
        return self.respond(directory, filename, text, session)

    def respond(self, directory: str, filename: str, text: str,
                session: ParseSession) -> AnalysisResponse:
        """Assemble the response for a finished parse session."""
        if not session.succeeded:
            return assemble(directory, filename, len(text), None)

        parsed = session.parsed
        try:
            scope = self.build_scope(parsed.tree)
        except RecursionError:
            logger.error(f"Syntax tree of {directory}{filename} nested too deeply to index")
            return assemble(directory, filename, len(text), None)

        outcome = ScopeOutcome(scope=scope, globals=extract_globals(parsed.comments))
        return assemble(directory, filename, len(text), outcome)


_default_analyzer: Optional[Analyzer] = None


def analyze(directory: str, filename: str, text: str, allow_repair: bool = True) -> AnalysisResponse:
    """Analyze a document with the default grammar parser and retry budget."""
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = Analyzer()
    return _default_analyzer.analyze(directory, filename, text, allow_repair)
