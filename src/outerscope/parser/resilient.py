"""
Resilient Parser — damage repair for actively edited source.

A document being typed into is usually broken somewhere. When the grammar
parser gives up with a fatal error, the offending line is blanked (every
character replaced by a space, so all other offsets stay valid) and the text
is parsed again. This repeats until the parse succeeds, the retry budget runs
out, or blanking no longer changes anything.

The line the parser fails on is not always the best line to remove; some
errors blank the rest of the file one line at a time without ever producing
a tree. The budget keeps that bounded, and repair only runs when the caller
asks for it.

State machine:

    PARSING   --ok-->            SUCCEEDED
    PARSING   --fatal error-->   REPAIRING   (budget left, line known)
    PARSING   --fatal error-->   EXHAUSTED   (otherwise)
    REPAIRING --line blanked-->  PARSING
    REPAIRING --no change-->     EXHAUSTED

Usage:
    parser = ResilientParser()
    session = parser.parse(text, allow_repair=True)
    if session.succeeded:
        tree = session.parsed.tree
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Iterator, List, Optional

from outerscope.parser.errors import FatalSyntaxError
from outerscope.parser.grammar import ParsedSource, parse_javascript

logger = logging.getLogger(__name__)


# Default repair budget for a request that allows repair
MAX_RETRIES = 100

# ECMAScript line terminators; the capture group keeps them in split()
_LINE_TERMINATOR = re.compile("(\r\n|[\n\r\u2028\u2029])")


class RepairState(Enum):
    """States of one parse session."""
    PARSING = auto()
    REPAIRING = auto()
    SUCCEEDED = auto()
    EXHAUSTED = auto()


def blank_line(text: str, line_number: int) -> Optional[str]:
    """
    Replace every character on a 1-based line with a space.

    Lines are counted the way esprima counts them: CRLF, LF, CR, U+2028 and
    U+2029 each end a line. Terminators are kept, so every offset
    in the text stays valid. Line numbers past the end are clamped to the
    last line.

    Returns:
        The repaired text, or None if the line was already blank
    """
    # Lines at even indexes, the terminators between them at odd ones
    parts = _LINE_TERMINATOR.split(text)
    line_count = (len(parts) + 1) // 2
    index = 2 * (min(line_count, line_number) - 1)
    if index < 0:
        return None

    original = parts[index]
    blanked = " " * len(original)
    if blanked == original:
        return None

    parts[index] = blanked
    return "".join(parts)


@dataclass
class ParseSession:
    """Per-request parse state. Owns a private copy of the text."""
    text: str
    budget: int
    source: str = "<inline>"
    state: RepairState = RepairState.PARSING
    attempts: int = 0
    blanked_lines: List[int] = field(default_factory=list)
    parsed: Optional[ParsedSource] = None
    last_error: Optional[FatalSyntaxError] = None

    @property
    def done(self) -> bool:
        return self.state in (RepairState.SUCCEEDED, RepairState.EXHAUSTED)

    @property
    def succeeded(self) -> bool:
        return self.state is RepairState.SUCCEEDED

    @property
    def repairs(self) -> int:
        return len(self.blanked_lines)


class ResilientParser:
    """
    Drives a grammar parser through the line-blanking repair loop.

    Args:
        parse_fn: text -> ParsedSource, raising FatalSyntaxError on failure
        max_retries: repair budget used when repair is allowed
    """

    def __init__(self, parse_fn: Callable[[str], ParsedSource] = parse_javascript,
                 max_retries: int = MAX_RETRIES):
        self.parse_fn = parse_fn
        self.max_retries = max_retries

    def start(self, text: str, allow_repair: bool, source: str = "<inline>") -> ParseSession:
        budget = self.max_retries if allow_repair else 0
        return ParseSession(text=text, budget=budget, source=source)

    def step(self, session: ParseSession) -> ParseSession:
        """Advance the session by one transition."""
        if session.state is RepairState.PARSING:
            self._attempt(session)
        elif session.state is RepairState.REPAIRING:
            self._repair(session)
        return session

    def iter_attempts(self, text: str, allow_repair: bool,
                      source: str = "<inline>") -> Iterator[ParseSession]:
        """
        Run the session, yielding before each re-parse and once at the end.

        The last session yielded is finished. Callers that want to stop early
        simply stop iterating; nothing outside the session is touched.
        """
        session = self.start(text, allow_repair, source)
        while not session.done:
            self.step(session)
            if session.state is not RepairState.REPAIRING:
                yield session

    def parse(self, text: str, allow_repair: bool, source: str = "<inline>") -> ParseSession:
        """Run the session to completion without yielding."""
        session = self.start(text, allow_repair, source)
        while not session.done:
            self.step(session)
        return session

    def _attempt(self, session: ParseSession) -> None:
        session.attempts += 1
        try:
            parsed = self.parse_fn(session.text)
        except FatalSyntaxError as e:
            session.last_error = e
            if session.budget > 0 and e.line_number:
                session.state = RepairState.REPAIRING
            else:
                logger.info(f"Giving up on {session.source} after {session.attempts} attempt(s): {e}")
                session.state = RepairState.EXHAUSTED
            return

        if parsed.diagnostics:
            logger.warning(
                f"Parse errors in {session.source}: "
                + "; ".join(f"line {d.line}: {d.message}" for d in parsed.diagnostics)
            )
        session.parsed = parsed
        session.state = RepairState.SUCCEEDED

    def _repair(self, session: ParseSession) -> None:
        session.budget -= 1
        line_number = session.last_error.line_number
        repaired = blank_line(session.text, line_number)
        if repaired is None:
            logger.info(f"Giving up on {session.source}: line {line_number} is already blank")
            session.state = RepairState.EXHAUSTED
            return

        logger.debug(f"Blanked line {line_number} of {session.source} ({session.budget} retries left)")
        session.blanked_lines.append(line_number)
        session.text = repaired
        session.state = RepairState.PARSING
