"""
Analysis responses.

One immutable response is built per analyzed document. It is either a
ScopeAnalysis (the parse succeeded, possibly after repair) or a
FailedAnalysis (no tree; every index is empty).
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from outerscope.hints import (
    SCOPE_MSG_TYPE,
    Token,
    annotate_globals,
    annotate_literals,
    annotate_with_path,
)
from outerscope.parser.scope_serde import scope_to_dict
from outerscope.parser.sifters import AssociationTable, sift_associations, sift_positions
from outerscope.scope import Scope


@dataclass(frozen=True)
class ScopeOutcome:
    """What a successful parse hands to the assembler."""
    scope: Scope
    globals: List[Token] = field(default_factory=list)


@dataclass(frozen=True)
class AnalysisResponse:
    """Hint indexes for one document."""
    dir: str
    file: str
    length: int
    scope: Optional[Scope] = None
    globals: Tuple[Token, ...] = ()
    identifiers: Tuple[Token, ...] = ()
    properties: Tuple[Token, ...] = ()
    literals: Tuple[Token, ...] = ()
    associations: AssociationTable = field(default_factory=dict)

    success: ClassVar[bool] = False

    def to_message(self) -> Dict[str, Any]:
        """Render the response as a protocol message."""
        return {
            "kind": SCOPE_MSG_TYPE,
            "dir": self.dir,
            "file": self.file,
            "length": self.length,
            "scope": scope_to_dict(self.scope) if self.scope is not None else None,
            "globals": [t.to_dict() for t in self.globals],
            "identifiers": [t.to_dict() for t in self.identifiers],
            "properties": [t.to_dict() for t in self.properties],
            "literals": [t.to_dict() for t in self.literals],
            "associations": {obj: dict(props) for obj, props in self.associations.items()},
            "success": self.success,
        }


class ScopeAnalysis(AnalysisResponse):
    """The document parsed; indexes are populated."""
    success = True


class FailedAnalysis(AnalysisResponse):
    """The document could not be parsed, even after repair."""
    success = False


def assemble(directory: str, filename: str, length: int,
             outcome: Optional[ScopeOutcome]) -> AnalysisResponse:
    """
    Build the response for one document.

    Args:
        directory: document directory, echoed back and used to tag properties
        filename: document file name
        length: length of the analyzed text
        outcome: scope and globals from a successful parse, or None
    """
    if outcome is None:
        return FailedAnalysis(dir=directory, file=filename, length=length)

    scope = outcome.scope
    identifiers = sift_positions(scope, Scope.walk_down_identifiers, "name")
    properties = sift_positions(scope, Scope.walk_down_properties, "name")
    literals = sift_positions(scope, Scope.walk_down_literals, "value")

    return ScopeAnalysis(
        dir=directory,
        file=filename,
        length=length,
        scope=scope,
        globals=tuple(annotate_globals(outcome.globals)),
        identifiers=tuple(identifiers),
        properties=tuple(annotate_with_path(properties, directory, filename)),
        literals=tuple(annotate_literals(literals)),
        associations=sift_associations(scope),
    )
