"""
Candidate site detection.

Recognizes the two syntax shapes that carry SQL command text:

- construction of a command object, ``SqlCommand("SELECT ...")``
- assignment to a command-text property, ``cmd.CommandText = "SELECT ..."``

Matching is by marker substrings on the rendered source text, since no
type information is available. The markers are data, not code, so the
detection surface can be extended from configuration.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from embedsql.parsers.base import ASTNode, NodeKind


class SiteShape(Enum):
    """The syntax shape a candidate was found in."""
    CONSTRUCTION = "construction"
    ASSIGNMENT = "assignment"


@dataclass(frozen=True)
class DetectionMarkers:
    """Marker strings identifying command types and command-text properties."""
    constructor_markers: Tuple[str, ...] = ("SqlCommand",)
    property_markers: Tuple[str, ...] = ("CommandText",)

    def is_command_type(self, text: str) -> bool:
        return any(marker in text for marker in self.constructor_markers)

    def is_command_text_property(self, text: str) -> bool:
        return any(marker in text for marker in self.property_markers)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "DetectionMarkers":
        """Build markers from the ``markers`` section of an engine config."""
        section = (config or {}).get("markers") or {}
        defaults = cls()
        constructors = section.get("constructors") or defaults.constructor_markers
        properties = section.get("properties") or defaults.property_markers
        return cls(
            constructor_markers=tuple(constructors),
            property_markers=tuple(properties),
        )


DEFAULT_MARKERS = DetectionMarkers()


@dataclass(frozen=True)
class CandidateSite:
    """A SQL-bearing expression and the block to resolve it in."""
    site: ASTNode
    expression: ASTNode
    block: Optional[ASTNode]
    shape: SiteShape


def _first_argument(call: ASTNode) -> Optional[ASTNode]:
    args = call.get_field("args") or []
    if args:
        return args[0]
    # **kwargs unpacking has no name and is not an argument we can read.
    for keyword in call.get_field("keywords") or []:
        if keyword.value is not None:
            return keyword.get_field("value")
    return None


def _detect_construction(node: ASTNode, markers: DetectionMarkers) -> Optional[CandidateSite]:
    callee = node.get_field("func")
    if callee is None or callee.kind not in (NodeKind.IDENTIFIER, NodeKind.ATTRIBUTE):
        return None
    if not markers.is_command_type(callee.text):
        return None

    expression = _first_argument(node)
    if expression is None:
        return None
    return CandidateSite(node, expression, node.enclosing_block(), SiteShape.CONSTRUCTION)


def _command_text_target(targets: Iterable[Optional[ASTNode]], markers: DetectionMarkers) -> bool:
    for target in targets:
        if target is not None and target.kind == NodeKind.ATTRIBUTE:
            if markers.is_command_text_property(target.text):
                return True
    return False


def _detect_assignment(node: ASTNode, markers: DetectionMarkers) -> Optional[CandidateSite]:
    if node.kind == NodeKind.ANNOTATED_ASSIGNMENT:
        targets = [node.get_field("target")]
    else:
        targets = node.get_field("targets") or []

    if not _command_text_target(targets, markers):
        return None

    expression = node.get_field("value")
    if expression is None:
        return None
    return CandidateSite(node, expression, node.enclosing_block(), SiteShape.ASSIGNMENT)


_DETECTORS: Dict[NodeKind, Callable[[ASTNode, DetectionMarkers], Optional[CandidateSite]]] = {
    NodeKind.CALL: _detect_construction,
    NodeKind.ASSIGNMENT: _detect_assignment,
    NodeKind.ANNOTATED_ASSIGNMENT: _detect_assignment,
}

# Node kinds worth subscribing to; everything else is rejected by shape.
CANDIDATE_KINDS = frozenset(_DETECTORS)


def detect(node: ASTNode, markers: DetectionMarkers = DEFAULT_MARKERS) -> Optional[CandidateSite]:
    """
    Decide whether ``node`` is a SQL-bearing candidate site.

    Pure: returns the candidate, or None for any other shape.
    """
    detector = _DETECTORS.get(node.kind)
    if detector is None:
        return None
    return detector(node, markers)
