"""
Source value resolution.

Turns a candidate expression into the SQL string to validate and the
span a diagnostic should be anchored at.

Literals resolve to themselves. A plain identifier is traced with a
textual heuristic rather than data-flow analysis: the first ``NAME``
token with the same text in the enclosing block is taken as the
assignment site, and the token two positions later (``name``, ``=``,
``value``) is read as the assigned literal. With reassignment or
shadowing this can pick an assignment that does not reach the use site.
"""

import ast as python_ast
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from embedsql.analysis.detector import CandidateSite
from embedsql.parsers.base import NodeKind, Span, TokenStream

logger = logging.getLogger(__name__)


# Offset from the identifier token to its assigned value token.
VALUE_TOKEN_OFFSET = 2


class Origin(Enum):
    """How the SQL text was found."""
    LITERAL = "literal"
    TRACED = "traced"


@dataclass(frozen=True)
class ResolvedText:
    """SQL text paired with the source span that anchors diagnostics."""
    sql: str
    anchor: Span
    origin: Origin
    identifier: Optional[str] = None


def _is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def _decode_string_token(text: str) -> Optional[str]:
    try:
        value = python_ast.literal_eval(text)
    except (ValueError, SyntaxError):
        return None
    return value if isinstance(value, str) else None


def resolve(candidate: CandidateSite, tokens: Optional[TokenStream]) -> Optional[ResolvedText]:
    """
    Resolve a candidate to its SQL text, or decline with None.

    Declining is silent: unresolvable values never produce diagnostics.
    """
    expression = candidate.expression

    if expression.kind == NodeKind.STRING_LITERAL:
        if _is_blank(expression.value):
            return None
        return ResolvedText(expression.value, expression.span, Origin.LITERAL)

    name = expression.text
    if _is_blank(name):
        return None

    if expression.kind == NodeKind.CALL:
        logger.debug("Not resolving call result %r at line %d", name, expression.start_line)
        return None

    if tokens is None:
        return None

    index = tokens.find_first(lambda t: t.type == "NAME" and t.string == name)
    if index is None:
        logger.debug("No token for %r in enclosing block", name)
        return None

    value_token = tokens.at(index + VALUE_TOKEN_OFFSET)
    if value_token is None or value_token.type != "STRING":
        logger.debug("First occurrence of %r is not followed by a string assignment", name)
        return None

    sql = _decode_string_token(value_token.string)
    if _is_blank(sql):
        return None

    return ResolvedText(sql, value_token.span, Origin.TRACED, identifier=name)
