"""
SQL syntax rules.

Finds SQL command text carried by command-object constructions and
command-text property assignments, validates it against the SQL grammar,
and reports invalid text at the place the text was written.

Two rules share one pipeline and differ only in where the text came from:

- SQL-SYNTAX-001: the text is a string literal at the candidate site.
- SQL-SYNTAX-002: the text was traced through a local identifier to the
  literal assigned to it.
"""

import logging
from typing import Generator, Optional

from embedsql.analysis.detector import CANDIDATE_KINDS, DetectionMarkers, detect
from embedsql.analysis.mapper import DiagnosticMapper
from embedsql.analysis.resolver import Origin, resolve
from embedsql.core.findings import Confidence, Finding, FindingCategory, Severity
from embedsql.core.rules import ASTRule, AnalysisContext, RuleMetadata, rule
from embedsql.grammar.validator import DEFAULT_DIALECT, SqlglotValidator
from embedsql.parsers.base import ASTNode

logger = logging.getLogger(__name__)


LITERAL_SQL_RULE = RuleMetadata(
    rule_id="SQL-SYNTAX-001",
    name="Illegal SQL",
    description="SQL command text written as a string literal is not valid SQL.",
    severity=Severity.ERROR,
    confidence=Confidence.HIGH,
    category=FindingCategory.SQL_SYNTAX,
    languages=["python"],
    tags=["sql", "syntax"],
)

TRACED_SQL_RULE = RuleMetadata(
    rule_id="SQL-SYNTAX-002",
    name="Illegal SQL (traced)",
    description="SQL command text assigned to a local name and used as a command is not valid SQL.",
    severity=Severity.ERROR,
    confidence=Confidence.MEDIUM,
    category=FindingCategory.SQL_SYNTAX,
    languages=["python"],
    tags=["sql", "syntax", "traced"],
)

DESCRIPTORS = {
    Origin.LITERAL: LITERAL_SQL_RULE,
    Origin.TRACED: TRACED_SQL_RULE,
}


class SqlSyntaxRule(ASTRule):
    """
    Detect, resolve and validate SQL at candidate sites.

    Configuration keys: ``markers`` (see DetectionMarkers.from_config),
    ``dialect`` (sqlglot dialect name) and ``validator`` (an object with a
    ``validate(sql) -> list[str]`` method, overriding ``dialect``).
    """

    origin: Origin = Origin.LITERAL

    def __init__(self, config=None):
        super().__init__(config)
        self.markers = DetectionMarkers.from_config(self.config)
        validator = self.config.get("validator")
        if validator is None:
            validator = SqlglotValidator(self.config.get("dialect") or DEFAULT_DIALECT)
        self.mapper = DiagnosticMapper(validator, DESCRIPTORS)

    @property
    def metadata(self) -> RuleMetadata:
        return DESCRIPTORS[self.origin]

    @property
    def node_kinds(self):
        return CANDIDATE_KINDS

    def check_node(self, node: ASTNode, context: AnalysisContext) -> Optional[Finding]:
        """Run detection, resolution and validation for one node."""
        candidate = detect(node, self.markers)
        if candidate is None:
            return None

        resolved = resolve(candidate, context.tokens_in(candidate.block))
        if resolved is None or resolved.origin != self.origin:
            return None

        return self.mapper.map(resolved, context)

    def visit_node(self, node: ASTNode, context: AnalysisContext) -> Generator[Finding, None, None]:
        try:
            finding = self.check_node(node, context)
        except Exception:
            logger.warning(
                "%s failed on %s:%d; node skipped",
                self.metadata.rule_id, context.file_path, node.start_line,
                exc_info=True,
            )
            return

        if finding is not None:
            yield finding


@rule
class LiteralSqlSyntaxRule(SqlSyntaxRule):
    """Invalid SQL written inline at a command construction or assignment."""

    origin = Origin.LITERAL


@rule
class TracedSqlSyntaxRule(SqlSyntaxRule):
    """Invalid SQL reaching a command through a local identifier."""

    origin = Origin.TRACED
