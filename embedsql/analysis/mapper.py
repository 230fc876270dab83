"""
Diagnostic mapping.

Runs the grammar validator on resolved SQL text and turns its errors
into a single finding anchored at the origin of the text.
"""

from typing import Mapping, Optional

from embedsql.analysis.resolver import Origin, ResolvedText
from embedsql.core.findings import Finding
from embedsql.core.rules import AnalysisContext, RuleMetadata, create_finding
from embedsql.grammar.validator import GrammarValidator


ERROR_SEPARATOR = "\n"


class DiagnosticMapper:
    """
    Translate validator output into findings.

    Args:
        validator: The grammar validator to consult.
        descriptors: The descriptor to report with for each origin.
    """

    def __init__(self, validator: GrammarValidator, descriptors: Mapping[Origin, RuleMetadata]):
        self.validator = validator
        self.descriptors = dict(descriptors)

    def map(self, resolved: ResolvedText, context: AnalysisContext) -> Optional[Finding]:
        errors = self.validator.validate(resolved.sql)
        if not errors:
            return None

        descriptor = self.descriptors[resolved.origin]
        anchor = resolved.anchor
        metadata = {
            "sql": resolved.sql,
            "origin": resolved.origin.value,
            "errors": list(errors),
        }
        if resolved.identifier:
            metadata["identifier"] = resolved.identifier

        return create_finding(
            descriptor,
            location=context.location_of(anchor),
            message=ERROR_SEPARATOR.join(errors),
            snippet=context.get_snippet(anchor.start_line),
            metadata=metadata,
        )
