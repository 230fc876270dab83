"""Core scanning engine and data structures."""

from embedsql.core.findings import (
    Finding, Severity, Confidence, FindingCategory, CodeLocation, ScanResult
)
from embedsql.core.rules import Rule, ASTRule, RuleMetadata, RuleRegistry, AnalysisContext
from embedsql.core.engine import ScanEngine

__all__ = [
    "Finding",
    "Severity",
    "Confidence",
    "FindingCategory",
    "CodeLocation",
    "ScanResult",
    "Rule",
    "ASTRule",
    "RuleMetadata",
    "RuleRegistry",
    "AnalysisContext",
    "ScanEngine",
]
