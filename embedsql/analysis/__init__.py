"""
Detection, resolution and diagnostic mapping for SQL carried in source code.
"""

from embedsql.analysis.detector import (
    CANDIDATE_KINDS,
    DEFAULT_MARKERS,
    CandidateSite,
    DetectionMarkers,
    SiteShape,
    detect,
)
from embedsql.analysis.resolver import Origin, ResolvedText, resolve
from embedsql.analysis.mapper import DiagnosticMapper

__all__ = [
    "CANDIDATE_KINDS",
    "DEFAULT_MARKERS",
    "CandidateSite",
    "DetectionMarkers",
    "SiteShape",
    "detect",
    "Origin",
    "ResolvedText",
    "resolve",
    "DiagnosticMapper",
]
