"""
Shared fixtures for the embedsql tests.
"""

import os
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from embedsql.core.engine import ScanEngine
from embedsql.core.rules import AnalysisContext
from embedsql.parsers import get_parser


class FakeValidator:
    """Grammar stand-in: every misspelled keyword is one syntax error."""

    BAD_WORDS = ("SELEKT", "FROMM", "WHER")

    def __init__(self):
        self.calls = []

    def validate(self, sql):
        self.calls.append(sql)
        return [f"Incorrect syntax near '{word}'." for word in sql.split() if word in self.BAD_WORDS]


@pytest.fixture
def fake_validator():
    return FakeValidator()


@pytest.fixture
def engine(fake_validator):
    """Engine running the real pipeline against the fake grammar."""
    return ScanEngine({"max_workers": 1}, validator=fake_validator)


@pytest.fixture
def parse():
    """Parse Python source into a ParsedSource."""
    parser = get_parser("python")

    def _parse(code, file_path="test.py"):
        parsed = parser.parse(code, file_path)
        assert parsed is not None
        return parsed

    return _parse


@pytest.fixture
def make_context(parse):
    """Build an AnalysisContext for Python source."""

    def _make(code, file_path="test.py"):
        parsed = parse(code, file_path)
        return AnalysisContext(
            file_path=file_path,
            content=parsed.source,
            language="python",
            parsed=parsed,
        )

    return _make
