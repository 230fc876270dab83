"""
SQL grammar validation backed by sqlglot.

The validator is the single source of truth for whether a string is
syntactically valid SQL. It returns human-readable messages and never
raises for malformed SQL.
"""

import logging
import re
from typing import List, Dict, Any, Protocol

import sqlglot
from sqlglot.dialects.dialect import Dialect
from sqlglot.errors import ErrorLevel, ParseError, SqlglotError

logger = logging.getLogger(__name__)


DEFAULT_DIALECT = "tsql"


class GrammarValidator(Protocol):
    """Anything that can turn SQL text into an ordered list of syntax errors."""

    def validate(self, sql: str) -> List[str]:
        ...


# sqlglot descriptions embed Python reprs of its expression classes and tokens.
_CLASS_REPR = re.compile(r"<class '(?:\w+\.)*(\w+)'>")
_TOKEN_REPR = re.compile(r"<Token token_type: TokenType\.(\w+), text: (.*?), line: [^>]*>")
_OTHER_REPR = re.compile(r"\s*<[^<>]*>")


def _describe_token(match) -> str:
    token_type, text = match.groups()
    if token_type == "SENTINEL" or not text:
        return "end of input"
    return f"'{text}'"


def _clean_description(description: str) -> str:
    """Replace sqlglot object reprs with the names a SQL author would recognize."""
    description = _CLASS_REPR.sub(r"\1", description)
    description = _TOKEN_REPR.sub(_describe_token, description)
    return _OTHER_REPR.sub("", description).strip()


def _format_parse_error(error: Dict[str, Any]) -> str:
    description = _clean_description(error.get("description") or "").rstrip(".") or "Syntax error"
    highlight = (error.get("highlight") or "").strip()
    message = description
    if highlight:
        message += f" near '{highlight}'"
    line, col = error.get("line"), error.get("col")
    if line is not None and col is not None:
        message += f" (line {line}, col {col})"
    return message + "."


class SqlglotValidator:
    """
    Grammar validator for one SQL dialect.

    Args:
        dialect: A sqlglot dialect name such as ``tsql``, ``postgres``
            or ``sqlite``.

    Raises:
        ValueError: If sqlglot does not know the dialect.
    """

    def __init__(self, dialect: str = DEFAULT_DIALECT):
        self.dialect = dialect
        self._dialect = Dialect.get_or_raise(dialect)

    def validate(self, sql: str) -> List[str]:
        try:
            sqlglot.parse(sql, read=self._dialect, error_level=ErrorLevel.RAISE)
        except ParseError as exc:
            logger.debug("sqlglot (%s) rejected %r: %s", self.dialect, sql, exc)
            if exc.errors:
                return [_format_parse_error(error) for error in exc.errors]
            return [_clean_description(str(exc))]
        except SqlglotError as exc:
            logger.debug("sqlglot (%s) rejected %r: %s", self.dialect, sql, exc)
            return [_clean_description(str(exc))]
        return []

    def __repr__(self) -> str:
        return f"SqlglotValidator(dialect={self.dialect!r})"


def list_dialects() -> List[str]:
    """Dialect names accepted by SqlglotValidator."""
    return sorted(d.value for d in sqlglot.Dialects if d.value)
