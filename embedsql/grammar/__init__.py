"""SQL grammar validation."""

from embedsql.grammar.validator import (
    DEFAULT_DIALECT,
    GrammarValidator,
    SqlglotValidator,
    list_dialects,
)

__all__ = [
    "DEFAULT_DIALECT",
    "GrammarValidator",
    "SqlglotValidator",
    "list_dialects",
]
