"""
Rules for SQL embedded in source code.

Importing this package registers every rule with the global registry.
"""

from embedsql.rules import sql_syntax

__all__ = [
    "sql_syntax",
]
