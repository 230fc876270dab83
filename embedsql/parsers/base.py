"""
Base parser classes and the normalized syntax tree.

Parsers turn source text into a ParsedSource: a read-only tree of
ASTNode objects plus the significant token stream of the file.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, List, Dict, Iterator


class NodeKind(Enum):
    """Kinds of syntax nodes the analysis distinguishes."""
    MODULE = "module"
    FUNCTION = "function_definition"
    CLASS = "class_definition"
    CALL = "call"
    ASSIGNMENT = "assignment"
    AUGMENTED_ASSIGNMENT = "augmented_assignment"
    ANNOTATED_ASSIGNMENT = "annotated_assignment"
    ATTRIBUTE = "attribute"
    IDENTIFIER = "identifier"
    STRING_LITERAL = "string_literal"
    LITERAL = "literal"
    KEYWORD = "keyword"
    STARRED = "starred"
    OTHER = "other"


# Kinds that open a lexical block for identifier resolution.
BLOCK_KINDS = frozenset({NodeKind.MODULE, NodeKind.FUNCTION, NodeKind.CLASS})


@dataclass(frozen=True)
class Span:
    """A source range: 1-based lines, 0-based character columns."""
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def contains(self, other: "Span") -> bool:
        return (
            (self.start_line, self.start_column) <= (other.start_line, other.start_column)
            and (other.end_line, other.end_column) <= (self.end_line, self.end_column)
        )


@dataclass(eq=False)
class ASTNode:
    """
    Normalized syntax tree node.

    ``fields`` maps the underlying grammar's field names to child nodes
    (or lists of child nodes) so rules can address structure by name
    instead of by child position.
    """
    kind: NodeKind
    value: Optional[Any] = None
    start_line: int = 0
    end_line: int = 0
    start_column: int = 0
    end_column: int = 0
    children: List["ASTNode"] = field(default_factory=list)
    parent: Optional["ASTNode"] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    source_lines: Optional[List[str]] = field(default=None, repr=False)

    def __repr__(self) -> str:
        return f"ASTNode(kind={self.kind.value!r}, value={self.value!r}, line={self.start_line})"

    @property
    def span(self) -> Span:
        return Span(self.start_line, self.start_column, self.end_line, self.end_column)

    @property
    def has_position(self) -> bool:
        return self.start_line > 0

    @property
    def text(self) -> str:
        """Rendered source text of this node."""
        if not self.source_lines or not self.has_position:
            return ""
        lines = self.source_lines
        if self.start_line > len(lines):
            return ""
        if self.start_line == self.end_line:
            return lines[self.start_line - 1][self.start_column:self.end_column]

        result = [lines[self.start_line - 1][self.start_column:]]
        for i in range(self.start_line + 1, min(self.end_line, len(lines) + 1)):
            result.append(lines[i - 1])
        if self.end_line <= len(lines):
            result.append(lines[self.end_line - 1][:self.end_column])
        return "\n".join(result)

    def get_field(self, name: str) -> Any:
        """Get a named child (node, list of nodes, or None)."""
        return self.fields.get(name)

    def walk(self) -> Iterator["ASTNode"]:
        """Yield this node and all descendants, depth first, in source order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, kind: NodeKind) -> Iterator["ASTNode"]:
        """Find all descendant nodes (self included) of a given kind."""
        for node in self.walk():
            if node.kind == kind:
                yield node

    def find_first(self, kind: NodeKind) -> Optional["ASTNode"]:
        for node in self.find_all(kind):
            return node
        return None

    def ancestors(self) -> Iterator["ASTNode"]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def enclosing_block(self) -> Optional["ASTNode"]:
        """The nearest enclosing function, class body, or module."""
        for ancestor in self.ancestors():
            if ancestor.kind in BLOCK_KINDS:
                return ancestor
        return None


@dataclass(frozen=True)
class Token:
    """A significant lexical token (comments and layout tokens excluded)."""
    type: str
    string: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @property
    def span(self) -> Span:
        return Span(self.start_line, self.start_column, self.end_line, self.end_column)


class TokenStream:
    """Ordered tokens of one lexical block, supporting forward scans."""

    def __init__(self, tokens: List[Token]):
        self._tokens = tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def at(self, index: int) -> Optional[Token]:
        if 0 <= index < len(self._tokens):
            return self._tokens[index]
        return None

    def find_first(self, predicate: Callable[[Token], bool], start: int = 0) -> Optional[int]:
        """Index of the first token at or after ``start`` matching ``predicate``."""
        for index in range(max(start, 0), len(self._tokens)):
            if predicate(self._tokens[index]):
                return index
        return None


@dataclass
class ParsedSource:
    """A parsed file: the syntax tree root plus its token stream."""
    path: str
    source: str
    root: ASTNode
    tokens: List[Token]
    language: str = "unknown"

    def tokens_in(self, block: ASTNode) -> TokenStream:
        """Token stream of a block: every token lying inside the block's span."""
        if block.kind == NodeKind.MODULE or not block.has_position:
            return TokenStream(list(self.tokens))
        span = block.span
        return TokenStream([t for t in self.tokens if span.contains(t.span)])


class BaseParser(ABC):
    """
    Base class for language-specific parsers.

    Each parser is responsible for parsing source code into
    a normalized tree that can be analyzed by rules.
    """

    @property
    @abstractmethod
    def language(self) -> str:
        """Return the language this parser handles."""
        pass

    @abstractmethod
    def parse(self, source: str, file_path: str = "<unknown>") -> Optional[ParsedSource]:
        """
        Parse source code.

        Args:
            source: The source code to parse.
            file_path: The file path (for error messages).

        Returns:
            The ParsedSource, or None if the source cannot be parsed.
        """
        pass
