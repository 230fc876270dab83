"""
Python parser using Python's built-in ast and tokenize modules.
"""

import ast as python_ast
import io
import logging
import tokenize
from typing import Optional, List

from embedsql.parsers.base import BaseParser, ASTNode, NodeKind, ParsedSource, Token
from embedsql.parsers import register_parser

logger = logging.getLogger(__name__)


# Layout and comment tokens carry no syntax for the forward token scan.
TRIVIA_TOKENS = frozenset({
    tokenize.COMMENT,
    tokenize.NL,
    tokenize.NEWLINE,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENCODING,
    tokenize.ENDMARKER,
})

# Grammar-only nodes (load/store contexts, operators) are not part of the tree.
SKIPPED_NODES = (
    python_ast.expr_context,
    python_ast.operator,
    python_ast.boolop,
    python_ast.unaryop,
    python_ast.cmpop,
)


@register_parser("python")
class PythonParser(BaseParser):
    """
    Parser for Python source code using the built-in ast module.
    """

    @property
    def language(self) -> str:
        return "python"

    def parse(self, source: str, file_path: str = "<unknown>") -> Optional[ParsedSource]:
        """Parse Python source code into a normalized tree and token stream."""
        # A leading byte-order mark is an encoding marker, not source text.
        if source.startswith("\ufeff"):
            source = source[1:]
        source = source.replace("\r\n", "\n").replace("\r", "\n")
        try:
            tree = python_ast.parse(source, filename=file_path)
            tokens = self._tokenize(source)
        except (SyntaxError, ValueError, tokenize.TokenError) as e:
            logger.debug("Cannot parse %s: %s", file_path, e)
            return None

        lines = source.split("\n")
        root = self._convert_node(tree, lines)
        return ParsedSource(
            path=file_path,
            source=source,
            root=root,
            tokens=tokens,
            language=self.language,
        )

    def _tokenize(self, source: str) -> List[Token]:
        tokens = []
        for tok in tokenize.generate_tokens(io.StringIO(source).readline):
            if tok.type in TRIVIA_TOKENS:
                continue
            tokens.append(Token(
                type=tokenize.tok_name[tok.type],
                string=tok.string,
                start_line=tok.start[0],
                start_column=tok.start[1],
                end_line=tok.end[0],
                end_column=tok.end[1],
            ))
        return tokens

    def _convert_node(
        self,
        node: python_ast.AST,
        lines: List[str],
        parent: Optional[ASTNode] = None,
    ) -> ASTNode:
        """Convert a Python AST node to our normalized ASTNode."""
        start_line = getattr(node, "lineno", 0) or 0
        end_line = getattr(node, "end_lineno", None) or start_line

        # ast columns are UTF-8 byte offsets; spans use character offsets.
        start_col = self._char_column(lines, start_line, getattr(node, "col_offset", 0) or 0)
        end_col = self._char_column(lines, end_line, getattr(node, "end_col_offset", 0) or 0)

        if isinstance(node, python_ast.Module) and lines:
            start_line, start_col = 1, 0
            end_line, end_col = len(lines), len(lines[-1])

        ast_node = ASTNode(
            kind=self._get_node_kind(node),
            value=self._get_node_value(node),
            start_line=start_line,
            end_line=end_line,
            start_column=start_col,
            end_column=end_col,
            parent=parent,
            attributes={"ast_type": node.__class__.__name__},
            source_lines=lines,
        )

        for name, value in python_ast.iter_fields(node):
            if isinstance(value, python_ast.AST):
                if isinstance(value, SKIPPED_NODES):
                    continue
                child = self._convert_node(value, lines, ast_node)
                ast_node.fields[name] = child
                ast_node.children.append(child)
            elif isinstance(value, list):
                converted = []
                for item in value:
                    if isinstance(item, python_ast.AST) and not isinstance(item, SKIPPED_NODES):
                        child = self._convert_node(item, lines, ast_node)
                        converted.append(child)
                        ast_node.children.append(child)
                ast_node.fields[name] = converted

        return ast_node

    @staticmethod
    def _char_column(lines: List[str], line_number: int, byte_offset: int) -> int:
        if line_number < 1 or line_number > len(lines):
            return byte_offset
        encoded = lines[line_number - 1].encode("utf-8")
        return len(encoded[:byte_offset].decode("utf-8", errors="ignore"))

    def _get_node_kind(self, node: python_ast.AST) -> NodeKind:
        """Map Python AST node types to node kinds."""
        if isinstance(node, python_ast.Constant):
            return NodeKind.STRING_LITERAL if isinstance(node.value, str) else NodeKind.LITERAL

        kind_map = {
            "Module": NodeKind.MODULE,
            "FunctionDef": NodeKind.FUNCTION,
            "AsyncFunctionDef": NodeKind.FUNCTION,
            "ClassDef": NodeKind.CLASS,
            "Call": NodeKind.CALL,
            "Assign": NodeKind.ASSIGNMENT,
            "AugAssign": NodeKind.AUGMENTED_ASSIGNMENT,
            "AnnAssign": NodeKind.ANNOTATED_ASSIGNMENT,
            "Attribute": NodeKind.ATTRIBUTE,
            "Name": NodeKind.IDENTIFIER,
            "keyword": NodeKind.KEYWORD,
            "Starred": NodeKind.STARRED,
        }
        return kind_map.get(node.__class__.__name__, NodeKind.OTHER)

    def _get_node_value(self, node: python_ast.AST):
        """Extract the value from certain node types."""
        if isinstance(node, python_ast.Name):
            return node.id
        elif isinstance(node, python_ast.Constant):
            return node.value
        elif isinstance(node, (python_ast.FunctionDef, python_ast.AsyncFunctionDef, python_ast.ClassDef)):
            return node.name
        elif isinstance(node, python_ast.Attribute):
            return node.attr
        elif isinstance(node, python_ast.keyword):
            return node.arg
        return None
