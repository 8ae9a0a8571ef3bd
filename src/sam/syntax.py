"""
Concrete syntax tree for Sam programs.

Nodes mirror the interface of a tree-sitter parse tree: every node has a
kind (`type`), a byte range into the original source, positional children
(named and anonymous), and optional field names on children. The evaluator
only relies on this interface, so a tree produced by a compiled tree-sitter
grammar for Sam can be evaluated the same way as one built by `sam.parser`.

Node kinds produced by the parser:
    source_file, interfaces, interface, expression_statement,
    variable_declaration, variable_declarator, assignment, return_statement,
    literal, number, string, string_fragment, escape_sequence,
    binary_expression, identifier, nested_identifier, array_expression,
    lambda_expression, call_expression, if_expression, statement_block
"""

from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from .tokens import SourceSpan, Token


class Point(NamedTuple):
    """A zero-based (row, column) position, as tree-sitter reports it."""
    row: int
    column: int


class Node:
    """A node of the concrete syntax tree."""

    __slots__ = (
        "type", "is_named", "start_byte", "end_byte", "start_point", "end_point",
        "children", "parent", "_field_names", "_source",
    )

    def __init__(
        self,
        type: str,
        start_byte: int,
        end_byte: int,
        start_point: Point,
        end_point: Point,
        is_named: bool = True,
    ):
        self.type = type
        self.is_named = is_named
        self.start_byte = start_byte
        self.end_byte = end_byte
        self.start_point = start_point
        self.end_point = end_point
        self.children: List["Node"] = []
        self.parent: Optional["Node"] = None
        self._field_names: List[Optional[str]] = []
        self._source: bytes = b""

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_span(cls, type: str, span: SourceSpan, is_named: bool = True) -> "Node":
        """Create a leaf node covering a lexer span."""
        return cls(
            type,
            span.start.offset,
            span.end.offset,
            Point(span.start.line - 1, span.start.column - 1),
            Point(span.end.line - 1, span.end.column - 1),
            is_named,
        )

    @classmethod
    def from_token(cls, type: str, token: Token, is_named: bool = True) -> "Node":
        return cls.from_span(type, token.span, is_named)

    @classmethod
    def anonymous(cls, token: Token) -> "Node":
        """An unnamed node for punctuation, keywords and operators."""
        return cls.from_span(token.lexeme, token.span, is_named=False)

    @classmethod
    def branch(cls, type: str, parts: Sequence[Union["Node", Tuple[str, "Node"]]]) -> "Node":
        """
        Create an interior node from its children.

        Each part is either a child node or a (field_name, child) pair.
        The node's range spans from the first child to the last.
        """
        first = parts[0][1] if isinstance(parts[0], tuple) else parts[0]
        last = parts[-1][1] if isinstance(parts[-1], tuple) else parts[-1]
        node = cls(type, first.start_byte, last.end_byte, first.start_point, last.end_point)
        for part in parts:
            if isinstance(part, tuple):
                node.append(part[1], part[0])
            else:
                node.append(part)
        return node

    def append(self, child: "Node", field_name: Optional[str] = None) -> None:
        child.parent = self
        self.children.append(child)
        self._field_names.append(field_name)

    def attach_source(self, source: bytes) -> None:
        """Share the source bytes with every node of the subtree."""
        stack = [self]
        while stack:
            node = stack.pop()
            node._source = source
            stack.extend(node.children)

    # =========================================================================
    # Tree-sitter style accessors
    # =========================================================================

    @property
    def text(self) -> bytes:
        """The source bytes covered by this node."""
        return self._source[self.start_byte:self.end_byte]

    @property
    def child_count(self) -> int:
        return len(self.children)

    @property
    def named_children(self) -> List["Node"]:
        return [c for c in self.children if c.is_named]

    @property
    def named_child_count(self) -> int:
        return len(self.named_children)

    def child(self, index: int) -> Optional["Node"]:
        if 0 <= index < len(self.children):
            return self.children[index]
        return None

    def named_child(self, index: int) -> Optional["Node"]:
        named = self.named_children
        if 0 <= index < len(named):
            return named[index]
        return None

    def child_by_field_name(self, name: str) -> Optional["Node"]:
        for child, field_name in zip(self.children, self._field_names):
            if field_name == name:
                return child
        return None

    def children_by_field_name(self, name: str) -> List["Node"]:
        return [c for c, f in zip(self.children, self._field_names) if f == name]

    def field_name_for_child(self, index: int) -> Optional[str]:
        if 0 <= index < len(self._field_names):
            return self._field_names[index]
        return None

    def descendant_for_byte_range(self, start_byte: int, end_byte: int) -> Optional["Node"]:
        """Return the smallest node in this subtree that spans the byte range."""
        if not (self.start_byte <= start_byte and end_byte <= self.end_byte):
            return None
        node = self
        while True:
            for child in node.children:
                if child.start_byte <= start_byte and end_byte <= child.end_byte:
                    node = child
                    break
            else:
                return node

    def walk(self) -> Iterator["Node"]:
        """Pre-order traversal of the subtree."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    # =========================================================================
    # Rendering
    # =========================================================================

    def sexp(self) -> str:
        """Render the named structure as an S-expression, tree-sitter style."""
        parts = []
        for child, field_name in zip(self.children, self._field_names):
            if not child.is_named:
                continue
            rendered = child.sexp()
            parts.append(f"{field_name}: {rendered}" if field_name else rendered)
        if not parts:
            return f"({self.type})"
        return f"({self.type} {' '.join(parts)})"

    def __repr__(self) -> str:
        return (f"<Node type={self.type} start_point=({self.start_point.row}, {self.start_point.column}) "
                f"end_point=({self.end_point.row}, {self.end_point.column})>")


class Tree:
    """A parsed Sam program: the root node plus the source bytes it indexes."""

    def __init__(self, root_node: Node, source: bytes):
        self.root_node = root_node
        self.text = source
        root_node.attach_source(source)


def format_tree(node: Node, indent: int = 0, field_name: Optional[str] = None) -> str:
    """Render a subtree one named node per line, with field names and leaf text."""
    lines = []
    prefix = "  " * indent + (f"{field_name}: " if field_name else "")
    if node.named_child_count == 0:
        lines.append(f"{prefix}{node.type} {node.text.decode('utf-8', errors='replace')!r}")
    else:
        lines.append(f"{prefix}{node.type}")
    for index, child in enumerate(node.children):
        if child.is_named:
            lines.append(format_tree(child, indent + 1, node.field_name_for_child(index)))
    return "\n".join(lines)


def print_tree(node: Node) -> None:
    """Print a syntax tree for debugging."""
    print(format_tree(node))
