"""
Recursive descent parser for Sam.

Converts a token stream into a concrete syntax tree (`sam.syntax.Tree`)
shaped like the tree a tree-sitter grammar for Sam produces: keywords,
operators and punctuation are kept as anonymous children, and the parts
the evaluator needs are reachable through field names.
"""

from typing import List, Optional, Union, Tuple
from .tokens import Token, TokenType
from .syntax import Node, Point, Tree
from .lexer import tokenize
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_nesting_depth,
)


Part = Union[Node, Tuple[str, Node]]


class Parser:
    """
    Recursive descent parser for Sam.

    Usage:
        parser = Parser(tokens, source)
        tree = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  ||
                 &&
                 == !=
                 < > <= >=
                 + -
        Highest: * / %
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LE: 4,
        TokenType.GE: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.STAR: 6,
        TokenType.SLASH: 6,
        TokenType.PERCENT: 6,
    }

    def __init__(self, tokens: List[Token], source: str = "", filename: Optional[str] = None):
        self.tokens = tokens
        self.source = source
        self.filename = filename
        self.pos = 0
        self._lines = source.splitlines()

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _previous(self) -> Optional[Token]:
        if self.pos == 0:
            return None
        return self.tokens[self.pos - 1]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _advance(self) -> Token:
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        if self._current().type in token_types:
            return self._advance()
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(
            expected, f"'{token.lexeme}'", token.span, self._source_line(token.span.start.line)
        )

    def _source_line(self, line: int) -> Optional[str]:
        return self._lines[line - 1] if 1 <= line <= len(self._lines) else None

    def _finish_statement(self, parts: List[Part]) -> None:
        """
        Consume the ';' ending a statement.

        The ';' may be left out before '}', at end of input, or after a
        statement that already ends with '}'.
        """
        semicolon = self._match(TokenType.SEMICOLON)
        if semicolon:
            parts.append(Node.anonymous(semicolon))
            return
        previous = self._previous()
        if self._check_any(TokenType.RBRACE, TokenType.EOF):
            return
        if previous is not None and previous.type == TokenType.RBRACE:
            return
        self._error("';'")

    # =========================================================================
    # Leaves
    # =========================================================================

    def _identifier(self, expected: str = "identifier") -> Node:
        token = self._consume(TokenType.IDENTIFIER, expected)
        return Node.from_token("identifier", token)

    def _string(self, token: Token) -> Node:
        """Build a string node: quote, fragments and escapes, quote."""
        start = token.span.start
        end = token.span.end
        open_quote = Node(
            token.lexeme[0], start.offset, start.offset + 1,
            Point(start.line - 1, start.column - 1), Point(start.line - 1, start.column),
            is_named=False,
        )
        close_quote = Node(
            token.lexeme[-1], end.offset - 1, end.offset,
            Point(end.line - 1, end.column - 2), Point(end.line - 1, end.column - 1),
            is_named=False,
        )
        parts: List[Part] = [open_quote]
        for piece in token.value:
            parts.append(Node.from_span(piece.kind, piece.span))
        parts.append(close_quote)
        return Node.branch("string", parts)

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Node:
        return self._parse_binary_expr(0)

    def _parse_binary_expr(self, min_precedence: int) -> Node:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_postfix_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = Node.branch("binary_expression", [
                ("left", left),
                Node.anonymous(op_token),
                ("right", right),
            ])

        return left

    def _parse_postfix_expr(self) -> Node:
        """Parse postfix expressions (calls and attribute access)."""
        expr = self._parse_primary_expr()

        while True:
            if self._check(TokenType.LPAREN):
                expr = self._parse_call(expr)
            elif self._check(TokenType.DOT):
                dot = self._advance()
                name = self._identifier("attribute name")
                expr = Node.branch("nested_identifier", [
                    ("parent", expr),
                    Node.anonymous(dot),
                    ("name", name),
                ])
            else:
                break

        return expr

    def _parse_call(self, callee: Node) -> Node:
        """Parse call arguments."""
        parts: List[Part] = [("function", callee), Node.anonymous(self._advance())]

        if not self._check(TokenType.RPAREN):
            parts.append(("arguments", self._parse_expression()))
            while self._check(TokenType.COMMA):
                parts.append(Node.anonymous(self._advance()))
                if self._check(TokenType.RPAREN):
                    break  # Allow trailing comma
                parts.append(("arguments", self._parse_expression()))

        parts.append(Node.anonymous(self._consume(TokenType.RPAREN, "')'")))
        return Node.branch("call_expression", parts)

    def _parse_primary_expr(self) -> Node:
        """Parse primary expressions (literals, identifiers, grouped, etc.)."""
        token = self._current()

        if token.type == TokenType.NUMBER:
            self._advance()
            return Node.branch("literal", [Node.from_token("number", token)])

        # A '-' glued to a number is part of the literal
        if token.type == TokenType.MINUS:
            number = self._peek(1)
            if number.type == TokenType.NUMBER and number.span.start.offset == token.span.end.offset:
                self._advance()
                self._advance()
                leaf = Node.from_token("number", token)
                leaf.end_byte = number.span.end.offset
                leaf.end_point = Point(number.span.end.line - 1, number.span.end.column - 1)
                return Node.branch("literal", [leaf])

        if token.type == TokenType.STRING:
            self._advance()
            return Node.branch("literal", [self._string(token)])

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Node.from_token("identifier", token)

        if token.type == TokenType.LPAREN:
            return self._parse_grouped_or_lambda()

        if token.type == TokenType.LBRACKET:
            return self._parse_array()

        if token.type == TokenType.IF:
            return self._parse_if_expr()

        self._error("expression")

    def _looks_like_lambda(self) -> bool:
        """Scan ahead for '(' [identifier {',' identifier}] ')' '=>'."""
        offset = 1
        if self._peek(offset).type == TokenType.IDENTIFIER:
            offset += 1
            while self._peek(offset).type == TokenType.COMMA:
                if self._peek(offset + 1).type != TokenType.IDENTIFIER:
                    return False
                offset += 2
        return (self._peek(offset).type == TokenType.RPAREN
                and self._peek(offset + 1).type == TokenType.DOUBLE_ARROW)

    def _parse_grouped_or_lambda(self) -> Node:
        """Parse a parenthesised expression or a lambda."""
        if self._looks_like_lambda():
            return self._parse_lambda()

        self._advance()  # consume '('
        expr = self._parse_expression()
        self._consume(TokenType.RPAREN, "')'")
        return expr

    def _parse_lambda(self) -> Node:
        """Parse (params) => { body }."""
        parts: List[Part] = [Node.anonymous(self._advance())]
        if self._check(TokenType.IDENTIFIER):
            parts.append(("parameters", self._identifier()))
            while self._check(TokenType.COMMA):
                parts.append(Node.anonymous(self._advance()))
                parts.append(("parameters", self._identifier("parameter name")))
        parts.append(Node.anonymous(self._consume(TokenType.RPAREN, "')'")))
        parts.append(Node.anonymous(self._consume(TokenType.DOUBLE_ARROW, "'=>'")))
        parts.append(("body", self._parse_block()))
        return Node.branch("lambda_expression", parts)

    def _parse_array(self) -> Node:
        """Parse [a, b, c]."""
        parts: List[Part] = [Node.anonymous(self._advance())]
        if not self._check(TokenType.RBRACKET):
            parts.append(self._parse_expression())
            while self._check(TokenType.COMMA):
                parts.append(Node.anonymous(self._advance()))
                if self._check(TokenType.RBRACKET):
                    break  # Allow trailing comma
                parts.append(self._parse_expression())
        parts.append(Node.anonymous(self._consume(TokenType.RBRACKET, "']'")))
        return Node.branch("array_expression", parts)

    def _parse_if_expr(self) -> Node:
        """Parse if (cond) { ... } [else { ... } | else if ...]."""
        parts: List[Part] = [Node.anonymous(self._advance())]
        parts.append(Node.anonymous(self._consume(TokenType.LPAREN, "'(' after 'if'")))
        parts.append(("condition", self._parse_expression()))
        parts.append(Node.anonymous(self._consume(TokenType.RPAREN, "')'")))
        parts.append(("consequence", self._parse_block()))

        else_token = self._match(TokenType.ELSE)
        if else_token:
            parts.append(Node.anonymous(else_token))
            if self._check(TokenType.IF):
                parts.append(("else", self._parse_if_expr()))
            else:
                parts.append(("else", self._parse_block()))

        return Node.branch("if_expression", parts)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_block(self) -> Node:
        """Parse a brace-delimited statement block."""
        parts: List[Part] = [Node.anonymous(self._consume(TokenType.LBRACE, "'{'"))]

        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            parts.append(self._parse_statement())

        parts.append(Node.anonymous(self._consume(TokenType.RBRACE, "'}'")))
        return Node.branch("statement_block", parts)

    def _parse_statement(self) -> Node:
        if self._check(TokenType.LET):
            return self._parse_variable_declaration()
        if self._check(TokenType.RETURN):
            return self._parse_return_statement()
        if self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.ASSIGN:
            return self._parse_assignment()
        return self._parse_expression_statement()

    def _parse_variable_declaration(self) -> Node:
        """Parse let a = 1, b;"""
        parts: List[Part] = [Node.anonymous(self._advance())]
        parts.append(self._parse_variable_declarator())
        while self._check(TokenType.COMMA):
            parts.append(Node.anonymous(self._advance()))
            parts.append(self._parse_variable_declarator())
        self._finish_statement(parts)
        return Node.branch("variable_declaration", parts)

    def _parse_variable_declarator(self) -> Node:
        parts: List[Part] = [("variable", self._identifier("variable name"))]
        assign = self._match(TokenType.ASSIGN)
        if assign:
            parts.append(Node.anonymous(assign))
            parts.append(("value", self._parse_expression()))
        return Node.branch("variable_declarator", parts)

    def _parse_assignment(self) -> Node:
        parts: List[Part] = [("lhs", self._identifier())]
        parts.append(Node.anonymous(self._advance()))  # '='
        parts.append(("rhs", self._parse_expression()))
        self._finish_statement(parts)
        return Node.branch("assignment", parts)

    def _parse_return_statement(self) -> Node:
        parts: List[Part] = [Node.anonymous(self._advance())]
        if not self._check_any(TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
            parts.append(("value", self._parse_expression()))
        self._finish_statement(parts)
        return Node.branch("return_statement", parts)

    def _parse_expression_statement(self) -> Node:
        parts: List[Part] = [self._parse_expression()]
        self._finish_statement(parts)
        return Node.branch("expression_statement", parts)

    # =========================================================================
    # Declaration Parsing
    # =========================================================================

    def _parse_interface(self) -> Node:
        """Parse interface "manifest.json" load name;"""
        parts: List[Part] = [Node.anonymous(self._advance())]
        path = self._consume(TokenType.STRING, "manifest path string")
        parts.append(("path", self._string(path)))
        parts.append(Node.anonymous(self._consume(TokenType.LOAD, "'load'")))
        parts.append(("module", self._identifier("interface name")))
        self._finish_statement(parts)
        return Node.branch("interface", parts)

    def parse_program(self) -> Tree:
        """Parse a complete program."""
        eof = self.tokens[-1]
        root = Node(
            "source_file", 0, eof.span.end.offset,
            Point(0, 0), Point(eof.span.end.line - 1, eof.span.end.column - 1),
        )

        interfaces = []
        while self._check(TokenType.INTERFACE):
            interfaces.append(self._parse_interface())
        if interfaces:
            root.append(Node.branch("interfaces", interfaces))

        while not self._is_at_end():
            root.append(self._parse_statement())

        return Tree(root, self.source.encode("utf-8"))


def parse(source: str, filename: Optional[str] = None) -> Tree:
    """
    Convenience function to tokenize and parse Sam source into a tree.

    Args:
        source: Sam source code
        filename: Optional filename for error messages

    Returns:
        The parsed Tree, rooted at a source_file node

    Raises:
        LexerError: If tokenization fails
        ParserError: If parsing fails, including E103 when expressions nest
            deeper than the interpreter stack allows
    """
    tokens = tokenize(source, filename)
    parser = Parser(tokens, source, filename)
    try:
        return parser.parse_program()
    except RecursionError:
        span = parser._current().span
        raise error_nesting_depth(span, parser._source_line(span.start.line)) from None
