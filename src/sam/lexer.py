"""
Lexer for the Sam scripting language.

Turns Sam source text into the token list the parser consumes.
Supports:
- Line comments (//) and block comments (/* */)
- Single- and double-quoted strings whose escape sequences are kept raw,
  so the syntax tree can expose them as separate nodes
- Integer and float literals (including scientific notation)
- All Sam keywords and operators

Token spans carry UTF-8 byte offsets, matching the byte ranges the
evaluator uses to re-locate function bodies.
"""

from typing import List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, StringPart, KEYWORDS,
)
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_number_literal,
)


_DIGITS = '0123456789'
_HEX_DIGITS = '0123456789abcdefABCDEF'


class Lexer:
    """
    Tokenizer for Sam source code.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current character index in source
        self.offset = 0         # Current UTF-8 byte offset
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None

    @property
    def lines(self) -> List[str]:
        """Source split into lines, computed on first use."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Return source line `line_num` (1-based), or None when out of range."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.offset, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Span from `start` up to the current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Character `offset` places ahead, or NUL past the end."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume one character, keeping line, column and byte offset in step."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        self.offset += len(ch.encode('utf-8'))
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume the next character only if it equals `expected`."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_line_comment(self) -> None:
        """Skip a // comment up to the end of the line."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_block_comment(self) -> None:
        """Skip /* ... */ comment."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'

        while not self._is_at_end():
            if self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                return
            self._advance()

        raise error_unterminated_comment(
            self._span(start),
            self.get_source_line(start.line)
        )

    def _skip_trivia(self) -> None:
        """Skip whitespace and comments."""
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_line_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    start_pos: int) -> Token:
        """Create a token covering source[start_pos:self.pos]."""
        lexeme = self.source[start_pos:self.pos]
        return Token(token_type, value, lexeme, self._span(start))

    def _scan_string(self) -> Token:
        """Scan a string literal, keeping fragments and escapes apart."""
        start = self._location()
        start_pos = self.pos
        quote = self._advance()  # consume opening quote

        parts: List[StringPart] = []
        fragment_start = self._location()
        fragment: List[str] = []

        def flush():
            if fragment:
                parts.append(StringPart(
                    "string_fragment", ''.join(fragment), self._span(fragment_start)
                ))
                fragment.clear()

        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                flush()
                esc_start = self._location()
                raw = self._scan_escape_sequence()
                parts.append(StringPart("escape_sequence", raw, self._span(esc_start)))
                fragment_start = self._location()
            else:
                if not fragment:
                    fragment_start = self._location()
                fragment.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        flush()
        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, tuple(parts), start, start_pos)

    def _scan_escape_sequence(self) -> str:
        """Consume a raw escape sequence starting at the backslash."""
        start_pos = self.pos
        self._advance()  # consume backslash
        if self._is_at_end() or self._peek() == '\n':
            return self.source[start_pos:self.pos]

        ch = self._advance()
        if ch == 'x':
            for _ in range(2):
                if self._peek() in _HEX_DIGITS:
                    self._advance()
        elif ch == 'u':
            if self._peek() == '{':
                self._advance()
                while self._peek() in _HEX_DIGITS:
                    self._advance()
                self._match('}')
            else:
                for _ in range(4):
                    if self._peek() in _HEX_DIGITS:
                        self._advance()
        return self.source[start_pos:self.pos]

    def _scan_number(self) -> Token:
        """Scan a number: digits, optional fraction, optional exponent."""
        start = self._location()
        start_pos = self.pos

        while self._peek() in _DIGITS:
            self._advance()

        # Fractional part
        if self._peek() == '.' and self._peek(1) in _DIGITS:
            self._advance()  # consume '.'
            while self._peek() in _DIGITS:
                self._advance()

        # Scientific notation
        if self._peek() in 'eE':
            self._advance()  # consume 'e'
            if self._peek() in '+-':
                self._advance()
            if self._peek() not in _DIGITS:
                raise error_invalid_number_literal(
                    self.source[start_pos:self.pos], self._span(start),
                    self.get_source_line(start.line)
                )
            while self._peek() in _DIGITS:
                self._advance()

        if self._peek().isalpha() or self._peek() == '_':
            while self._peek().isalnum() or self._peek() == '_':
                self._advance()
            raise error_invalid_number_literal(
                self.source[start_pos:self.pos], self._span(start),
                self.get_source_line(start.line)
            )

        return self._make_token(TokenType.NUMBER, None, start, start_pos)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan a name; reserved words become keyword tokens."""
        start = self._location()
        start_pos = self.pos

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start_pos:self.pos]
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        return self._make_token(token_type, lexeme, start, start_pos)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_trivia()

        start = self._location()
        start_pos = self.pos

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, start, start_pos)

        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if ch in _DIGITS:
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        self._advance()

        # Two-character operators
        if ch == '=' and self._match('>'):
            return self._make_token(TokenType.DOUBLE_ARROW, "=>", start, start_pos)
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.EQ, "==", start, start_pos)
        if ch == '!' and self._match('='):
            return self._make_token(TokenType.NE, "!=", start, start_pos)
        if ch == '<' and self._match('='):
            return self._make_token(TokenType.LE, "<=", start, start_pos)
        if ch == '>' and self._match('='):
            return self._make_token(TokenType.GE, ">=", start, start_pos)
        if ch == '&' and self._match('&'):
            return self._make_token(TokenType.AND, "&&", start, start_pos)
        if ch == '|' and self._match('|'):
            return self._make_token(TokenType.OR, "||", start, start_pos)

        single_char_tokens = {
            '+': TokenType.PLUS,
            '-': TokenType.MINUS,
            '*': TokenType.STAR,
            '/': TokenType.SLASH,
            '%': TokenType.PERCENT,
            '<': TokenType.LT,
            '>': TokenType.GT,
            '=': TokenType.ASSIGN,
            ';': TokenType.SEMICOLON,
            ',': TokenType.COMMA,
            '.': TokenType.DOT,
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '[': TokenType.LBRACKET,
            ']': TokenType.RBRACKET,
            '{': TokenType.LBRACE,
            '}': TokenType.RBRACE,
        }

        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start, start_pos)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Scan the whole source; the list always ends with an EOF token."""
        tokens = []
        while True:
            token = self._scan_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                break
        return tokens

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens."""
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Tokenize Sam source in one call.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
