"""
Token types for the Sam lexer.

Token type categories follow the diagnostic code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
- E5xx: Foreign-function / shell bridge errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the Sam lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.14, 1e-9
    STRING = auto()             # 'hello', "world\n"

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords ---
    LET = auto()                # let
    INTERFACE = auto()          # interface
    LOAD = auto()               # load
    RETURN = auto()             # return
    IF = auto()                 # if
    ELSE = auto()               # else

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Delimiters ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,
    DOT = auto()                # .
    DOUBLE_ARROW = auto()       # => (lambdas)

    # --- Special ---
    EOF = auto()                # end of file


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed UTF-8 byte offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class StringPart:
    """A raw piece of a string literal: either a plain fragment or an escape sequence."""
    kind: str           # "string_fragment" or "escape_sequence"
    text: str
    span: SourceSpan


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # str for identifiers, tuple of StringPart for strings
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.lexeme!r})"
        if self.type == TokenType.STRING:
            return f"STRING({self.lexeme})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "interface": TokenType.INTERFACE,
    "load": TokenType.LOAD,
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
}

