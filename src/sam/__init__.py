"""
Sam scripting language.

This module provides:
- Lexer: Tokenizes Sam source code
- Parser: Builds a tree-sitter style syntax tree from tokens
- Interpreter: Evaluates the tree over a stack of variable frames
- FFI bridge: Foreign functions from JSON interface manifests, shell fallback

Usage:
    from sam import run_source

    result = run_source('''
        let add = (a, b) => { return a + b; };
        let total = add(4, 5);
    ''')
    if result.success:
        print(result.globals["total"])   # 9
    else:
        print(result.diagnostic.format())

    # Or step by step
    from sam import parse, Interpreter

    tree = parse("let x = 5; x = x + 1;")
    ctx = Interpreter().evaluate(tree)
    print(ctx.global_scope()["x"])       # 6
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    StringPart,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .syntax import (
    Node,
    Point,
    Tree,
    format_tree,
    print_tree,
)

from .errors import (
    SamError,
    LexerError,
    ParserError,
    EvaluationError,
    FFIError,
    ConfigError,
    Diagnostic,
    ErrorSeverity,
)

from .config import SamConfig

from .runtime import (
    # Interpreter
    Interpreter,
    ExecutionResult,
    execute,
    run_source,
    # Values
    Value,
    ValueKind,
    Return,
    render,
    value_from_python,
    # Context
    Context,
)

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'StringPart',
    'KEYWORDS',

    # Lexer
    'Lexer',
    'tokenize',

    # Parser
    'Parser',
    'parse',

    # Syntax tree
    'Node',
    'Point',
    'Tree',
    'format_tree',
    'print_tree',

    # Errors
    'SamError',
    'LexerError',
    'ParserError',
    'EvaluationError',
    'FFIError',
    'ConfigError',
    'Diagnostic',
    'ErrorSeverity',

    # Configuration
    'SamConfig',

    # Runtime/Interpreter
    'Interpreter',
    'ExecutionResult',
    'execute',
    'run_source',
    'Value',
    'ValueKind',
    'Return',
    'render',
    'value_from_python',
    'Context',
]
