"""
Sam-specific exceptions and error handling.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
- E5xx: Foreign-function / shell bridge errors
- C0xx: Configuration errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E402, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None   # None when no source range is known
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.span is not None:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append(f"  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        result = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": None,
            "hints": self.hints,
        }
        if self.span is not None:
            result["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return result


class SamError(Exception):
    """Base exception for Sam errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(SamError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(SamError):
    """Error during parsing (E1xx)."""
    pass


class EvaluationError(SamError):
    """Error while evaluating a program (E4xx). Aborts the whole run."""

    def locate(self, span: Optional[SourceSpan], source_line: Optional[str]) -> "EvaluationError":
        """Attach a source range if the diagnostic does not carry one yet."""
        if self.diagnostic.span is None and span is not None:
            self.diagnostic.span = span
            self.diagnostic.source_line = source_line
        return self


class FFIError(EvaluationError):
    """Error in the foreign-function or shell bridge (E5xx)."""
    pass


class ConfigError(SamError):
    """Invalid or unreadable interpreter configuration."""
    pass


def _error(code: str, message: str, span: Optional[SourceSpan] = None,
           source_line: str = None, hints: List[str] = None) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    return LexerError(_error("E001", f"unexpected character '{char}'", span, source_line))


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    return LexerError(_error(
        "E002", "unterminated string literal", span, source_line,
        hints=["string literals must be closed with matching quotes"],
    ))


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E003: Unterminated multi-line comment."""
    return LexerError(_error(
        "E003", "unterminated multi-line comment (expected closing */)", span, source_line,
    ))


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Invalid number literal."""
    return LexerError(_error("E004", f"invalid number literal '{text}'", span, source_line))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    return ParserError(_error("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    return ParserError(_error("E102", f"unexpected end of input, expected {expected}", span))


def error_nesting_depth(span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Expression nested deeper than the parser can follow."""
    return ParserError(_error(
        "E103", "expression is nested too deeply", span, source_line,
        hints=["split the expression into smaller let declarations"],
    ))


# --- Evaluation error codes ---

def error_shape(expected: str, found: str) -> EvaluationError:
    """E401: A node's kind does not fit its grammar position."""
    return EvaluationError(_error("E401", f"{expected} node expected but found '{found}'"))


def error_integer_literal(text: str) -> EvaluationError:
    """E401: Integer literal outside the 64-bit range."""
    return EvaluationError(_error("E401", f"integer literal '{text}' does not fit in 64 bits"))


def error_undefined_variable(name: str) -> EvaluationError:
    """E402: Identifier not bound on the live scope stack."""
    return EvaluationError(_error("E402", f"variable '{name}' is not defined"))


def error_undefined_assignment(name: str) -> EvaluationError:
    """E403: Assignment target not bound on the live scope stack."""
    return EvaluationError(_error(
        "E403", f"assigning to non-existent variable '{name}'",
        hints=[f"declare it first with 'let {name};'"],
    ))


def error_arity_mismatch(expected: int, found: int) -> EvaluationError:
    """E404: Call argument count differs from the parameter count."""
    return EvaluationError(_error(
        "E404", f"function expects {expected} argument(s) but was called with {found}",
    ))


def error_condition_not_int(found: str) -> EvaluationError:
    """E405: An if condition that is not an Int."""
    return EvaluationError(_error(
        "E405", f"if condition must evaluate to an int, found {found}",
    ))


def error_not_attributable(found: str, attribute: str) -> EvaluationError:
    """E406: Attribute access on a non-object."""
    return EvaluationError(_error(
        "E406", f"cannot read attribute '{attribute}' of {found}; only objects have attributes",
    ))


def error_unknown_attribute(attribute: str) -> EvaluationError:
    """E407: Attribute key absent from the object."""
    return EvaluationError(_error("E407", f"object has no attribute '{attribute}'"))


def error_incomparable(operator: str, left: str, right: str) -> EvaluationError:
    """E408: Ordering comparison without an ordering."""
    return EvaluationError(_error(
        "E408", f"operator '{operator}' cannot order {left} and {right}",
    ))


def error_return_outside_function() -> EvaluationError:
    """E409: A return reached the top level."""
    return EvaluationError(_error("E409", "return outside function"))


def error_not_callable(found: str) -> EvaluationError:
    """E410: Call target evaluates to something that cannot be called."""
    return EvaluationError(_error("E410", f"{found} is not callable"))


def error_unknown_operator(operator: str) -> EvaluationError:
    """E411: Operator token not understood."""
    return EvaluationError(_error("E411", f"unknown operator '{operator}'"))


def error_call_depth(limit: int) -> EvaluationError:
    """E412: Too many nested function calls."""
    return EvaluationError(_error(
        "E412", f"maximum call depth of {limit} exceeded",
        hints=["raise max_call_depth in the interpreter configuration"],
    ))


def error_stack_exhausted() -> EvaluationError:
    """E412: Nesting ran out of interpreter stack before max_call_depth was reached."""
    return EvaluationError(_error(
        "E412", "call nesting exhausted the interpreter stack",
        hints=["lower max_call_depth in the interpreter configuration"],
    ))


def error_return_as_value() -> EvaluationError:
    """E413: A return signal reached a place that needs a value."""
    return EvaluationError(_error(
        "E413", "return cannot be used where a value is expected",
        hints=["return is only allowed as a statement inside a function body"],
    ))


# --- FFI / shell error codes ---

def error_manifest_unreadable(path: str, reason: str) -> FFIError:
    """E501: Interface manifest could not be read."""
    return FFIError(_error("E501", f"there was an error in reading from {path}: {reason}"))


def error_manifest_invalid(name: str, path: str) -> FFIError:
    """E502: Interface manifest is not valid JSON."""
    return FFIError(_error("E502", f"there was an error in parsing {name} from {path}"))


def error_interface_entry(name: str, path: str) -> FFIError:
    """E503: Requested interface name missing or not a string."""
    return FFIError(_error(
        "E503", f"interface entry '{name}' in {path} must be a string",
        hints=["manifests map exposed names to shell command templates"],
    ))


def error_foreign_output(command: str) -> FFIError:
    """E504: Foreign function printed something that is not JSON."""
    return FFIError(_error(
        "E504", f"there was an error in parsing the output of `{command}`",
        hints=["foreign functions must write a single JSON value to stdout"],
    ))


def error_spawn_failed(command: str, reason: str) -> FFIError:
    """E505: The process could not be started at all."""
    return FFIError(_error("E505", f"failed to run `{command}`: {reason}"))


# --- Configuration errors ---

def error_config(message: str) -> ConfigError:
    """C001: Configuration problem."""
    return ConfigError(_error("C001", message))
