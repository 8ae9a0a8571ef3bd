"""
Tree-walking interpreter for Sam programs.

Evaluates syntax tree nodes directly, dispatching on the node kind. The
evaluator only uses the tree-sitter style node interface (`type`,
`children`, `child_by_field_name`, byte ranges, ...), so any tree with
that interface can be evaluated.

Every statement and block yields a signal: a plain `Value` when control
falls through, or a `Return` when a `return` statement ran and the
enclosing call should finish with that value.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .values import (
    Value, ValueKind, Return, Signal,
    string_val, array_val, function_val, undefined_val,
    binary_op, get_attribute, kind_name, parse_number,
)
from .context import Context, create_context
from . import ffi
from ..config import SamConfig
from ..errors import (
    Diagnostic,
    EvaluationError,
    SamError,
    error_shape,
    error_integer_literal,
    error_undefined_variable,
    error_undefined_assignment,
    error_arity_mismatch,
    error_condition_not_int,
    error_return_outside_function,
    error_not_callable,
    error_return_as_value,
    error_stack_exhausted,
)
from ..tokens import SourceLocation, SourceSpan


_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    "'": "'",
    '"': '"',
    "b": "\b",
    "f": "\f",
    "v": "\v",
}


def decode_escape(raw: str) -> str:
    r"""
    Decode one escape sequence, backslash included.

    Supports the single-character escapes, \xHH, \uHHHH and \u{H...}.
    Anything else decodes to the escaped character itself.
    """
    body = raw[1:]
    if not body:
        return "\\"
    head = body[0]
    if head in _ESCAPES:
        return _ESCAPES[head]
    if head in "xu":
        digits = body[1:].strip("{}")
        if digits:
            try:
                return chr(int(digits, 16))
            except (ValueError, OverflowError):
                pass
    return head


def expect_node(node: Any, kind: str) -> None:
    """Check that a node has the kind its grammar position requires."""
    if node is None:
        raise error_shape(kind, "nothing")
    if node.type != kind:
        raise error_shape(kind, node.type)


@dataclass
class ExecutionResult:
    """Result of running a Sam program."""
    success: bool
    context: Optional[Context] = None
    diagnostic: Optional[Diagnostic] = None

    @property
    def globals(self) -> Dict[str, Any]:
        """The global bindings as plain Python data."""
        if self.context is None:
            return {}
        return self.context.global_bindings()

    @property
    def error_message(self) -> Optional[str]:
        if self.diagnostic is None:
            return None
        return self.diagnostic.message


class Interpreter:
    """
    Tree-walking interpreter for Sam.

    Evaluates syntax tree nodes by dispatching to kind-specific methods.
    """

    def __init__(self, config: Optional[SamConfig] = None, filename: Optional[str] = None):
        """
        Initialize the interpreter.

        Args:
            config: Shell, manifest and recursion settings
            filename: Source file name used in diagnostics
        """
        self.config = config or SamConfig()
        self.filename = filename

    def evaluate(self, tree: Any, source: Union[str, bytes, None] = None) -> Context:
        """
        Evaluate a whole program.

        Args:
            tree: A parsed program whose root is a `source_file` node
            source: The program text; defaults to the text the tree holds

        Returns:
            The final context; its global frame holds the program's bindings

        Raises:
            EvaluationError: On the first runtime failure (FFIError for the
                foreign-function and shell bridge)
        """
        if source is None:
            source = getattr(tree, "text", None) or b""
        if isinstance(source, str):
            source = source.encode("utf-8")

        root = tree.root_node
        ctx = create_context(tree, source)
        expect_node(root, "source_file")

        statements = root.named_children
        if statements and statements[0].type == "interfaces":
            self._execute_interfaces(statements[0], ctx)
            statements = statements[1:]

        for stmt in statements:
            try:
                signal = self._execute_statement(stmt, ctx)
            except RecursionError:
                raise error_stack_exhausted().locate(*self._location(stmt, ctx)) from None
            if isinstance(signal, Return):
                raise error_return_outside_function().locate(*self._location(stmt, ctx))

        return ctx

    # =========================================================================
    # Helpers
    # =========================================================================

    def _location(self, node: Any, ctx: Context):
        """Source span and source line of a node, for diagnostics."""
        start = SourceLocation(
            node.start_point[0] + 1, node.start_point[1] + 1, node.start_byte, self.filename,
        )
        end = SourceLocation(
            node.end_point[0] + 1, node.end_point[1] + 1, node.end_byte, self.filename,
        )
        return SourceSpan(start, end), ctx.get_source_line(start.line)

    def _text(self, node: Any, ctx: Context) -> str:
        return ctx.source[node.start_byte:node.end_byte].decode("utf-8")

    def _field(self, node: Any, name: str) -> Any:
        child = node.child_by_field_name(name)
        if child is None:
            raise error_shape(name, node.type)
        return child

    # =========================================================================
    # Interfaces
    # =========================================================================

    def _execute_interfaces(self, node: Any, ctx: Context) -> None:
        """Register every `interface` declaration with the FFI bridge."""
        for decl in node.named_children:
            try:
                expect_node(decl, "interface")
                path = self._eval_string(self._field(decl, "path"), ctx)
                module = self._field(decl, "module")
                expect_node(module, "identifier")
                ffi.register(path, self._text(module, ctx), ctx, self.config)
            except EvaluationError as e:
                e.locate(*self._location(decl, ctx))
                raise

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statement(self, stmt: Any, ctx: Context) -> Signal:
        """Execute a statement."""
        try:
            if stmt.type == "expression_statement":
                return self._evaluate(stmt.named_children[0], ctx)
            elif stmt.type == "variable_declaration":
                return self._execute_declaration(stmt, ctx)
            elif stmt.type == "assignment":
                return self._execute_assignment(stmt, ctx)
            elif stmt.type == "return_statement":
                return self._execute_return(stmt, ctx)
            else:
                raise error_shape("statement", stmt.type)
        except EvaluationError as e:
            e.locate(*self._location(stmt, ctx))
            raise

    def _execute_declaration(self, stmt: Any, ctx: Context) -> Value:
        """Execute `let a = 1, b;`. Always yields undefined."""
        for declarator in stmt.named_children:
            expect_node(declarator, "variable_declarator")
            variable = self._field(declarator, "variable")
            name = self._text(variable, ctx)
            # the name is visible, as undefined, while its initializer runs
            ctx.declare(name, undefined_val())
            initializer = declarator.child_by_field_name("value")
            if initializer is not None:
                ctx.declare(name, self._evaluate_value(initializer, ctx))
        return undefined_val()

    def _execute_assignment(self, stmt: Any, ctx: Context) -> Value:
        """Execute an assignment; yields the assigned value."""
        lhs = self._field(stmt, "lhs")
        expect_node(lhs, "identifier")
        value = self._evaluate_value(self._field(stmt, "rhs"), ctx)
        name = self._text(lhs, ctx)
        if not ctx.assign(name, value):
            raise error_undefined_assignment(name)
        return value

    def _execute_return(self, stmt: Any, ctx: Context) -> Return:
        """Execute a return statement."""
        value_node = stmt.child_by_field_name("value")
        if value_node is None:
            return Return(undefined_val())
        return Return(self._evaluate_value(value_node, ctx))

    def _execute_block(self, block: Any, ctx: Context, bindings: Optional[Dict[str, Value]] = None) -> Signal:
        """Execute a statement block in a new frame, stopping at the first return."""
        expect_node(block, "statement_block")
        with ctx.new_scope(bindings):
            for stmt in block.named_children:
                signal = self._execute_statement(stmt, ctx)
                if isinstance(signal, Return):
                    return signal
        return undefined_val()

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Any, ctx: Context) -> Signal:
        """Evaluate an expression."""
        try:
            if expr.type == "literal":
                return self._eval_literal(expr, ctx)
            elif expr.type == "binary_expression":
                return self._eval_binary_op(expr, ctx)
            elif expr.type == "identifier":
                return self._eval_identifier(expr, ctx)
            elif expr.type == "nested_identifier":
                return self._eval_nested_identifier(expr, ctx)
            elif expr.type == "array_expression":
                return self._eval_array(expr, ctx)
            elif expr.type == "lambda_expression":
                return self._eval_lambda(expr, ctx)
            elif expr.type == "if_expression":
                return self._eval_if_expr(expr, ctx)
            elif expr.type == "call_expression":
                return self._eval_call(expr, ctx)
            else:
                raise error_shape("expression", expr.type)
        except EvaluationError as e:
            e.locate(*self._location(expr, ctx))
            raise

    def _evaluate_value(self, expr: Any, ctx: Context) -> Value:
        """Evaluate an expression that must produce a plain value."""
        signal = self._evaluate(expr, ctx)
        if isinstance(signal, Return):
            raise error_return_as_value().locate(*self._location(expr, ctx))
        return signal

    def _eval_literal(self, lit: Any, ctx: Context) -> Value:
        """Evaluate a number or string literal."""
        inner = lit.named_children[0] if lit.named_children else None
        if inner is not None and inner.type == "number":
            text = self._text(inner, ctx)
            value = parse_number(text)
            if value is None:
                raise error_integer_literal(text)
            return value
        if inner is not None and inner.type == "string":
            return string_val(self._eval_string(inner, ctx))
        raise error_shape("number or string", inner.type if inner is not None else "nothing")

    def _eval_string(self, node: Any, ctx: Context) -> str:
        """Decode a string node from its fragments and escape sequences."""
        expect_node(node, "string")
        pieces = []
        for part in node.named_children:
            if part.type == "string_fragment":
                pieces.append(self._text(part, ctx))
            elif part.type == "escape_sequence":
                pieces.append(decode_escape(self._text(part, ctx)))
            else:
                raise error_shape("string_fragment", part.type)
        return "".join(pieces)

    def _eval_binary_op(self, expr: Any, ctx: Context) -> Value:
        """Evaluate both operands, left first, then apply the operator."""
        left = self._evaluate_value(self._field(expr, "left"), ctx)
        right = self._evaluate_value(self._field(expr, "right"), ctx)
        operator = self._text(expr.child(1), ctx)
        return binary_op(operator, left, right)

    def _eval_identifier(self, expr: Any, ctx: Context) -> Value:
        name = self._text(expr, ctx)
        value = ctx.resolve(name)
        if value is None:
            raise error_undefined_variable(name)
        return value

    def _eval_nested_identifier(self, expr: Any, ctx: Context) -> Value:
        """Evaluate attribute access `a.b`."""
        parent = self._evaluate_value(self._field(expr, "parent"), ctx)
        name = self._field(expr, "name")
        return get_attribute(parent, self._text(name, ctx))

    def _eval_array(self, expr: Any, ctx: Context) -> Value:
        return array_val([self._evaluate_value(item, ctx) for item in expr.named_children])

    def _eval_lambda(self, expr: Any, ctx: Context) -> Value:
        """Capture the body's byte range and parameter names; the body is not evaluated."""
        body = self._field(expr, "body")
        expect_node(body, "statement_block")
        parameters = []
        for param in expr.children_by_field_name("parameters"):
            expect_node(param, "identifier")
            parameters.append(self._text(param, ctx))
        return function_val(body.start_byte, body.end_byte, parameters)

    def _eval_if_expr(self, expr: Any, ctx: Context) -> Signal:
        """Evaluate if/else; the condition must be an Int."""
        condition = self._evaluate_value(self._field(expr, "condition"), ctx)
        if condition.kind != ValueKind.INT:
            raise error_condition_not_int(kind_name(condition))

        if condition.is_truthy():
            return self._execute_block(self._field(expr, "consequence"), ctx)

        alternative = expr.child_by_field_name("else")
        if alternative is None:
            return undefined_val()
        if alternative.type == "if_expression":
            return self._evaluate(alternative, ctx)
        return self._execute_block(alternative, ctx)

    # =========================================================================
    # Calls
    # =========================================================================

    def _eval_call(self, expr: Any, ctx: Context) -> Value:
        """
        Evaluate a call.

        An identifier in function position is resolved in this order:
        a bound Function or ForeignFunction; a ForeignFunction of that name
        in the global frame; for an unbound name, the program of that name
        (shell fallback). A bound value that cannot be called is an error.
        """
        callee = self._field(expr, "function")
        arg_nodes = expr.children_by_field_name("arguments")

        if callee.type == "identifier":
            name = self._text(callee, ctx)
            function = ctx.resolve(name)
            if function is None or not function.is_callable:
                registered = ctx.global_scope().get(name)
                if registered is not None and registered.kind == ValueKind.FOREIGN_FUNCTION:
                    function = registered
                elif function is None:
                    args = [self._evaluate_value(arg, ctx) for arg in arg_nodes]
                    return ffi.invoke_shell(name, args, self.config)
                else:
                    raise error_not_callable(kind_name(function))
        else:
            name = "<anonymous>"
            function = self._evaluate_value(callee, ctx)
            if not function.is_callable:
                raise error_not_callable(kind_name(function))

        args = [self._evaluate_value(arg, ctx) for arg in arg_nodes]
        if function.kind == ValueKind.FOREIGN_FUNCTION:
            return ffi.invoke_foreign(function, args, self.config)
        return self._call_function(name, function, args, ctx)

    def _call_function(self, name: str, function: Value, args: List[Value], ctx: Context) -> Value:
        """Bind arguments in a new frame and run the function body."""
        data = function.data
        if len(args) != len(data.parameters):
            raise error_arity_mismatch(len(data.parameters), len(args))

        body = ctx.tree.root_node.descendant_for_byte_range(data.start_byte, data.end_byte)
        expect_node(body, "statement_block")

        with ctx.function_call(name, self.config.max_call_depth):
            signal = self._execute_block(body, ctx, dict(zip(data.parameters, args)))

        if isinstance(signal, Return):
            return signal.value
        return undefined_val()


def execute(tree: Any, source: Union[str, bytes, None] = None,
            config: Optional[SamConfig] = None) -> Context:
    """
    Evaluate a parsed program.

    This is a convenience wrapper around Interpreter.evaluate().
    """
    return Interpreter(config).evaluate(tree, source)


def run_source(
    source: str,
    config: Optional[SamConfig] = None,
    filename: Optional[str] = None,
) -> ExecutionResult:
    """
    High-level API to parse and run Sam source code in one call.

        from sam import run_source

        result = run_source("let x = 5; x = x + 1;")
        if result.success:
            print(result.globals["x"])  # 6
        else:
            print(result.diagnostic.format())

    Args:
        source: Sam source code as a string
        config: Interpreter configuration (defaults apply when omitted)
        filename: Optional filename for diagnostics

    Returns:
        ExecutionResult with the final context or the failing diagnostic
    """
    from ..parser import parse

    try:
        tree = parse(source, filename)
        ctx = Interpreter(config, filename).evaluate(tree, source)
    except SamError as e:
        return ExecutionResult(success=False, diagnostic=e.diagnostic)

    return ExecutionResult(success=True, context=ctx)
