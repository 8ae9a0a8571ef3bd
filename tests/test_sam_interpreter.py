"""
Tests for the Sam evaluator: statements, expressions, calls and errors.
"""

import textwrap

import pytest

from sam import (
    parse, run_source, execute, Interpreter, ExecutionResult,
    EvaluationError, SamConfig,
)
from sam.runtime import int_val, float_val, string_val, undefined_val, ValueKind
from sam.runtime.interpreter import decode_escape


def run_ok(source: str, config: SamConfig = None) -> ExecutionResult:
    """Run dedented source and assert it succeeded."""
    result = run_source(textwrap.dedent(source), config=config)
    assert result.success, result.diagnostic.format() if result.diagnostic else None
    return result


def run_error(source: str) -> str:
    """Run dedented source, assert it failed, and return the error code."""
    result = run_source(textwrap.dedent(source))
    assert not result.success
    return result.diagnostic.code


class TestScenarios:
    """End-to-end programs."""

    def test_increment(self):
        result = run_ok("let x = 5; x = x + 1;")
        assert result.context.global_scope()["x"] == int_val(6)

    def test_function_return(self):
        result = run_ok("let f = () => { return 42; }; let b = f();")
        assert result.globals["b"] == 42

    def test_return_propagates_through_if(self):
        result = run_ok("let f = () => { if (4 == 4) { return 3 }; }; let b = f();")
        assert result.context.global_scope()["b"] == int_val(3)

    def test_parameters(self):
        result = run_ok("let a = (x, y) => { return x + 5; }; let b = a(4, 3);")
        assert result.globals["b"] == 9

    def test_arity_mismatch(self):
        code = run_error("let a = (x, y) => { return x + 5; }; let b = a(4);")
        assert code == "E404"

    def test_string_concatenation(self):
        result = run_ok("let a = 'hello' + ' world';")
        assert result.context.global_scope()["a"] == string_val("hello world")

    def test_escape_decoding(self):
        result = run_ok(r"let a = 'hello\nworld';")
        assert result.globals["a"] == "hello\nworld"

    def test_undeclared_identifier(self):
        assert run_error("let a = b;") == "E402"

    def test_assign_undeclared(self):
        assert run_error("b = 1;") == "E403"

    def test_recursion(self):
        result = run_ok("""
            let fact = (n) => {
                if (n <= 1) { return 1; }
                return n * fact(n - 1);
            };
            let r = fact(10);
        """)
        assert result.globals["r"] == 3628800

    def test_else_if_chain(self):
        result = run_ok("""
            let sign = (x) => {
                if (x < 0) { return -1; } else if (x == 0) { return 0; } else { return 1; }
            };
            let a = sign(-5);
            let b = sign(0);
            let c = sign(2.5);
        """)
        assert (result.globals["a"], result.globals["b"], result.globals["c"]) == (-1, 0, 1)


class TestStatements:
    """Test declarations, assignments and blocks."""

    def test_declaration_without_initializer(self):
        result = run_ok("let a, b = 2;")
        assert result.context.global_scope()["a"] == undefined_val()
        assert result.globals["b"] == 2

    def test_redeclaration_overwrites(self):
        result = run_ok("let a = 1; let a = 'two';")
        assert result.globals["a"] == "two"

    def test_declared_name_is_undefined_in_its_initializer(self):
        result = run_ok("let x = x;")
        assert result.context.global_scope()["x"] == undefined_val()

    def test_initializer_sees_fresh_binding_in_block(self):
        """Inside a block the new binding shadows the outer one before its value is set."""
        result = run_ok("""
            let x = 1;
            let f = () => { let x = x + 1; return x; };
            let r = f();
        """)
        assert result.globals["x"] == 1
        assert result.globals["r"] is None

    def test_block_shadowing(self):
        """A nested declaration does not change the enclosing binding."""
        result = run_ok("let x = 1; if (1) { let x = 2; };")
        assert result.globals["x"] == 1

    def test_function_shadowing(self):
        result = run_ok("let x = 1; let f = () => { let x = 2; return x; }; let y = f();")
        assert result.globals == {"x": 1, "f": result.context.global_scope()["f"], "y": 2}

    def test_assignment_reaches_enclosing_frame(self):
        result = run_ok("let count = 0; let bump = () => { count = count + 1; }; bump(); bump();")
        assert result.globals["count"] == 2

    def test_block_frames_are_popped(self):
        result = run_ok("let f = () => { let local = 1; return local; }; let v = f();")
        assert len(result.context.frames) == 1
        assert "local" not in result.globals

    def test_return_stops_block(self):
        result = run_ok("""
            let hits = 0;
            let f = () => { return 1; hits = 1; };
            f();
        """)
        assert result.globals["hits"] == 0

    def test_function_without_return_is_undefined(self):
        result = run_ok("let f = (x) => { x + 1; }; let r = f(1);")
        assert result.globals["r"] is None

    def test_empty_return_is_undefined(self):
        result = run_ok("let f = () => { return; }; let r = f();")
        assert result.context.global_scope()["r"].is_undefined

    def test_return_at_top_level(self):
        assert run_error("let x = 1; return x;") == "E409"

    def test_return_inside_top_level_if(self):
        assert run_error("if (1) { return 2; }") == "E409"


class TestExpressions:
    """Test expression evaluation."""

    def test_arithmetic_semantics(self):
        result = run_ok("""
            let a = 7 / 2;
            let b = 7 % 3;
            let c = -7 % 3;
            let d = 7 % 0;
            let e = 'x' * 2;
            let f = 3 == 3.0;
        """)
        g = result.globals
        assert g["a"] == 3.5
        assert g["b"] == 1
        assert g["c"] == -1
        assert g["d"] is None
        assert g["e"] is None
        assert g["f"] == 1

    def test_division_result_is_float(self):
        result = run_ok("let a = 6 / 3;")
        assert result.context.global_scope()["a"] == float_val(2.0)

    def test_precedence(self):
        result = run_ok("let a = 1 + 2 * 3 - 4 / 2;")
        assert result.globals["a"] == 5.0

    def test_logical_operators(self):
        result = run_ok("let a = 1 < 2 && 3 > 4; let b = 0 || 2;")
        assert result.globals["a"] == 0
        assert result.globals["b"] == 1

    def test_array_literal(self):
        result = run_ok("let x = 2; let a = [1, x * 2, 'three', [4]];")
        assert result.globals["a"] == [1, 4, "three", [4]]

    def test_array_equality(self):
        result = run_ok("let a = [1, 2] == [1.0, 2]; let b = [1] != [1, 2];")
        assert result.globals["a"] == 1
        assert result.globals["b"] == 1

    def test_lambda_body_is_lazy(self):
        """An uncalled function body is never evaluated."""
        result = run_ok("let f = () => { return missing; };")
        value = result.context.global_scope()["f"]
        assert value.kind == ValueKind.FUNCTION
        assert value.data.parameters == ()

    def test_lambda_captures_body_range(self):
        source = "let f = (a) => { return a; };"
        result = run_ok(source)
        data = result.context.global_scope()["f"].data
        assert source.encode()[data.start_byte:data.end_byte] == b"{ return a; }"

    def test_immediately_invoked_lambda(self):
        result = run_ok("let r = ((x) => { return x * 2; })(21);")
        assert result.globals["r"] == 42

    def test_function_as_argument(self):
        result = run_ok("""
            let apply = (g, v) => { return g(v); };
            let double = (n) => { return n * 2; };
            let r = apply(double, 8);
        """)
        assert result.globals["r"] == 16

    def test_if_without_else_is_undefined(self):
        result = run_ok("let r = if (0) { 1; };")
        assert result.globals["r"] is None

    def test_if_condition_must_be_int(self):
        assert run_error("if (1.0) { 1; }") == "E405"
        assert run_error("if ('yes') { 1; }") == "E405"

    def test_incomparable_operands(self):
        assert run_error("let a = 'a' < 'b';") == "E408"

    def test_attribute_on_non_object(self):
        assert run_error("let a = 1; let b = a.field;") == "E406"

    def test_not_callable(self):
        assert run_error("let x = 1; x();") == "E410"
        assert run_error("let r = (1 + 2)();") == "E410"

    def test_return_used_as_value(self):
        code = run_error("""
            let f = () => { let x = if (1) { return 1; }; return 2; };
            f();
        """)
        assert code == "E413"

    def test_integer_literal_out_of_range(self):
        assert run_error("let a = 9223372036854775808;") == "E401"

    def test_most_negative_integer_literal(self):
        result = run_ok("let a = -9223372036854775808;")
        assert result.globals["a"] == -(2 ** 63)


class TestEscapes:
    """Test escape sequence decoding."""

    @pytest.mark.parametrize("raw,expected", [
        ("\\n", "\n"),
        ("\\t", "\t"),
        ("\\\\", "\\"),
        ("\\'", "'"),
        ('\\"', '"'),
        ("\\0", "\0"),
        ("\\x41", "A"),
        ("\\u00e9", "é"),
        ("\\u{1F600}", "\U0001F600"),
        ("\\q", "q"),
        ("\\u", "u"),
    ])
    def test_decode_escape(self, raw, expected):
        assert decode_escape(raw) == expected

    def test_mixed_string(self):
        result = run_ok(r"let s = 'tab\there \x41\u{42}';")
        assert result.globals["s"] == "tab\there AB"


class TestScoping:
    """Functions resolve names on the live scope stack at call time."""

    def test_nested_function_sees_live_frame(self):
        result = run_ok("""
            let outer = () => {
                let n = 7;
                let inner = () => { return n; };
                return inner();
            };
            let r = outer();
        """)
        assert result.globals["r"] == 7

    def test_escaped_function_does_not_capture(self):
        """A function returned from its defining call no longer sees that call's frame."""
        code = run_error("""
            let make = () => { let n = 5; return () => { return n; }; };
            let g = make();
            let r = g();
        """)
        assert code == "E402"

    def test_callee_sees_caller_frame(self):
        result = run_ok("""
            let show = () => { return secret; };
            let caller = () => { let secret = 'found'; return show(); };
            let r = caller();
        """)
        assert result.globals["r"] == "found"

    def test_runaway_recursion(self):
        code = run_error("let f = () => { return f(); }; f();")
        assert code == "E412"

    def test_call_depth_from_config(self):
        source = "let f = (n) => { if (n == 0) { return 0; } return f(n - 1); }; let r = f(5);"
        shallow = run_source(source, config=SamConfig(max_call_depth=3))
        assert shallow.diagnostic.code == "E412"
        deep = run_source(source, config=SamConfig(max_call_depth=10))
        assert deep.success
        assert deep.context.depth() == 0

    def test_host_stack_exhaustion_is_reported(self):
        source = "let f = (n) => { if (n == 0) { return 0; } return f(n - 1); };\nlet r = f(5000);"
        result = run_source(source, config=SamConfig(max_call_depth=100000))
        assert not result.success
        assert result.diagnostic.code == "E412"
        assert result.diagnostic.span.start.line == 2


class TestDiagnostics:
    """Test error reporting from the evaluator."""

    def test_error_points_at_innermost_node(self):
        result = run_source("let x = 1;\nlet y = z;", filename="prog.sam")
        diag = result.diagnostic
        assert diag.code == "E402"
        assert diag.span.start.line == 2
        assert diag.span.start.column == 9
        assert diag.span.start.filename == "prog.sam"
        assert diag.source_line == "let y = z;"
        assert "variable 'z' is not defined" in diag.format()

    def test_parse_errors_are_reported(self):
        result = run_source("let = ;")
        assert not result.success
        assert result.diagnostic.code == "E101"
        assert result.error_message.startswith("expected")
        assert result.globals == {}

    def test_evaluate_raises(self):
        tree = parse("let a = undefined_name;")
        with pytest.raises(EvaluationError) as exc_info:
            Interpreter().evaluate(tree)
        assert exc_info.value.code == "E402"


class TestInterpreterApi:
    """Test the programmatic entry points."""

    def test_evaluate_returns_context(self):
        source = "let x = 2; let y = x * 21;"
        ctx = Interpreter().evaluate(parse(source), source)
        assert ctx.global_scope()["y"] == int_val(42)
        assert ctx.tree is not None

    def test_evaluate_accepts_bytes(self):
        source = "let s = 'é' + 'a';"
        ctx = Interpreter().evaluate(parse(source), source.encode("utf-8"))
        assert ctx.global_scope()["s"] == string_val("éa")

    def test_execute_helper(self):
        ctx = execute(parse("let a = [1, 2];"))
        assert ctx.global_bindings() == {"a": [1, 2]}

    def test_runs_are_independent(self):
        interpreter = Interpreter()
        first = interpreter.evaluate(parse("let a = 1;"))
        second = interpreter.evaluate(parse("let b = 2;"))
        assert "a" not in second.global_scope()
        assert "b" not in first.global_scope()
