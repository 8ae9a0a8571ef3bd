"""
Unit tests for the Sam parser and syntax tree.
"""

import pytest
import textwrap
from sam import parse, tokenize, Parser, ParserError, Tree, format_tree


def parse_source(source: str) -> Tree:
    """Helper to parse dedented source."""
    return parse(textwrap.dedent(source))


def first_statement(source: str):
    return parse_source(source).root_node.named_children[0]


class TestProgramParsing:
    """Test program-level parsing."""

    def test_empty_program(self):
        """Empty source parses to an empty source_file."""
        tree = parse_source("")
        assert tree.root_node.type == "source_file"
        assert tree.root_node.named_children == []

    def test_root_spans_whole_source(self):
        source = "let x = 1;\n"
        tree = parse(source)
        assert tree.root_node.start_byte == 0
        assert tree.root_node.end_byte == len(source.encode("utf-8"))

    def test_statements_in_order(self):
        tree = parse_source("""
            let x = 1;
            x = 2;
            return x;
            x;
        """)
        kinds = [n.type for n in tree.root_node.named_children]
        assert kinds == ["variable_declaration", "assignment", "return_statement", "expression_statement"]

    def test_interfaces_are_grouped(self):
        """Leading interface declarations form one interfaces node."""
        tree = parse_source("""
            interface "tools.json" load foo;
            interface "other.json" load bar;
            let x = foo();
        """)
        children = tree.root_node.named_children
        assert [c.type for c in children] == ["interfaces", "variable_declaration"]
        decls = children[0].named_children
        assert [d.type for d in decls] == ["interface", "interface"]
        assert decls[1].child_by_field_name("module").text == b"bar"
        assert decls[0].child_by_field_name("path").type == "string"

    def test_tree_text(self):
        tree = parse("let x = 1;")
        assert tree.text == b"let x = 1;"
        assert tree.root_node.text == b"let x = 1;"


class TestStatements:
    """Test statement parsing."""

    def test_variable_declaration(self):
        stmt = first_statement("let a = 1, b;")
        declarators = stmt.named_children
        assert [d.type for d in declarators] == ["variable_declarator", "variable_declarator"]
        assert declarators[0].child_by_field_name("variable").text == b"a"
        assert declarators[0].child_by_field_name("value").type == "literal"
        assert declarators[1].child_by_field_name("value") is None

    def test_assignment_fields(self):
        stmt = first_statement("x = y + 1;")
        assert stmt.type == "assignment"
        assert stmt.child_by_field_name("lhs").text == b"x"
        assert stmt.child_by_field_name("rhs").type == "binary_expression"

    def test_return_without_value(self):
        stmt = first_statement("return;")
        assert stmt.type == "return_statement"
        assert stmt.child_by_field_name("value") is None

    def test_semicolon_optional_before_brace(self):
        """The last statement in a block may omit its semicolon."""
        stmt = first_statement("let f = () => { return 42 };")
        block = stmt.named_children[0].child_by_field_name("value").child_by_field_name("body")
        assert block.named_children[0].type == "return_statement"

    def test_semicolon_optional_after_block(self):
        tree = parse_source("""
            if (1) { 2; }
            let y = 3;
        """)
        assert [n.type for n in tree.root_node.named_children] == ["expression_statement", "variable_declaration"]

    def test_semicolon_optional_at_end(self):
        tree = parse("let x = 1")
        assert tree.root_node.named_children[0].type == "variable_declaration"

    def test_missing_semicolon_is_error(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let x = 1 let y = 2;")
        assert exc_info.value.code == "E101"


class TestExpressions:
    """Test expression parsing."""

    def expr(self, source: str):
        return first_statement(source).named_children[0]

    def test_precedence(self):
        """Multiplication binds tighter than addition."""
        node = self.expr("1 + 2 * 3;")
        assert node.type == "binary_expression"
        assert node.child(1).type == "+"
        assert node.child_by_field_name("right").child(1).type == "*"

    def test_left_associative(self):
        node = self.expr("a - b - c;")
        assert node.child_by_field_name("left").type == "binary_expression"
        assert node.child_by_field_name("right").text == b"c"

    def test_logical_lowest(self):
        node = self.expr("a < b && c == d || e;")
        assert node.child(1).type == "||"
        assert node.child_by_field_name("left").child(1).type == "&&"

    def test_parentheses_group(self):
        node = self.expr("(1 + 2) * 3;")
        assert node.child(1).type == "*"
        assert node.child_by_field_name("left").child(1).type == "+"

    def test_negative_number_literal(self):
        node = self.expr("-5;")
        assert node.type == "literal"
        assert node.named_children[0].type == "number"
        assert node.named_children[0].text == b"-5"

    def test_subtraction_is_not_negative_literal(self):
        node = self.expr("a - 5;")
        assert node.type == "binary_expression"

    def test_string_literal_children(self):
        node = self.expr(r"'a\nb';")
        string = node.named_children[0]
        assert string.type == "string"
        assert [c.type for c in string.named_children] == ["string_fragment", "escape_sequence", "string_fragment"]
        assert string.named_children[1].text == b"\\n"
        assert string.child(0).type == "'"
        assert not string.child(0).is_named

    def test_array(self):
        node = self.expr("[1, 'two', x,];")
        assert node.type == "array_expression"
        assert len(node.named_children) == 3

    def test_call_arguments(self):
        node = self.expr("f(1, g(2));")
        assert node.type == "call_expression"
        assert node.child_by_field_name("function").text == b"f"
        args = node.children_by_field_name("arguments")
        assert len(args) == 2
        assert args[1].type == "call_expression"

    def test_attribute_access(self):
        node = self.expr("ls().stdout;")
        assert node.type == "nested_identifier"
        assert node.child_by_field_name("parent").type == "call_expression"
        assert node.child_by_field_name("name").text == b"stdout"

    def test_lambda(self):
        node = self.expr("(x, y) => { return x; };")
        assert node.type == "lambda_expression"
        params = node.children_by_field_name("parameters")
        assert [p.text for p in params] == [b"x", b"y"]
        assert node.child_by_field_name("body").type == "statement_block"

    def test_lambda_without_parameters(self):
        node = self.expr("() => {};")
        assert node.type == "lambda_expression"
        assert node.children_by_field_name("parameters") == []

    def test_if_else_chain(self):
        node = self.expr("if (a) { 1; } else if (b) { 2; } else { 3; }")
        assert node.type == "if_expression"
        assert node.child_by_field_name("condition").text == b"a"
        nested = node.child_by_field_name("else")
        assert nested.type == "if_expression"
        assert nested.child_by_field_name("else").type == "statement_block"

    def test_unexpected_token(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let = 5;")
        assert exc_info.value.code == "E101"
        assert "variable name" in exc_info.value.diagnostic.message

    def test_unexpected_eof(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let f = (x) => { return x;")
        assert exc_info.value.code == "E102"

    def test_deep_nesting_is_reported(self):
        source = "let a = " + "(" * 5000 + "1" + ")" * 5000 + ";"
        with pytest.raises(ParserError) as exc_info:
            parse(source)
        assert exc_info.value.code == "E103"
        assert exc_info.value.diagnostic.span.start.line == 1


class TestSyntaxTree:
    """Test the tree-sitter style node interface."""

    def test_descendant_for_byte_range_finds_block(self):
        """A function body can be found again from its byte range."""
        tree = parse("let f = () => { return 42; };")
        lam = tree.root_node.named_children[0].named_children[0].child_by_field_name("value")
        body = lam.child_by_field_name("body")
        found = tree.root_node.descendant_for_byte_range(body.start_byte, body.end_byte)
        assert found is body

    def test_descendant_outside_range(self):
        tree = parse("x;")
        assert tree.root_node.descendant_for_byte_range(0, 100) is None

    def test_points_are_zero_based(self):
        tree = parse("let x = 1;\n  y;")
        stmt = tree.root_node.named_children[1]
        assert tuple(stmt.start_point) == (1, 2)

    def test_parent_links(self):
        tree = parse("x + 1;")
        expr = tree.root_node.named_children[0].named_children[0]
        assert expr.parent.type == "expression_statement"
        assert expr.parent.parent is tree.root_node

    def test_walk_preorder(self):
        tree = parse("x;")
        kinds = [n.type for n in tree.root_node.walk()]
        assert kinds == ["source_file", "expression_statement", "identifier", ";"]

    def test_sexp(self):
        tree = parse("a = 1;")
        assert tree.root_node.sexp() == (
            "(source_file (assignment lhs: (identifier) rhs: (literal (number))))"
        )

    def test_format_tree(self):
        text = format_tree(parse("a = 1;").root_node)
        lines = text.splitlines()
        assert lines[0] == "source_file"
        assert lines[1] == "  assignment"
        assert lines[2] == "    lhs: identifier 'a'"

    def test_parser_class(self):
        tokens = tokenize("let x = 1;")
        tree = Parser(tokens, "let x = 1;").parse_program()
        assert tree.root_node.named_child_count == 1

    def test_child_indexing(self):
        stmt = parse("a = 1;").root_node.child(0)
        assert stmt.named_child(0).type == "identifier"
        assert stmt.named_child(1).type == "literal"
        assert stmt.named_child(2) is None
        assert stmt.child(-1) is None
