"""
Unit tests for the chronobranch parser.
"""

import pytest
import textwrap
from chronobranch import (
    tokenize, parse, ParserError, TokenType,
    Program, Literal, Identifier, BinaryOp, UnaryOp, ListLiteral, SetLiteral,
    LetStatement, BranchStatement, MergeStatement, AbortStatement,
    PrintStatement, InputStatement, ListPushStatement, SetInsertStatement,
)


def parse_source(source: str) -> Program:
    """Helper to tokenize and parse dedented source."""
    source = textwrap.dedent(source)
    return parse(tokenize(source), source=source)


def parse_expr(text: str):
    """Parse `let _ = <text>;` and return the initializer."""
    return parse_source(f"let _ = {text};").statements[0].initializer


class TestStatementParsing:
    """Test parsing of each statement form."""

    def test_empty_program(self):
        program = parse_source("")
        assert program.statements == []

    def test_let(self):
        stmt = parse_source("let x = 5;").statements[0]
        assert isinstance(stmt, LetStatement)
        assert stmt.name == "x"
        assert isinstance(stmt.initializer, Literal)
        assert stmt.initializer.value == 5

    def test_bare_assignment_is_let(self):
        stmt = parse_source("x = 5;").statements[0]
        assert isinstance(stmt, LetStatement)
        assert stmt.name == "x"

    def test_semicolons_optional(self):
        program = parse_source("""
            let x = 1
            print x
            x = x + 1
        """)
        assert [type(s) for s in program.statements] == [
            LetStatement, PrintStatement, LetStatement,
        ]

    def test_missing_terminator_between_expressions(self):
        """Two expressions in a row need a ';' or a new statement between them."""
        with pytest.raises(ParserError) as exc_info:
            parse_source("print 1 2")
        assert exc_info.value.diagnostic.code == "E101"

    def test_print(self):
        stmt = parse_source('print "hi";').statements[0]
        assert isinstance(stmt, PrintStatement)
        assert stmt.value.value == "hi"

    def test_input_with_prompt(self):
        stmt = parse_source('input "Your name: " name;').statements[0]
        assert isinstance(stmt, InputStatement)
        assert stmt.name == "name"
        assert stmt.prompt == "Your name: "

    def test_input_without_prompt(self):
        stmt = parse_source("input n").statements[0]
        assert stmt.prompt is None
        assert stmt.name == "n"

    def test_listpush_and_setinsert(self):
        program = parse_source("""
            listpush xs 1;
            setinsert s, "a";
        """)
        push, insert = program.statements
        assert isinstance(push, ListPushStatement)
        assert push.name == "xs"
        assert isinstance(insert, SetInsertStatement)
        assert insert.value.value == "a"

    def test_merge_with_select(self):
        stmt = parse_source("merge b select 2;").statements[0]
        assert isinstance(stmt, MergeStatement)
        assert stmt.label == "b"
        assert stmt.ordinal == 2

    def test_merge_without_select(self):
        stmt = parse_source("merge x").statements[0]
        assert stmt.ordinal is None

    @pytest.mark.parametrize("ordinal", ["0", "x", "1.5"])
    def test_invalid_select_ordinal(self, ordinal):
        with pytest.raises(ParserError) as exc_info:
            parse_source(f"merge b select {ordinal};")
        assert exc_info.value.diagnostic.code == "E105"

    def test_abort(self):
        stmt = parse_source("abort b;").statements[0]
        assert isinstance(stmt, AbortStatement)
        assert stmt.label == "b"

    def test_statement_spans(self):
        program = parse_source("let x = 1;\nprint x;")
        assert program.statements[1].span.start.line == 2


class TestBranchParsing:
    """Test branch statement bodies."""

    def test_potential_blocks(self):
        stmt = parse_source("""
            branch x as b {
                potential { x = x + 1; }
                potential { x = x * 2; print x; }
            }
        """).statements[0]
        assert isinstance(stmt, BranchStatement)
        assert stmt.target == "x"
        assert stmt.label == "b"
        assert stmt.effective_label == "b"
        assert len(stmt.potentials) == 2
        assert len(stmt.potentials[1].statements) == 2

    def test_label_defaults_to_target(self):
        stmt = parse_source("branch x { potential { } }").statements[0]
        assert stmt.label is None
        assert stmt.effective_label == "x"

    def test_plain_body_is_single_potential(self):
        stmt = parse_source("""
            branch x {
                x = 10
                print x
            }
        """).statements[0]
        assert len(stmt.potentials) == 1
        assert len(stmt.potentials[0].statements) == 2

    def test_empty_body_has_no_potentials(self):
        """Arity is checked at run time, so an empty body still parses."""
        stmt = parse_source("branch x { }").statements[0]
        assert stmt.potentials == []

    def test_mixed_body_rejected(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("""
                branch x {
                    potential { x = 1 }
                    x = 2
                }
            """)
        assert exc_info.value.diagnostic.code == "E104"

    def test_nested_branch(self):
        stmt = parse_source("""
            branch x as outer {
                potential {
                    branch y as inner {
                        potential { y = 1 }
                    }
                    merge inner
                }
            }
        """).statements[0]
        inner = stmt.potentials[0].statements[0]
        assert isinstance(inner, BranchStatement)
        assert inner.label == "inner"

    def test_walk_descends_into_potentials(self):
        program = parse_source("""
            let x = 1
            branch x { potential { x = 2 } potential { x = 3 } }
            merge x select 1
        """)
        kinds = [type(s).__name__ for s in program.walk()]
        assert kinds == ["LetStatement", "BranchStatement", "LetStatement",
                         "LetStatement", "MergeStatement"]

    def test_unclosed_branch(self):
        with pytest.raises(ParserError) as exc_info:
            parse_source("branch x { potential { x = 1 }")
        assert exc_info.value.diagnostic.code == "E102"


class TestExpressionParsing:
    """Test expression parsing and precedence."""

    def test_literals(self):
        assert parse_expr("42").literal_type == TokenType.INT_LITERAL
        assert parse_expr("4.5").literal_type == TokenType.FLOAT_LITERAL
        assert parse_expr('"s"').literal_type == TokenType.STRING_LITERAL
        assert parse_expr("true").value is True

    def test_literal_keeps_source_text(self):
        assert parse_expr("1e400").text == "1e400"

    def test_identifier(self):
        expr = parse_expr("count")
        assert isinstance(expr, Identifier)
        assert expr.name == "count"

    def test_operator_precedence(self):
        """Multiplication binds tighter than addition."""
        expr = parse_expr("1 + 2 * 3")
        assert isinstance(expr, BinaryOp)
        assert expr.operator == TokenType.PLUS
        assert isinstance(expr.right, BinaryOp)
        assert expr.right.operator == TokenType.STAR

    def test_comparison_lowest(self):
        expr = parse_expr("a + 1 < b * 2")
        assert expr.operator == TokenType.LT

    def test_left_associative(self):
        expr = parse_expr("10 - 3 - 2")
        assert expr.operator == TokenType.MINUS
        assert isinstance(expr.left, BinaryOp)

    def test_parentheses(self):
        expr = parse_expr("(1 + 2) * 3")
        assert expr.operator == TokenType.STAR
        assert expr.left.operator == TokenType.PLUS

    def test_unary_minus(self):
        expr = parse_expr("-x")
        assert isinstance(expr, UnaryOp)
        assert expr.operator == TokenType.MINUS

    def test_list_literal(self):
        expr = parse_expr("[1, 2, 3,]")
        assert isinstance(expr, ListLiteral)
        assert len(expr.elements) == 3

    def test_empty_list(self):
        assert parse_expr("[]").elements == []

    def test_set_literal(self):
        expr = parse_expr('{"a", "b"}')
        assert isinstance(expr, SetLiteral)
        assert len(expr.elements) == 2

    def test_empty_braces_are_empty_set(self):
        expr = parse_expr("{}")
        assert isinstance(expr, SetLiteral)
        assert expr.elements == []

    def test_missing_operand(self):
        with pytest.raises(ParserError):
            parse_source("let x = 1 + ;")
