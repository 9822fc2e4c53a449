"""
Test suite for the Kaleidoscope parser.

Tests cover:
- Operator precedence and associativity
- Calls, variables and parentheses
- Prototypes, definitions, externs and top-level expressions
- Syntax error messages and the token left current after them

Author: xwest
"""

import dataclasses
import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleidoscope.lexer.lexer import Lexer
from kaleidoscope.lexer.tokens import TokenType
from kaleidoscope.parser.parser import Parser, parse_string, parse_all
from kaleidoscope.parser.operators import OperatorTable
from kaleidoscope.parser.errors import ParseError
from kaleidoscope.parser.ast_nodes import (
    NumberExpr, VariableExpr, BinaryExpr, CallExpr, Prototype, Function, ExprVisitor, dump,
)


def N(value):
    return NumberExpr(float(value))


def V(name):
    return VariableExpr(name)


def B(op, lhs, rhs):
    return BinaryExpr(op, lhs, rhs)


def parse_expr(source: str, operators=None):
    """Parse a top-level expression and return its body."""
    form = parse_string(source, operators=operators)
    assert isinstance(form, Function) and form.prototype.is_anonymous
    return form.body


class TestExpressions(unittest.TestCase):
    """Precedence climbing and primary expressions."""

    def test_multiplication_binds_tighter(self):
        self.assertEqual(parse_expr("1+2*3"), B('+', N(1), B('*', N(2), N(3))))

    def test_equal_precedence_is_left_associative(self):
        self.assertEqual(parse_expr("1+2+3"), B('+', B('+', N(1), N(2)), N(3)))
        self.assertEqual(parse_expr("1-2+3"), B('+', B('-', N(1), N(2)), N(3)))

    def test_parentheses_override_precedence(self):
        self.assertEqual(parse_expr("(1+2)*3"), B('*', B('+', N(1), N(2)), N(3)))

    def test_higher_then_lower_precedence(self):
        self.assertEqual(parse_expr("1*2+3"), B('+', B('*', N(1), N(2)), N(3)))

    def test_climbing_unwinds_to_lower_precedence(self):
        self.assertEqual(parse_expr("1+2*3-4"), B('-', B('+', N(1), B('*', N(2), N(3))), N(4)))

    def test_comparison_is_loosest(self):
        self.assertEqual(parse_expr("a < b + c"), B('<', V('a'), B('+', V('b'), V('c'))))
        self.assertEqual(parse_expr("a*b < c"), B('<', B('*', V('a'), V('b')), V('c')))

    def test_variable_and_number(self):
        self.assertEqual(parse_expr("x"), V('x'))
        self.assertEqual(parse_expr("4.5"), N(4.5))

    def test_nested_parentheses(self):
        self.assertEqual(parse_expr("((x))"), V('x'))

    def test_call_with_arguments(self):
        self.assertEqual(parse_expr("foo(1, x+2)"),
                         CallExpr('foo', (N(1), B('+', V('x'), N(2)))))

    def test_call_without_arguments(self):
        self.assertEqual(parse_expr("f()"), CallExpr('f', ()))

    def test_call_arity_is_not_checked(self):
        """Argument count mismatches are left to the backend."""
        parse_string("extern foo(a b)")
        call = parse_expr("foo(1, 2, 3)")
        self.assertEqual(call, CallExpr('foo', (N(1), N(2), N(3))))

    def test_call_inside_expression(self):
        self.assertEqual(parse_expr("2*f(x)+1"),
                         B('+', B('*', N(2), CallExpr('f', (V('x'),))), N(1)))

    def test_extended_operator_table(self):
        table = OperatorTable()
        table.install('/', 40)
        self.assertEqual(parse_expr("a/b+c", table), B('+', B('/', V('a'), V('b')), V('c')))

    def test_unknown_operator_ends_expression(self):
        parser = Parser(Lexer("a/b"))
        parser.get_next_token()
        fn = parser.parse_top_level_expr()
        self.assertEqual(fn.body, V('a'))
        self.assertTrue(parser.current.is_char('/'))

    def test_expression_stops_at_semicolon(self):
        parser = Parser(Lexer("1+2; 3"))
        parser.get_next_token()
        fn = parser.parse_top_level_expr()
        self.assertEqual(fn.body, B('+', N(1), N(2)))
        self.assertTrue(parser.current.is_char(';'))


class TestTopLevelForms(unittest.TestCase):
    """Definitions, externs and anonymous expressions."""

    def test_definition(self):
        fn = parse_string("def foo(a b) a+b")
        self.assertEqual(fn, Function(Prototype('foo', ('a', 'b')), B('+', V('a'), V('b'))))
        self.assertEqual(fn.prototype.arity, 2)

    def test_definition_without_parameters(self):
        fn = parse_string("def answer() 42")
        self.assertEqual(fn.prototype, Prototype('answer', ()))
        self.assertEqual(fn.body, N(42))

    def test_extern(self):
        proto = parse_string("extern sin(x)")
        self.assertEqual(proto, Prototype('sin', ('x',)))
        self.assertFalse(proto.is_anonymous)

    def test_top_level_expression_is_anonymous_function(self):
        fn = parse_string("1+1")
        self.assertEqual(fn.prototype.name, "")
        self.assertEqual(fn.prototype.params, ())
        self.assertTrue(fn.prototype.is_anonymous)

    def test_parse_all(self):
        forms = parse_all("def f(x) x*2; extern g(); f(3); ;")
        self.assertEqual(len(forms), 3)
        self.assertIsInstance(forms[0], Function)
        self.assertIsInstance(forms[1], Prototype)
        self.assertTrue(forms[2].prototype.is_anonymous)

    def test_dump(self):
        self.assertEqual(dump(parse_string("def f(a b) a+b*2")), "(def f (a b) (+ a (* b 2)))")
        self.assertEqual(dump(parse_string("extern sin(x)")), "(extern sin (x))")
        self.assertEqual(dump(parse_string("g(1.5, x)")), "(def <anon> () (g 1.5 x))")

    def test_locations_are_ignored_by_equality(self):
        fn = parse_string("def f(a) a")
        self.assertIsNotNone(fn.prototype.location)
        self.assertEqual(fn.prototype.location.column, 5)
        self.assertEqual(fn.prototype, Prototype('f', ('a',)))

    def test_nodes_are_immutable(self):
        expr = parse_expr("1+2")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            expr.op = '-'
        call = parse_expr("f(1)")
        self.assertIsInstance(call.args, tuple)

    def test_tree_has_no_shared_nodes(self):
        expr = parse_expr("x+x")
        self.assertIsNot(expr.lhs, expr.rhs)


class TestSyntaxErrors(unittest.TestCase):
    """Each failure names the first violated expectation."""

    def assertParseError(self, source: str, message: str):
        with self.assertRaises(ParseError) as ctx:
            parse_string(source)
        self.assertEqual(ctx.exception.message, message)
        return ctx.exception

    def test_dangling_operator(self):
        error = self.assertParseError("1 +", "unknown token when expecting an expression")
        self.assertEqual(error.token.type, TokenType.EOF)

    def test_unknown_token(self):
        self.assertParseError(")", "unknown token when expecting an expression")
        self.assertParseError("def f(a) ;", "unknown token when expecting an expression")

    def test_missing_close_paren(self):
        self.assertParseError("(1+2", "expected ')'")

    def test_bad_argument_separator(self):
        self.assertParseError("foo(1 2)", "expected ')' or ',' in argument list")
        self.assertParseError("foo(1,", "unknown token when expecting an expression")

    def test_prototype_errors(self):
        self.assertParseError("def (a) 1", "expected function name in prototype")
        self.assertParseError("extern 1", "expected function name in prototype")
        self.assertParseError("def foo a", "expected '(' in prototype")
        self.assertParseError("def foo(a, b) a", "expected ')' in prototype")
        self.assertParseError("extern foo(a", "expected ')' in prototype")

    def test_duplicate_parameter(self):
        self.assertParseError("def foo(a a) a", "duplicate parameter name 'a' in prototype")

    def test_error_leaves_offending_token_current(self):
        parser = Parser(Lexer("(1+2; 3"))
        parser.get_next_token()
        with self.assertRaises(ParseError):
            parser.parse_top_level_expr()
        self.assertTrue(parser.current.is_char(';'))

    def test_deep_nesting_is_a_syntax_error(self):
        depth = 5000
        source = "(" * depth + "1" + ")" * depth
        self.assertParseError(source, "expression nested too deeply")

    def test_error_codes_and_location(self):
        error = self.assertParseError("foo(1 2)", "expected ')' or ',' in argument list")
        self.assertEqual(error.diagnostic.code, "P001")
        self.assertEqual(error.location.column, 7)
        self.assertIn("number '2'", str(error))


class TestVisitor(unittest.TestCase):
    """The expression variants form a closed set."""

    def test_incomplete_visitor_cannot_be_instantiated(self):
        class NoCalls(ExprVisitor):
            def visit_number(self, node):
                return node.value

            def visit_variable(self, node):
                return 0.0

            def visit_binary(self, node):
                return 0.0

        with self.assertRaises(TypeError):
            NoCalls()

    def test_children(self):
        expr = parse_expr("f(1, 2) * x")
        self.assertEqual(expr.children(), [CallExpr('f', (N(1), N(2))), V('x')])
        self.assertEqual(expr.lhs.children(), [N(1), N(2)])
        self.assertEqual(N(1).children(), [])


if __name__ == '__main__':
    unittest.main()
