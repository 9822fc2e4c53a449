"""
Test suite for the tree-walking interpreter backend.

Tests cover:
- Evaluation of arithmetic and comparisons
- Definitions, externs and native functions
- The backend error taxonomy and state after failures

Author: xwest
"""

import math
import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleidoscope.parser.parser import parse_string
from kaleidoscope.parser.ast_nodes import (
    BinaryExpr, Function, NumberExpr, Prototype, VariableExpr,
)
from kaleidoscope.backend import create_backend
from kaleidoscope.backend.base import CodegenError, ExecutionError
from kaleidoscope.backend.interpreter import InterpreterBackend


class TestInterpreterBackend(unittest.TestCase):
    """Test cases for InterpreterBackend."""

    def setUp(self):
        self.backend = InterpreterBackend()

    def _run(self, source: str):
        """Lower one form; evaluate it when it is a top-level expression."""
        form = parse_string(source)
        if isinstance(form, Prototype):
            return self.backend.lower_prototype(form)
        handle = self.backend.lower_function(form)
        if form.prototype.is_anonymous:
            return self.backend.execute(handle)
        return handle

    def assertCodegenError(self, source: str, fragment: str, code: str):
        with self.assertRaises(CodegenError) as ctx:
            self._run(source)
        self.assertIn(fragment, ctx.exception.message)
        self.assertEqual(ctx.exception.diagnostic.code, code)

    def test_arithmetic(self):
        self.assertEqual(self._run("1+2*3"), 7.0)
        self.assertEqual(self._run("(1+2)*3"), 9.0)
        self.assertEqual(self._run("10-4-3"), 3.0)

    def test_less_than_yields_one_or_zero(self):
        self.assertEqual(self._run("4 < 5"), 1.0)
        self.assertEqual(self._run("5 < 4"), 0.0)
        self.assertEqual(self._run("4 < 4"), 0.0)

    def test_define_and_call(self):
        handle = self._run("def add(a b) a+b")
        self.assertEqual((handle.name, handle.arity), ("add", 2))
        self.assertEqual(self._run("add(2, 3)"), 5.0)
        self.assertEqual(self._run("add(add(1, 1), 3) * 2"), 10.0)

    def test_zero_argument_definition(self):
        self._run("def answer() 42")
        self.assertEqual(self._run("answer()"), 42.0)
        self.assertEqual(self.backend.execute(self.backend.lower_prototype(Prototype("answer"))), 42.0)

    def test_arguments_evaluated_per_call(self):
        self._run("def sq(x) x*x")
        self.assertEqual(self._run("sq(3) + sq(4)"), 25.0)

    def test_unknown_variable(self):
        self.assertCodegenError("def f(a) b", "unknown variable name 'b'", "B001")
        self.assertFalse(self.backend.is_declared("f"))

    def test_top_level_expression_has_no_variables(self):
        self.assertCodegenError("x + 1", "unknown variable name 'x'", "B001")

    def test_parameters_do_not_leak_between_functions(self):
        self._run("def f(a) a")
        self.assertCodegenError("def g(b) a", "unknown variable name 'a'", "B001")

    def test_unknown_function(self):
        self.assertCodegenError("g(1)", "unknown function referenced 'g'", "B002")

    def test_incorrect_argument_count(self):
        self._run("def foo(a b) a+b")
        self.assertCodegenError("foo(1, 2, 3)", "incorrect number of arguments", "B003")
        self.assertCodegenError("foo(1)", "incorrect number of arguments", "B003")

    def test_redefinition(self):
        self._run("def foo(a) a")
        self.assertCodegenError("def foo(a) a", "redefinition of function 'foo'", "B004")
        self.assertEqual(self._run("foo(7)"), 7.0)

    def test_extern_redeclaration_is_idempotent(self):
        first = self._run("extern foo(a)")
        second = self._run("extern foo(a)")
        self.assertEqual((first.name, first.arity), (second.name, second.arity))

    def test_conflicting_extern(self):
        self._run("extern foo(a)")
        self.assertCodegenError("extern foo(a b)", "conflicting declaration", "B005")
        self.assertCodegenError("def foo(a b) a", "conflicting declaration", "B005")

    def test_extern_after_definition(self):
        self._run("def twice(x) x*2")
        self._run("extern twice(y)")
        self.assertEqual(self._run("twice(4)"), 8.0)

    def test_definition_after_extern(self):
        self._run("extern twice(x)")
        self._run("def twice(x) x*2")
        self.assertEqual(self._run("twice(4)"), 8.0)

    def test_native_externs(self):
        self._run("extern sin(x)")
        self._run("extern cos(x)")
        self.assertEqual(self._run("sin(0)"), 0.0)
        self.assertEqual(self._run("cos(0)"), 1.0)

    def test_native_domain_error_is_nan(self):
        self._run("extern sqrt(x)")
        self.assertTrue(math.isnan(self._run("sqrt(0-1)")))
        # NaN compares as unordered, which counts as less-than
        self.assertEqual(self._run("sqrt(0-1) < 1"), 1.0)

    def test_unresolved_extern(self):
        self._run("extern nothere()")
        with self.assertRaises(ExecutionError) as ctx:
            self._run("nothere()")
        self.assertIn("unresolved external symbol 'nothere'", ctx.exception.message)

    def test_native_with_declared_arity_it_does_not_take(self):
        self._run("extern sin(a b)")
        with self.assertRaises(ExecutionError) as ctx:
            self._run("sin(1, 2)")
        self.assertIn("native function 'sin' cannot be called with 2 argument(s)", ctx.exception.message)
        self.assertEqual(ctx.exception.diagnostic.code, "B007")
        self.assertEqual(self._run("3"), 3.0)

    def test_failed_definition_leaves_no_trace(self):
        self.assertCodegenError("def f(a) g(a)", "unknown function referenced 'g'", "B002")
        self.assertFalse(self.backend.is_declared("f"))
        self._run("def f(a) a+1")
        self.assertEqual(self._run("f(1)"), 2.0)

    def test_failed_definition_keeps_prior_extern(self):
        self._run("extern f(a)")
        self.assertCodegenError("def f(a) b", "unknown variable name", "B001")
        self.assertTrue(self.backend.is_declared("f"))
        self.assertFalse(self.backend.is_defined("f"))

    def test_recursive_reference_lowers(self):
        self._run("def loop(x) loop(x)")
        with self.assertRaises(ExecutionError) as ctx:
            self._run("loop(1)")
        self.assertIn("recursion", ctx.exception.message)

    def test_invalid_operator(self):
        fn = Function(Prototype(""), BinaryExpr('/', NumberExpr(1.0), NumberExpr(2.0)))
        with self.assertRaises(CodegenError) as ctx:
            self.backend.lower_function(fn)
        self.assertIn("invalid binary operator '/'", ctx.exception.message)

    def test_anonymous_functions_are_not_registered(self):
        self.assertEqual(self._run("1"), 1.0)
        self.assertEqual(self._run("2"), 2.0)
        self.assertFalse(self.backend.is_declared(""))

    def test_execute_rejects_functions_with_parameters(self):
        handle = self._run("def id(x) x")
        with self.assertRaises(ExecutionError):
            self.backend.execute(handle)

    def test_lower_expr_needs_a_function(self):
        with self.assertRaises(CodegenError):
            self.backend.lower_expr(VariableExpr("x"))

    def test_describe(self):
        handle = self._run("def add(a b) a+b")
        self.assertEqual(self.backend.describe(handle), "(def add (a b) (+ a b))")
        handle = self._run("extern sin(x)")
        self.assertEqual(self.backend.describe(handle), "(extern sin (x))")

    def test_custom_natives(self):
        backend = create_backend("interpreter", natives={"half": lambda x: x / 2})
        backend.lower_prototype(parse_string("extern half(x)"))
        handle = backend.lower_function(parse_string("half(9)"))
        self.assertEqual(backend.execute(handle), 4.5)

    def test_unknown_backend_name(self):
        with self.assertRaises(ValueError):
            create_backend("nope")


if __name__ == '__main__':
    unittest.main()
