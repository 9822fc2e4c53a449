"""
Tree-walking backend for Kaleidoscope.

Lowers every expression into a Python closure taking the argument tuple of
the enclosing function, so the AST is walked once per definition instead of
once per call. Calls are bound by name when they run, which lets an `extern`
declaration be given a body later.

Author: xwest
"""

import logging
import math
import operator
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..parser.ast_nodes import (
    ExprAST, NumberExpr, VariableExpr, BinaryExpr, CallExpr, Prototype, Function, dump,
)
from .base import (
    Backend, FunctionHandle, CodegenError, ExecutionError,
    unknown_variable, unknown_function, incorrect_argument_count, redefinition,
    conflicting_declaration, invalid_operator,
)

logger = logging.getLogger(__name__)

Code = Callable[[Sequence[float]], float]


def _less_than(lhs: float, rhs: float) -> float:
    # Unordered-or-less-than: NaN operands compare true
    return 0.0 if lhs >= rhs else 1.0


BINARY_OPERATORS: Dict[str, Callable[[float, float], float]] = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '<': _less_than,
}

# Native functions an `extern` declaration can bind to
BUILTIN_FUNCTIONS: Dict[str, Callable[..., float]] = {
    'sin': math.sin,
    'cos': math.cos,
    'tan': math.tan,
    'atan': math.atan,
    'atan2': math.atan2,
    'exp': math.exp,
    'log': math.log,
    'sqrt': math.sqrt,
    'fabs': math.fabs,
    'pow': math.pow,
    'floor': math.floor,
    'ceil': math.ceil,
    'fmod': math.fmod,
}


@dataclass(frozen=True)
class DeclaredFunction(FunctionHandle):
    """Handle for a prototype with no body (yet)."""
    prototype: Prototype


@dataclass(frozen=True)
class InterpretedFunction(FunctionHandle):
    """Handle for a lowered function body."""
    code: Code
    source: Function


class InterpreterBackend(Backend):
    """
    Backend that evaluates lowered closures directly.

    Keeps the declared signatures and the lowered bodies by name; the
    parameter scope exists only while one function is being lowered.
    """

    name = "interpreter"

    def __init__(self, natives: Optional[Dict[str, Callable[..., float]]] = None):
        self.natives = dict(BUILTIN_FUNCTIONS if natives is None else natives)
        self._signatures: Dict[str, Prototype] = {}
        self._bodies: Dict[str, InterpretedFunction] = {}
        self._scope: Optional[Dict[str, int]] = None

    # Backend interface

    def lower_prototype(self, proto: Prototype) -> FunctionHandle:
        existing = self._signatures.get(proto.name)
        if existing is not None:
            if existing.arity != proto.arity:
                raise conflicting_declaration(proto.name, existing.arity, proto.arity, proto.location)
            return DeclaredFunction(proto.name, proto.arity, existing)

        if not proto.is_anonymous:
            self._signatures[proto.name] = proto
            logger.debug("declared %s/%d", proto.name, proto.arity)
        return DeclaredFunction(proto.name, proto.arity, proto)

    def lower_function(self, fn: Function) -> FunctionHandle:
        proto = fn.prototype
        previous = self._signatures.get(proto.name)

        if not proto.is_anonymous:
            if proto.name in self._bodies:
                raise redefinition(proto.name, proto.location)
            if previous is not None and previous.arity != proto.arity:
                raise conflicting_declaration(proto.name, previous.arity, proto.arity, proto.location)
            # Visible to its own body so recursion resolves
            self._signatures[proto.name] = proto

        self._scope = {param: index for index, param in enumerate(proto.params)}
        try:
            code = self.lower_expr(fn.body)
        except (CodegenError, RecursionError) as exc:
            if not proto.is_anonymous:
                if previous is None:
                    del self._signatures[proto.name]
                else:
                    self._signatures[proto.name] = previous
            if isinstance(exc, RecursionError):
                raise CodegenError("expression nested too deeply", proto.location) from None
            raise
        finally:
            self._scope = None

        handle = InterpretedFunction(proto.name, proto.arity, code, fn)
        if not proto.is_anonymous:
            self._bodies[proto.name] = handle
            logger.debug("defined %s/%d", proto.name, proto.arity)
        return handle

    def lower_expr(self, expr: ExprAST) -> Code:
        if self._scope is None:
            raise CodegenError("expression lowered outside of a function")
        return expr.accept(self)

    def execute(self, handle: FunctionHandle) -> float:
        if handle.arity != 0:
            raise ExecutionError(f"cannot execute '{handle.name}': it takes {handle.arity} argument(s)",
                                 code="B007")
        try:
            if isinstance(handle, InterpretedFunction):
                return handle.code(())
            return self._call(handle.name, ())
        except RecursionError:
            raise ExecutionError("maximum recursion depth exceeded", code="B007",
                                 help_text="Check the function for a missing base case.") from None

    def describe(self, handle: FunctionHandle) -> str:
        if isinstance(handle, InterpretedFunction):
            return dump(handle.source)
        if isinstance(handle, DeclaredFunction):
            return dump(handle.prototype)
        return super().describe(handle)

    def is_defined(self, name: str) -> bool:
        return name in self._bodies

    def is_declared(self, name: str) -> bool:
        return name in self._signatures

    # Expression lowering

    def visit_number(self, node: NumberExpr) -> Code:
        value = node.value
        return lambda args: value

    def visit_variable(self, node: VariableExpr) -> Code:
        index = self._scope.get(node.name)
        if index is None:
            raise unknown_variable(node.name, node.location)
        return lambda args: args[index]

    def visit_binary(self, node: BinaryExpr) -> Code:
        lhs = self.lower_expr(node.lhs)
        rhs = self.lower_expr(node.rhs)
        op = BINARY_OPERATORS.get(node.op)
        if op is None:
            raise invalid_operator(node.op, node.location)
        return lambda args: op(lhs(args), rhs(args))

    def visit_call(self, node: CallExpr) -> Code:
        callee = self._signatures.get(node.callee)
        if callee is None:
            raise unknown_function(node.callee, node.location)
        if callee.arity != len(node.args):
            raise incorrect_argument_count(node.callee, callee.arity, len(node.args), node.location)

        arg_code = [self.lower_expr(arg) for arg in node.args]
        name = node.callee
        call = self._call
        return lambda args: call(name, tuple(code(args) for code in arg_code))

    # Runtime

    def _call(self, name: str, args: Tuple[float, ...]) -> float:
        body = self._bodies.get(name)
        if body is not None:
            return body.code(args)

        native = self.natives.get(name)
        if native is None:
            raise ExecutionError(f"unresolved external symbol '{name}'", code="B007",
                                 help_text="Externs bind to native math functions such as sin or sqrt.")
        return self._call_native(name, native, args)

    @staticmethod
    def _call_native(name: str, native: Callable[..., float], args: Tuple[float, ...]) -> float:
        # libm reports domain and range errors through its result, not by failing
        try:
            return float(native(*args))
        except TypeError:
            # An extern may declare any arity; the native decides what it accepts
            raise ExecutionError(f"native function '{name}' cannot be called with {len(args)} argument(s)",
                                 code="B007",
                                 help_text=f"Declare it with the parameters '{name}' takes.") from None
        except ValueError:
            return math.nan
        except OverflowError:
            return math.inf
