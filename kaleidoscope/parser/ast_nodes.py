"""
Abstract Syntax Tree node definitions for Kaleidoscope.

The expression nodes form a closed set of variants. Dispatch over them goes
through ExprVisitor, which declares one abstract method per variant, so a
visitor that misses a variant cannot be instantiated.

Nodes are frozen dataclasses with tuple children: a tree is immutable once
the parser has built it. Source locations are carried for diagnostics but
take no part in equality.

Author: xwest
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from ..lexer.tokens import SourceLocation


class ExprVisitor(ABC):
    """Visitor interface over the expression variants."""

    @abstractmethod
    def visit_number(self, node: 'NumberExpr') -> Any:
        pass

    @abstractmethod
    def visit_variable(self, node: 'VariableExpr') -> Any:
        pass

    @abstractmethod
    def visit_binary(self, node: 'BinaryExpr') -> Any:
        pass

    @abstractmethod
    def visit_call(self, node: 'CallExpr') -> Any:
        pass


class ExprAST(ABC):
    """Base class for all expression nodes."""

    @abstractmethod
    def accept(self, visitor: ExprVisitor) -> Any:
        """Accept a visitor (visitor pattern)."""
        pass

    @abstractmethod
    def children(self) -> List['ExprAST']:
        """Get all child expressions."""
        pass


# ============================================================================
# Expressions
# ============================================================================

@dataclass(frozen=True)
class NumberExpr(ExprAST):
    """Numeric literal like `1.0`."""
    value: float
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def accept(self, visitor: ExprVisitor) -> Any:
        return visitor.visit_number(self)

    def children(self) -> List[ExprAST]:
        return []


@dataclass(frozen=True)
class VariableExpr(ExprAST):
    """Reference to a variable, like `a`."""
    name: str
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def accept(self, visitor: ExprVisitor) -> Any:
        return visitor.visit_variable(self)

    def children(self) -> List[ExprAST]:
        return []


@dataclass(frozen=True)
class BinaryExpr(ExprAST):
    """Binary operator application."""
    op: str
    lhs: ExprAST
    rhs: ExprAST
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def accept(self, visitor: ExprVisitor) -> Any:
        return visitor.visit_binary(self)

    def children(self) -> List[ExprAST]:
        return [self.lhs, self.rhs]


@dataclass(frozen=True)
class CallExpr(ExprAST):
    """Function call by name."""
    callee: str
    args: Tuple[ExprAST, ...] = ()
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        # Accept any sequence but always store a tuple
        if not isinstance(self.args, tuple):
            object.__setattr__(self, 'args', tuple(self.args))

    def accept(self, visitor: ExprVisitor) -> Any:
        return visitor.visit_call(self)

    def children(self) -> List[ExprAST]:
        return list(self.args)


# ============================================================================
# Functions
# ============================================================================

@dataclass(frozen=True)
class Prototype:
    """
    A function's name and parameter names.

    The empty name marks the wrapper of an anonymous top-level expression.
    """
    name: str
    params: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.params, tuple):
            object.__setattr__(self, 'params', tuple(self.params))

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def is_anonymous(self) -> bool:
        return self.name == ""


@dataclass(frozen=True)
class Function:
    """A function definition: prototype plus body."""
    prototype: Prototype
    body: ExprAST

    @property
    def name(self) -> str:
        return self.prototype.name

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.prototype.location or self.body.location


TopLevel = Union[Function, Prototype]


def format_number(value: float) -> str:
    """Shortest readable form of a literal value."""
    if math.isfinite(value) and value == int(value) and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


class ASTPrinter(ExprVisitor):
    """
    Render trees as s-expressions.

        1+2*3            ->  (+ 1 (* 2 3))
        def f(a b) a+b   ->  (def f (a b) (+ a b))
    """

    def visit_number(self, node: NumberExpr) -> str:
        return format_number(node.value)

    def visit_variable(self, node: VariableExpr) -> str:
        return node.name

    def visit_binary(self, node: BinaryExpr) -> str:
        return f"({node.op} {node.lhs.accept(self)} {node.rhs.accept(self)})"

    def visit_call(self, node: CallExpr) -> str:
        parts = [node.callee] + [arg.accept(self) for arg in node.args]
        return f"({' '.join(parts)})"

    def format_prototype(self, proto: Prototype) -> str:
        name = proto.name or "<anon>"
        return f"{name} ({' '.join(proto.params)})"

    def format(self, node: Union[ExprAST, Prototype, Function]) -> str:
        if isinstance(node, Function):
            return f"(def {self.format_prototype(node.prototype)} {node.body.accept(self)})"
        if isinstance(node, Prototype):
            return f"(extern {self.format_prototype(node)})"
        return node.accept(self)


def dump(node: Union[ExprAST, Prototype, Function]) -> str:
    """Convenience wrapper around ASTPrinter."""
    return ASTPrinter().format(node)
