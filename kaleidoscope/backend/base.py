"""
Backend interface for Kaleidoscope.

A backend turns parsed top-level forms into something executable. The
driver hands it exactly one form at a time; every failure is reported as a
BackendError and is scoped to that form.

Author: xwest
"""

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

from ..lexer.errors import Diagnostic
from ..lexer.tokens import SourceLocation
from ..parser.ast_nodes import ExprAST, ExprVisitor, Function, Prototype


class BackendError(Exception):
    """Base class for failures while lowering or running a form."""

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.message = message
        self.location = location
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
            suggestions=suggestions
        )

    def __str__(self) -> str:
        return str(self.diagnostic)


class CodegenError(BackendError):
    """A form could not be lowered (unknown names, arity, redefinition...)."""
    pass


class ExecutionError(BackendError):
    """A lowered function failed while running."""
    pass


BACKEND_ERROR_CODES = {
    "B001": "Unknown variable name",
    "B002": "Unknown function referenced",
    "B003": "Incorrect number of arguments",
    "B004": "Function redefinition",
    "B005": "Conflicting declaration",
    "B006": "Invalid binary operator",
    "B007": "Runtime failure",
}


def unknown_variable(name: str, location: Optional[SourceLocation] = None) -> CodegenError:
    return CodegenError(f"unknown variable name '{name}'", location, code="B001",
                        help_text="Only the enclosing function's parameters are in scope.")


def unknown_function(name: str, location: Optional[SourceLocation] = None) -> CodegenError:
    return CodegenError(f"unknown function referenced '{name}'", location, code="B002",
                        suggestions=[f"Define it with 'def {name}(...)'",
                                     f"Declare it with 'extern {name}(...)'"])


def incorrect_argument_count(name: str, expected: int, found: int,
                             location: Optional[SourceLocation] = None) -> CodegenError:
    return CodegenError(f"incorrect number of arguments passed to '{name}': "
                        f"expected {expected}, found {found}", location, code="B003")


def redefinition(name: str, location: Optional[SourceLocation] = None) -> CodegenError:
    return CodegenError(f"redefinition of function '{name}'", location, code="B004",
                        help_text="A function body can only be defined once.")


def conflicting_declaration(name: str, expected: int, found: int,
                            location: Optional[SourceLocation] = None) -> CodegenError:
    return CodegenError(f"conflicting declaration of '{name}': previously declared with "
                        f"{expected} parameter(s), now {found}", location, code="B005")


def invalid_operator(op: str, location: Optional[SourceLocation] = None) -> CodegenError:
    return CodegenError(f"invalid binary operator '{op}'", location, code="B006")


@dataclass(frozen=True)
class FunctionHandle:
    """A lowered prototype or function, as returned by a backend."""
    name: str
    arity: int


class Backend(ExprVisitor):
    """
    Interface every code generator satisfies.

    Backends are ExprVisitors: lowering an expression visits it, so a backend
    has to handle every expression variant before it can be instantiated.
    """

    name = "abstract"

    @abstractmethod
    def lower_prototype(self, proto: Prototype) -> FunctionHandle:
        """
        Create or retrieve a callable symbol for `proto`.

        Idempotent for a redeclaration with the same arity.

        Raises:
            CodegenError: If the name is known with a different arity
        """
        pass

    @abstractmethod
    def lower_function(self, fn: Function) -> FunctionHandle:
        """
        Lower a function body.

        Parameters are in scope only inside this body. On failure the
        backend is left as it was before the call.

        Raises:
            CodegenError: On redefinition or any error in the body
        """
        pass

    @abstractmethod
    def lower_expr(self, expr: ExprAST) -> Any:
        """
        Lower one expression in the scope of the function being lowered.

        Raises:
            CodegenError: unknown variable, unknown function, argument count,
                or an operator the backend cannot lower
        """
        pass

    @abstractmethod
    def execute(self, handle: FunctionHandle) -> float:
        """
        Run a zero-argument function and return its result.

        Raises:
            ExecutionError: If the function fails while running
        """
        pass

    def describe(self, handle: FunctionHandle) -> str:
        """Printable form of a lowered artifact."""
        return f"{handle.name or '<anon>'}/{handle.arity}"
