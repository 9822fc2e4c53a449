"""
Kaleidoscope Parser Package

Recursive descent parser with precedence climbing for binary operators.
Produces immutable AST nodes for a backend to lower.

Key Features:
- Operator precedence table, extensible before a session starts
- Left-associative binary operators
- One token of lookahead, pulled from a streaming lexer
- Named syntax errors scoped to one top-level form

Author: xwest
"""

from .ast_nodes import (
    ExprAST, ExprVisitor, NumberExpr, VariableExpr, BinaryExpr, CallExpr,
    Prototype, Function, TopLevel, ASTPrinter, dump,
)
from .operators import OperatorTable, DEFAULT_PRECEDENCES
from .parser import Parser, parse_string, parse_all, ANONYMOUS_FUNCTION_NAME
from .errors import ParseError

__all__ = [
    # Core parser
    "Parser", "parse_string", "parse_all", "ANONYMOUS_FUNCTION_NAME",
    "OperatorTable", "DEFAULT_PRECEDENCES",

    # AST nodes
    "ExprAST", "ExprVisitor",
    "NumberExpr", "VariableExpr", "BinaryExpr", "CallExpr",
    "Prototype", "Function", "TopLevel",
    "ASTPrinter", "dump",

    # Error handling
    "ParseError",
]
