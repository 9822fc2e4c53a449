"""
Kaleidoscope Front End Package

Lexer, parser and AST for the Kaleidoscope toy language, the interface a
code generation backend implements, and the driver loop that feeds one
top-level form at a time to a backend.

Architecture:
    kaleidoscope/
    ├── lexer/           # Streaming tokenizer
    ├── parser/          # Operator table, AST, precedence-climbing parser
    ├── backend/         # Backend interface, interpreter, LLVM (llvmlite)
    ├── driver.py        # Read-lower-report loop with error recovery
    └── cli.py           # Command line entry point

Author: xwest
License: MIT
"""

__version__ = "0.1.0"
__author__ = "xwest"
__email__ = "dev@kaleidoscope.dev"
__license__ = "MIT"

from .lexer import Lexer, Token, TokenType
from .parser import Parser, OperatorTable, parse_string
from .backend import Backend, InterpreterBackend, create_backend
from .driver import Driver, DriverConfig, run_source

__all__ = [
    # Core classes
    "Lexer",
    "Token",
    "TokenType",
    "Parser",
    "OperatorTable",
    "parse_string",
    "Backend",
    "InterpreterBackend",
    "create_backend",
    "Driver",
    "DriverConfig",
    "run_source",

    # Version info
    "__version__",
    "__author__",
    "__email__",
    "__license__",
]
