"""
Error handling for the Kaleidoscope parser.

A ParseError describes the first syntactic expectation a top-level form
violated. It propagates out of the whole form's parse chain; the driver
catches it at the form boundary and resynchronizes.

Author: xwest
"""

from typing import Optional, List

from ..lexer.tokens import Token, SourceLocation
from ..lexer.errors import Diagnostic


class ParseError(Exception):
    """
    Exception raised when the parser encounters a syntax error.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation],
        token: Optional[Token] = None,
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
        self.token = token

    def __str__(self) -> str:
        return str(self.diagnostic)


PARSER_ERROR_CODES = {
    "P001": "Expected token not found",
    "P002": "Unknown token where an expression was expected",
    "P003": "Malformed prototype",
    "P004": "Expression nested too deeply",
}


# Helper functions for creating common parser errors

def create_expected_token_error(message: str, found: Token,
                                suggestions: Optional[List[str]] = None) -> ParseError:
    """Create an error for a missing expected token."""
    return ParseError(
        message=message,
        location=found.location,
        token=found,
        code="P001",
        help_text=f"Found {found.describe()} instead.",
        suggestions=suggestions
    )


def create_unknown_token_error(found: Token) -> ParseError:
    """Create an error for a token that cannot start an expression."""
    return ParseError(
        message="unknown token when expecting an expression",
        location=found.location,
        token=found,
        code="P002",
        help_text=f"An expression starts with a number, an identifier or '(', not {found.describe()}.",
        suggestions=["Check for a missing operand", "Check for a dangling operator"]
    )


def create_prototype_error(message: str, found: Token) -> ParseError:
    """Create an error for a malformed prototype."""
    return ParseError(
        message=message,
        location=found.location,
        token=found,
        code="P003",
        help_text=f"Prototypes look like 'name(a b c)'; found {found.describe()}.",
    )


def create_nesting_error(found: Token) -> ParseError:
    """Create an error for input nested deeper than the parser can recurse."""
    return ParseError(
        message="expression nested too deeply",
        location=found.location,
        token=found,
        code="P004",
        help_text="Split the expression into smaller functions.",
    )
