"""
Error handling for the Kaleidoscope lexer.

Almost every character sequence maps to a token, so the only lexical
failure is a numeric literal with no usable prefix. The Diagnostic type
defined here is shared by the parser and the backends.

Author: xwest
"""

from typing import Optional, List
from dataclasses import dataclass
from .tokens import SourceLocation


@dataclass
class Diagnostic:
    """Base class for diagnostics (errors, warnings, info)."""
    message: str
    location: Optional[SourceLocation]
    severity: str  # "error", "warning", "info", "hint"
    code: Optional[str] = None
    help_text: Optional[str] = None
    suggestions: Optional[List[str]] = None

    def __str__(self) -> str:
        severity_prefix = self.severity.upper()
        result = f"{severity_prefix}: {self.message}\n"
        if self.location is not None:
            result += f"  --> {self.location}\n"

        if self.help_text:
            result += f"  help: {self.help_text}\n"

        if self.suggestions:
            result += "  suggestions:\n"
            for suggestion in self.suggestions:
                result += f"    - {suggestion}\n"

        return result


class LexerError(Exception):
    """
    Exception raised when the lexer cannot turn its input into a token.

    Contains detailed diagnostic information for error reporting.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation,
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


ERROR_CODES = {
    "L003": "Invalid numeric literal",
}


def create_invalid_number_error(lexeme: str, location: SourceLocation) -> LexerError:
    """Create an error for a numeric literal with no valid leading prefix."""
    return LexerError(
        message=f"invalid numeric literal '{lexeme}'",
        location=location,
        code="L003",
        help_text="A number needs at least one digit, e.g. '0.5' or '5.'.",
        suggestions=["Add a digit before or after the '.'"]
    )
