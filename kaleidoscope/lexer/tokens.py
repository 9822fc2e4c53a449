"""
Token definitions for the Kaleidoscope lexer.

The token set is deliberately tiny:
- End of input
- The two keywords, `def` and `extern`
- Identifiers and number literals
- Any other single character (punctuation and operator symbols alike)

Author: xwest
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any


class TokenType(Enum):
    """Enumeration of all token types in Kaleidoscope."""

    EOF = auto()                    # End of input

    # Keywords
    DEF = auto()                    # def
    EXTERN = auto()                 # extern

    # Primary
    IDENTIFIER = auto()             # foo, x1
    NUMBER = auto()                 # 1.0, 42, .5

    # Everything else: '(', ')', ',', ';', '+', '<', ...
    CHAR = auto()


# Reserved words, matched against the complete identifier text
KEYWORDS = {
    "def": TokenType.DEF,
    "extern": TokenType.EXTERN,
}


@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Used for error reporting only; the parser never looks at it.
    """
    filename: str
    line: int
    column: int
    offset: int  # Character offset from start of input

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"

    def __repr__(self) -> str:
        return f"SourceLocation({self.filename!r}, {self.line}, {self.column}, {self.offset})"


@dataclass(frozen=True)
class Token:
    """
    Represents a lexical token.

    `lexeme` is the raw text, `value` the semantic value: the float for
    NUMBER, the text for IDENTIFIER and the character for CHAR.
    """
    type: TokenType
    lexeme: str
    value: Any
    location: SourceLocation

    def __str__(self) -> str:
        if self.type == TokenType.EOF:
            return "EOF"
        if self.type == TokenType.NUMBER:
            return f"NUMBER({self.lexeme!r} -> {self.value!r})"
        return f"{self.type.name}({self.lexeme!r})"

    def __repr__(self) -> str:
        return (f"Token({self.type.name}, {self.lexeme!r}, "
                f"{self.value!r}, {self.location!r})")

    def is_char(self, char: str) -> bool:
        """Check if this is the single-character token `char`."""
        return self.type == TokenType.CHAR and self.value == char

    def describe(self) -> str:
        """Human readable form used in diagnostics."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.CHAR:
            return f"'{self.lexeme}'"
        if self.type == TokenType.IDENTIFIER:
            return f"identifier '{self.lexeme}'"
        if self.type == TokenType.NUMBER:
            return f"number '{self.lexeme}'"
        return f"keyword '{self.lexeme}'"
