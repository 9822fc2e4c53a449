"""
Kaleidoscope Lexer Package

Streaming tokenizer for the Kaleidoscope toy language. Reads a character
stream one character at a time with a single pending lookahead character.

Key Features:
- Keywords `def` and `extern`, identifiers, float literals
- `#` line comments
- Any other character becomes a single-character token
- Source location tracking for diagnostics

Author: xwest
"""

from .tokens import Token, TokenType, SourceLocation, KEYWORDS
from .lexer import Lexer, tokenize_string, tokenize_file
from .errors import Diagnostic, LexerError

__all__ = [
    "Lexer",
    "Token",
    "TokenType",
    "SourceLocation",
    "KEYWORDS",
    "Diagnostic",
    "LexerError",
    "tokenize_string",
    "tokenize_file",
]
