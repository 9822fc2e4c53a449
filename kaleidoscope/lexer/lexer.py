"""
Kaleidoscope Lexer - turns a character stream into tokens

Streaming, one token per call. The lexer never buffers input: it keeps the
single character that ended the previous token and reads further characters
one at a time, so it works on an interactive stdin as well as on a string.

xwest
"""

import io
import logging
import re
from typing import List, TextIO, Union

from .tokens import Token, TokenType, SourceLocation, KEYWORDS
from .errors import create_invalid_number_error

logger = logging.getLogger(__name__)

# Longest leading text a float conversion accepts, e.g. '1.2' out of '1.2.3'
_NUMBER_PREFIX = re.compile(r'\d+\.?\d*|\.\d+')

_LINE_TERMINATORS = ('\n', '\r')


def _is_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def _is_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def _is_digit(char: str) -> bool:
    return char.isascii() and char.isdigit()


class Lexer:
    """
    Kaleidoscope lexical analyzer.

    Holds the input stream and exactly one pending lookahead character
    (`last_char`). `next_token()` is called repeatedly by the parser; after
    end of input every call returns an EOF token.
    """

    def __init__(self, source: Union[str, TextIO], filename: str = "<stdin>"):
        """
        Initialize the lexer.

        Args:
            source: Source text, or a text stream read one character at a time
            filename: Name of the source for error reporting
        """
        if isinstance(source, str):
            source = io.StringIO(source)
        self.stream = source
        self.filename = filename

        # The pending character; a space so the first call starts by reading
        self.last_char = ' '
        self.line = 1
        self.column = 0
        self.offset = -1

    def _read_char(self):
        """Replace the pending character with the next one from the stream."""
        if self.last_char == '\n':
            self.line += 1
            self.column = 0
        self.last_char = self.stream.read(1)
        if self.last_char:
            self.column += 1
            self.offset += 1

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, max(self.column, 1), max(self.offset, 0))

    def _at_end(self) -> bool:
        return self.last_char == ''

    def next_token(self) -> Token:
        """Return the next token from the input."""
        while True:
            while not self._at_end() and self.last_char.isspace():
                self._read_char()

            location = self._location()

            if _is_alpha(self.last_char):
                return self._lex_identifier(location)

            if _is_digit(self.last_char) or self.last_char == '.':
                return self._lex_number(location)

            if self.last_char == '#':
                self._skip_comment()
                if not self._at_end():
                    continue

            if self._at_end():
                return Token(TokenType.EOF, "", None, self._location())

            this_char = self.last_char
            self._read_char()
            return Token(TokenType.CHAR, this_char, this_char, location)

    def _lex_identifier(self, location: SourceLocation) -> Token:
        """identifier: [a-zA-Z][a-zA-Z0-9]*, or one of the keywords."""
        chars = [self.last_char]
        self._read_char()
        while _is_alnum(self.last_char):
            chars.append(self.last_char)
            self._read_char()

        text = ''.join(chars)
        token_type = KEYWORDS.get(text)
        if token_type is not None:
            return Token(token_type, text, None, location)
        return Token(TokenType.IDENTIFIER, text, text, location)

    def _lex_number(self, location: SourceLocation) -> Token:
        """number: [0-9.]+, converted from its longest valid prefix."""
        chars = []
        while _is_digit(self.last_char) or self.last_char == '.':
            chars.append(self.last_char)
            self._read_char()

        text = ''.join(chars)
        match = _NUMBER_PREFIX.match(text)
        if match is None:
            raise create_invalid_number_error(text, location)

        if match.end() != len(text):
            logger.debug("numeric literal %r at %s read as %r", text, location, match.group(0))

        return Token(TokenType.NUMBER, text, float(match.group(0)), location)

    def _skip_comment(self):
        """Discard a '#' comment up to (not including) the line terminator."""
        start = self._location()
        while True:
            self._read_char()
            if self._at_end() or self.last_char in _LINE_TERMINATORS:
                break
        logger.debug("skipped comment at %s", start)

    def __iter__(self):
        """Iterate over tokens up to and including EOF."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                return


def tokenize_string(source: str, filename: str = "<string>") -> List[Token]:
    """
    Convenience function to tokenize a source string.

    Args:
        source: Source code string
        filename: Filename for error reporting

    Returns:
        List of tokens, the last one being EOF

    Raises:
        LexerError: If a numeric literal has no valid prefix
    """
    return list(Lexer(source, filename))


def tokenize_file(filepath: str) -> List[Token]:
    """
    Convenience function to tokenize a source file.

    Raises:
        LexerError: If lexing fails
        IOError: If file cannot be read
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        return list(Lexer(f, filepath))
