"""
Binary operator precedence table.

Maps single-character operator symbols to positive integer precedences
(higher binds tighter). The table may be extended while a session is being
set up; once frozen it is read-only, and the parser only ever reads it.

Author: xwest
"""

from typing import Dict, ItemsView, Optional

from ..lexer.tokens import Token, TokenType


DEFAULT_PRECEDENCES: Dict[str, int] = {
    '<': 10,
    '+': 20,
    '-': 20,
    '*': 40,
}

# Characters the grammar already uses as punctuation
RESERVED_CHARS = frozenset('(),;#.')


def _is_printable_ascii(char: str) -> bool:
    return len(char) == 1 and 32 < ord(char) < 127


class OperatorTable:
    """
    Operator precedence table consulted by the precedence-climbing parser.

    All operators are left-associative. Looking up anything that is not an
    installed single-character operator yields -1.
    """

    def __init__(self, precedences: Optional[Dict[str, int]] = None):
        self._precedences: Dict[str, int] = {}
        self._frozen = False
        for op, precedence in (DEFAULT_PRECEDENCES if precedences is None else precedences).items():
            self.install(op, precedence)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        """Make the table read-only."""
        self._frozen = True

    def install(self, op: str, precedence: int):
        """
        Add or change a binary operator.

        Args:
            op: A single printable, non-alphanumeric ASCII character
            precedence: Positive integer, higher binds tighter

        Raises:
            RuntimeError: If the table has been frozen
            ValueError: If the operator or precedence is not acceptable
        """
        if self._frozen:
            raise RuntimeError("operator table is frozen")
        if not isinstance(op, str) or not _is_printable_ascii(op) or op.isalnum() or op in RESERVED_CHARS:
            raise ValueError(f"invalid binary operator symbol: {op!r}")
        if isinstance(precedence, bool) or not isinstance(precedence, int) or precedence <= 0:
            raise ValueError(f"precedence must be a positive integer, got {precedence!r}")
        self._precedences[op] = precedence

    def precedence(self, token: Token) -> int:
        """Precedence of `token` as a binary operator, or -1."""
        if token.type != TokenType.CHAR:
            return -1
        return self.precedence_of(token.value)

    def precedence_of(self, op: str) -> int:
        """Precedence of the operator symbol `op`, or -1."""
        if not _is_printable_ascii(op):
            return -1
        return self._precedences.get(op, -1)

    def items(self) -> ItemsView[str, int]:
        return self._precedences.items()

    def __contains__(self, op: object) -> bool:
        return op in self._precedences

    def __len__(self) -> int:
        return len(self._precedences)

    def __repr__(self) -> str:
        return f"OperatorTable({self._precedences!r}, frozen={self._frozen})"
