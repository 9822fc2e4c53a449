"""
Kaleidoscope Parser

Recursive descent for the top-level forms, precedence climbing for binary
expressions. The parser holds exactly one token of lookahead, the current
token, and every production returns with the current token already moved
past whatever it consumed.

Author: xwest
"""

import logging
from typing import List, Optional, Union

from ..lexer.lexer import Lexer
from ..lexer.tokens import Token, TokenType
from .ast_nodes import (
    ExprAST, NumberExpr, VariableExpr, BinaryExpr, CallExpr, Prototype, Function, TopLevel,
)
from .errors import (
    ParseError, create_expected_token_error, create_unknown_token_error,
    create_prototype_error, create_nesting_error,
)
from .operators import OperatorTable

logger = logging.getLogger(__name__)

# Name of the prototype wrapping a top-level expression
ANONYMOUS_FUNCTION_NAME = ""


class Parser:
    """
    Kaleidoscope parser.

    Pulls tokens from a Lexer one at a time. The constructor does not read;
    call `get_next_token()` once to load the first token before parsing.
    """

    def __init__(self, lexer: Lexer, operators: Optional[OperatorTable] = None):
        """
        Initialize parser.

        Args:
            lexer: Token source
            operators: Binary operator precedences (defaults to '<', '+', '-', '*')
        """
        self.lexer = lexer
        self.operators = operators if operators is not None else OperatorTable()
        self.current: Optional[Token] = None

    def get_next_token(self) -> Token:
        """Advance to and return the next token."""
        self.current = self.lexer.next_token()
        return self.current

    def _get_token_precedence(self) -> int:
        return self.operators.precedence(self.current)

    # Expressions

    def parse_number_expr(self) -> NumberExpr:
        """numberexpr ::= number"""
        result = NumberExpr(self.current.value, location=self.current.location)
        self.get_next_token()  # consume the number
        return result

    def parse_paren_expr(self) -> ExprAST:
        """parenexpr ::= '(' expression ')'"""
        self.get_next_token()  # eat (
        expr = self.parse_expression()

        if not self.current.is_char(')'):
            raise create_expected_token_error("expected ')'", self.current,
                                              ["Add a closing parenthesis ')'"])
        self.get_next_token()  # eat )
        return expr

    def parse_identifier_expr(self) -> ExprAST:
        """
        identifierexpr
            ::= identifier
            ::= identifier '(' expression* ')'
        """
        name_token = self.current
        self.get_next_token()  # eat identifier

        if not self.current.is_char('('):
            return VariableExpr(name_token.value, location=name_token.location)

        # Call
        self.get_next_token()  # eat (
        args: List[ExprAST] = []
        if not self.current.is_char(')'):
            while True:
                args.append(self.parse_expression())

                if self.current.is_char(')'):
                    break

                if not self.current.is_char(','):
                    raise create_expected_token_error(
                        "expected ')' or ',' in argument list", self.current,
                        ["Separate arguments with ','", "Close the call with ')'"])
                self.get_next_token()

        self.get_next_token()  # eat )
        return CallExpr(name_token.value, tuple(args), location=name_token.location)

    def parse_primary(self) -> ExprAST:
        """
        primary
            ::= identifierexpr
            ::= numberexpr
            ::= parenexpr
        """
        if self.current.type == TokenType.IDENTIFIER:
            return self.parse_identifier_expr()
        if self.current.type == TokenType.NUMBER:
            return self.parse_number_expr()
        if self.current.is_char('('):
            return self.parse_paren_expr()
        raise create_unknown_token_error(self.current)

    def parse_expression(self) -> ExprAST:
        """expression ::= primary binoprhs"""
        lhs = self.parse_primary()
        return self.parse_bin_op_rhs(0, lhs)

    def parse_bin_op_rhs(self, expr_prec: int, lhs: ExprAST) -> ExprAST:
        """
        binoprhs ::= (binop primary)*

        Consumes operators binding at least as tightly as `expr_prec`. A
        following operator that binds strictly tighter than the one just
        consumed takes the right-hand side first; equal precedence folds
        to the left.
        """
        while True:
            tok_prec = self._get_token_precedence()

            # Not an operator (-1) or one that binds looser: done here
            if tok_prec < expr_prec:
                return lhs

            op_token = self.current
            self.get_next_token()  # eat binop

            rhs = self.parse_primary()

            next_prec = self._get_token_precedence()
            if tok_prec < next_prec:
                rhs = self.parse_bin_op_rhs(tok_prec + 1, rhs)

            lhs = BinaryExpr(op_token.value, lhs, rhs, location=op_token.location)

    # Top-level forms

    def parse_prototype(self) -> Prototype:
        """prototype ::= id '(' id* ')'"""
        if self.current.type != TokenType.IDENTIFIER:
            raise create_prototype_error("expected function name in prototype", self.current)

        name_token = self.current
        self.get_next_token()

        if not self.current.is_char('('):
            raise create_prototype_error("expected '(' in prototype", self.current)

        params: List[str] = []
        while self.get_next_token().type == TokenType.IDENTIFIER:
            if self.current.value in params:
                raise create_prototype_error(
                    f"duplicate parameter name '{self.current.value}' in prototype", self.current)
            params.append(self.current.value)

        if not self.current.is_char(')'):
            raise create_prototype_error("expected ')' in prototype", self.current)

        self.get_next_token()  # eat )
        return Prototype(name_token.value, tuple(params), location=name_token.location)

    def parse_definition(self) -> Function:
        """definition ::= 'def' prototype expression"""
        self.get_next_token()  # eat def
        proto = self.parse_prototype()
        body = self._guarded(self.parse_expression)
        logger.debug("parsed definition of %r", proto.name)
        return Function(proto, body)

    def parse_extern(self) -> Prototype:
        """external ::= 'extern' prototype"""
        self.get_next_token()  # eat extern
        proto = self.parse_prototype()
        logger.debug("parsed extern %r", proto.name)
        return proto

    def parse_top_level_expr(self) -> Function:
        """toplevelexpr ::= expression"""
        start = self.current
        body = self._guarded(self.parse_expression)
        proto = Prototype(ANONYMOUS_FUNCTION_NAME, (), location=start.location)
        logger.debug("parsed top-level expression")
        return Function(proto, body)

    def _guarded(self, production):
        """Run a recursive production, reporting stack exhaustion as a syntax error."""
        try:
            return production()
        except RecursionError:
            raise create_nesting_error(self.current) from None

    def parse_top_level(self) -> Optional[TopLevel]:
        """
        Parse one top-level form starting at the current token.

        Returns None at end of input. A lone ';' is consumed and yields None
        too, so callers loop until the current token is EOF.
        """
        if self.current is None:
            self.get_next_token()
        if self.current.type == TokenType.EOF:
            return None
        if self.current.is_char(';'):
            self.get_next_token()
            return None
        if self.current.type == TokenType.DEF:
            return self.parse_definition()
        if self.current.type == TokenType.EXTERN:
            return self.parse_extern()
        return self.parse_top_level_expr()


def parse_string(source: str, filename: str = "<string>",
                 operators: Optional[OperatorTable] = None) -> Union[Function, Prototype]:
    """
    Convenience function to parse a source string holding one top-level form.

    Leading ';' separators are skipped.

    Raises:
        ParseError: If parsing fails or the source holds no form
    """
    parser = Parser(Lexer(source, filename), operators)
    parser.get_next_token()
    while parser.current.is_char(';'):
        parser.get_next_token()
    form = parser.parse_top_level()
    if form is None:
        raise ParseError("expected a definition, extern or expression", parser.current.location,
                         parser.current, code="P001")
    return form


def parse_all(source: str, filename: str = "<string>",
              operators: Optional[OperatorTable] = None) -> List[TopLevel]:
    """
    Parse every top-level form in `source`.

    Raises:
        ParseError: On the first syntax error; no recovery is attempted
    """
    parser = Parser(Lexer(source, filename), operators)
    parser.get_next_token()
    forms: List[TopLevel] = []
    while parser.current.type != TokenType.EOF:
        form = parser.parse_top_level()
        if form is not None:
            forms.append(form)
    return forms
