"""
Kaleidoscope driver loop.

Reads top-level forms one at a time, hands each to a backend and reports the
outcome. Every failure, syntactic or from the backend, is scoped to the form
that caused it: the driver reports it, drops the partial tree and skips one
token before trying the next form.

Author: xwest
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional, TextIO, Union

from .lexer.errors import LexerError
from .lexer.lexer import Lexer
from .lexer.tokens import TokenType
from .parser.errors import ParseError
from .parser.operators import OperatorTable
from .parser.parser import Parser
from .backend.base import Backend, BackendError
from .backend.interpreter import InterpreterBackend

logger = logging.getLogger(__name__)

FormError = Union[LexerError, ParseError, BackendError]


@dataclass
class DriverConfig:
    """Settings for one driver session."""
    prompt: str = "ready> "
    interactive: bool = False                 # write the prompt before each form
    echo: bool = True                         # print each form as lowered
    skip_token_on_backend_error: bool = True  # resynchronize after backend failures too


@dataclass
class DriverStats:
    """What happened during a session."""
    definitions: int = 0
    externs: int = 0
    evaluations: int = 0
    errors: int = 0
    values: List[float] = field(default_factory=list)
    error_messages: List[str] = field(default_factory=list)


class Driver:
    """
    Top-level read-lower-report loop.

    States: await a form; on ';' skip it; on 'def' or 'extern' parse that
    form; on end of input stop; anything else is a top-level expression
    that is evaluated immediately.
    """

    def __init__(
        self,
        source: Union[str, TextIO],
        backend: Optional[Backend] = None,
        config: Optional[DriverConfig] = None,
        operators: Optional[OperatorTable] = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        filename: str = "<stdin>",
    ):
        self.config = config or DriverConfig()
        self.operators = operators if operators is not None else OperatorTable()
        self.parser = Parser(Lexer(source, filename), self.operators)
        self.backend = backend if backend is not None else InterpreterBackend()
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.stats = DriverStats()

    def run(self) -> DriverStats:
        """Process forms until end of input."""
        self.operators.freeze()

        self._prompt()
        self._advance()

        while True:
            token = self.parser.current
            if token.type == TokenType.EOF:
                break

            if token.is_char(';'):
                self._advance()
            elif token.type == TokenType.DEF:
                self.handle_definition()
            elif token.type == TokenType.EXTERN:
                self.handle_extern()
            else:
                self.handle_top_level_expression()

            self._prompt()

        if self.config.interactive:
            self.err.write("\n")
        return self.stats

    # Form handlers

    def handle_definition(self):
        try:
            fn = self.parser.parse_definition()
        except (ParseError, LexerError) as exc:
            self._recover(exc)
            return

        try:
            handle = self.backend.lower_function(fn)
        except BackendError as exc:
            self._recover(exc, backend=True)
            return

        self.stats.definitions += 1
        if self.config.echo:
            print("Read function definition:", file=self.out)
            print(self.backend.describe(handle), file=self.out)

    def handle_extern(self):
        try:
            proto = self.parser.parse_extern()
        except (ParseError, LexerError) as exc:
            self._recover(exc)
            return

        try:
            handle = self.backend.lower_prototype(proto)
        except BackendError as exc:
            self._recover(exc, backend=True)
            return

        self.stats.externs += 1
        if self.config.echo:
            print("Read extern:", file=self.out)
            print(self.backend.describe(handle), file=self.out)

    def handle_top_level_expression(self):
        try:
            fn = self.parser.parse_top_level_expr()
        except (ParseError, LexerError) as exc:
            self._recover(exc)
            return

        try:
            handle = self.backend.lower_function(fn)
            if self.config.echo:
                print("Read top-level expression:", file=self.out)
                print(self.backend.describe(handle), file=self.out)
            value = self.backend.execute(handle)
        except BackendError as exc:
            self._recover(exc, backend=True)
            return

        self.stats.evaluations += 1
        self.stats.values.append(value)
        print(f"Evaluated to {value:f}", file=self.out)

    # Helpers

    def _prompt(self):
        if self.config.interactive:
            self.err.write(self.config.prompt)
            self.err.flush()

    def _advance(self):
        """Move to the next token, reporting malformed literals on the way."""
        while True:
            try:
                self.parser.get_next_token()
                return
            except LexerError as exc:
                # The bad literal has been consumed; keep going
                self._report(exc)

    def _report(self, exc: FormError):
        self.stats.errors += 1
        self.stats.error_messages.append(exc.message)
        if exc.location is not None:
            print(f"Error: {exc.message} ({exc.location})", file=self.err)
        else:
            print(f"Error: {exc.message}", file=self.err)

    def _recover(self, exc: FormError, backend: bool = False):
        """Report a failed form and skip one token."""
        self._report(exc)
        if backend and not self.config.skip_token_on_backend_error:
            return
        logger.debug("resynchronizing: skipping %s", self.parser.current)
        self._advance()


def run_source(source: Union[str, TextIO], backend: Optional[Backend] = None, **kwargs) -> DriverStats:
    """Convenience wrapper: run a whole session over `source`."""
    return Driver(source, backend, **kwargs).run()
