"""Kaleidoscope CLI: read forms from a file or stdin and evaluate them.

Usage:
    kaleidoscope                        Interactive prompt on stdin
    kaleidoscope program.kal            Run a file
    kaleidoscope --backend llvm         JIT through LLVM (needs llvmlite)
    kaleidoscope -q < program.kal       Print results only
"""

import argparse
import logging
import sys

from .backend import BACKENDS, create_backend
from .driver import Driver, DriverConfig


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kaleidoscope",
        description="Evaluate Kaleidoscope definitions and expressions.",
    )
    parser.add_argument("file", nargs="?",
                        help="source file (default: stdin)")
    parser.add_argument("-b", "--backend", choices=BACKENDS, default="interpreter",
                        help="code generation backend (default: interpreter)")
    parser.add_argument("-O", "--opt-level", type=int, choices=range(4), default=2,
                        help="LLVM optimization level (default: 2)")
    parser.add_argument("-q", "--quiet", "--no-echo", dest="echo", action="store_false",
                        help="print only evaluated values and errors")
    parser.add_argument("--prompt", default=None,
                        help="prompt text (default: 'ready> ' when stdin is a terminal)")
    parser.add_argument("--keep-token-on-backend-error", action="store_true",
                        help="after a backend error, resume at the next token instead of skipping it")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log lexer, parser and backend activity")
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    options = {"opt_level": args.opt_level} if args.backend == "llvm" else {}
    try:
        backend = create_backend(args.backend, **options)
    except ImportError as e:
        print(f"Error: the {args.backend} backend is unavailable: {e}", file=sys.stderr)
        print("Install it with: pip install 'kaleidoscope[llvm]'", file=sys.stderr)
        return 2

    interactive = args.file is None and sys.stdin.isatty()
    config = DriverConfig(
        interactive=interactive or args.prompt is not None,
        echo=args.echo,
        skip_token_on_backend_error=not args.keep_token_on_backend_error,
    )
    if args.prompt is not None:
        config.prompt = args.prompt

    if args.file is None:
        stats = Driver(sys.stdin, backend, config).run()
    else:
        try:
            with open(args.file, "r", encoding="utf-8") as f:
                stats = Driver(f, backend, config, filename=args.file).run()
        except OSError as e:
            print(f"Error: cannot read {args.file}: {e.strerror}", file=sys.stderr)
            return 2

    return 1 if stats.errors else 0


if __name__ == "__main__":
    sys.exit(main())
