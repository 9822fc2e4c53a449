"""
Kaleidoscope Backend Package

Backends lower parsed forms and run them. The interpreter backend has no
dependencies; the LLVM backend needs llvmlite (the `llvm` extra) and is
imported only when asked for.

Author: xwest
"""

from .base import (
    Backend, FunctionHandle, BackendError, CodegenError, ExecutionError,
)
from .interpreter import InterpreterBackend, BUILTIN_FUNCTIONS

BACKENDS = ("interpreter", "llvm")


def create_backend(name: str = "interpreter", **options) -> Backend:
    """
    Create a backend by name.

    Args:
        name: "interpreter" or "llvm"
        **options: Passed to the backend's constructor

    Raises:
        ValueError: For an unknown backend name
        ImportError: For the LLVM backend when llvmlite is not installed
    """
    if name == "interpreter":
        return InterpreterBackend(**options)
    if name == "llvm":
        from .llvm_backend import LLVMBackend
        return LLVMBackend(**options)
    raise ValueError(f"unknown backend {name!r}, expected one of {', '.join(BACKENDS)}")


__all__ = [
    "Backend",
    "FunctionHandle",
    "BackendError",
    "CodegenError",
    "ExecutionError",
    "InterpreterBackend",
    "BUILTIN_FUNCTIONS",
    "BACKENDS",
    "create_backend",
]
