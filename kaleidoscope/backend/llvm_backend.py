"""
LLVM Backend for Kaleidoscope.

Lowers the AST to LLVM IR with llvmlite and runs anonymous top-level
expressions through MCJIT. Every value is a double.

Each lowered function lives in its own IR module, kept as verified IR text.
Executing an expression links the defined modules with the expression's
module, optimizes the result and JIT-compiles it, so a definition that
failed to lower never leaves anything behind.

Author: xwest
"""

import ctypes
import ctypes.util
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import llvmlite.binding as llvm
import llvmlite.ir as ll

from ..parser.ast_nodes import (
    ExprAST, NumberExpr, VariableExpr, BinaryExpr, CallExpr, Prototype, Function,
)
from .base import (
    Backend, FunctionHandle, CodegenError, ExecutionError,
    unknown_variable, unknown_function, incorrect_argument_count, redefinition,
    conflicting_declaration, invalid_operator,
)

logger = logging.getLogger(__name__)

DOUBLE = ll.DoubleType()

# Symbol given to the function wrapping an anonymous top-level expression
ANONYMOUS_SYMBOL = "__anon_expr"


@dataclass(frozen=True)
class LLVMFunction(FunctionHandle):
    """Handle for a prototype or function lowered to LLVM IR."""
    symbol: str
    ir: str
    is_definition: bool


@dataclass
class LLVMGenContext:
    """State of the function being lowered."""
    module: ll.Module
    builder: ll.IRBuilder
    named_values: Dict[str, ll.Argument]


class LLVMBackend(Backend):
    """
    LLVM backend for Kaleidoscope.

    Handles:
    - IR generation per function
    - Optimization passes
    - JIT execution of top-level expressions
    """

    name = "llvm"

    def __init__(self, opt_level: int = 2, triple: Optional[str] = None):
        """
        Initialize the LLVM backend.

        Args:
            opt_level: Optimization level (0-3) for the JIT pipeline
            triple: Target triple (defaults to the host)
        """
        llvm.initialize_native_target()
        llvm.initialize_native_asmprinter()

        # Externs such as sin and sqrt resolve against libm
        libm = ctypes.util.find_library("m")
        if libm:
            llvm.load_library_permanently(libm)

        self.opt_level = opt_level
        self.triple = triple or llvm.get_default_triple()
        target = llvm.Target.from_triple(self.triple)
        self.target_machine = target.create_target_machine(opt=opt_level)

        self._signatures: Dict[str, Prototype] = {}
        self._definitions: Dict[str, LLVMFunction] = {}
        self.context: Optional[LLVMGenContext] = None

    def _new_module(self, name: str) -> ll.Module:
        module = ll.Module(name=name)
        module.triple = self.triple
        module.data_layout = str(self.target_machine.target_data)
        return module

    @staticmethod
    def _declare(module: ll.Module, symbol: str, proto: Prototype) -> ll.Function:
        """Get or create `symbol` in `module` with the prototype's signature."""
        existing = module.globals.get(symbol)
        if existing is not None:
            return existing
        func_type = ll.FunctionType(DOUBLE, [DOUBLE] * proto.arity)
        func = ll.Function(module, func_type, name=symbol)
        for arg, param in zip(func.args, proto.params):
            arg.name = param
        return func

    # Backend interface

    def lower_prototype(self, proto: Prototype) -> FunctionHandle:
        existing = self._signatures.get(proto.name)
        if existing is not None and existing.arity != proto.arity:
            raise conflicting_declaration(proto.name, existing.arity, proto.arity, proto.location)

        declared = existing or proto
        symbol = proto.name or ANONYMOUS_SYMBOL
        module = self._new_module(symbol)
        self._declare(module, symbol, declared)

        if existing is None and not proto.is_anonymous:
            self._signatures[proto.name] = proto
            logger.debug("declared %s/%d", proto.name, proto.arity)
        return LLVMFunction(proto.name, proto.arity, symbol, str(module), False)

    def lower_function(self, fn: Function) -> FunctionHandle:
        proto = fn.prototype
        previous = self._signatures.get(proto.name)

        if not proto.is_anonymous:
            if proto.name in self._definitions:
                raise redefinition(proto.name, proto.location)
            if previous is not None and previous.arity != proto.arity:
                raise conflicting_declaration(proto.name, previous.arity, proto.arity, proto.location)
            self._signatures[proto.name] = proto

        symbol = proto.name or ANONYMOUS_SYMBOL
        module = self._new_module(symbol)
        func = self._declare(module, symbol, proto)
        builder = ll.IRBuilder(func.append_basic_block(name="entry"))
        self.context = LLVMGenContext(module, builder, {arg.name: arg for arg in func.args})

        try:
            builder.ret(self.lower_expr(fn.body))
            ir_text = str(module)
            llvm.parse_assembly(ir_text).verify()
        except (CodegenError, RuntimeError) as exc:
            # RecursionError is a RuntimeError too
            if not proto.is_anonymous:
                if previous is None:
                    del self._signatures[proto.name]
                else:
                    self._signatures[proto.name] = previous
            if isinstance(exc, CodegenError):
                raise
            if isinstance(exc, RecursionError):
                raise CodegenError("expression nested too deeply", proto.location) from None
            raise CodegenError(f"generated invalid IR for '{symbol}': {exc}") from exc
        finally:
            self.context = None

        handle = LLVMFunction(proto.name, proto.arity, symbol, ir_text, True)
        if not proto.is_anonymous:
            self._definitions[proto.name] = handle
            logger.debug("defined %s/%d", proto.name, proto.arity)
        return handle

    def lower_expr(self, expr: ExprAST) -> ll.Value:
        if self.context is None:
            raise CodegenError("expression lowered outside of a function")
        return expr.accept(self)

    def execute(self, handle: FunctionHandle) -> float:
        if handle.arity != 0:
            raise ExecutionError(f"cannot execute '{handle.name}': it takes {handle.arity} argument(s)",
                                 code="B007")
        if not isinstance(handle, LLVMFunction) or not handle.is_definition:
            # A bare declaration: call it through a wrapper
            wrapper = Function(Prototype(""), CallExpr(handle.name))
            handle = self.lower_function(wrapper)

        module = self._link(handle)
        self.optimize_module(module)

        # The engine takes ownership of its target machine
        target = llvm.Target.from_triple(self.triple)
        engine = llvm.create_mcjit_compiler(module, target.create_target_machine(opt=self.opt_level))
        engine.finalize_object()
        address = engine.get_function_address(handle.symbol)
        if not address:
            raise ExecutionError(f"JIT could not find symbol '{handle.symbol}'", code="B007")

        logger.debug("running %s at 0x%x", handle.symbol, address)
        cfunc = ctypes.CFUNCTYPE(ctypes.c_double)(address)
        return float(cfunc())

    def describe(self, handle: FunctionHandle) -> str:
        if isinstance(handle, LLVMFunction):
            return handle.ir
        return super().describe(handle)

    # JIT support

    def _link(self, handle: LLVMFunction) -> 'llvm.ModuleRef':
        """Link `handle` and the definitions it reaches into one fresh module."""
        module = llvm.parse_assembly(handle.ir)
        linked = {handle.symbol}
        while True:
            # Each pass pulls in the bodies the previous one declared
            pending = [func.name for func in module.functions
                       if func.is_declaration and func.name in self._definitions
                       and func.name not in linked]
            if not pending:
                break
            for name in pending:
                linked.add(name)
                module.link_in(llvm.parse_assembly(self._definitions[name].ir))
        logger.debug("linked %s with %s", handle.symbol, sorted(linked - {handle.symbol}))

        try:
            module.verify()
        except RuntimeError as exc:
            raise ExecutionError(f"linked module failed verification: {exc}", code="B007") from exc

        # MCJIT aborts the process on a missing symbol, so check first
        for func in module.functions:
            if (func.is_declaration and not func.name.startswith("llvm.")
                    and not llvm.address_of_symbol(func.name)):
                raise ExecutionError(f"unresolved external symbol '{func.name}'", code="B007",
                                     help_text="Externs bind to functions loaded in the process, such as sin or sqrt.")
        return module

    def optimize_module(self, module: 'llvm.ModuleRef') -> 'llvm.ModuleRef':
        """
        Run the optimization pipeline on `module` in place.

        Level 2 covers the instcombine, reassociate, GVN and CFG
        simplification passes a function needs here.
        """
        if self.opt_level <= 0:
            return module
        tuning = llvm.create_pipeline_tuning_options(speed_level=self.opt_level, size_level=0)
        pass_builder = llvm.create_pass_builder(self.target_machine, tuning)
        pass_manager = pass_builder.getModulePassManager()
        pass_manager.run(module, pass_builder)
        return module

    # Expression lowering

    def visit_number(self, node: NumberExpr) -> ll.Value:
        return ll.Constant(DOUBLE, node.value)

    def visit_variable(self, node: VariableExpr) -> ll.Value:
        value = self.context.named_values.get(node.name)
        if value is None:
            raise unknown_variable(node.name, node.location)
        return value

    def visit_binary(self, node: BinaryExpr) -> ll.Value:
        lhs = self.lower_expr(node.lhs)
        rhs = self.lower_expr(node.rhs)
        builder = self.context.builder

        if node.op == '+':
            return builder.fadd(lhs, rhs, name="addtmp")
        if node.op == '-':
            return builder.fsub(lhs, rhs, name="subtmp")
        if node.op == '*':
            return builder.fmul(lhs, rhs, name="multmp")
        if node.op == '<':
            cmp = builder.fcmp_unordered('<', lhs, rhs, name="cmptmp")
            # i1 0/1 to double 0.0/1.0
            return builder.uitofp(cmp, DOUBLE, name="booltmp")
        raise invalid_operator(node.op, node.location)

    def visit_call(self, node: CallExpr) -> ll.Value:
        callee = self._signatures.get(node.callee)
        if callee is None:
            raise unknown_function(node.callee, node.location)
        if callee.arity != len(node.args):
            raise incorrect_argument_count(node.callee, callee.arity, len(node.args), node.location)

        func = self._declare(self.context.module, node.callee, callee)
        args = [self.lower_expr(arg) for arg in node.args]
        return self.context.builder.call(func, args, name="calltmp")
