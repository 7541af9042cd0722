"""
Palladium Code Generator

Walks a syntax tree and emits text assembly for the register VM, allocating
registers from a fixed pool as it goes.

Every node that produces a value pushes the register holding it on a result
stack; operators pop their operands from it. Registers are taken from the
free pool on allocation and recorded as live in the innermost scope until
they are released or their scope is popped.
"""

from typing import List, Optional
from .ast import (
    NodeVisitor, SyntaxNode, Integer, Float, Identifier, IdentifierList,
    Operator, Assignment, Factor, Term, Expression, If, Elif, Else,
    WhileLoopStart, WhileLoopBody, WhileLoop, ForLoopStart, ForLoopBody,
    ForLoop, FunctionName, FunctionArgs, FunctionBody, Function,
    FunctionCall, ReturnStatement, List as ListNode, Dictionary, Program,
)
from .scope import ScopeTable
from .errors import CompileError, AllocationError, UnresolvedIdentifierError


# Size of the VM register file. The last register holds return values and is
# never handed out by the allocator.
REGISTER_COUNT = 32
RETURN_REGISTER = REGISTER_COUNT - 1


class CodeGenerator(NodeVisitor):
    """Generates assembly text from a syntax tree."""

    def __init__(self, register_count: int = REGISTER_COUNT, debug: bool = False):
        """
        Create a code generator.

        Args:
            register_count: Number of VM registers, including the return slot
            debug: Print emitted instructions and register pools
        """
        if register_count < 2:
            raise ValueError("register_count must be at least 2")

        self.register_count = register_count
        self.return_register = register_count - 1
        self.debug = debug
        self._reset()

    def _reset(self) -> None:
        # pop() hands out the highest free register first
        self.free_registers: List[int] = list(range(self.return_register))
        self.results: List[int] = []
        self.scopes = ScopeTable()
        self.assembly: List[str] = []
        self.return_mode = False
        self._visiting: List[SyntaxNode] = []

    def generate(self, node: SyntaxNode) -> str:
        """
        Generate assembly for a tree.

        Args:
            node: Root of the tree, normally a Program

        Returns:
            Newline-separated instructions

        Raises:
            CompileError: If the tree cannot be compiled
        """
        self._reset()
        try:
            self.visit(node)
        except RecursionError:
            raise CompileError("Nesting too deep to compile",
                               node.line or None, node.column or None) from None
        self.check_conservation()

        if self.debug:
            print(self.dump_registers())

        return "\n".join(self.assembly)

    def visit(self, node: SyntaxNode) -> None:
        self._visiting.append(node)
        try:
            node.accept(self)
        finally:
            self._visiting.pop()

    # =========================================================================
    # Register Management
    # =========================================================================

    def allocate(self) -> int:
        """Take a register from the free pool and mark it live in the current scope."""
        if not self.free_registers:
            raise self._allocation_error("Register pool exhausted")

        register = self.free_registers.pop()
        self.scopes.current.live_registers.append(register)
        return register

    def release(self, register: int) -> None:
        """
        Return a register to the free pool.

        Registers bound to a name, reserved for a return value, or not held
        by any scope (the return slot, or already released) are left alone.
        """
        if register == self.return_register or self.scopes.is_bound(register):
            return

        for scope in reversed(self.scopes.scopes):
            if register in scope.return_registers:
                return
            if register in scope.live_registers:
                scope.live_registers.remove(register)
                self.free_registers.append(register)
                return

    def push_result(self, register: int) -> None:
        self.results.append(register)

    def pop_result(self) -> int:
        if not self.results:
            raise self._allocation_error("No result register to pop")
        return self.results.pop()

    def discard_results(self, mark: int) -> None:
        """Release every result pushed since ``mark``."""
        while len(self.results) > mark:
            self.release(self.results.pop())

    def check_conservation(self) -> None:
        """
        Verify that every register is either free or held by exactly one scope.

        Raises:
            AllocationError: If a register leaked or was freed twice
        """
        held: List[int] = []
        for scope in self.scopes.scopes:
            held.extend(scope.live_registers)

        everything = self.free_registers + held
        if len(everything) != self.return_register or \
                set(everything) != set(range(self.return_register)):
            raise AllocationError(
                f"Register pools out of balance: {len(self.free_registers)} free, "
                f"{len(held)} live, {self.return_register} total")

    def dump_registers(self) -> str:
        """Describe the register pools, for debugging."""
        lines = [f"Free registers: {sorted(self.free_registers)}"]
        for depth, scope in enumerate(self.scopes.scopes):
            lines.append(f"Scope {depth}: live={sorted(scope.live_registers)} "
                         f"variables={scope.variables}")
        return "\n".join(lines)

    def _allocation_error(self, message: str) -> AllocationError:
        node = self._visiting[-1] if self._visiting else None
        if node is None:
            return AllocationError(message)
        return AllocationError(message, node.kind,
                               getattr(node, "line", None) or None,
                               getattr(node, "column", None) or None)

    # =========================================================================
    # Emission
    # =========================================================================

    def emit(self, line: str) -> None:
        self.assembly.append(line)
        if self.debug:
            print(f"  {line}")

    def load(self, value) -> None:
        """Load an immediate into a fresh register, or the return slot in return mode."""
        if self.return_mode:
            register = self.return_register
        else:
            register = self.allocate()

        self.emit(f"LOAD ${register} #{value}")
        self.push_result(register)

    # =========================================================================
    # Literals and Names
    # =========================================================================

    def visit_integer(self, node: Integer) -> None:
        self.load(node.value)

    def visit_float(self, node: Float) -> None:
        self.load(repr(node.value))

    def visit_identifier(self, node: Identifier) -> None:
        """A read of a bound name yields its register; nothing is emitted."""
        register = self.scopes.resolve(node.name)
        if register is None:
            raise UnresolvedIdentifierError(node.name, node.line or None, node.column or None)
        self.push_result(register)

    def visit_identifier_list(self, node: IdentifierList) -> None:
        for name in node.names:
            register = self.scopes.resolve(name)
            if register is None:
                raise UnresolvedIdentifierError(name, node.line or None, node.column or None)
            self.push_result(register)

    # =========================================================================
    # Operators
    # =========================================================================

    def visit_operator(self, node: Operator) -> None:
        if isinstance(node, Assignment):
            raise CompileError("Assignment must be the first operator of an expression",
                               node.line or None, node.column or None)

        if node.unary:
            operand = self.pop_result()
            dest = self.allocate()
            self.emit(f"{node.mnemonic} ${operand} ${dest}")
            self.push_result(dest)
            self.release(operand)
            return

        # Operands come off the result stack right first
        right = self.pop_result()
        left = self.pop_result()
        dest = self.allocate()
        self.emit(f"{node.mnemonic} ${left} ${right} ${dest}")
        self.push_result(dest)
        self.release(left)
        self.release(right)

    # =========================================================================
    # Expression Levels
    # =========================================================================

    def visit_factor(self, node: Factor) -> None:
        self.visit(node.inner)

    def visit_term(self, node: Term) -> None:
        self._fold(node)

    def visit_expression(self, node: Expression) -> None:
        self._fold(node)

    def _fold(self, node) -> None:
        """Left fold of an operator chain, or a binding when it starts with '='."""
        if node.right and isinstance(node.right[0][0], Assignment):
            self._assign(node)
            return

        self.visit(node.left)
        for operator, operand in node.right:
            self.visit(operand)
            self.visit(operator)

    def _assign(self, node) -> None:
        target = _unwrap(node.left)
        if not isinstance(target, Identifier):
            raise CompileError("Invalid assignment target",
                               node.line or None, node.column or None)
        name = target.name

        mark = len(self.results)
        self.visit(node.right[0][1])
        for operator, operand in node.right[1:]:
            self.visit(operand)
            self.visit(operator)

        if len(self.results) != mark + 1:
            raise CompileError(f"Assignment to {name!r} needs exactly one value",
                               node.line or None, node.column or None)
        value = self.results.pop()

        previous = self.scopes.current.get_variable(name)
        self.scopes.declare(name, value)
        if previous is not None and previous != value:
            self.release(previous)

    # =========================================================================
    # Functions
    # =========================================================================

    def visit_function(self, node: Function) -> None:
        self.scopes.push_scope()

        self.visit(node.args)
        self.visit(node.name)
        self.visit(node.body)
        if node.return_statement is not None:
            self.visit(node.return_statement)
        self.emit("RET")

        self.free_registers.extend(self.scopes.pop_scope())

    def visit_function_name(self, node: FunctionName) -> None:
        self.emit(f"{node.name}:")

    def visit_function_args(self, node: FunctionArgs) -> None:
        # The caller's PUSHed values are expected to land in these registers
        for arg in node.args:
            self.scopes.declare(arg, self.allocate())

    def visit_function_body(self, node: FunctionBody) -> None:
        self._statements(node.statements)

    def visit_return_statement(self, node: ReturnStatement) -> None:
        for arg in node.args:
            mark = len(self.results)

            self.return_mode = isinstance(_unwrap(arg), (Integer, Float))
            try:
                self.visit(arg)
            finally:
                self.return_mode = False

            produced = self.results[mark:]
            del self.results[mark:]
            for register in produced:
                if register != self.return_register:
                    self.scopes.push_return_register(register)

    def visit_function_call(self, node: FunctionCall) -> None:
        for arg in node.args:
            register = self.scopes.resolve(arg)
            if register is None:
                raise UnresolvedIdentifierError(arg, node.line or None, node.column or None)
            self.emit(f"PUSH ${register}")

        # There is no move instruction, so a name bound to the return slot
        # would silently change value here
        holder = self._return_slot_holder()
        if holder is not None:
            raise CompileError(
                f"Call to {node.name!r} would overwrite the result bound to {holder!r}",
                node.line or None, node.column or None)

        self.emit(f"CALL @{node.name}")
        self.push_result(self.return_register)

    def _return_slot_holder(self) -> Optional[str]:
        for scope in reversed(self.scopes.scopes):
            for name, register in scope.variables.items():
                if register == self.return_register:
                    return name
        return None

    # =========================================================================
    # Control Flow and Collections
    # =========================================================================
    #
    # These are parsed but produce no instructions yet: the instruction set
    # has no jumps, so branch and label emission still has to be designed.

    def visit_if(self, node: If) -> None:
        self._skip(node)

    def visit_elif(self, node: Elif) -> None:
        self._skip(node)

    def visit_else(self, node: Else) -> None:
        self._skip(node)

    def visit_while_loop_start(self, node: WhileLoopStart) -> None:
        self._skip(node)

    def visit_while_loop_body(self, node: WhileLoopBody) -> None:
        self._skip(node)

    def visit_while_loop(self, node: WhileLoop) -> None:
        self._skip(node)

    def visit_for_loop_start(self, node: ForLoopStart) -> None:
        self._skip(node)

    def visit_for_loop_body(self, node: ForLoopBody) -> None:
        self._skip(node)

    def visit_for_loop(self, node: ForLoop) -> None:
        self._skip(node)

    def visit_list(self, node: ListNode) -> None:
        self._skip(node)

    def visit_dictionary(self, node: Dictionary) -> None:
        self._skip(node)

    def _skip(self, node: SyntaxNode) -> None:
        if self.debug:
            print(f"  ; {node.kind} at line {node.line}: no code generated")

    # =========================================================================
    # Program
    # =========================================================================

    def visit_program(self, node: Program) -> None:
        self.emit(".data")
        self.emit(".code")
        self._statements(node.statements)
        self.emit("HLT")

    def _statements(self, statements) -> None:
        """Generate a statement sequence, dropping each statement's leftover results."""
        for statement in statements:
            mark = len(self.results)
            self.visit(statement)
            self.discard_results(mark)


def _unwrap(node: SyntaxNode) -> SyntaxNode:
    """Strip operator-free Expression/Term layers and Factors down to the inner node."""
    while True:
        if isinstance(node, (Expression, Term)) and not node.right:
            node = node.left
        elif isinstance(node, Factor):
            node = node.inner
        else:
            return node
