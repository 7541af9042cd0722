"""
Palladium Scope Table

Tracks which register each name is bound to. Scopes are lexical and strictly
nested: one for the top level and one per function body, kept on a stack.
"""

from typing import Dict, List, Optional


class Scope:
    """Bindings and registers owned by one lexical block."""

    def __init__(self):
        self.variables: Dict[str, int] = {}
        self.live_registers: List[int] = []
        self.return_registers: List[int] = []

    def has_variable(self, name: str) -> bool:
        """Check if this scope binds a name."""
        return name in self.variables

    def get_variable(self, name: str) -> Optional[int]:
        return self.variables.get(name)

    def new_variable(self, name: str, register: int) -> None:
        self.variables[name] = register

    def __repr__(self) -> str:
        return (f"Scope(variables={self.variables}, live={self.live_registers}, "
                f"returns={self.return_registers})")


class ScopeTable:
    """
    Stack of scopes.

    The bottom scope is the implicit top level and is never popped. Lookups
    walk from the innermost scope outwards, so inner bindings shadow outer
    bindings of the same name.
    """

    def __init__(self):
        self.scopes: List[Scope] = [Scope()]

    @property
    def current(self) -> Scope:
        """The innermost scope."""
        return self.scopes[-1]

    @property
    def depth(self) -> int:
        """Number of scopes opened on top of the top level."""
        return len(self.scopes) - 1

    def push_scope(self) -> Scope:
        scope = Scope()
        self.scopes.append(scope)
        return scope

    def pop_scope(self) -> List[int]:
        """
        Destroy the innermost scope.

        Returns:
            The registers that were live in it, for the allocator to reclaim
        """
        if len(self.scopes) == 1:
            raise IndexError("cannot pop the top-level scope")
        scope = self.scopes.pop()
        return list(scope.live_registers)

    def declare(self, name: str, register: int) -> None:
        """Bind a name in the innermost scope, replacing any earlier binding."""
        self.current.new_variable(name, register)

    def resolve(self, name: str) -> Optional[int]:
        """Find the register for a name, or None if no scope binds it."""
        for scope in reversed(self.scopes):
            register = scope.get_variable(name)
            if register is not None:
                return register
        return None

    def is_bound(self, register: int) -> bool:
        """Check if any active scope binds a name to the register."""
        for scope in self.scopes:
            if register in scope.variables.values():
                return True
        return False

    def push_return_register(self, register: int) -> None:
        self.current.return_registers.append(register)

    def pop_return_register(self) -> Optional[int]:
        if not self.current.return_registers:
            return None
        return self.current.return_registers.pop()

    def live_count(self) -> int:
        """Registers held across all active scopes."""
        return sum(len(scope.live_registers) for scope in self.scopes)
