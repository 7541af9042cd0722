"""
Palladium Syntax Tree

Defines the syntax node variants produced by the parser. Every grammar
production has exactly one node class. Nodes are frozen dataclasses holding
tuples, so a tree is immutable once built.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


def _position() -> Any:
    """Source position field, ignored by equality and repr."""
    return field(default=0, compare=False, repr=False)


# =============================================================================
# Base Class
# =============================================================================

class SyntaxNode(ABC):
    """Base class for all syntax nodes."""

    @abstractmethod
    def accept(self, visitor: 'NodeVisitor') -> Any:
        """Accept a visitor for traversal."""
        pass

    @property
    def kind(self) -> str:
        """Variant name, used in diagnostics."""
        return type(self).__name__


# =============================================================================
# Literals and Names
# =============================================================================

@dataclass(frozen=True)
class Integer(SyntaxNode):
    """Signed 64-bit integer literal."""
    value: int
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_integer(self)


@dataclass(frozen=True)
class Float(SyntaxNode):
    """64-bit floating point literal."""
    value: float
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_float(self)


@dataclass(frozen=True)
class Identifier(SyntaxNode):
    """A single variable or function name."""
    name: str
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_identifier(self)


@dataclass(frozen=True)
class IdentifierList(SyntaxNode):
    """Two or more comma-separated names matched at factor position."""
    names: Tuple[str, ...]
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_identifier_list(self)


# =============================================================================
# Operators
# =============================================================================

@dataclass(frozen=True)
class Operator(SyntaxNode):
    """
    Base for the operator variants.

    Subclasses only set ``symbol`` (source text) and ``mnemonic`` (the
    instruction the code generator emits). ``unary`` operators consume a
    single operand.
    """
    line: int = _position()
    column: int = _position()

    symbol = ""
    mnemonic = ""
    unary = False

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_operator(self)


class AdditionOperator(Operator):
    symbol = "+"
    mnemonic = "ADD"


class SubtractionOperator(Operator):
    symbol = "-"
    mnemonic = "SUB"


class MultiplicationOperator(Operator):
    symbol = "*"
    mnemonic = "MUL"


class DivisionOperator(Operator):
    symbol = "/"
    mnemonic = "DIV"


class GreaterThan(Operator):
    symbol = ">"
    mnemonic = "GT"


class LessThan(Operator):
    symbol = "<"
    mnemonic = "LT"


class GreaterThanOrEqual(Operator):
    symbol = ">="
    mnemonic = "GTE"


class LessThanOrEqual(Operator):
    symbol = "<="
    mnemonic = "LTE"


class EqualTo(Operator):
    symbol = "=="
    mnemonic = "EQ"


class LogicalAnd(Operator):
    symbol = "and"
    mnemonic = "AND"


class LogicalOr(Operator):
    symbol = "or"
    mnemonic = "OR"


class LogicalNot(Operator):
    symbol = "not"
    mnemonic = "NOT"
    unary = True


class Assignment(Operator):
    """Binds a name instead of producing an instruction."""
    symbol = "="


# =============================================================================
# Expression Levels
# =============================================================================

@dataclass(frozen=True)
class Factor(SyntaxNode):
    """Tightest-binding unit: literal, name, call or parenthesized expression."""
    inner: SyntaxNode
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_factor(self)


@dataclass(frozen=True)
class Term(SyntaxNode):
    """Left-associative chain of factors."""
    left: SyntaxNode
    right: Tuple[Tuple[Operator, SyntaxNode], ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_term(self)


@dataclass(frozen=True)
class Expression(SyntaxNode):
    """Left-associative chain of terms."""
    left: SyntaxNode
    right: Tuple[Tuple[Operator, SyntaxNode], ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_expression(self)


# =============================================================================
# Conditionals
# =============================================================================

@dataclass(frozen=True)
class Elif(SyntaxNode):
    condition: SyntaxNode
    body: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_elif(self)


@dataclass(frozen=True)
class Else(SyntaxNode):
    body: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_else(self)


@dataclass(frozen=True)
class If(SyntaxNode):
    """An if block with its elif chain and optional else."""
    condition: SyntaxNode
    body: Tuple[SyntaxNode, ...] = ()
    elifs: Tuple[Elif, ...] = ()
    orelse: Optional[Else] = None
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_if(self)


# =============================================================================
# Loops
# =============================================================================

@dataclass(frozen=True)
class WhileLoopStart(SyntaxNode):
    condition: SyntaxNode
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_while_loop_start(self)


@dataclass(frozen=True)
class WhileLoopBody(SyntaxNode):
    statements: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_while_loop_body(self)


@dataclass(frozen=True)
class WhileLoop(SyntaxNode):
    start: WhileLoopStart
    body: WhileLoopBody
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_while_loop(self)


@dataclass(frozen=True)
class ForLoopStart(SyntaxNode):
    """``for <variable> in <collection>:``"""
    variable: str
    collection: str
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_for_loop_start(self)


@dataclass(frozen=True)
class ForLoopBody(SyntaxNode):
    statements: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_for_loop_body(self)


@dataclass(frozen=True)
class ForLoop(SyntaxNode):
    start: ForLoopStart
    body: ForLoopBody
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_for_loop(self)


# =============================================================================
# Functions
# =============================================================================

@dataclass(frozen=True)
class FunctionName(SyntaxNode):
    name: str
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_function_name(self)


@dataclass(frozen=True)
class FunctionArgs(SyntaxNode):
    """Flat list of formal argument names."""
    args: Tuple[str, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_function_args(self)


@dataclass(frozen=True)
class FunctionBody(SyntaxNode):
    statements: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_function_body(self)


@dataclass(frozen=True)
class ReturnStatement(SyntaxNode):
    """``return a, b;`` ending a function body."""
    args: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_return_statement(self)


@dataclass(frozen=True)
class Function(SyntaxNode):
    """``def name(args): body [return ...;]``"""
    name: FunctionName
    args: FunctionArgs
    body: FunctionBody
    return_statement: Optional[ReturnStatement] = None
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_function(self)


@dataclass(frozen=True)
class FunctionCall(SyntaxNode):
    """``name(arg, ...)`` where each argument is a bound name."""
    name: str
    args: Tuple[str, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_function_call(self)


# =============================================================================
# Collections
# =============================================================================

@dataclass(frozen=True)
class List(SyntaxNode):
    elements: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_list(self)


@dataclass(frozen=True)
class Dictionary(SyntaxNode):
    """
    Dictionary literal.

    The parser checks the ``key: value`` structure but does not keep the
    pairs, so ``keys`` and ``values`` are always empty.
    """
    keys: Tuple[SyntaxNode, ...] = ()
    values: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_dictionary(self)


# =============================================================================
# Program
# =============================================================================

@dataclass(frozen=True)
class Program(SyntaxNode):
    """Root node of every parse."""
    statements: Tuple[SyntaxNode, ...] = ()
    line: int = _position()
    column: int = _position()

    def accept(self, visitor: 'NodeVisitor') -> Any:
        return visitor.visit_program(self)


# =============================================================================
# Visitor Interface
# =============================================================================

class NodeVisitor(ABC):
    """
    Visitor over the closed set of node variants.

    Every variant has an abstract method here, so a concrete visitor that
    forgets one cannot be instantiated.
    """

    @abstractmethod
    def visit_integer(self, node: Integer) -> Any:
        pass

    @abstractmethod
    def visit_float(self, node: Float) -> Any:
        pass

    @abstractmethod
    def visit_identifier(self, node: Identifier) -> Any:
        pass

    @abstractmethod
    def visit_identifier_list(self, node: IdentifierList) -> Any:
        pass

    @abstractmethod
    def visit_operator(self, node: Operator) -> Any:
        pass

    @abstractmethod
    def visit_factor(self, node: Factor) -> Any:
        pass

    @abstractmethod
    def visit_term(self, node: Term) -> Any:
        pass

    @abstractmethod
    def visit_expression(self, node: Expression) -> Any:
        pass

    @abstractmethod
    def visit_if(self, node: If) -> Any:
        pass

    @abstractmethod
    def visit_elif(self, node: Elif) -> Any:
        pass

    @abstractmethod
    def visit_else(self, node: Else) -> Any:
        pass

    @abstractmethod
    def visit_while_loop_start(self, node: WhileLoopStart) -> Any:
        pass

    @abstractmethod
    def visit_while_loop_body(self, node: WhileLoopBody) -> Any:
        pass

    @abstractmethod
    def visit_while_loop(self, node: WhileLoop) -> Any:
        pass

    @abstractmethod
    def visit_for_loop_start(self, node: ForLoopStart) -> Any:
        pass

    @abstractmethod
    def visit_for_loop_body(self, node: ForLoopBody) -> Any:
        pass

    @abstractmethod
    def visit_for_loop(self, node: ForLoop) -> Any:
        pass

    @abstractmethod
    def visit_function_name(self, node: FunctionName) -> Any:
        pass

    @abstractmethod
    def visit_function_args(self, node: FunctionArgs) -> Any:
        pass

    @abstractmethod
    def visit_function_body(self, node: FunctionBody) -> Any:
        pass

    @abstractmethod
    def visit_function(self, node: Function) -> Any:
        pass

    @abstractmethod
    def visit_function_call(self, node: FunctionCall) -> Any:
        pass

    @abstractmethod
    def visit_return_statement(self, node: ReturnStatement) -> Any:
        pass

    @abstractmethod
    def visit_list(self, node: List) -> Any:
        pass

    @abstractmethod
    def visit_dictionary(self, node: Dictionary) -> Any:
        pass

    @abstractmethod
    def visit_program(self, node: Program) -> Any:
        pass
