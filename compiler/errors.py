"""
Palladium Compiler Errors

Defines exception classes for parse, compile and assembly errors.
"""

from typing import Optional


class PalladiumError(Exception):
    """Base exception for all Palladium errors."""

    def __init__(self, message: str, line: Optional[int] = None,
                 column: Optional[int] = None, filename: Optional[str] = None):
        self.message = message
        self.line = line
        self.column = column
        self.filename = filename
        super().__init__(self._format_message())

    def set_filename(self, filename: str) -> None:
        """Attach a filename if the error does not carry one yet."""
        if self.filename is None:
            self.filename = filename
            self.args = (self._format_message(),)

    def _format_message(self) -> str:
        """Format the error message with location information."""
        parts = []

        if self.filename:
            parts.append(self.filename)

        if self.line is not None:
            if parts:
                parts.append(f"{self.line}")
            else:
                parts.append(f"line {self.line}")

            if self.column is not None:
                parts.append(f"{self.column}")

        if parts:
            return f"{':'.join(parts)}: {self.message}"
        return self.message


class SyntaxError(PalladiumError):
    """Raised for syntax errors during lexing or parsing."""
    pass


class NumericConversionError(PalladiumError):
    """Raised when a numeric literal does not fit its target type."""
    pass


class CompileError(PalladiumError):
    """Raised for semantic errors during code generation."""
    pass


class AllocationError(CompileError):
    """Raised when the register pool is exhausted or a result is missing."""

    def __init__(self, message: str, node_kind: Optional[str] = None,
                 line: Optional[int] = None, column: Optional[int] = None):
        self.node_kind = node_kind
        if node_kind:
            message = f"{message} (while visiting {node_kind})"
        super().__init__(message, line, column)


class UnresolvedIdentifierError(CompileError):
    """Raised for names that must be bound but are not."""

    def __init__(self, name: str, line: Optional[int] = None,
                 column: Optional[int] = None):
        self.name = name
        super().__init__(f"Unresolved identifier: {name!r}", line, column)


class AssemblyError(PalladiumError):
    """Raised when the assembler rejects the emitted instructions."""
    pass
