"""
Palladium Compiler Package

Compiles Palladium, a small Python-like expression language, into text
assembly for a register VM. The text can then be assembled into bytecode by
any Assembler.
"""

from .tokens import Token, TokenType
from .lexer import Lexer
from .ast import SyntaxNode, NodeVisitor, Program
from .parser import Parser
from .scope import Scope, ScopeTable
from .codegen import CodeGenerator, REGISTER_COUNT, RETURN_REGISTER
from .bytecode import Assembler, TextAssembler, Bytecode, OpCode
from .errors import (
    PalladiumError, SyntaxError, NumericConversionError, CompileError,
    AllocationError, UnresolvedIdentifierError, AssemblyError,
)

__version__ = "0.1.0"
__all__ = [
    "Token",
    "TokenType",
    "Lexer",
    "SyntaxNode",
    "NodeVisitor",
    "Program",
    "Parser",
    "Scope",
    "ScopeTable",
    "CodeGenerator",
    "REGISTER_COUNT",
    "RETURN_REGISTER",
    "Assembler",
    "TextAssembler",
    "Bytecode",
    "OpCode",
    "PalladiumError",
    "SyntaxError",
    "NumericConversionError",
    "CompileError",
    "AllocationError",
    "UnresolvedIdentifierError",
    "AssemblyError",
    "parse",
    "compile",
    "compile_source",
    "compile_file",
]


def parse(source: str) -> Program:
    """
    Parse Palladium source code into a syntax tree.

    Args:
        source: Palladium source code string

    Returns:
        Program node at the root of the tree

    Raises:
        SyntaxError: If the source is not a valid program
        NumericConversionError: If a numeric literal is out of range
    """
    tokens = Lexer(source).tokenize()
    return Parser(tokens).parse()


def compile(node: SyntaxNode, register_count: int = REGISTER_COUNT,
            debug: bool = False) -> str:
    """
    Compile a syntax tree to assembly text.

    Args:
        node: Tree to compile, normally the Program returned by parse()
        register_count: Size of the VM register file
        debug: Print instructions and register pools while compiling

    Returns:
        Newline-separated instructions

    Raises:
        CompileError: If code generation fails
    """
    codegen = CodeGenerator(register_count=register_count, debug=debug)
    return codegen.generate(node)


def compile_source(source: str, **options) -> str:
    """Parse and compile Palladium source code to assembly text."""
    return compile(parse(source), **options)


def compile_file(filepath: str, **options) -> str:
    """
    Compile a Palladium source file to assembly text.

    Args:
        filepath: Path to a .pd source file

    Returns:
        Newline-separated instructions
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()
    try:
        return compile_source(source, **options)
    except PalladiumError as e:
        e.set_filename(filepath)
        raise
