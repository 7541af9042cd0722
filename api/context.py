"""
Palladium Context

The main interface for turning Palladium source into VM bytecode.
"""

from dataclasses import dataclass
from typing import Optional

from compiler import Lexer, Parser, CodeGenerator, Program, REGISTER_COUNT
from compiler.bytecode import Assembler, TextAssembler, Bytecode
from compiler.errors import PalladiumError


@dataclass
class Script:
    """
    A compiled Palladium script.

    Holds the source, the generated assembly text and the assembled bytecode.
    """

    source: str
    assembly: str
    bytecode: bytes
    filename: Optional[str] = None

    def disassemble(self) -> str:
        """Get disassembly of bytecode produced by the TextAssembler."""
        return Bytecode.deserialize(self.bytecode).disassemble()

    def save(self, path: str) -> None:
        """Save compiled bytecode to file."""
        with open(path, 'wb') as f:
            f.write(self.bytecode)

    @classmethod
    def load(cls, path: str) -> 'Script':
        """Load compiled bytecode from file."""
        with open(path, 'rb') as f:
            data = f.read()
        return cls(source="", assembly="", bytecode=data, filename=path)


class Context:
    """
    Palladium compilation context.

    Runs the whole pipeline: parse, generate assembly, assemble.

    Example:
        ctx = Context()
        script = ctx.compile('x = 4\\ny = x + 1')
        print(script.assembly)
    """

    def __init__(self,
                 register_count: int = REGISTER_COUNT,
                 assembler: Optional[Assembler] = None,
                 debug: bool = False):
        """
        Create a new Palladium context.

        Args:
            register_count: Size of the VM register file
            assembler: Object with an ``assemble(text) -> bytes`` method;
                defaults to a TextAssembler for the same register count
            debug: Enable debug output
        """
        self.register_count = register_count
        self.assembler = assembler if assembler is not None else TextAssembler(register_count)
        self.debug = debug

    def parse(self, source: str) -> Program:
        """Parse source code into a syntax tree."""
        tokens = Lexer(source).tokenize()
        return Parser(tokens).parse()

    def generate(self, program: Program) -> str:
        """Generate assembly text for a syntax tree."""
        codegen = CodeGenerator(register_count=self.register_count, debug=self.debug)
        return codegen.generate(program)

    def assemble(self, assembly: str) -> bytes:
        """
        Assemble instruction text into bytecode.

        Raises:
            AssemblyError: If the assembler rejects the text
        """
        bytecode = self.assembler.assemble(assembly)

        if self.debug:
            print(f"Assembled {len(assembly.splitlines())} lines into {len(bytecode)} bytes")
        return bytecode

    def compile(self, source: str, filename: Optional[str] = None) -> Script:
        """
        Compile Palladium source code.

        Args:
            source: Palladium source code string
            filename: Optional filename for error messages

        Returns:
            Compiled Script object

        Raises:
            PalladiumError: If any stage fails; no Script is produced
        """
        try:
            program = self.parse(source)
            assembly = self.generate(program)
            bytecode = self.assemble(assembly)
        except PalladiumError as e:
            if filename:
                e.set_filename(filename)
            raise

        return Script(source=source, assembly=assembly, bytecode=bytecode, filename=filename)

    def compile_file(self, path: str) -> Script:
        """
        Compile a Palladium source file.

        Args:
            path: Path to .pd source file

        Returns:
            Compiled Script object
        """
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return self.compile(source, filename=path)


def create_context(**kwargs) -> Context:
    """Create a Context with the given options."""
    return Context(**kwargs)
