"""
Palladium API Tests

Tests for the Context pipeline and compiled Script objects.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api import Context, Script, create_context
from compiler import compile_file
from compiler.bytecode import Assembler, Bytecode
from compiler.errors import (
    AssemblyError, SyntaxError, UnresolvedIdentifierError,
)


FUNCTION_PROGRAM = """
def add(a, b):
    c = a + b
    return c;
x = 1
y = 2
z = add(x, y)
"""


class RecordingAssembler(Assembler):
    """Assembler that keeps the text it was given."""

    def __init__(self):
        self.received = []

    def assemble(self, text: str) -> bytes:
        self.received.append(text)
        return b"ok"


class RejectingAssembler(Assembler):

    def assemble(self, text: str) -> bytes:
        raise AssemblyError("rejected")


class TestContext:
    """Context creation and the compile pipeline."""

    def test_create_context(self):
        ctx = create_context(register_count=16)
        assert ctx.register_count == 16
        assert ctx.assembler.register_count == 16

    def test_register_count_too_large_for_text_assembler(self):
        with pytest.raises(ValueError):
            Context(register_count=300)

    def test_large_register_count_with_custom_assembler(self):
        script = Context(register_count=300, assembler=RecordingAssembler()).compile("3+4")
        assert script.assembly.splitlines()[2] == "LOAD $298 #3"

    def test_compile(self):
        script = Context().compile("x = 4\ny = x + 1")
        assert isinstance(script, Script)
        assert script.source == "x = 4\ny = x + 1"
        assert script.assembly.splitlines()[-2] == "ADD $30 $29 $28"
        assert script.bytecode[:4] == Bytecode.MAGIC

    def test_compile_function_program(self):
        script = Context().compile(FUNCTION_PROGRAM)
        assert Bytecode.deserialize(script.bytecode).labels == {"add": 0}
        assert "CALL   @add" in script.disassemble()

    def test_custom_assembler(self):
        assembler = RecordingAssembler()
        script = Context(assembler=assembler).compile("3+4")
        assert script.bytecode == b"ok"
        assert assembler.received == [script.assembly]

    def test_assembler_error_propagates(self):
        with pytest.raises(AssemblyError):
            Context(assembler=RejectingAssembler()).compile("3+4")

    def test_undefined_function(self):
        with pytest.raises(AssemblyError) as exc_info:
            Context().compile("x = 1\ny = g(x)")
        assert "Undefined label: g" in str(exc_info.value)

    def test_stages(self):
        ctx = Context()
        program = ctx.parse("3+4")
        assembly = ctx.generate(program)
        assert assembly.startswith(".data\n.code\n")
        assert ctx.assemble(assembly)[:4] == Bytecode.MAGIC

    def test_debug_output(self, capsys):
        Context(debug=True).compile("3+4")
        out = capsys.readouterr().out
        assert "LOAD $30 #3" in out
        assert "Assembled 6 lines into" in out


class TestErrorLocations:
    """Filenames and positions in error messages."""

    def test_filename_in_compile_error(self):
        with pytest.raises(UnresolvedIdentifierError) as exc_info:
            Context().compile("y = x", filename="main.pd")
        assert str(exc_info.value) == "main.pd:1:5: Unresolved identifier: 'x'"

    def test_filename_in_syntax_error(self):
        with pytest.raises(SyntaxError) as exc_info:
            Context().compile("1 +", filename="bad.pd")
        assert exc_info.value.filename == "bad.pd"
        assert str(exc_info.value).startswith("bad.pd:1:4: ")

    def test_no_filename(self):
        with pytest.raises(UnresolvedIdentifierError) as exc_info:
            Context().compile("y = x")
        assert str(exc_info.value).startswith("line 1:5: ")


class TestFiles:
    """Reading sources and saving bytecode."""

    def test_compile_file(self, tmp_path):
        path = tmp_path / "prog.pd"
        path.write_text("x = 4\ny = x + 1\n", encoding="utf-8")
        script = Context().compile_file(str(path))
        assert script.filename == str(path)
        assert "ADD $30 $29 $28" in script.assembly

    def test_compile_file_error_has_filename(self, tmp_path):
        path = tmp_path / "broken.pd"
        path.write_text("x = 1\ny = )\n", encoding="utf-8")
        with pytest.raises(SyntaxError) as exc_info:
            compile_file(str(path))
        assert exc_info.value.filename == str(path)
        assert exc_info.value.line == 2

    def test_save_and_load(self, tmp_path):
        script = Context().compile(FUNCTION_PROGRAM)
        path = tmp_path / "prog.pdc"
        script.save(str(path))

        loaded = Script.load(str(path))
        assert loaded.bytecode == script.bytecode
        assert loaded.filename == str(path)
        assert loaded.disassemble() == script.disassemble()
