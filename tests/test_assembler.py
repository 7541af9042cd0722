"""
Palladium Assembler Tests

Tests for the text assembler and the bytecode container.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from compiler import TextAssembler, Bytecode, OpCode, compile_source
from compiler.bytecode import Constant
from compiler.errors import AssemblyError


ADD_PROGRAM = "\n".join([
    ".data",
    ".code",
    "LOAD $30 #3",
    "LOAD $29 #4",
    "ADD $30 $29 $28",
    "HLT",
])


class TestEncoding:
    """Instruction word layout."""

    def test_words(self):
        bc = TextAssembler().build(ADD_PROGRAM)
        assert bc.code == [
            OpCode.LOAD | 30 << 8,
            OpCode.LOAD | 29 << 8 | 1 << 16,
            OpCode.ADD | 30 << 8 | 29 << 16 | 28 << 24,
            OpCode.HLT,
        ]

    def test_word_array(self):
        words = TextAssembler().build(ADD_PROGRAM).words()
        assert words.dtype == np.dtype('<u4')
        assert len(words) == 4

    def test_constants(self):
        bc = TextAssembler().build(ADD_PROGRAM)
        assert bc.constants == [Constant.integer(3), Constant.integer(4)]

    def test_constants_deduplicated(self):
        bc = TextAssembler().build(".code\nLOAD $1 #3\nLOAD $2 #3\nLOAD $3 #3.0")
        assert bc.constants == [Constant.integer(3), Constant.number(3.0)]

    def test_float_immediates(self):
        bc = TextAssembler().build(".code\nLOAD $1 #-2.5\nLOAD $2 #1e+20")
        assert [c.value for c in bc.constants] == [-2.5, 1e20]

    def test_labels(self):
        bc = TextAssembler().build(".code\nf:\nRET\nCALL @f\nHLT")
        assert bc.labels == {"f": 0}
        assert bc.code[1] == OpCode.CALL

    def test_comments_and_blank_lines(self):
        bc = TextAssembler().build(".code\n\n  HLT   ; stop\n")
        assert bc.code == [OpCode.HLT]


class TestSerialization:
    """Binary bytecode format."""

    def test_header(self):
        data = TextAssembler().assemble(ADD_PROGRAM)
        assert data[:4] == Bytecode.MAGIC

    def test_deserialize(self):
        bc = TextAssembler().build(".code\nadd:\nLOAD $1 #2.5\nRET\nCALL @add\nHLT")
        loaded = Bytecode.deserialize(bc.serialize())
        assert loaded.code == bc.code
        assert loaded.constants == bc.constants
        assert loaded.labels == bc.labels

    def test_bad_magic(self):
        with pytest.raises(ValueError):
            Bytecode.deserialize(b"XXXX" + bytes(16))

    def test_disassemble(self):
        text = TextAssembler().build(ADD_PROGRAM).disassemble()
        assert "LOAD   $30 #0 ; 3" in text
        assert "ADD    $30 $29 $28" in text
        assert "HLT" in text

    def test_disassemble_labels(self):
        text = TextAssembler().build(".code\nf:\nRET\nCALL @f\nHLT").disassemble()
        assert "f:" in text
        assert "CALL   @f" in text


class TestAssemblerErrors:
    """Rejected input."""

    @pytest.mark.parametrize("text", [
        ".code\nFOO $1",
        ".code\nLOAD $32 #1",
        ".code\nLOAD r1 #1",
        ".code\nLOAD $1 #abc",
        ".code\nLOAD $1 #9223372036854775808",
        ".code\nADD $1 $2",
        ".code\nCALL @missing",
        ".code\nf:\nf:\nRET",
        ".text\nHLT",
        ".data\n.code",
        "",
    ])
    def test_invalid(self, text):
        with pytest.raises(AssemblyError):
            TextAssembler().build(text)

    def test_instruction_outside_code(self):
        with pytest.raises(AssemblyError) as exc_info:
            TextAssembler().build(".data\nHLT")
        assert exc_info.value.line == 2

    def test_error_line(self):
        with pytest.raises(AssemblyError) as exc_info:
            TextAssembler().build(".data\n.code\nLOAD $1 #1\nFOO")
        assert exc_info.value.line == 4
        assert "Unknown instruction: FOO" in str(exc_info.value)

    def test_register_count(self):
        TextAssembler(register_count=8).build(".code\nLOAD $7 #1")
        with pytest.raises(AssemblyError):
            TextAssembler(register_count=8).build(".code\nLOAD $8 #1")

    def test_largest_register_file(self):
        bc = TextAssembler(register_count=256).build(".code\nADD $255 $254 $253")
        assert bc.code == [OpCode.ADD | 255 << 8 | 254 << 16 | 253 << 24]

    @pytest.mark.parametrize("count", [0, 257, 300])
    def test_register_file_must_fit_operand_field(self, count):
        with pytest.raises(ValueError):
            TextAssembler(register_count=count)


class TestCompilerOutput:
    """The assembler accepts everything the code generator emits."""

    @pytest.mark.parametrize("source", [
        "3+4",
        "x = 1.5\ny = x / 2",
        "x = -3\ny = x * x",
        "def one():\n    return 1;\nx = 1\ny = one(x)",
        "def add(a, b):\n    c = a + b\n    return c;\nx = 1\ny = 2\nz = add(x, y)",
        "if x:\n    y = 1",
    ])
    def test_assembles(self, source):
        bc = TextAssembler().build(compile_source(source))
        assert bc.code[-1] == OpCode.HLT
