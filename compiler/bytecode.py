"""
Palladium Bytecode Format

Assembles the compiler's text output into bytecode for the register VM.

The compiler only depends on the ``Assembler`` interface: anything with an
``assemble(text) -> bytes`` method that raises AssemblyError on bad input can
stand in for the bundled TextAssembler.
"""

import re
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Tuple, Union

import numpy as np

from .errors import AssemblyError


class OpCode(IntEnum):
    """Register VM opcodes."""

    LOAD = 0x00     # $reg #constant
    ADD = 0x01      # $left $right $dest
    SUB = 0x02
    MUL = 0x03
    DIV = 0x04
    HLT = 0x05

    # Comparison
    EQ = 0x09
    GT = 0x0A
    LT = 0x0B
    GTE = 0x0C
    LTE = 0x0D

    # Logic
    AND = 0x10
    OR = 0x11
    NOT = 0x12      # $operand $dest

    # Calls
    PUSH = 0x20     # $reg
    CALL = 0x21     # @label
    RET = 0x22


REGISTER = "register"
IMMEDIATE = "immediate"
LABEL = "label"

# Operand kinds per opcode, in source order
OPERANDS = {
    OpCode.LOAD: (REGISTER, IMMEDIATE),
    OpCode.ADD: (REGISTER, REGISTER, REGISTER),
    OpCode.SUB: (REGISTER, REGISTER, REGISTER),
    OpCode.MUL: (REGISTER, REGISTER, REGISTER),
    OpCode.DIV: (REGISTER, REGISTER, REGISTER),
    OpCode.HLT: (),
    OpCode.EQ: (REGISTER, REGISTER, REGISTER),
    OpCode.GT: (REGISTER, REGISTER, REGISTER),
    OpCode.LT: (REGISTER, REGISTER, REGISTER),
    OpCode.GTE: (REGISTER, REGISTER, REGISTER),
    OpCode.LTE: (REGISTER, REGISTER, REGISTER),
    OpCode.AND: (REGISTER, REGISTER, REGISTER),
    OpCode.OR: (REGISTER, REGISTER, REGISTER),
    OpCode.NOT: (REGISTER, REGISTER),
    OpCode.PUSH: (REGISTER,),
    OpCode.CALL: (LABEL,),
    OpCode.RET: (),
}

DIRECTIVES = (".data", ".code")

_LABEL_RE = re.compile(r"^([^\W\d_][^\W_]*):$")
_INT_RE = re.compile(r"^-?[0-9]+$")
_FLOAT_RE = re.compile(r"^-?[0-9]+(\.[0-9]+)?(e[+-]?[0-9]+)?$")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@dataclass
class Constant:
    """A constant value in the constant pool."""

    TYPE_INT = 0
    TYPE_FLOAT = 1

    type: int
    value: Union[int, float]

    @classmethod
    def integer(cls, value: int) -> 'Constant':
        return cls(cls.TYPE_INT, value)

    @classmethod
    def number(cls, value: float) -> 'Constant':
        return cls(cls.TYPE_FLOAT, value)


@dataclass
class Bytecode:
    """Container for assembled Palladium bytecode."""

    # Magic number for file format
    MAGIC = b'PLDM'
    VERSION = 1

    code: List[int] = field(default_factory=list)
    constants: List[Constant] = field(default_factory=list)
    labels: Dict[str, int] = field(default_factory=dict)

    def add_constant(self, constant: Constant) -> int:
        """Add a constant to the pool, returning its index."""
        # Check for existing identical constant
        for i, c in enumerate(self.constants):
            if c.type == constant.type and c.value == constant.value:
                return i

        index = len(self.constants)
        self.constants.append(constant)
        return index

    def words(self) -> np.ndarray:
        """Instruction words as a little-endian uint32 array."""
        return np.array(self.code, dtype='<u4')

    def serialize(self) -> bytes:
        """Serialize bytecode to binary format."""
        output = bytearray()

        # Header
        output.extend(self.MAGIC)
        output.extend(struct.pack('<H', self.VERSION))
        output.extend(struct.pack('<H', 0))  # Flags

        # Constant pool
        output.extend(struct.pack('<I', len(self.constants)))
        for const in self.constants:
            output.append(const.type)
            if const.type == Constant.TYPE_INT:
                output.extend(struct.pack('<q', const.value))
            else:
                output.extend(struct.pack('<d', const.value))

        # Labels
        output.extend(struct.pack('<I', len(self.labels)))
        for name, index in self.labels.items():
            encoded = name.encode('utf-8')
            output.extend(struct.pack('<H', len(encoded)))
            output.extend(encoded)
            output.extend(struct.pack('<I', index))

        # Code
        output.extend(struct.pack('<I', len(self.code)))
        output.extend(self.words().tobytes())

        return bytes(output)

    @classmethod
    def deserialize(cls, data: bytes) -> 'Bytecode':
        """Deserialize bytecode from binary format."""
        offset = 0

        # Header
        magic = data[offset:offset+4]
        if magic != cls.MAGIC:
            raise ValueError("Invalid bytecode magic number")
        offset += 4

        version = struct.unpack_from('<H', data, offset)[0]
        if version != cls.VERSION:
            raise ValueError(f"Unsupported bytecode version: {version}")
        offset += 4  # version + flags

        bc = cls()

        # Read constants
        const_count = struct.unpack_from('<I', data, offset)[0]
        offset += 4
        for _ in range(const_count):
            const_type = data[offset]
            offset += 1
            if const_type == Constant.TYPE_INT:
                bc.constants.append(Constant.integer(struct.unpack_from('<q', data, offset)[0]))
            elif const_type == Constant.TYPE_FLOAT:
                bc.constants.append(Constant.number(struct.unpack_from('<d', data, offset)[0]))
            else:
                raise ValueError(f"Unknown constant type: {const_type}")
            offset += 8

        # Read labels
        label_count = struct.unpack_from('<I', data, offset)[0]
        offset += 4
        for _ in range(label_count):
            name_len = struct.unpack_from('<H', data, offset)[0]
            offset += 2
            name = data[offset:offset+name_len].decode('utf-8')
            offset += name_len
            bc.labels[name] = struct.unpack_from('<I', data, offset)[0]
            offset += 4

        # Read code
        code_len = struct.unpack_from('<I', data, offset)[0]
        offset += 4
        words = np.frombuffer(data, dtype='<u4', count=code_len, offset=offset)
        bc.code = [int(w) for w in words]

        return bc

    def disassemble(self) -> str:
        """Disassemble bytecode to human-readable format."""
        lines = []
        lines.append("=== Palladium Bytecode ===")
        lines.append("")

        # Constants
        lines.append("Constants:")
        for i, const in enumerate(self.constants):
            kind = "int" if const.type == Constant.TYPE_INT else "float"
            lines.append(f"  [{i:4d}] {kind}: {const.value}")
        lines.append("")

        # Code
        lines.append("Code:")
        targets = {index: name for name, index in self.labels.items()}
        for index, word in enumerate(self.code):
            if index in targets:
                lines.append(f"{targets[index]}:")
            lines.append(self._disassemble_instruction(index, word, targets))

        return "\n".join(lines)

    def _disassemble_instruction(self, index: int, word: int,
                                 targets: Dict[int, str]) -> str:
        """Disassemble a single instruction word."""
        opcode = OpCode(word & 0xFF)
        a = (word >> 8) & 0xFF
        b = (word >> 16) & 0xFF
        c = (word >> 24) & 0xFF
        name = opcode.name

        if opcode == OpCode.LOAD:
            const_index = b | (c << 8)
            const = self.constants[const_index] if const_index < len(self.constants) else None
            const_str = f" ; {const.value!r}" if const else ""
            return f"  {index:04x}: {name:6s} ${a} #{const_index}{const_str}"

        if opcode == OpCode.CALL:
            target = a | (b << 8)
            return f"  {index:04x}: {name:6s} @{targets.get(target, target)}"

        registers = [a, b, c][:len(OPERANDS[opcode])]
        operands = " ".join(f"${r}" for r in registers)
        return f"  {index:04x}: {name:6s} {operands}".rstrip()


class Assembler(ABC):
    """Turns instruction text into bytecode."""

    @abstractmethod
    def assemble(self, text: str) -> bytes:
        """
        Assemble instruction text.

        Raises:
            AssemblyError: If the text is not a valid program
        """
        pass


class TextAssembler(Assembler):
    """
    Two-pass assembler for the compiler's text output.

    The first pass records label positions, the second encodes each
    instruction into one 32-bit word: opcode in the low byte, then up to
    three 8-bit operands. LOAD stores its immediate in the constant pool and
    keeps a 16-bit pool index; CALL keeps a 16-bit instruction index.
    """

    # Register operands are 8-bit fields
    MAX_REGISTERS = 0x100

    def __init__(self, register_count: int = 32):
        if not 1 <= register_count <= self.MAX_REGISTERS:
            raise ValueError(
                f"register_count must be between 1 and {self.MAX_REGISTERS}, got {register_count}")
        self.register_count = register_count

    def assemble(self, text: str) -> bytes:
        return self.build(text).serialize()

    def build(self, text: str) -> Bytecode:
        """Assemble text into a Bytecode container."""
        lines = self._clean(text)
        bc = Bytecode()
        bc.labels = self._collect_labels(lines)

        for line_no, line in lines:
            if line in DIRECTIVES or _LABEL_RE.match(line):
                continue
            bc.code.append(self._encode(line_no, line, bc))

        if not bc.code:
            raise AssemblyError("No instructions to assemble")
        return bc

    def _clean(self, text: str) -> List[Tuple[int, str]]:
        """Strip comments and blank lines, checking that code sits in .code."""
        lines = []
        section = None
        for line_no, raw in enumerate(text.splitlines(), start=1):
            line = raw.split(';', 1)[0].strip()
            if not line:
                continue
            if line.startswith('.'):
                if line not in DIRECTIVES:
                    raise AssemblyError(f"Unknown directive: {line}", line_no)
                section = line
            elif section != ".code":
                raise AssemblyError("Instruction outside of .code section", line_no)
            lines.append((line_no, line))
        return lines

    def _collect_labels(self, lines: List[Tuple[int, str]]) -> Dict[str, int]:
        labels: Dict[str, int] = {}
        index = 0
        for line_no, line in lines:
            if line in DIRECTIVES:
                continue
            match = _LABEL_RE.match(line)
            if match:
                name = match.group(1)
                if name in labels:
                    raise AssemblyError(f"Duplicate label: {name}", line_no)
                labels[name] = index
            else:
                index += 1
        return labels

    def _encode(self, line_no: int, line: str, bc: Bytecode) -> int:
        mnemonic, *operands = line.split()
        try:
            opcode = OpCode[mnemonic.upper()]
        except KeyError:
            raise AssemblyError(f"Unknown instruction: {mnemonic}", line_no) from None

        kinds = OPERANDS[opcode]
        if len(operands) != len(kinds):
            raise AssemblyError(
                f"{opcode.name} takes {len(kinds)} operand(s), got {len(operands)}", line_no)

        fields = []
        for kind, operand in zip(kinds, operands):
            if kind == REGISTER:
                fields.append(self._register(line_no, operand))
            elif kind == IMMEDIATE:
                index = bc.add_constant(self._immediate(line_no, operand))
                if index > 0xFFFF:
                    raise AssemblyError("Constant pool overflow", line_no)
                fields.extend((index & 0xFF, index >> 8))
            else:
                target = self._label(line_no, operand, bc.labels)
                fields.extend((target & 0xFF, target >> 8))

        word = int(opcode)
        for position, value in enumerate(fields):
            word |= value << (8 * (position + 1))
        return word

    def _register(self, line_no: int, operand: str) -> int:
        if not operand.startswith('$') or not operand[1:].isdigit():
            raise AssemblyError(f"Expected register, got {operand!r}", line_no)
        register = int(operand[1:])
        if register >= self.register_count:
            raise AssemblyError(f"Register out of range: {operand}", line_no)
        return register

    def _immediate(self, line_no: int, operand: str) -> Constant:
        text = operand[1:] if operand.startswith('#') else None
        if text is not None and _INT_RE.match(text):
            value = int(text)
            if not INT64_MIN <= value <= INT64_MAX:
                raise AssemblyError(f"Immediate out of 64-bit range: {operand}", line_no)
            return Constant.integer(value)
        if text is not None and _FLOAT_RE.match(text):
            return Constant.number(float(text))
        raise AssemblyError(f"Expected immediate, got {operand!r}", line_no)

    def _label(self, line_no: int, operand: str, labels: Dict[str, int]) -> int:
        if not operand.startswith('@'):
            raise AssemblyError(f"Expected label, got {operand!r}", line_no)
        name = operand[1:]
        if name not in labels:
            raise AssemblyError(f"Undefined label: {name}", line_no)
        if labels[name] > 0xFFFF:
            raise AssemblyError(f"Label too far: {name}", line_no)
        return labels[name]
