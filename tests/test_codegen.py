"""
Palladium Code Generator Tests

Tests for assembly emission and register allocation.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from compiler import CodeGenerator, compile_source, parse, RETURN_REGISTER
from compiler.ast import Expression, Term, Factor, Integer, Program
from compiler.errors import (
    PalladiumError, CompileError, AllocationError, UnresolvedIdentifierError,
)


def instructions(source: str, **options):
    """Emitted lines between the section header and the final HLT."""
    lines = compile_source(source, **options).split("\n")
    assert lines[:2] == [".data", ".code"]
    assert lines[-1] == "HLT"
    return lines[2:-1]


class TestArithmetic:
    """Literal loads and binary operators."""

    def test_addition_output(self):
        assert compile_source("3+4") == "\n".join([
            ".data",
            ".code",
            "LOAD $30 #3",
            "LOAD $29 #4",
            "ADD $30 $29 $28",
            "HLT",
        ])

    @pytest.mark.parametrize("op,mnemonic", [
        ("-", "SUB"),
        ("*", "MUL"),
        ("/", "DIV"),
        ("==", "EQ"),
        (">", "GT"),
        ("<", "LT"),
        (">=", "GTE"),
        ("<=", "LTE"),
        ("and", "AND"),
        ("or", "OR"),
    ])
    def test_operands_in_source_order(self, op, mnemonic):
        assert instructions(f"5 {op} 2") == [
            "LOAD $30 #5",
            "LOAD $29 #2",
            f"{mnemonic} $30 $29 $28",
        ]

    def test_parentheses_are_transparent(self):
        assert compile_source("(3+4)") == compile_source("3+4")

    def test_chain_folds_left_to_right(self):
        assert instructions("1 + 2 * 3") == [
            "LOAD $30 #1",
            "LOAD $29 #2",
            "ADD $30 $29 $28",
            "LOAD $29 #3",
            "MUL $28 $29 $30",
        ]

    def test_float_literal(self):
        assert instructions("1.5") == ["LOAD $30 #1.5"]

    def test_negative_literal(self):
        assert instructions("-3") == ["LOAD $30 #-3"]

    def test_statement_results_released(self):
        assert instructions("1 + 2\n3") == [
            "LOAD $30 #1",
            "LOAD $29 #2",
            "ADD $30 $29 $28",
            "LOAD $28 #3",
        ]


class TestVariables:
    """Assignment and name resolution."""

    def test_read_uses_bound_register(self):
        assert instructions("x = 4\ny = x + 1") == [
            "LOAD $30 #4",
            "LOAD $29 #1",
            "ADD $30 $29 $28",
        ]

    def test_rebinding_frees_old_register(self):
        assert instructions("x = 1\nx = 2\ny = 3") == [
            "LOAD $30 #1",
            "LOAD $29 #2",
            "LOAD $30 #3",
        ]

    def test_alias_keeps_register(self):
        assert instructions("x = 1\ny = x\nx = 2\nz = 3") == [
            "LOAD $30 #1",
            "LOAD $29 #2",
            "LOAD $28 #3",
        ]

    def test_bindings_survive_generation(self):
        gen = CodeGenerator()
        gen.generate(parse("x = 4\ny = x + 1"))
        assert gen.scopes.resolve("x") == 30
        assert gen.scopes.resolve("y") == 28
        assert sorted(gen.scopes.current.live_registers) == [28, 30]

    def test_unresolved_identifier(self):
        with pytest.raises(UnresolvedIdentifierError) as exc_info:
            compile_source("y = x + 1")
        assert exc_info.value.name == "x"
        assert exc_info.value.column == 5

    def test_invalid_target(self):
        with pytest.raises(CompileError):
            compile_source("3 = 4")

    def test_assignment_must_come_first(self):
        with pytest.raises(CompileError):
            compile_source("x = 1 = 2")

    def test_assignment_after_other_operator(self):
        with pytest.raises(CompileError):
            compile_source("x = 1\nx + 1 = 2")


class TestFunctions:
    """Function definitions, returns and calls."""

    def test_definition(self):
        source = """
def add(a, b):
    c = a + b
    return c;
"""
        assert instructions(source) == [
            "add:",
            "ADD $30 $29 $28",
            "RET",
        ]

    def test_literal_return_uses_return_register(self):
        assert instructions("def one():\n    return 1;") == [
            "one:",
            f"LOAD ${RETURN_REGISTER} #1",
            "RET",
        ]

    def test_scope_registers_reclaimed(self):
        gen = CodeGenerator()
        gen.generate(parse("def add(a, b):\n    c = a + b\n    return c;"))
        assert gen.scopes.depth == 0
        assert len(gen.free_registers) == RETURN_REGISTER

    def test_shadowing(self):
        source = """
x = 1
def f(x):
    y = x + 2
    return y;
z = x + 3
"""
        assert instructions(source) == [
            "LOAD $30 #1",
            "f:",
            "LOAD $28 #2",
            "ADD $29 $28 $27",
            "RET",
            "LOAD $27 #3",
            "ADD $30 $27 $29",
        ]

    def test_call(self):
        assert instructions("x = 4\ny = f(x)\nz = y + 1") == [
            "LOAD $30 #4",
            "PUSH $30",
            "CALL @f",
            "LOAD $29 #1",
            f"ADD ${RETURN_REGISTER} $29 $28",
        ]

    def test_call_unresolved_argument(self):
        with pytest.raises(UnresolvedIdentifierError):
            compile_source("f(a)")

    def test_unbound_call_results(self):
        assert instructions("x = 1\nf(x)\ng(x)") == [
            "LOAD $30 #1",
            "PUSH $30",
            "CALL @f",
            "PUSH $30",
            "CALL @g",
        ]

    @pytest.mark.parametrize("source", [
        "x = 1\na = f(x)\nb = g(x)",
        "x = 1\na = f(x)\ng(x)",
        "x = 1\na = f(x)\nb = a + g(x)",
    ])
    def test_call_would_clobber_bound_result(self, source):
        with pytest.raises(CompileError) as exc_info:
            compile_source(source)
        assert "overwrite the result bound to 'a'" in str(exc_info.value)


class TestRegisterAllocation:
    """Register pool bookkeeping."""

    def test_pool_exhausted_names_node(self):
        with pytest.raises(AllocationError) as exc_info:
            compile_source("1 + 2", register_count=3)
        assert exc_info.value.node_kind == "AdditionOperator"
        assert "while visiting AdditionOperator" in str(exc_info.value)

    def test_pool_exhausted_on_load(self):
        with pytest.raises(AllocationError) as exc_info:
            compile_source("1 + 2", register_count=2)
        assert exc_info.value.node_kind == "Integer"

    def test_small_register_file(self):
        assert instructions("1 + 2", register_count=4) == [
            "LOAD $2 #1",
            "LOAD $1 #2",
            "ADD $2 $1 $0",
        ]

    def test_register_count_minimum(self):
        with pytest.raises(ValueError):
            CodeGenerator(register_count=1)

    def test_conservation(self):
        gen = CodeGenerator()
        gen.generate(parse("x = 4\ny = x + 1\n1 + 2"))
        gen.check_conservation()
        live = gen.scopes.live_count()
        assert len(gen.free_registers) + live == RETURN_REGISTER

    def test_conservation_detects_double_free(self):
        gen = CodeGenerator()
        gen.generate(parse("x = 4"))
        gen.free_registers.append(0)
        with pytest.raises(AllocationError):
            gen.check_conservation()

    def test_generator_is_reusable(self):
        gen = CodeGenerator()
        first = gen.generate(parse("x = 4"))
        assert gen.generate(parse("x = 4")) == first

    def test_deep_nesting(self):
        node = Expression(Term(Factor(Integer(1))))
        for _ in range(2000):
            node = Expression(Term(Factor(node)))
        with pytest.raises(CompileError) as exc_info:
            CodeGenerator().generate(Program((node,)))
        assert "Nesting too deep" in str(exc_info.value)

    def test_deep_nesting_from_source(self):
        with pytest.raises(PalladiumError):
            compile_source("(" * 150 + "1" + ")" * 150)


class TestNoCodeNodes:
    """Control flow and collections are parsed but emit nothing."""

    @pytest.mark.parametrize("source", [
        "if x > 1:\n    y = 2\nelse:\n    y = 3",
        "while x < 3:\n    x = x + 1",
        "for i in items:\n    y = i",
        "[1, 2, 3]",
        "{1: 2}",
    ])
    def test_emits_nothing(self, source):
        assert instructions(source) == []


class TestDebugOutput:
    """Debug printing."""

    def test_prints_instructions_and_pools(self, capsys):
        CodeGenerator(debug=True).generate(parse("3+4"))
        out = capsys.readouterr().out
        assert "  LOAD $30 #3" in out
        assert "  ADD $30 $29 $28" in out
        assert "Free registers:" in out

    def test_notes_skipped_nodes(self, capsys):
        CodeGenerator(debug=True).generate(parse("if x:\n    y = 1"))
        out = capsys.readouterr().out
        assert "If at line 1: no code generated" in out

    def test_quiet_by_default(self, capsys):
        CodeGenerator().generate(parse("3+4"))
        assert capsys.readouterr().out == ""
