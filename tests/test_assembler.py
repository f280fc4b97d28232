# =============================================================================
# test_assembler.py - Assembler Integration Tests
# =============================================================================
# End-to-end tests for parse_program / parse_file.
#
# Test coverage includes:
#   - Encoded output of complete programs
#   - Labels, forward references, origin, side-set and wrap
#   - SET and MOV legality through the whole pipeline
#   - File-level defines shared by every program
#   - Abort-on-first-failure and collected errors
# =============================================================================

import logging

import pytest
from pio_sdk import parse_file, parse_program
from pio_sdk.assembler import Assembler
from pio_sdk.errors import (
    AssemblySyntaxError,
    DirectiveError,
    EncodingError,
    OperandError,
    ProgramErrors,
    ProgramSizeError,
    UndefinedSymbolError,
)
from pio_sdk.isa import Jmp, JmpCondition, MovFromRx, MovRxIndex, Out, PioVersion, Pull, Wrap


# =============================================================================
# Single Program Tests
# =============================================================================

class TestSingleProgram:
    """Test complete single programs."""

    def test_pull_out_jmp(self):
        """Three instructions, label at 0, default wrap."""
        result = parse_program(
            """
    label:
      pull
      out pins, 1
      jmp label
    """
        )
        assert [type(i.operands) for i in result.instructions] == [Pull, Out, Jmp]
        assert result.instructions[2].operands == Jmp(condition=JmpCondition.ALWAYS, address=0)
        assert list(result.program.code) == [
            0b100_00000_101_00000,  # pull
            0b011_00000_000_00001,  # out pins, 1
            0b000_00000_000_00000,  # jmp label
        ]
        assert result.program.origin is None
        assert result.program.wrap == Wrap(source=2, target=0)
        assert result.layout.wrap_source is None
        assert result.layout.wrap_target is None

    def test_side_set_origin_and_wrap(self):
        result = parse_program(
            """
    .side_set 1 opt
    .origin 5

    label:
      pull
      .wrap_target
      out pins, 1
      .wrap
      jmp label side 1
    """
        )
        assert list(result.program.code) == [
            0b100_00000_101_00000,  # pull
            0b011_00000_000_00001,  # out pins, 1
            0b000_11000_000_00000,  # jmp label side 1
        ]
        assert result.program.origin == 5
        assert result.program.wrap == Wrap(source=1, target=1)
        assert result.instructions[2].side_set == 1
        assert result.layout.side_set_width == 1
        assert result.layout.side_set_opt

    def test_rp2350_moves(self):
        result = parse_program(
            """
    label:
      mov osr, rxfifo[0]
      mov rxfifo[1], isr
      mov pins, isr
      mov osr, x
      jmp label
    """
        )
        assert list(result.program.code) == [
            0b100_00000_1001_1_000,  # mov osr, rxfifo[0]
            0b100_00000_0001_1_001,  # mov rxfifo[1], isr
            0b101_00000_000_00_110,  # mov pins, isr
            0b101_00000_111_00_001,  # mov osr, x
            0b000_00000_000_00000,   # jmp label
        ]
        assert result.program.wrap == Wrap(source=4, target=0)
        assert result.program.version == PioVersion.V1

    def test_forward_reference(self):
        result = parse_program("jmp done\nnop\nnop\ndone:\njmp done\n")
        assert result.instructions[0].operands.address == 3
        assert result.instructions[3].operands.address == 3

    def test_label_counts_only_instructions(self):
        result = parse_program(
            "public start:\n"
            ".wrap_target\n"
            "pull\n"
            "middle:\n"
            ".define X 1\n"
            "out x, 1\n"
            "public end:\n"
            ".wrap\n"
        )
        assert result.public_defines == {"start": 0, "end": 2}

    def test_public_defines(self):
        result = parse_program(
            ".define public T1 2\n"
            ".define T2 5\n"
            "public entry:\n"
            "pull\n"
        )
        assert result.public_defines == {"T1": 2, "entry": 0}

    def test_empty_program(self):
        result = parse_program("; nothing\n")
        assert result.instructions == ()
        assert result.program.code == ()
        assert result.program.wrap == Wrap(source=0, target=0)

    def test_unknown_label(self):
        with pytest.raises(UndefinedSymbolError, match="some_unknown_label") as exc_info:
            parse_program("jmp some_unknown_label\n")
        assert exc_info.value.symbol == "some_unknown_label"

    def test_filename_in_errors(self):
        with pytest.raises(UndefinedSymbolError) as exc_info:
            parse_program("pull\njmp nowhere\n", filename="blink.pio")
        assert str(exc_info.value.location) == "blink.pio:2:5"

    def test_lang_opts_and_code_blocks(self):
        result = parse_program(
            ".lang_opt python out_init = pico.PIO.OUT_LOW\n"
            "pull\n"
            "% c-sdk {\n"
            "static inline void init(void) {}\n"
            "%}\n"
        )
        assert result.lang_opts == (("python", "out_init", "pico.PIO.OUT_LOW"),)
        assert result.code_blocks == (("c-sdk", "static inline void init(void) {}\n"),)

    def test_syntax_error_propagates(self):
        with pytest.raises(AssemblySyntaxError):
            parse_program("jmp x-\n")


# =============================================================================
# Layout Rule Tests
# =============================================================================

class TestLayoutRules:
    """Test side-set and wrap rules end to end."""

    def test_side_set_after_instruction(self):
        with pytest.raises(DirectiveError, match="after first instruction"):
            parse_program("pull\n.side_set 1\nnop side 1\n")

    def test_wrap_without_wrap_target(self):
        with pytest.raises(DirectiveError, match="'.wrap' without '.wrap_target'"):
            parse_program("pull\n.wrap\n")

    def test_wrap_target_without_wrap(self):
        with pytest.raises(DirectiveError, match="without '.wrap'"):
            parse_program(".wrap_target\npull\n")

    def test_mandatory_side_set_missing(self):
        with pytest.raises(EncodingError, match="requires a side-set value") as exc_info:
            parse_program(".side_set 1\npull side 0\npull\n")
        assert exc_info.value.location.line == 3

    def test_delay_too_large_for_side_set(self):
        with pytest.raises(EncodingError, match="delay 8 exceeds maximum of 7"):
            parse_program(".side_set 2\nnop side 0 [8]\n")

    def test_program_too_large(self):
        with pytest.raises(ProgramSizeError):
            parse_program("nop\n" * 33)

    def test_custom_program_size(self):
        result = parse_program("nop\n" * 33, program_size=64)
        assert len(result.program) == 33


# =============================================================================
# Operand Rule Tests
# =============================================================================

class TestOperandRules:
    """Test SET and MOV rules end to end."""

    def test_set_31(self):
        assert parse_program("set pins, 31\n").program.code == (0b111_00000_000_11111,)

    def test_set_32(self):
        with pytest.raises(OperandError, match="SET argument out of range"):
            parse_program("set pins, 32\n")

    def test_set_minus_one(self):
        with pytest.raises(OperandError, match="SET argument out of range"):
            parse_program("set pins, -1\n")

    def test_mov_osr_from_fifo(self):
        result = parse_program("mov osr, rxfifo[0]\n")
        assert result.instructions[0].operands == MovFromRx(fifo_index=MovRxIndex.RXFIFO0)

    def test_mov_x_from_fifo(self):
        with pytest.raises(OperandError, match="rxfifo\\[0\\] to x"):
            parse_program("mov x, rxfifo[0]\n")


# =============================================================================
# Multi-program File Tests
# =============================================================================

FILE_SOURCE = """
.define public PIN 3
.define BASE 10

.program first
    set pins, PIN
    set x, BASE

.program second
.define public PIN 7
    set pins, PIN
    set x, BASE
"""


class TestParseFile:
    """Test multi-program files."""

    def test_programs_by_name(self):
        programs = parse_file(FILE_SOURCE)
        assert list(programs) == ["first", "second"]
        assert programs["first"].name == "first"

    def test_file_defines_visible(self):
        programs = parse_file(FILE_SOURCE)
        assert programs["first"].instructions[0].operands.data == 3
        assert programs["first"].instructions[1].operands.data == 10
        assert programs["second"].instructions[1].operands.data == 10

    def test_program_define_shadows_file_define(self):
        programs = parse_file(FILE_SOURCE)
        assert programs["second"].instructions[0].operands.data == 7
        assert programs["first"].instructions[0].operands.data == 3

    def test_public_defines_merge(self):
        programs = parse_file(FILE_SOURCE)
        assert programs["first"].public_defines == {"PIN": 3}
        assert programs["second"].public_defines == {"PIN": 7}

    def test_top_level_forward_reference(self):
        with pytest.raises(UndefinedSymbolError, match="'B'"):
            parse_file(".define A B\n.define B 1\n.program p\nnop\n")

    def test_labels_are_per_program(self):
        with pytest.raises(UndefinedSymbolError, match="'start'"):
            parse_file(".program a\nstart:\nnop\n.program b\njmp start\n")

    def test_duplicate_name_last_wins(self):
        programs = parse_file(".program p\nnop\n.program p\npull\npull\n")
        assert len(programs) == 1
        assert len(programs["p"].instructions) == 2

    def test_empty_file(self):
        assert parse_file("") == {}

    def test_first_failure_aborts(self):
        with pytest.raises(OperandError):
            parse_file(".program bad\nset x, 99\n.program good\nnop\n")

    def test_collect_errors(self):
        source = (
            ".program bad\n"
            "set x, 99\n"
            ".program good\n"
            "nop\n"
            ".program worse\n"
            "jmp nowhere\n"
        )
        with pytest.raises(ProgramErrors) as exc_info:
            parse_file(source, collect_errors=True)
        error = exc_info.value
        assert error.collector.error_count() == 2
        assert list(error.programs) == ["good"]
        assert "2 errors" in str(error)

    def test_collect_errors_all_good(self):
        programs = parse_file(FILE_SOURCE, collect_errors=True)
        assert len(programs) == 2

    def test_parse_path(self, tmp_path):
        path = tmp_path / "blink.pio"
        path.write_text(".program blink\nset pins, 1 [31]\nset pins, 0 [31]\n")
        programs = Assembler().parse_path(path)
        assert programs["blink"].program.to_hex() == ["ff01", "ff00"]

    def test_parse_path_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Assembler().parse_path(tmp_path / "missing.pio")

    def test_debug_logging(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="pio_sdk"):
            parse_file(".program p\nnop\n")
        assert "Assembled p" in caplog.text
