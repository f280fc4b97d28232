# =============================================================================
# test_directives.py - Directive Processor (Pass 1) Unit Tests
# =============================================================================
# Tests for label discovery and layout directives.
#
# Test coverage includes:
#   - Instruction counting and label values
#   - .define ordering
#   - .origin, .side_set, .wrap_target, .wrap
#   - Ordering and uniqueness failures
#   - Wrap reconciliation
# =============================================================================

import pytest
from pio_sdk.assembler.directives import DirectiveProcessor, ProgramLayout
from pio_sdk.assembler.parser import parse_program_source
from pio_sdk.assembler.symbols import SymbolEntry
from pio_sdk.errors import DirectiveError, UndefinedSymbolError
from pio_sdk.isa import SideSet, Wrap


# =============================================================================
# Helper Functions
# =============================================================================

def run_pass1(source: str, file_symbols: dict = None) -> DirectiveProcessor:
    """Parse a single program and run pass 1 over it."""
    processor = DirectiveProcessor(file_symbols)
    processor.process(parse_program_source(source, "<test>").lines)
    return processor


# =============================================================================
# Label Tests
# =============================================================================

class TestLabels:
    """Test instruction counting and label values."""

    def test_label_before_first_instruction(self):
        processor = run_pass1("start:\npull\n")
        assert processor.symbols.resolve("start") == 0

    def test_label_counts_only_instructions(self):
        processor = run_pass1(
            ".define X 1\n"
            "pull\n"
            ".wrap_target\n"
            "first:\n"
            "out pins, 1\n"
            "second:\n"
            "jmp first\n"
            ".wrap\n"
        )
        assert processor.symbols.resolve("first") == 1
        assert processor.symbols.resolve("second") == 2
        assert processor.instruction_count == 3

    def test_label_at_end(self):
        processor = run_pass1("pull\npush\nend:\n")
        assert processor.symbols.resolve("end") == 2

    def test_label_on_instruction_line(self):
        processor = run_pass1("pull\nloop: push\n")
        assert processor.symbols.resolve("loop") == 1

    def test_public_label(self):
        processor = run_pass1("public entry:\npull\n")
        assert processor.symbols.public_defines() == {"entry": 0}

    def test_instructions_kept_for_pass2(self):
        processor = run_pass1("pull\nloop:\npush\n")
        assert len(processor.instructions) == 2


# =============================================================================
# Define Tests
# =============================================================================

class TestDefines:
    """Test .define evaluation order."""

    def test_define(self):
        processor = run_pass1(".define T1 2\n")
        assert processor.symbols.resolve("T1") == 2

    def test_define_uses_earlier_define(self):
        processor = run_pass1(".define T1 2\n.define T2 T1 * 3\n")
        assert processor.symbols.resolve("T2") == 6

    def test_define_forward_reference_fails(self):
        with pytest.raises(UndefinedSymbolError, match="'LATER'"):
            run_pass1(".define EARLY LATER\n.define LATER 1\n")

    def test_define_uses_earlier_label(self):
        processor = run_pass1("pull\nhere:\n.define AT here + 1\n")
        assert processor.symbols.resolve("AT") == 2

    def test_define_uses_file_scope(self):
        processor = run_pass1(".define T2 BASE + 1\n", {"BASE": SymbolEntry(value=10)})
        assert processor.symbols.resolve("T2") == 11


# =============================================================================
# Layout Directive Tests
# =============================================================================

class TestOrigin:
    """Test .origin."""

    def test_origin(self):
        assert run_pass1(".origin 5\n").layout.origin == 5

    def test_origin_truncated_to_byte(self):
        assert run_pass1(".origin 0x105\n").layout.origin == 5

    def test_origin_after_instructions(self):
        assert run_pass1("pull\n.origin 3\n").layout.origin == 3

    def test_no_origin(self):
        assert run_pass1("pull\n").layout.origin is None


class TestSideSet:
    """Test .side_set."""

    def test_side_set(self):
        layout = run_pass1(".side_set 2 opt pindirs\npull\n").layout
        assert layout.side_set_width == 2
        assert layout.side_set_opt
        assert layout.side_set_pindirs
        assert layout.side_set == SideSet(opt=True, bits=3, max=3, pindirs=True)

    def test_default_is_no_side_set(self):
        assert run_pass1("pull\n").layout.side_set == SideSet()

    def test_side_set_after_instruction(self):
        with pytest.raises(DirectiveError, match="after first instruction"):
            run_pass1("pull\n.side_set 1\n")

    def test_side_set_after_label_is_allowed(self):
        layout = run_pass1("start:\n.side_set 1\npull side 0\n").layout
        assert layout.side_set_width == 1

    def test_side_set_too_wide(self):
        with pytest.raises(DirectiveError, match="does not fit"):
            run_pass1(".side_set 5 opt\n")

    def test_side_set_negative(self):
        with pytest.raises(DirectiveError):
            run_pass1(".side_set -1\n")


class TestWrap:
    """Test .wrap_target and .wrap."""

    def test_wrap_indices(self):
        layout = run_pass1("pull\n.wrap_target\nout pins, 1\n.wrap\njmp 0\n").layout
        assert layout.wrap_target == 1
        assert layout.wrap_source == 1

    def test_duplicate_wrap_target(self):
        with pytest.raises(DirectiveError, match="duplicate '.wrap_target'"):
            run_pass1(".wrap_target\npull\n.wrap_target\n")

    def test_duplicate_wrap(self):
        with pytest.raises(DirectiveError, match="duplicate '.wrap'"):
            run_pass1("pull\n.wrap\npush\n.wrap\n")

    def test_wrap_before_any_instruction(self):
        with pytest.raises(DirectiveError, match="must follow an instruction"):
            run_pass1(".wrap\npull\n")

    def test_wrap_location_recorded(self):
        processor = run_pass1("pull\n.wrap\n")
        assert processor.wrap_location.line == 2


class TestResolveWrap:
    """Test wrap reconciliation."""

    def test_neither(self):
        assert ProgramLayout().resolve_wrap() is None

    def test_both(self):
        layout = ProgramLayout(wrap_target=1, wrap_source=3)
        assert layout.resolve_wrap() == Wrap(source=3, target=1)

    def test_target_only(self):
        with pytest.raises(DirectiveError, match="without '.wrap'"):
            ProgramLayout(wrap_target=0).resolve_wrap()

    def test_source_only(self):
        with pytest.raises(DirectiveError, match="without '.wrap_target'"):
            ProgramLayout(wrap_source=0).resolve_wrap()


class TestLangOpt:
    """Test .lang_opt collection."""

    def test_lang_opts_collected(self):
        processor = run_pass1(
            ".lang_opt python sideset_init = pico.PIO.OUT_HIGH\n"
            ".lang_opt python out_init = pico.PIO.OUT_LOW\n"
        )
        assert [(o.option, o.value) for o in processor.lang_opts] == [
            ("sideset_init", "pico.PIO.OUT_HIGH"),
            ("out_init", "pico.PIO.OUT_LOW"),
        ]
        assert processor.instruction_count == 0
