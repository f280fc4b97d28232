# =============================================================================
# test_isa.py - Instruction Encoder Unit Tests
# =============================================================================
# Tests for PIO instruction word encoding and the program container.
#
# Test coverage includes:
#   - Encoded words for every instruction shape
#   - Delay / side-set packing
#   - Encoder failures
#   - Hardware revision detection
#   - ProgramBuilder defaults and size limit
# =============================================================================

import pytest
from pio_sdk.errors import EncodingError, ProgramSizeError
from pio_sdk.isa import (
    In,
    InSource,
    Instruction,
    Irq,
    IrqIndexMode,
    Jmp,
    JmpCondition,
    Mov,
    MovDestination,
    MovFromRx,
    MovOperation,
    MovRxIndex,
    MovSource,
    MovToRx,
    Out,
    OutDestination,
    PioVersion,
    ProgramBuilder,
    Pull,
    Push,
    Set,
    SetDestination,
    SideSet,
    Wait,
    WaitSource,
    Wrap,
)


# =============================================================================
# Helper Functions
# =============================================================================

def encode(operands, delay: int = 0, side_set=None, config: SideSet = SideSet()) -> int:
    return Instruction(operands, delay=delay, side_set=side_set).encode(config)


# =============================================================================
# Instruction Word Tests
# =============================================================================

class TestEncoding:
    """Test the encoded word of each instruction shape."""

    def test_jmp(self):
        assert encode(Jmp(JmpCondition.ALWAYS, 0)) == 0b000_00000_000_00000
        assert encode(Jmp(JmpCondition.X_DEC_NON_ZERO, 3)) == 0b000_00000_010_00011

    def test_wait(self):
        assert encode(Wait(1, WaitSource.GPIO, 5, False)) == 0b001_00000_1_00_00101

    def test_wait_irq_rel(self):
        assert encode(Wait(0, WaitSource.IRQ, 2, True)) == 0b001_00000_0_10_10010

    def test_in_32_bits_encodes_as_zero(self):
        assert encode(In(InSource.PINS, 32)) == 0b010_00000_000_00000

    def test_out(self):
        assert encode(Out(OutDestination.PINS, 1)) == 0b011_00000_000_00001

    def test_push(self):
        assert encode(Push(if_full=False, block=True)) == 0b100_00000_001_00000

    def test_pull(self):
        assert encode(Pull(if_empty=False, block=True)) == 0x80A0

    def test_mov(self):
        assert encode(Mov(MovDestination.PINS, MovOperation.NONE, MovSource.ISR)) == 0b101_00000_000_00_110
        assert encode(Mov(MovDestination.OSR, MovOperation.NONE, MovSource.X)) == 0b101_00000_111_00_001

    def test_nop(self):
        assert encode(Mov(MovDestination.Y, MovOperation.NONE, MovSource.Y)) == 0xA042

    def test_mov_invert(self):
        assert encode(Mov(MovDestination.X, MovOperation.INVERT, MovSource.Y)) == 0b101_00000_001_01_010

    def test_mov_from_rx(self):
        assert encode(MovFromRx(MovRxIndex.RXFIFO0)) == 0b100_00000_1001_1_000

    def test_mov_to_rx(self):
        assert encode(MovToRx(MovRxIndex.RXFIFO1)) == 0b100_00000_0001_1_001
        assert encode(MovToRx(MovRxIndex.RXFIFOY)) == 0b100_00000_0001_0_000

    def test_irq(self):
        assert encode(Irq(False, True, 3, IrqIndexMode.REL)) == 0b110_00000_0_0_1_10_011

    def test_set(self):
        assert encode(Set(SetDestination.PINS, 31)) == 0b111_00000_000_11111
        assert encode(Set(SetDestination.PINDIRS, 1)) == 0b111_00000_100_00001


# =============================================================================
# Delay and Side-set Tests
# =============================================================================

class TestDelaySideSet:
    """Test packing of the delay / side-set field."""

    def test_delay_without_side_set(self):
        assert encode(Jmp(JmpCondition.ALWAYS, 0), delay=31) == 0b000_11111_000_00000

    def test_delay_too_large(self):
        with pytest.raises(EncodingError, match="delay 32 exceeds maximum of 31"):
            encode(Jmp(JmpCondition.ALWAYS, 0), delay=32)

    def test_optional_side_set(self):
        config = SideSet.new(opt=True, width=1, pindirs=False)
        word = encode(Jmp(JmpCondition.ALWAYS, 0), side_set=1, config=config)
        assert word == 0b000_11000_000_00000

    def test_optional_side_set_omitted(self):
        config = SideSet.new(opt=True, width=1, pindirs=False)
        assert encode(Pull(False, True), config=config) == 0x80A0

    def test_side_set_with_delay(self):
        config = SideSet.new(opt=False, width=2, pindirs=False)
        word = encode(Jmp(JmpCondition.ALWAYS, 0), delay=3, side_set=2, config=config)
        assert word == 0b000_10_011_000_00000

    def test_delay_max_shrinks(self):
        config = SideSet.new(opt=True, width=2, pindirs=False)
        assert config.delay_max == 3
        with pytest.raises(EncodingError):
            encode(Jmp(JmpCondition.ALWAYS, 0), delay=4, side_set=0, config=config)

    def test_side_value_too_large(self):
        config = SideSet.new(opt=False, width=1, pindirs=False)
        with pytest.raises(EncodingError, match="exceeds maximum of 1"):
            encode(Jmp(JmpCondition.ALWAYS, 0), side_set=2, config=config)

    def test_side_value_without_config(self):
        with pytest.raises(EncodingError, match="no .side_set declared"):
            encode(Jmp(JmpCondition.ALWAYS, 0), side_set=1)

    def test_missing_mandatory_side_value(self):
        config = SideSet.new(opt=False, width=1, pindirs=False)
        with pytest.raises(EncodingError, match="requires a side-set value"):
            encode(Jmp(JmpCondition.ALWAYS, 0), config=config)


class TestSideSetConfig:
    """Test SideSet construction."""

    def test_default(self):
        config = SideSet()
        assert config.bits == 0
        assert config.width == 0
        assert config.delay_max == 31

    def test_opt_adds_enable_bit(self):
        config = SideSet.new(opt=True, width=2, pindirs=True)
        assert config.bits == 3
        assert config.width == 2
        assert config.max == 3
        assert config.pindirs

    def test_too_wide(self):
        with pytest.raises(EncodingError):
            SideSet.new(opt=False, width=6, pindirs=False)

    def test_full_width(self):
        assert SideSet.new(opt=False, width=5, pindirs=False).delay_max == 0


# =============================================================================
# Hardware Revision Tests
# =============================================================================

class TestVersion:
    """Test required hardware revision."""

    @pytest.mark.parametrize("operands", [
        MovFromRx(MovRxIndex.RXFIFO0),
        MovToRx(MovRxIndex.RXFIFOY),
        Mov(MovDestination.PINDIRS, MovOperation.NONE, MovSource.X),
        Wait(1, WaitSource.JMPPIN, 0, False),
        Irq(False, False, 0, IrqIndexMode.NEXT),
    ])
    def test_rp2350_only(self, operands):
        assert Instruction(operands).required_version() == PioVersion.V1

    @pytest.mark.parametrize("operands", [
        Pull(False, True),
        Mov(MovDestination.PINS, MovOperation.NONE, MovSource.X),
        Irq(False, False, 0, IrqIndexMode.REL),
    ])
    def test_rp2040(self, operands):
        assert Instruction(operands).required_version() == PioVersion.V0


# =============================================================================
# Program Builder Tests
# =============================================================================

class TestProgramBuilder:
    """Test ProgramBuilder.assemble."""

    def test_default_wrap(self):
        builder = ProgramBuilder(SideSet())
        for _ in range(3):
            builder.append(Instruction(Pull(False, True)))
        program = builder.assemble()
        assert program.wrap == Wrap(source=2, target=0)
        assert program.origin is None
        assert len(program) == 3

    def test_empty_program_wrap(self):
        assert ProgramBuilder(SideSet()).assemble().wrap == Wrap(source=0, target=0)

    def test_explicit_wrap_and_origin(self):
        builder = ProgramBuilder(SideSet())
        builder.append(Instruction(Pull(False, True)))
        program = builder.assemble(origin=4, wrap=Wrap(source=0, target=0))
        assert program.origin == 4

    def test_to_hex(self):
        builder = ProgramBuilder(SideSet())
        builder.append(Instruction(Pull(False, True)))
        builder.append(Instruction(Out(OutDestination.PINS, 1)))
        assert builder.assemble().to_hex() == ["80a0", "6001"]

    def test_version(self):
        builder = ProgramBuilder(SideSet())
        builder.append(Instruction(Pull(False, True)))
        assert builder.assemble().version == PioVersion.V0
        builder.append(Instruction(MovFromRx(MovRxIndex.RXFIFO0)))
        assert builder.assemble().version == PioVersion.V1

    def test_too_many_instructions(self):
        builder = ProgramBuilder(SideSet())
        for _ in range(33):
            builder.append(Instruction(Pull(False, True)))
        with pytest.raises(ProgramSizeError, match="33 instructions"):
            builder.assemble()

    def test_custom_program_size(self):
        builder = ProgramBuilder(SideSet(), program_size=2)
        for _ in range(3):
            builder.append(Instruction(Pull(False, True)))
        with pytest.raises(ProgramSizeError):
            builder.assemble()
