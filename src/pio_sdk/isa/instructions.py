"""
PIO Instruction Set Definitions
===============================

This module defines the instruction set of the RP2040/RP2350 programmable
I/O (PIO) state machines: operand enumerations with their hardware field
values, concrete instruction descriptions, and the 16-bit word encoder.

Instruction Word Layout
-----------------------
Every PIO instruction is a single 16-bit word:

    15..13   opcode
    12..8    delay / side-set (split according to the side-set config)
     7..0    instruction-specific operands

| Opcode | Instruction       | Operand bits (7..0)                       |
|--------|-------------------|-------------------------------------------|
| 000    | JMP               | cond[7:5] address[4:0]                    |
| 001    | WAIT              | pol[7] source[6:5] index[4:0]             |
| 010    | IN                | source[7:5] bit_count[4:0]                |
| 011    | OUT               | dest[7:5] bit_count[4:0]                  |
| 100    | PUSH              | 0 iffull[6] block[5] 00000                |
| 100    | PULL              | 1 ifempty[6] block[5] 00000               |
| 100    | MOV to RX FIFO    | 0001 idxi[3] 0 index[1:0]     (RP2350)    |
| 100    | MOV from RX FIFO  | 1001 idxi[3] 0 index[1:0]     (RP2350)    |
| 101    | MOV               | dest[7:5] op[4:3] source[2:0]             |
| 110    | IRQ               | 0 clear[6] wait[5] mode[4:3] index[2:0]   |
| 111    | SET               | dest[7:5] data[4:0]                       |

Operand values wider than their field are truncated when encoding; range
checks that matter to the programmer (e.g. SET data) happen earlier, in
the assembler.

Reference: RP2040 datasheet section 3.4, RP2350 datasheet section 11.4.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

from pio_sdk.errors import EncodingError


# =============================================================================
# Operand Enumerations
# =============================================================================
# Enum values are the raw bit patterns placed in the instruction word.
# =============================================================================

class JmpCondition(IntEnum):
    """JMP condition codes."""
    ALWAYS = 0b000
    X_IS_ZERO = 0b001               # !x
    X_DEC_NON_ZERO = 0b010          # x--
    Y_IS_ZERO = 0b011               # !y
    Y_DEC_NON_ZERO = 0b100          # y--
    X_NOT_EQUAL_Y = 0b101           # x!=y
    PIN_HIGH = 0b110                # pin
    OSR_NOT_EMPTY = 0b111           # !osre


class WaitSource(IntEnum):
    """WAIT sources."""
    GPIO = 0b00
    PIN = 0b01
    IRQ = 0b10
    JMPPIN = 0b11                   # RP2350 only


class InSource(IntEnum):
    """IN sources."""
    PINS = 0b000
    X = 0b001
    Y = 0b010
    NULL = 0b011
    ISR = 0b110
    OSR = 0b111


class OutDestination(IntEnum):
    """OUT destinations."""
    PINS = 0b000
    X = 0b001
    Y = 0b010
    NULL = 0b011
    PINDIRS = 0b100
    PC = 0b101
    ISR = 0b110
    EXEC = 0b111


class MovDestination(IntEnum):
    """MOV destinations (plain registers only)."""
    PINS = 0b000
    X = 0b001
    Y = 0b010
    PINDIRS = 0b011                 # RP2350 only
    EXEC = 0b100
    PC = 0b101
    ISR = 0b110
    OSR = 0b111


class MovOperation(IntEnum):
    """Operation applied to the data while it is moved."""
    NONE = 0b00
    INVERT = 0b01                   # ! or ~
    BIT_REVERSE = 0b10              # ::


class MovSource(IntEnum):
    """MOV sources (plain registers only)."""
    PINS = 0b000
    X = 0b001
    Y = 0b010
    NULL = 0b011
    STATUS = 0b101
    ISR = 0b110
    OSR = 0b111


class MovRxIndex(IntEnum):
    """
    RX FIFO lane selector for the RP2350 MOV-to/from-RX forms.

    Bit 3 (IdxI) selects an immediate lane in bits 1..0; when clear the
    lane is taken from the Y register.
    """
    RXFIFOY = 0b0000
    RXFIFO0 = 0b1000
    RXFIFO1 = 0b1001
    RXFIFO2 = 0b1010
    RXFIFO3 = 0b1011


class SetDestination(IntEnum):
    """SET destinations."""
    PINS = 0b000
    X = 0b001
    Y = 0b010
    PINDIRS = 0b100


class IrqIndexMode(IntEnum):
    """How the IRQ index is combined with the state machine number."""
    DIRECT = 0b00
    PREV = 0b01                     # RP2350 only
    REL = 0b10
    NEXT = 0b11                     # RP2350 only


class PioVersion(Enum):
    """Hardware revision required to run a program."""
    V0 = "v0"                       # RP2040
    V1 = "v1"                       # RP2350


# =============================================================================
# Concrete Instruction Operands
# =============================================================================
# Each class knows its 3-bit opcode and how to pack its operand byte.
# =============================================================================

@dataclass(frozen=True)
class Jmp:
    condition: JmpCondition
    address: int

    opcode = 0b000

    def operand_bits(self) -> int:
        return (self.condition << 5) | (self.address & 0x1F)


@dataclass(frozen=True)
class Wait:
    polarity: int
    source: WaitSource
    index: int
    relative: bool

    opcode = 0b001

    def operand_bits(self) -> int:
        index = self.index & 0x1F
        if self.relative:
            index |= 0b10000
        return ((self.polarity & 1) << 7) | (self.source << 5) | index


@dataclass(frozen=True)
class In:
    source: InSource
    bit_count: int

    opcode = 0b010

    def operand_bits(self) -> int:
        # A bit count of 32 is encoded as 0
        return (self.source << 5) | (self.bit_count & 0x1F)


@dataclass(frozen=True)
class Out:
    destination: OutDestination
    bit_count: int

    opcode = 0b011

    def operand_bits(self) -> int:
        return (self.destination << 5) | (self.bit_count & 0x1F)


@dataclass(frozen=True)
class Push:
    if_full: bool
    block: bool

    opcode = 0b100

    def operand_bits(self) -> int:
        return (int(self.if_full) << 6) | (int(self.block) << 5)


@dataclass(frozen=True)
class Pull:
    if_empty: bool
    block: bool

    opcode = 0b100

    def operand_bits(self) -> int:
        return 0b1000_0000 | (int(self.if_empty) << 6) | (int(self.block) << 5)


@dataclass(frozen=True)
class Mov:
    destination: MovDestination
    op: MovOperation
    source: MovSource

    opcode = 0b101

    def operand_bits(self) -> int:
        return (self.destination << 5) | (self.op << 3) | self.source


@dataclass(frozen=True)
class MovToRx:
    fifo_index: MovRxIndex

    opcode = 0b100

    def operand_bits(self) -> int:
        return 0b0001_0000 | self.fifo_index


@dataclass(frozen=True)
class MovFromRx:
    fifo_index: MovRxIndex

    opcode = 0b100

    def operand_bits(self) -> int:
        return 0b1001_0000 | self.fifo_index


@dataclass(frozen=True)
class Irq:
    clear: bool
    wait: bool
    index: int
    index_mode: IrqIndexMode

    opcode = 0b110

    def operand_bits(self) -> int:
        return (
            (int(self.clear) << 6)
            | (int(self.wait) << 5)
            | (self.index_mode << 3)
            | (self.index & 0x07)
        )


@dataclass(frozen=True)
class Set:
    destination: SetDestination
    data: int

    opcode = 0b111

    def operand_bits(self) -> int:
        return (self.destination << 5) | (self.data & 0x1F)


InstructionOperands = Union[
    Jmp, Wait, In, Out, Push, Pull, Mov, MovToRx, MovFromRx, Irq, Set
]


# =============================================================================
# Side-set Configuration
# =============================================================================

@dataclass(frozen=True)
class SideSet:
    """
    Side-set configuration of a program.

    The delay/side-set field is 5 bits wide. Side-set takes the top
    ``bits`` of it (including the enable bit when side-set is optional)
    and the remaining low bits hold the delay.

    Attributes:
        opt: Side-set is optional; bit 12 flags instructions that use it
        bits: Bits consumed from the delay field, enable bit included
        max: Largest side-set value that can be encoded
        pindirs: Side-set drives pin directions instead of pin values
    """
    opt: bool = False
    bits: int = 0
    max: int = 0
    pindirs: bool = False

    FIELD_BITS = 5

    @classmethod
    def new(cls, opt: bool, width: int, pindirs: bool) -> "SideSet":
        """
        Build a configuration from a ``.side_set <width> [opt] [pindirs]``.

        Raises:
            EncodingError: If the side-set does not fit in the 5-bit field
        """
        bits = width + (1 if opt else 0)
        if width < 0 or bits > cls.FIELD_BITS:
            raise EncodingError(
                f"side-set width {width}{' opt' if opt else ''} does not fit "
                f"in the {cls.FIELD_BITS}-bit delay/side-set field",
            )
        return cls(opt=opt, bits=bits, max=(1 << width) - 1, pindirs=pindirs)

    @property
    def width(self) -> int:
        """Number of side-set data bits (excludes the enable bit)."""
        return self.bits - (1 if self.opt else 0)

    @property
    def delay_max(self) -> int:
        """Largest delay value that fits alongside the side-set bits."""
        return (1 << (self.FIELD_BITS - self.bits)) - 1


# =============================================================================
# Instruction
# =============================================================================

@dataclass(frozen=True)
class Instruction:
    """
    A fully resolved instruction, ready for encoding.

    Attributes:
        operands: One of the operand classes above
        delay: Delay cycles after the instruction
        side_set: Side-set value, or None when not given
    """
    operands: InstructionOperands
    delay: int = 0
    side_set: Optional[int] = None

    def encode(self, side_set: SideSet) -> int:
        """
        Pack the instruction into its 16-bit word.

        Args:
            side_set: The side-set configuration of the enclosing program

        Returns:
            The encoded instruction word

        Raises:
            EncodingError: If delay or side-set do not fit the configuration
        """
        if self.delay > side_set.delay_max:
            raise EncodingError(
                f"delay {self.delay} exceeds maximum of {side_set.delay_max} "
                f"with {side_set.bits} side-set bit(s)",
            )

        delay_side = self.delay
        if self.side_set is not None:
            if side_set.bits == 0:
                raise EncodingError("side-set value given but no .side_set declared")
            if self.side_set > side_set.max:
                raise EncodingError(
                    f"side-set value {self.side_set} exceeds maximum of {side_set.max}",
                )
            value = self.side_set << (SideSet.FIELD_BITS - side_set.bits)
            if side_set.opt:
                value |= 0b10000
            delay_side |= value
        elif side_set.bits > 0 and not side_set.opt:
            raise EncodingError("instruction requires a side-set value (side-set is not optional)")

        return (
            (self.operands.opcode << 13)
            | (delay_side << 8)
            | self.operands.operand_bits()
        )

    def required_version(self) -> PioVersion:
        """Return the hardware revision needed to execute this instruction."""
        ops = self.operands
        if isinstance(ops, (MovToRx, MovFromRx)):
            return PioVersion.V1
        if isinstance(ops, Mov) and ops.destination == MovDestination.PINDIRS:
            return PioVersion.V1
        if isinstance(ops, Wait) and ops.source == WaitSource.JMPPIN:
            return PioVersion.V1
        if isinstance(ops, Irq) and ops.index_mode in (IrqIndexMode.PREV, IrqIndexMode.NEXT):
            return PioVersion.V1
        return PioVersion.V0
