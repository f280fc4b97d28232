"""
PIO SDK Instruction Set Package
===============================

Instruction-set definitions for the RP2040/RP2350 PIO state machines,
shared by the assembler and anything that consumes its output.

Modules:
    instructions: Operand enums, concrete instructions, word encoder
    program: Program container and builder (origin, wrap, side-set)

Usage:
    from pio_sdk.isa import (
        Instruction,
        Jmp,
        JmpCondition,
        ProgramBuilder,
        SideSet,
    )
"""

from pio_sdk.isa.instructions import (
    # Operand enums
    JmpCondition,
    WaitSource,
    InSource,
    OutDestination,
    MovDestination,
    MovOperation,
    MovSource,
    MovRxIndex,
    SetDestination,
    IrqIndexMode,
    PioVersion,
    # Concrete operands
    Jmp,
    Wait,
    In,
    Out,
    Push,
    Pull,
    Mov,
    MovToRx,
    MovFromRx,
    Irq,
    Set,
    InstructionOperands,
    # Encoding
    SideSet,
    Instruction,
)
from pio_sdk.isa.program import (
    DEFAULT_PROGRAM_SIZE,
    Program,
    ProgramBuilder,
    Wrap,
)

__all__ = [
    # Operand enums
    "JmpCondition",
    "WaitSource",
    "InSource",
    "OutDestination",
    "MovDestination",
    "MovOperation",
    "MovSource",
    "MovRxIndex",
    "SetDestination",
    "IrqIndexMode",
    "PioVersion",
    # Concrete operands
    "Jmp",
    "Wait",
    "In",
    "Out",
    "Push",
    "Pull",
    "Mov",
    "MovToRx",
    "MovFromRx",
    "Irq",
    "Set",
    "InstructionOperands",
    # Encoding
    "SideSet",
    "Instruction",
    # Program container
    "DEFAULT_PROGRAM_SIZE",
    "Program",
    "ProgramBuilder",
    "Wrap",
]
