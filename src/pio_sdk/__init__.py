"""
PIO SDK - Assembler Toolchain for RP2040/RP2350 Programmable I/O
================================================================

This package provides an assembler for the programmable I/O (PIO) blocks
of the Raspberry Pi RP2040 and RP2350 microcontrollers. Each PIO block
runs small programs (up to 32 instructions) on its state machines to
implement serial protocols, pulse generators and the like.

Main Components
---------------
- **assembler**: Two-pass PIO assembler
    Converts PIO assembly source (.pio) into encoded programs

- **isa**: Instruction set definitions
    Operand enums, instruction encoder and program container

- **cli**: Command-line tools (pioasm)

Quick Start
-----------
Assemble a program:
    >>> from pio_sdk import parse_program
    >>> result = parse_program("pull\\nout pins, 1\\n")
    >>> result.program.to_hex()
    ['80a0', '6001']

Assemble a file with several programs:
    >>> from pio_sdk import Assembler
    >>> programs = Assembler().parse_path("uart.pio")
    >>> programs["uart_tx"].program.wrap
    Wrap(source=3, target=0)

Or use the command-line tool:
    $ pioasm uart.pio -f json -o uart.json

Reference Documentation
-----------------------
- RP2040 Datasheet, chapter 3 (PIO)
- RP2350 Datasheet, chapter 11 (PIO)

Version History
---------------
1.0.0 - Initial release with assembler and pioasm
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from pio_sdk.assembler import (
    Assembler,
    ProgramWithDefines,
    parse_file,
    parse_program,
)
from pio_sdk.errors import (
    PioError,
    SourceLocation,
    AssemblerError,
    AssemblySyntaxError,
    UndefinedSymbolError,
    ExpressionError,
    DirectiveError,
    OperandError,
    EncodingError,
    ProgramSizeError,
    ProgramErrors,
    ErrorCollector,
)
from pio_sdk.isa import Program, PioVersion, SideSet, Wrap

__all__ = [
    # Version info
    "__version__",
    # Assembler
    "Assembler",
    "ProgramWithDefines",
    "parse_program",
    "parse_file",
    # Program container
    "Program",
    "PioVersion",
    "SideSet",
    "Wrap",
    # Exception hierarchy
    "PioError",
    "SourceLocation",
    "AssemblerError",
    "AssemblySyntaxError",
    "UndefinedSymbolError",
    "ExpressionError",
    "DirectiveError",
    "OperandError",
    "EncodingError",
    "ProgramSizeError",
    "ProgramErrors",
    "ErrorCollector",
]
