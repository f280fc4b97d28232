"""
PIO Program Container
=====================

Holds an encoded PIO program together with the metadata needed to load it
onto a state machine: load origin, wrap region, side-set configuration and
the hardware revision it needs.

Example
-------
>>> from pio_sdk.isa import ProgramBuilder, SideSet, Instruction, Pull
>>> builder = ProgramBuilder(SideSet())
>>> builder.append(Instruction(Pull(if_empty=False, block=True)))
>>> program = builder.assemble()
>>> program.to_hex()
['80a0']
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from pio_sdk.errors import ProgramSizeError
from pio_sdk.isa.instructions import Instruction, PioVersion, SideSet

logger = logging.getLogger(__name__)

# Instruction memory of one PIO block (RP2040 and RP2350)
DEFAULT_PROGRAM_SIZE = 32


@dataclass(frozen=True)
class Wrap:
    """
    Program wrap region.

    After executing the instruction at ``source`` the state machine
    continues at ``target`` without spending a cycle.
    """
    source: int
    target: int


@dataclass(frozen=True)
class Program:
    """
    An assembled PIO program.

    Attributes:
        code: Encoded 16-bit instruction words
        origin: Fixed load address, or None to let the loader choose
        wrap: Wrap region (defaults to the whole program)
        side_set: Side-set configuration the code was encoded with
        version: Minimum hardware revision
    """
    code: tuple[int, ...]
    origin: Optional[int]
    wrap: Wrap
    side_set: SideSet
    version: PioVersion = PioVersion.V0

    def __len__(self) -> int:
        return len(self.code)

    def to_hex(self) -> list[str]:
        """Return the instruction words as 4-digit lowercase hex strings."""
        return [f"{word:04x}" for word in self.code]


@dataclass
class ProgramBuilder:
    """
    Collects resolved instructions and encodes them into a Program.

    Attributes:
        side_set: Side-set configuration used for every instruction
        program_size: Maximum number of instructions
        instructions: Instructions appended so far
    """
    side_set: SideSet
    program_size: int = DEFAULT_PROGRAM_SIZE
    instructions: list[Instruction] = field(default_factory=list)

    def append(self, instruction: Instruction) -> None:
        """Add an instruction to the end of the program."""
        self.instructions.append(instruction)

    def assemble(self, origin: Optional[int] = None, wrap: Optional[Wrap] = None) -> Program:
        """
        Encode all instructions.

        Args:
            origin: Fixed load address, or None
            wrap: Explicit wrap region; when None the program wraps from
                  its last instruction back to its first

        Returns:
            The encoded Program

        Raises:
            ProgramSizeError: If there are more instructions than fit
            EncodingError: If an instruction does not fit its word
        """
        if len(self.instructions) > self.program_size:
            raise ProgramSizeError(
                f"program has {len(self.instructions)} instructions, "
                f"but only {self.program_size} fit in instruction memory",
            )

        code = tuple(instr.encode(self.side_set) for instr in self.instructions)

        if wrap is None:
            wrap = Wrap(source=max(len(code) - 1, 0), target=0)

        version = PioVersion.V0
        if any(instr.required_version() == PioVersion.V1 for instr in self.instructions):
            version = PioVersion.V1

        logger.debug(
            f"Encoded {len(code)} instructions (origin={origin}, "
            f"wrap={wrap.target}..{wrap.source}, version={version.value})"
        )
        return Program(
            code=code,
            origin=origin,
            wrap=wrap,
            side_set=self.side_set,
            version=version,
        )
