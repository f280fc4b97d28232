"""
PIO Assembler - Main Interface
==============================

This module provides the Assembler class and the ``parse_program`` /
``parse_file`` entry points. It coordinates the lexer, parser, directive
processor (pass 1), operand reifier (pass 2) and instruction encoder.

Example Usage
-------------
>>> from pio_sdk.assembler import parse_program
>>>
>>> result = parse_program('''
... .side_set 1 opt
... loop:
...     pull
...     out pins, 1
...     jmp loop side 1
... ''')
>>> result.program.to_hex()
['80a0', '6001', '1800']
>>>
>>> from pio_sdk.assembler import parse_file
>>> programs = parse_file(open("ws2812.pio").read(), "ws2812.pio")
>>> programs["ws2812"].public_defines
{'T1': 2, 'T2': 5, 'T3': 3}

Pipeline
--------
For each program:

1. Pass 1 (DirectiveProcessor): labels, defines, layout directives
2. The symbol table is frozen
3. Pass 2 (OperandReifier): concrete instructions
4. Wrap reconciliation and encoding (ProgramBuilder)

In a multi-program file the top-level ``.define`` directives are evaluated
first, in order, and shared read-only by every program.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pio_sdk.errors import AssemblerError, EncodingError, ErrorCollector, ProgramErrors
from pio_sdk.assembler.directives import DirectiveProcessor, ProgramLayout
from pio_sdk.assembler.parser import (
    DefineDirective,
    Directive,
    ParsedProgram,
    parse_file_source,
    parse_program_source,
)
from pio_sdk.assembler.reifier import OperandReifier
from pio_sdk.assembler.symbols import SymbolEntry
from pio_sdk.isa import DEFAULT_PROGRAM_SIZE, Instruction, Program, ProgramBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramWithDefines:
    """
    Result of assembling one program.

    Attributes:
        name: Program name from .program (None for a single program)
        instructions: Concrete instructions in program order
        layout: Side-set, origin and wrap settings from the directives
        public_defines: Public labels and defines, name -> value
        program: The encoded program
        lang_opts: (language, option, value) from .lang_opt directives
        code_blocks: (language, body) passthrough blocks
    """
    name: Optional[str]
    instructions: tuple[Instruction, ...]
    layout: ProgramLayout
    public_defines: dict[str, int]
    program: Program
    lang_opts: tuple[tuple[str, str, str], ...] = ()
    code_blocks: tuple[tuple[str, str], ...] = field(default=())


class Assembler:
    """
    PIO assembler.

    Attributes:
        program_size: Maximum instructions per program
        collect_errors: If True, parse_file attempts every program and
                        raises ProgramErrors at the end; otherwise the
                        first failing program aborts the file
    """

    def __init__(self, program_size: int = DEFAULT_PROGRAM_SIZE, collect_errors: bool = False):
        self.program_size = program_size
        self.collect_errors = collect_errors

    # =========================================================================
    # Entry Points
    # =========================================================================

    def parse_program(self, source: str, filename: str = "<input>") -> ProgramWithDefines:
        """
        Assemble source holding a single program (no .program directive).

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            The assembled program

        Raises:
            AssemblerError: If assembly fails
        """
        parsed = parse_program_source(source, filename)
        return self._assemble_program(parsed, {})

    def parse_file(self, source: str, filename: str = "<input>") -> dict[str, ProgramWithDefines]:
        """
        Assemble source holding zero or more .program blocks.

        Programs are assembled in source order. A repeated program name
        replaces the earlier result.

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            Mapping of program name to assembled program

        Raises:
            AssemblySyntaxError: If the file cannot be parsed
            AssemblerError: If a program fails (collect_errors=False)
            ProgramErrors: If any program failed (collect_errors=True)
        """
        parsed = parse_file_source(source, filename)
        file_symbols = self._file_symbols(parsed.directives)

        if parsed.code_blocks:
            logger.debug(f"Ignoring {len(parsed.code_blocks)} code block(s) outside any program")

        collector = ErrorCollector() if self.collect_errors else None
        results: dict[str, ProgramWithDefines] = {}

        for program in parsed.programs:
            if program.name in results:
                logger.debug(f"Program '{program.name}' defined again, replacing earlier one")
            try:
                results[program.name] = self._assemble_program(program, file_symbols)
            except AssemblerError as e:
                if collector is None:
                    raise
                logger.debug(f"Program '{program.name}' failed: {e.message}")
                collector.add(e)

        if collector is not None and collector.has_errors():
            raise ProgramErrors(collector, results)

        return results

    def parse_path(self, filepath: str | Path) -> dict[str, ProgramWithDefines]:
        """
        Assemble a multi-program source file.

        Raises:
            AssemblerError: If assembly fails
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)
        logger.debug(f"Assembling {filepath}")
        return self.parse_file(filepath.read_text(), str(filepath))

    # =========================================================================
    # Per-program Pipeline
    # =========================================================================

    def _file_symbols(self, directives: list[Directive]) -> dict[str, SymbolEntry]:
        """Evaluate top-level defines, in order, into the shared file scope."""
        processor = DirectiveProcessor()
        for directive in directives:
            if isinstance(directive, DefineDirective):
                processor.process_line(directive)
            else:
                logger.debug(f"Ignoring top-level {type(directive).__name__} at {directive.location}")
        return processor.symbols.freeze().merged()

    def _assemble_program(
        self,
        parsed: ParsedProgram,
        file_symbols: dict[str, SymbolEntry],
    ) -> ProgramWithDefines:
        label = parsed.name or "<program>"
        logger.debug(f"Assembling {label}: {len(parsed.lines)} line(s)")

        # Pass 1
        processor = DirectiveProcessor(file_symbols)
        processor.process(parsed.lines)
        symbols = processor.symbols.freeze()
        layout = processor.layout

        # Pass 2
        reifier = OperandReifier(symbols)
        instructions = tuple(reifier.reify(line) for line in processor.instructions)

        wrap = layout.resolve_wrap(processor.wrap_location)

        side_set = layout.side_set
        for line, instruction in zip(processor.instructions, instructions):
            try:
                instruction.encode(side_set)
            except EncodingError as e:
                raise EncodingError(e.message, line.location, hint=e.hint) from e

        builder = ProgramBuilder(side_set, self.program_size, list(instructions))
        program = builder.assemble(origin=layout.origin, wrap=wrap)

        logger.debug(
            f"Assembled {label}: {len(program)} instruction(s), "
            f"origin={layout.origin}, wrap={program.wrap.target}..{program.wrap.source}"
        )

        return ProgramWithDefines(
            name=parsed.name,
            instructions=instructions,
            layout=layout,
            public_defines=symbols.public_defines(),
            program=program,
            lang_opts=tuple((o.language, o.option, o.value) for o in processor.lang_opts),
            code_blocks=tuple(parsed.code_blocks),
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_program(
    source: str,
    filename: str = "<input>",
    program_size: int = DEFAULT_PROGRAM_SIZE,
) -> ProgramWithDefines:
    """
    Convenience function to assemble a single program.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors
        program_size: Maximum number of instructions

    Returns:
        The assembled program

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler(program_size=program_size).parse_program(source, filename)


def parse_file(
    source: str,
    filename: str = "<input>",
    program_size: int = DEFAULT_PROGRAM_SIZE,
    collect_errors: bool = False,
) -> dict[str, ProgramWithDefines]:
    """
    Convenience function to assemble a multi-program file.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors
        program_size: Maximum number of instructions per program
        collect_errors: Attempt every program and report all failures

    Returns:
        Mapping of program name to assembled program

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(program_size=program_size, collect_errors=collect_errors)
    return asm.parse_file(source, filename)
