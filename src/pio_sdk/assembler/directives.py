"""
PIO Assembler Directive Processor (Pass 1)
==========================================

Walks a program's parsed lines in source order, before any instruction
is encoded, and:

- counts instructions (each instruction line advances the index by one)
- assigns every label the index of the next instruction
- evaluates ``.define`` against the symbols known so far
- records the layout directives (``.origin``, ``.side_set``,
  ``.wrap_target``, ``.wrap``) into a ProgramLayout

Ordering Rules
--------------
- ``.side_set`` must come before the first instruction
- ``.wrap_target`` and ``.wrap`` may each appear once
- ``.wrap`` marks the instruction before it, so it needs one
- ``.wrap`` and ``.wrap_target`` are given together or not at all
  (checked by ``ProgramLayout.resolve_wrap`` once the program is complete)

Breaking a rule raises DirectiveError at the directive's location.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from pio_sdk.errors import DirectiveError, EncodingError, SourceLocation
from pio_sdk.assembler.expressions import ExpressionEvaluator
from pio_sdk.assembler.parser import (
    DefineDirective,
    LabelDef,
    LangOptDirective,
    Line,
    OriginDirective,
    ParsedInstruction,
    SideSetDirective,
    WrapDirective,
    WrapTargetDirective,
)
from pio_sdk.assembler.symbols import SymbolEntry, SymbolTable
from pio_sdk.isa import SideSet, Wrap

logger = logging.getLogger(__name__)


# =============================================================================
# Layout State
# =============================================================================

@dataclass(frozen=True)
class ProgramLayout:
    """
    Layout of one program, as set by its directives.

    Attributes:
        side_set_width: Side-set data bits (0 when no .side_set)
        side_set_opt: Side-set is optional
        side_set_pindirs: Side-set drives pin directions
        origin: Load address, or None to let the loader choose
        wrap_target: Index execution wraps to, or None
        wrap_source: Index execution wraps from, or None
    """
    side_set_width: int = 0
    side_set_opt: bool = False
    side_set_pindirs: bool = False
    origin: Optional[int] = None
    wrap_target: Optional[int] = None
    wrap_source: Optional[int] = None

    @property
    def side_set(self) -> SideSet:
        """Side-set configuration for the instruction encoder."""
        return SideSet.new(self.side_set_opt, self.side_set_width, self.side_set_pindirs)

    def resolve_wrap(self, location: Optional[SourceLocation] = None) -> Optional[Wrap]:
        """
        Reconcile the wrap directives.

        Returns:
            The wrap region, or None when neither directive was given
            (the encoder then wraps the whole program)

        Raises:
            DirectiveError: If only one of .wrap / .wrap_target was given
        """
        if self.wrap_source is None and self.wrap_target is None:
            return None
        if self.wrap_source is None:
            raise DirectiveError(
                "'.wrap_target' without '.wrap'",
                location,
                hint="add '.wrap' after the last instruction of the loop",
            )
        if self.wrap_target is None:
            raise DirectiveError(
                "'.wrap' without '.wrap_target'",
                location,
                hint="add '.wrap_target' before the first instruction of the loop",
            )
        return Wrap(source=self.wrap_source, target=self.wrap_target)


# =============================================================================
# Directive Processor
# =============================================================================

class DirectiveProcessor:
    """
    Pass 1 over a program's lines.

    Usage:
        processor = DirectiveProcessor(file_symbols)
        processor.process(program.lines)
        symbols = processor.symbols.freeze()
        layout = processor.layout

    Attributes:
        symbols: Writable symbol table being populated
        layout: Layout state recorded so far
        instruction_count: Number of instruction lines seen so far
        instructions: The instruction lines, in order, for pass 2
        lang_opts: .lang_opt directives, in order
        wrap_location: Location of the first wrap directive seen
    """

    def __init__(self, file_symbols: Optional[dict[str, SymbolEntry]] = None):
        self.symbols = SymbolTable(file_symbols)
        self.layout = ProgramLayout()
        self.instruction_count = 0
        self.instructions: list[ParsedInstruction] = []
        self.lang_opts: list[LangOptDirective] = []
        self.wrap_location: Optional[SourceLocation] = None
        self._evaluator = ExpressionEvaluator(self.symbols)

    def process(self, lines: Iterable[Line]) -> None:
        """Process every line in source order."""
        for line in lines:
            self.process_line(line)

    def process_line(self, line: Line) -> None:
        """
        Process a single line.

        Raises:
            DirectiveError: If a layout directive breaks an ordering rule
            UndefinedSymbolError: If a .define or .origin references an
                                  unknown (or later) symbol
            ExpressionError: On division by zero
        """
        if isinstance(line, ParsedInstruction):
            self.instructions.append(line)
            self.instruction_count += 1

        elif isinstance(line, LabelDef):
            self.symbols.define(line.name, self.instruction_count, line.public, line.location)

        elif isinstance(line, DefineDirective):
            value = self._evaluator.evaluate(line.value, line.location)
            self.symbols.define(line.name, value, line.public, line.location)

        elif isinstance(line, OriginDirective):
            origin = self._evaluator.evaluate(line.value, line.location) & 0xFF
            self.layout = replace(self.layout, origin=origin)

        elif isinstance(line, SideSetDirective):
            self._process_side_set(line)

        elif isinstance(line, WrapTargetDirective):
            if self.layout.wrap_target is not None:
                raise DirectiveError("duplicate '.wrap_target' directive", line.location)
            self.layout = replace(self.layout, wrap_target=self.instruction_count)
            self.wrap_location = self.wrap_location or line.location

        elif isinstance(line, WrapDirective):
            if self.layout.wrap_source is not None:
                raise DirectiveError("duplicate '.wrap' directive", line.location)
            if self.instruction_count == 0:
                raise DirectiveError(
                    "'.wrap' must follow an instruction",
                    line.location,
                    hint="'.wrap' marks the instruction before it as the end of the loop",
                )
            self.layout = replace(self.layout, wrap_source=self.instruction_count - 1)
            self.wrap_location = self.wrap_location or line.location

        elif isinstance(line, LangOptDirective):
            self.lang_opts.append(line)

        else:
            raise DirectiveError(f"unsupported line {type(line).__name__}", line.location)

    def _process_side_set(self, line: SideSetDirective) -> None:
        if self.instruction_count != 0:
            raise DirectiveError(
                "'.side_set' after first instruction",
                line.location,
                hint="move '.side_set' above the first instruction",
            )

        width = self._evaluator.evaluate(line.value, line.location)
        try:
            SideSet.new(line.opt, width, line.pindirs)
        except EncodingError as e:
            raise DirectiveError(e.message, line.location) from e

        logger.debug(
            f"Side-set: {width} bit(s){' opt' if line.opt else ''}"
            f"{' pindirs' if line.pindirs else ''}"
        )
        self.layout = replace(
            self.layout,
            side_set_width=width,
            side_set_opt=line.opt,
            side_set_pindirs=line.pindirs,
        )
