"""
PIO SDK Error Hierarchy
=======================

This module defines the exception hierarchy for the PIO SDK.
All exceptions inherit from PioError, allowing callers to catch all
SDK-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
PioError (base)
└── AssemblerError (assembler-related)
    ├── AssemblySyntaxError - tokenizer/grammar errors in source
    ├── UndefinedSymbolError - reference to undefined label/define
    ├── ExpressionError - error folding a constant expression
    ├── DirectiveError - misplaced or duplicated layout directive
    ├── OperandError - operand illegal for the target encoding
    ├── EncodingError - value does not fit the instruction word
    │   └── ProgramSizeError - too many instructions for instruction memory
    ├── ProgramErrors - one or more programs in a file failed
    └── TooManyErrors - error collector limit reached

Design Philosophy
-----------------
Each exception captures source location information (filename, line, column)
when applicable. Error messages follow this format:
    filename:line:column: error: description
    source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class PioError(Exception):
    """
    Base exception for all PIO SDK errors.

        try:
            parse_program(source)
        except PioError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(PioError):
    """
    Base exception for all assembler-related errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            blink.pio:4:9: error: undefined symbol 'lop'
                jmp lop
                    ^
            hint: did you mean 'loop'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Syntax error in PIO assembly source code.

    Raised when the lexer or parser encounters input that cannot be
    tokenized or parsed. The offending token text is kept in ``token``.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        token: Optional[str] = None,
    ):
        self.token = token
        super().__init__(message, location=location, hint=hint, source_line=source_line)


class UndefinedSymbolError(AssemblerError):
    """
    Reference to an undefined symbol (label or define).

    There is no default value for an unknown name; resolution fails hard.
    Similarly-named symbols are offered as a hint to help catch typos.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []

        if not hint and self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undefined symbol '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class ExpressionError(AssemblerError):
    """
    Error folding a constant expression.

    Raised when an expression cannot be evaluated, e.g. division by zero.
    """
    pass


class DirectiveError(AssemblerError):
    """
    Error in a layout directive.

    Examples:
        - .side_set after the first instruction
        - a second .wrap or .wrap_target
        - .wrap without .wrap_target (or the reverse)
    """
    pass


class OperandError(AssemblerError):
    """
    Operand not legal for the target instruction encoding.

    Examples:
        - mov x, rxfifo[0]  ; RX FIFO lanes may only be read into OSR
        - set x, 32         ; SET data is a 5-bit field
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        value: Optional[int] = None,
    ):
        self.value = value
        super().__init__(message, location=location, hint=hint, source_line=source_line)


class EncodingError(AssemblerError):
    """
    A resolved value does not fit the 16-bit instruction word.

    Raised by the instruction encoder, e.g. when a delay exceeds the bits
    left over by the side-set configuration.
    """
    pass


class ProgramSizeError(EncodingError):
    """
    Program does not fit in the state machine instruction memory.

    The RP2040 and RP2350 PIO blocks each hold 32 instructions.
    """
    pass


# =============================================================================
# Error Collection for Multiple Error Reporting
# =============================================================================

class ErrorCollector:
    """
    Collects multiple errors for batch reporting.

    The file-level driver uses this to keep assembling the remaining
    programs of a file after one of them fails.

    Example:
        collector = ErrorCollector(max_errors=100)
        for name, lines in programs:
            try:
                ...
            except AssemblerError as e:
                collector.add(e)

        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self, max_errors: int = 100):
        """
        Initialize the error collector.

        Args:
            max_errors: Maximum errors to collect before raising TooManyErrors
        """
        self.errors: list[AssemblerError] = []
        self.max_errors = max_errors

    def add(self, error: AssemblerError) -> None:
        """
        Add an error to the collection.

        Raises:
            TooManyErrors: If max_errors has been reached
        """
        self.errors.append(error)
        if len(self.errors) >= self.max_errors:
            raise TooManyErrors(f"too many errors ({self.max_errors}), stopping")

    def has_errors(self) -> bool:
        """Return True if any errors have been collected."""
        return len(self.errors) > 0

    def error_count(self) -> int:
        """Return the number of collected errors."""
        return len(self.errors)

    def report(self) -> str:
        """Format all errors for display, followed by a summary line."""
        lines = []

        for error in self.errors:
            lines.append(str(error))
            lines.append("")

        error_word = "error" if len(self.errors) == 1 else "errors"
        lines.append(f"{len(self.errors)} {error_word}")

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all collected errors."""
        self.errors.clear()


class TooManyErrors(AssemblerError):
    """Raised when the error collector reaches its limit."""

    def __init__(self, message: str = "too many errors"):
        super().__init__(message)


class ProgramErrors(AssemblerError):
    """
    One or more programs of a multi-program file failed to assemble.

    Only raised when errors are being collected. The programs that did
    assemble are kept in ``programs`` so callers can still use them.

    Attributes:
        collector: The ErrorCollector holding every per-program failure
        programs: Mapping of program name to result for the successes
    """

    def __init__(self, collector: ErrorCollector, programs: dict):
        self.collector = collector
        self.programs = programs
        super().__init__(
            f"{collector.error_count()} program(s) failed to assemble\n{collector.report()}"
        )
