"""
PIO Assembler Symbol Table
==========================

Two-tier symbol table used while assembling a program.

Scopes
------
- **File scope**: defines that appear before the first ``.program`` of a
  file. Built once per file and shared, read-only, by every program.
- **Program scope**: labels (valued at their instruction index) and
  ``.define`` directives inside the program.

Names are resolved program scope first, then file scope, so a program
define shadows a file define of the same name. Redefining a name in the
same scope overwrites it (last wins).

Two Phases
----------
During pass 1 the directive processor writes into a ``SymbolTable``.
Before pass 2 the table is frozen into a ``FrozenSymbolTable`` that can
only be read, so operand reification never adds symbols.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from pio_sdk.errors import SourceLocation, UndefinedSymbolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SymbolEntry:
    """
    Symbol table entry.

    Attributes:
        value: Resolved 32-bit value
        public: True if exported with the program's public defines
        location: Where the symbol was defined
    """
    value: int
    public: bool = False
    location: Optional[SourceLocation] = None


# =============================================================================
# Read Access (shared by both phases)
# =============================================================================

class _SymbolScopes:
    """Lookup over a file scope and a program scope."""

    def __init__(
        self,
        file_symbols: Mapping[str, SymbolEntry],
        program_symbols: Mapping[str, SymbolEntry],
    ):
        self._file = file_symbols
        self._program = program_symbols

    @property
    def file_symbols(self) -> Mapping[str, SymbolEntry]:
        return MappingProxyType(self._file)

    @property
    def program_symbols(self) -> Mapping[str, SymbolEntry]:
        return MappingProxyType(self._program)

    def lookup(self, name: str) -> Optional[SymbolEntry]:
        """Return the entry for a name, program scope first, or None."""
        entry = self._program.get(name)
        if entry is None:
            entry = self._file.get(name)
        return entry

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def resolve(self, name: str, location: Optional[SourceLocation] = None) -> int:
        """
        Resolve a symbol to its value.

        Args:
            name: Symbol name (case-sensitive)
            location: Reference location, for error reporting

        Returns:
            The symbol's value

        Raises:
            UndefinedSymbolError: If the name is in neither scope
        """
        entry = self.lookup(name)
        if entry is None:
            raise UndefinedSymbolError(
                name,
                location=location,
                similar_symbols=self._find_similar_symbols(name),
            )
        return entry.value

    def public_defines(self) -> dict[str, int]:
        """
        Collect public symbols from both scopes.

        File-scope entries are added first and program-scope entries
        after, so the program value wins on a name collision.
        """
        result = {name: entry.value for name, entry in self._file.items() if entry.public}
        for name, entry in self._program.items():
            if entry.public:
                result[name] = entry.value
        return result

    def _find_similar_symbols(self, name: str) -> list[str]:
        """
        Find symbols with similar names for error hints.

        Uses simple edit distance heuristic.
        """
        name_lower = name.lower()
        similar = []

        for sym in {**self._file, **self._program}:
            sym_lower = sym.lower()
            # Simple typos: off by one char, case difference
            if (
                sym_lower == name_lower or
                abs(len(sym) - len(name)) <= 1 and
                _edit_distance(name_lower, sym_lower) <= 2
            ):
                similar.append(sym)

        return similar[:3]


# =============================================================================
# Pass 1: Writable Table
# =============================================================================

class SymbolTable(_SymbolScopes):
    """
    Writable symbol table used during pass 1.

    Usage:
        table = SymbolTable(file_symbols)
        table.define("loop", 0)
        frozen = table.freeze()
        frozen.resolve("loop")  # 0
    """

    def __init__(self, file_symbols: Optional[Mapping[str, SymbolEntry]] = None):
        """
        Create a table with an empty program scope.

        Args:
            file_symbols: File-scope entries; copied, never written
        """
        super().__init__(dict(file_symbols or {}), {})

    def define(
        self,
        name: str,
        value: int,
        public: bool = False,
        location: Optional[SourceLocation] = None,
    ) -> None:
        """Insert or overwrite a program-scope symbol."""
        previous = self._program.get(name)
        if previous is not None:
            logger.debug(f"Redefining '{name}': {previous.value} -> {value}")
        elif name in self._file:
            logger.debug(f"'{name}' shadows file-level define ({self._file[name].value} -> {value})")

        self._program[name] = SymbolEntry(value=value, public=public, location=location)

    def freeze(self) -> "FrozenSymbolTable":
        """Return a read-only snapshot for pass 2."""
        return FrozenSymbolTable(self._file, self._program)


# =============================================================================
# Pass 2: Read-only Table
# =============================================================================

class FrozenSymbolTable(_SymbolScopes):
    """Read-only symbol table used during pass 2 and after assembly."""

    def __init__(
        self,
        file_symbols: Mapping[str, SymbolEntry],
        program_symbols: Mapping[str, SymbolEntry],
    ):
        super().__init__(dict(file_symbols), dict(program_symbols))

    def merged(self) -> dict[str, SymbolEntry]:
        """
        Flatten both scopes into one mapping, program scope winning.

        Used to turn the table of file-level defines into the file scope
        shared by every program of a file.
        """
        return {**self._file, **self._program}


# =============================================================================
# Helpers
# =============================================================================

def _edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    distances = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        new_distances = [i + 1]
        for j, c2 in enumerate(s2):
            if c1 == c2:
                new_distances.append(distances[j])
            else:
                new_distances.append(1 + min((
                    distances[j],
                    distances[j + 1],
                    new_distances[-1]
                )))
        distances = new_distances

    return distances[-1]
