"""
PIO Assembler for RP2040/RP2350
===============================

This module provides a two-pass assembler for the programmable I/O (PIO)
state machines of the Raspberry Pi RP2040 and RP2350.

The assembler converts PIO assembly source into 16-bit instruction words
plus the metadata needed to load them: origin, wrap region, side-set
configuration and public defines.

Main Components
---------------
- **Assembler**: Main assembler class and the parse_program / parse_file
  entry points
- **Lexer**: Tokenizes assembly source into tokens
- **Parser**: Parses tokens into labels, directives and instructions
- **ExpressionEvaluator**: Folds constant expressions to 32-bit integers
- **SymbolTable**: Two-tier (file / program) symbol table
- **DirectiveProcessor**: Pass 1, labels and layout directives
- **OperandReifier**: Pass 2, concrete instructions

Assembly Process
----------------
1. **Parsing (Lexer + Parser)**:
   - Tokenize source into lexical tokens
   - Parse tokens into lines with unevaluated expression trees

2. **Pass 1 (DirectiveProcessor)**:
   - Count instructions and assign labels their instruction index
   - Evaluate defines, record origin, side-set and wrap

3. **Pass 2 (OperandReifier)**:
   - Resolve every operand against the frozen symbol table
   - Check MOV FIFO forms and SET range

4. **Encoding (pio_sdk.isa.ProgramBuilder)**

Example Usage
-------------
>>> from pio_sdk.assembler import parse_program
>>> result = parse_program('''
... loop:
...     pull
...     out pins, 1
...     jmp loop
... ''')
>>> result.program.to_hex()
['80a0', '6001', '0000']
"""

from pio_sdk.assembler.assembler import (
    Assembler,
    ProgramWithDefines,
    parse_file,
    parse_program,
)
from pio_sdk.assembler.lexer import Lexer, Token, TokenType
from pio_sdk.assembler.parser import (
    Parser,
    Line,
    LabelDef,
    Directive,
    ParsedInstruction,
    ParsedProgram,
    ParsedFile,
    parse_file_source,
    parse_program_source,
)
from pio_sdk.assembler.expressions import ExprNode, ExpressionEvaluator, evaluate, reverse_bits
from pio_sdk.assembler.symbols import FrozenSymbolTable, SymbolEntry, SymbolTable
from pio_sdk.assembler.directives import DirectiveProcessor, ProgramLayout
from pio_sdk.assembler.reifier import OperandReifier

__all__ = [
    # Main class and functions
    "Assembler",
    "ProgramWithDefines",
    "parse_program",
    "parse_file",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    # Parser
    "Parser",
    "Line",
    "LabelDef",
    "Directive",
    "ParsedInstruction",
    "ParsedProgram",
    "ParsedFile",
    "parse_program_source",
    "parse_file_source",
    # Expressions
    "ExprNode",
    "ExpressionEvaluator",
    "evaluate",
    "reverse_bits",
    # Symbols
    "SymbolTable",
    "FrozenSymbolTable",
    "SymbolEntry",
    # Passes
    "DirectiveProcessor",
    "ProgramLayout",
    "OperandReifier",
]
