"""
PIO Assembly Language Parser
============================

This module implements a parser for PIO assembly language. It converts a
stream of tokens from the lexer into parsed lines: directives, label
declarations and instructions whose operands are still unevaluated
expression trees.

Line Types
----------
1. **LabelDef**: Label declaration, optionally public
   ```
   loop:
   public entry:
   ```

2. **Directive**: Layout and symbol directives
   ```
   .define public PIN_BASE 2
   .origin 0
   .side_set 1 opt pindirs
   .wrap_target
   .wrap
   .lang_opt python sideset_init = pico.PIO.OUT_HIGH
   ```

3. **ParsedInstruction**: One of the nine instruction shapes, with an
   optional side-set and a delay expression
   ```
   jmp x-- loop side 1 [3]
   mov osr, rxfifo[0]
   ```

A source file may hold several programs, each introduced by
``.program <name>``. Only directives may appear before the first one.

Expressions
-----------
Expressions are parsed into ExprNode trees with the usual precedence:

1. Additive: + -
2. Multiplicative: * /
3. Unary: - (negate), :: (bit reverse)
4. Primary: integer, symbol, (expression)
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Union

from pio_sdk.errors import AssemblySyntaxError, SourceLocation
from pio_sdk.assembler.expressions import ExprNode
from pio_sdk.assembler.lexer import Lexer, Token, TokenType
from pio_sdk.isa import (
    InSource,
    IrqIndexMode,
    JmpCondition,
    MovOperation,
    OutDestination,
    SetDestination,
    WaitSource,
)


# =============================================================================
# MOV Operands as Written
# =============================================================================
# MOV operands are kept as written in the source; the reifier later splits
# them into plain registers and RX FIFO lanes.
# =============================================================================

class ParsedMovDestination(Enum):
    PINS = auto()
    X = auto()
    Y = auto()
    PINDIRS = auto()
    EXEC = auto()
    PC = auto()
    ISR = auto()
    OSR = auto()
    RXFIFOY = auto()
    RXFIFO0 = auto()
    RXFIFO1 = auto()
    RXFIFO2 = auto()
    RXFIFO3 = auto()


class ParsedMovSource(Enum):
    PINS = auto()
    X = auto()
    Y = auto()
    NULL = auto()
    STATUS = auto()
    ISR = auto()
    OSR = auto()
    RXFIFOY = auto()
    RXFIFO0 = auto()
    RXFIFO1 = auto()
    RXFIFO2 = auto()
    RXFIFO3 = auto()


# =============================================================================
# Parsed Instruction Operands
# =============================================================================

@dataclass(frozen=True)
class ParsedJmp:
    condition: JmpCondition
    address: ExprNode


@dataclass(frozen=True)
class ParsedWait:
    polarity: ExprNode
    source: WaitSource
    index: ExprNode
    relative: bool = False


@dataclass(frozen=True)
class ParsedIn:
    source: InSource
    bit_count: ExprNode


@dataclass(frozen=True)
class ParsedOut:
    destination: OutDestination
    bit_count: ExprNode


@dataclass(frozen=True)
class ParsedPush:
    if_full: bool = False
    block: bool = True


@dataclass(frozen=True)
class ParsedPull:
    if_empty: bool = False
    block: bool = True


@dataclass(frozen=True)
class ParsedMov:
    destination: ParsedMovDestination
    op: MovOperation
    source: ParsedMovSource


@dataclass(frozen=True)
class ParsedIrq:
    clear: bool
    wait: bool
    index: ExprNode
    index_mode: IrqIndexMode = IrqIndexMode.DIRECT


@dataclass(frozen=True)
class ParsedSet:
    destination: SetDestination
    data: ExprNode


ParsedOperands = Union[
    ParsedJmp, ParsedWait, ParsedIn, ParsedOut, ParsedPush,
    ParsedPull, ParsedMov, ParsedIrq, ParsedSet,
]


# =============================================================================
# Line Data Classes
# =============================================================================

@dataclass
class Line:
    """
    Base class for all parsed lines.

    Every line has a source location for error reporting.
    """
    location: SourceLocation


@dataclass
class LabelDef(Line):
    """
    Label declaration.

    Attributes:
        name: Label name
        public: True if exported with the program's public defines
    """
    name: str
    public: bool = False


@dataclass
class Directive(Line):
    """Base class for directives."""
    pass


@dataclass
class DefineDirective(Directive):
    name: str
    value: ExprNode
    public: bool = False


@dataclass
class OriginDirective(Directive):
    value: ExprNode


@dataclass
class SideSetDirective(Directive):
    value: ExprNode
    opt: bool = False
    pindirs: bool = False


@dataclass
class WrapTargetDirective(Directive):
    pass


@dataclass
class WrapDirective(Directive):
    pass


@dataclass
class LangOptDirective(Directive):
    """
    Output-language option. Carried through as metadata only.

    Attributes:
        language: Target language (e.g. "python", "c-sdk")
        option: Option name
        value: Option value as written
    """
    language: str
    option: str
    value: str


@dataclass
class ParsedInstruction(Line):
    """
    Instruction with unevaluated operands.

    Attributes:
        operands: One of the nine parsed operand shapes
        delay: Delay cycles expression (literal 0 when not written)
        side_set: Side-set expression, or None
    """
    operands: ParsedOperands
    delay: ExprNode
    side_set: Optional[ExprNode] = None


@dataclass
class ParsedProgram:
    """
    A program: its name (None for a bare program) and its lines in order.

    Attributes:
        name: Program name from .program, or None
        lines: Labels, directives and instructions in source order
        location: Where the program starts
        code_blocks: (language, body) passthrough blocks
    """
    name: Optional[str]
    lines: list[Line] = field(default_factory=list)
    location: Optional[SourceLocation] = None
    code_blocks: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class ParsedFile:
    """
    A multi-program source file.

    Attributes:
        directives: Directives that appear before the first .program
        programs: Programs in source order
        code_blocks: Passthrough blocks that appear before the first .program
    """
    directives: list[Directive] = field(default_factory=list)
    programs: list[ParsedProgram] = field(default_factory=list)
    code_blocks: list[tuple[str, str]] = field(default_factory=list)


# =============================================================================
# Keyword Tables
# =============================================================================

IN_SOURCES = {
    "pins": InSource.PINS,
    "x": InSource.X,
    "y": InSource.Y,
    "null": InSource.NULL,
    "isr": InSource.ISR,
    "osr": InSource.OSR,
}

OUT_DESTINATIONS = {
    "pins": OutDestination.PINS,
    "x": OutDestination.X,
    "y": OutDestination.Y,
    "null": OutDestination.NULL,
    "pindirs": OutDestination.PINDIRS,
    "pc": OutDestination.PC,
    "isr": OutDestination.ISR,
    "exec": OutDestination.EXEC,
}

SET_DESTINATIONS = {
    "pins": SetDestination.PINS,
    "x": SetDestination.X,
    "y": SetDestination.Y,
    "pindirs": SetDestination.PINDIRS,
}

MOV_DESTINATIONS = {
    "pins": ParsedMovDestination.PINS,
    "x": ParsedMovDestination.X,
    "y": ParsedMovDestination.Y,
    "pindirs": ParsedMovDestination.PINDIRS,
    "exec": ParsedMovDestination.EXEC,
    "pc": ParsedMovDestination.PC,
    "isr": ParsedMovDestination.ISR,
    "osr": ParsedMovDestination.OSR,
}

MOV_SOURCES = {
    "pins": ParsedMovSource.PINS,
    "x": ParsedMovSource.X,
    "y": ParsedMovSource.Y,
    "null": ParsedMovSource.NULL,
    "status": ParsedMovSource.STATUS,
    "isr": ParsedMovSource.ISR,
    "osr": ParsedMovSource.OSR,
}

# rxfifo[...] selector -> (destination, source)
RX_FIFO_LANES = {
    "y": (ParsedMovDestination.RXFIFOY, ParsedMovSource.RXFIFOY),
    0: (ParsedMovDestination.RXFIFO0, ParsedMovSource.RXFIFO0),
    1: (ParsedMovDestination.RXFIFO1, ParsedMovSource.RXFIFO1),
    2: (ParsedMovDestination.RXFIFO2, ParsedMovSource.RXFIFO2),
    3: (ParsedMovDestination.RXFIFO3, ParsedMovSource.RXFIFO3),
}

WAIT_SOURCES = {
    "gpio": WaitSource.GPIO,
    "pin": WaitSource.PIN,
    "irq": WaitSource.IRQ,
    "jmppin": WaitSource.JMPPIN,
}

IRQ_MODIFIERS = frozenset({"set", "nowait", "wait", "clear", "prev", "next"})

MNEMONICS = frozenset({
    "nop", "jmp", "wait", "in", "out", "push", "pull", "mov", "irq", "set",
})


# =============================================================================
# Parser Implementation
# =============================================================================

class Parser:
    """
    Parses PIO assembly tokens into programs.

    Usage:
        tokens = list(Lexer(source, filename).tokenize())
        program = Parser(tokens, filename, source).parse_program()
        parsed_file = Parser(tokens, filename, source).parse_file()
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source: Optional[str] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from lexer
            filename: Source filename for error reporting
            source: Source text, used to quote the offending line in errors
        """
        self._tokens = tokens
        self._filename = filename
        self._pos = 0
        self._source_lines = source.split("\n") if source is not None else None

    # =========================================================================
    # Entry Points
    # =========================================================================

    def parse_program(self) -> ParsedProgram:
        """
        Parse tokens as a single program without a .program directive.

        Raises:
            AssemblySyntaxError: If syntax error encountered
        """
        program = ParsedProgram(name=None, location=self._location())

        while not self._at_end():
            if self._match(TokenType.NEWLINE):
                continue
            if self._is_directive("program"):
                raise self._error(
                    "'.program' is not allowed when parsing a single program",
                    self._current(),
                )
            self._parse_line_into(program)

        return program

    def parse_file(self) -> ParsedFile:
        """
        Parse tokens as a file of zero or more .program blocks.

        Raises:
            AssemblySyntaxError: If syntax error encountered
        """
        parsed = ParsedFile()
        current: Optional[ParsedProgram] = None

        while not self._at_end():
            if self._match(TokenType.NEWLINE):
                continue

            if self._is_directive("program"):
                directive_token = self._advance()
                name_token = self._expect(TokenType.IDENTIFIER, "expected program name after '.program'")
                self._expect_end_of_line()
                current = ParsedProgram(name=name_token.value, location=directive_token.location)
                parsed.programs.append(current)
                continue

            if current is not None:
                self._parse_line_into(current)
                continue

            if self._check(TokenType.CODE_BLOCK):
                parsed.code_blocks.append(self._advance().value)
                self._expect_end_of_line()
                continue

            for line in self._parse_line():
                if not isinstance(line, Directive):
                    raise AssemblySyntaxError(
                        "instructions and labels must follow a '.program' directive",
                        line.location,
                        source_line=self._source_line(line.location.line),
                    )
                parsed.directives.append(line)

        return parsed

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self._tokens) or self._current().type == TokenType.EOF

    def _current(self) -> Token:
        if self._pos >= len(self._tokens):
            last = self._tokens[-1] if self._tokens else None
            return Token(
                TokenType.EOF, None,
                last.line if last else 1,
                last.column if last else 1,
                last.filename if last else self._filename,
            )
        return self._tokens[self._pos]

    def _peek(self, offset: int = 0) -> Token:
        pos = self._pos + offset
        if pos >= len(self._tokens):
            return self._current()
        return self._tokens[pos]

    def _advance(self) -> Token:
        token = self._current()
        self._pos += 1
        return token

    def _check(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if not self._check(token_type):
            raise self._error(message, self._current())
        return self._advance()

    def _is_keyword(self, *words: str, offset: int = 0) -> bool:
        """Check for an identifier matching one of the keywords (any case)."""
        tok = self._peek(offset)
        return tok.type == TokenType.IDENTIFIER and tok.value.lower() in words

    def _match_keyword(self, *words: str) -> Optional[str]:
        if self._is_keyword(*words):
            return self._advance().value.lower()
        return None

    def _is_directive(self, name: str) -> bool:
        tok = self._current()
        return tok.type == TokenType.DIRECTIVE and tok.value.lower() == name

    def _expect_end_of_line(self) -> None:
        if self._check(TokenType.EOF):
            return
        if not self._match(TokenType.NEWLINE):
            tok = self._current()
            raise self._error(f"unexpected '{tok.text or tok.value}'", tok)

    def _location(self) -> SourceLocation:
        return self._current().location

    def _source_line(self, line: int) -> Optional[str]:
        if self._source_lines is None or not 0 < line <= len(self._source_lines):
            return None
        return self._source_lines[line - 1]

    def _error(self, message: str, token: Token) -> AssemblySyntaxError:
        """Build a syntax error pointing at a token."""
        text = token.text or (str(token.value) if token.value is not None else token.type.name)
        return AssemblySyntaxError(
            message,
            token.location,
            source_line=self._source_line(token.line),
            token=text,
        )

    # =========================================================================
    # Line Parsing
    # =========================================================================

    def _parse_line_into(self, program: ParsedProgram) -> None:
        if self._check(TokenType.CODE_BLOCK):
            program.code_blocks.append(self._advance().value)
            self._expect_end_of_line()
            return
        program.lines.extend(self._parse_line())

    def _parse_line(self) -> list[Line]:
        """
        Parse a single source line.

        A line holds an optional label followed by an optional directive
        or instruction.
        """
        lines: list[Line] = []

        label = self._try_parse_label()
        if label is not None:
            lines.append(label)

        if self._check(TokenType.DIRECTIVE):
            lines.append(self._parse_directive())
        elif self._check(TokenType.IDENTIFIER):
            lines.append(self._parse_instruction())
        elif not lines:
            tok = self._current()
            raise self._error(f"unexpected '{tok.text or tok.value}'", tok)

        self._expect_end_of_line()
        return lines

    def _try_parse_label(self) -> Optional[LabelDef]:
        """Parse 'name:' or 'public name:' if present."""
        if self._check(TokenType.IDENTIFIER) and self._peek(1).type == TokenType.COLON:
            name_token = self._advance()
            self._advance()
            return LabelDef(location=name_token.location, name=name_token.value)

        if (
            self._is_keyword("public")
            and self._peek(1).type == TokenType.IDENTIFIER
            and self._peek(2).type == TokenType.COLON
        ):
            self._advance()
            name_token = self._advance()
            self._advance()
            return LabelDef(location=name_token.location, name=name_token.value, public=True)

        return None

    # =========================================================================
    # Directive Parsing
    # =========================================================================

    def _parse_directive(self) -> Directive:
        directive_token = self._advance()
        name = directive_token.value.lower()
        location = directive_token.location

        if name == "define":
            public = self._match_keyword("public") is not None
            name_token = self._expect(TokenType.IDENTIFIER, "expected symbol name after '.define'")
            value = self._parse_expression()
            return DefineDirective(location=location, name=name_token.value, value=value, public=public)

        if name == "origin":
            return OriginDirective(location=location, value=self._parse_expression())

        if name == "side_set":
            value = self._parse_expression()
            opt = False
            pindirs = False
            while True:
                keyword = self._match_keyword("opt", "pindirs")
                if keyword == "opt":
                    opt = True
                elif keyword == "pindirs":
                    pindirs = True
                else:
                    break
            return SideSetDirective(location=location, value=value, opt=opt, pindirs=pindirs)

        if name == "wrap_target":
            return WrapTargetDirective(location=location)

        if name == "wrap":
            return WrapDirective(location=location)

        if name == "lang_opt":
            language = self._expect(TokenType.IDENTIFIER, "expected language after '.lang_opt'")
            # Language names such as c-sdk contain a dash
            language_name = language.value
            while self._check(TokenType.MINUS) and self._peek(1).type == TokenType.IDENTIFIER:
                self._advance()
                language_name += "-" + self._advance().value
            option = self._expect(TokenType.IDENTIFIER, "expected option name in '.lang_opt'")
            self._expect(TokenType.EQUALS, "expected '=' in '.lang_opt'")
            value_tokens = []
            while not self._check(TokenType.NEWLINE, TokenType.EOF):
                value_tokens.append(self._advance())
            if not value_tokens:
                raise self._error("expected value in '.lang_opt'", self._current())
            return LangOptDirective(
                location=location,
                language=language_name,
                option=option.value,
                value=_join_tokens(value_tokens),
            )

        raise self._error(f"unknown directive '.{directive_token.value}'", directive_token)

    # =========================================================================
    # Instruction Parsing
    # =========================================================================

    def _parse_instruction(self) -> ParsedInstruction:
        mnemonic_token = self._advance()
        mnemonic = mnemonic_token.value.lower()

        if mnemonic not in MNEMONICS:
            raise self._error(f"unknown instruction '{mnemonic_token.value}'", mnemonic_token)

        handler = getattr(self, f"_parse_{mnemonic}")
        operands = handler()

        side_set: Optional[ExprNode] = None
        delay: Optional[ExprNode] = None
        while True:
            if side_set is None and self._match_keyword("side", "sideset"):
                side_set = self._parse_expression()
            elif delay is None and self._match(TokenType.LBRACKET):
                delay = self._parse_expression()
                self._expect(TokenType.RBRACKET, "expected ']' after delay")
            else:
                break

        if delay is None:
            delay = ExprNode.number(0, mnemonic_token.location)

        return ParsedInstruction(
            location=mnemonic_token.location,
            operands=operands,
            delay=delay,
            side_set=side_set,
        )

    def _parse_register(self, table: dict, what: str):
        tok = self._current()
        if tok.type == TokenType.IDENTIFIER and tok.value.lower() in table:
            self._advance()
            return table[tok.value.lower()]
        choices = ", ".join(sorted(table))
        raise self._error(f"expected {what} ({choices})", tok)

    def _parse_nop(self) -> ParsedMov:
        return ParsedMov(
            destination=ParsedMovDestination.Y,
            op=MovOperation.NONE,
            source=ParsedMovSource.Y,
        )

    def _parse_jmp(self) -> ParsedJmp:
        condition = self._parse_jmp_condition()
        self._match(TokenType.COMMA)
        return ParsedJmp(condition=condition, address=self._parse_expression())

    def _parse_jmp_condition(self) -> JmpCondition:
        if self._check(TokenType.BANG):
            tok = self._peek(1)
            negated = {"x": JmpCondition.X_IS_ZERO, "y": JmpCondition.Y_IS_ZERO, "osre": JmpCondition.OSR_NOT_EMPTY}
            if tok.type == TokenType.IDENTIFIER and tok.value.lower() in negated:
                self._advance()
                self._advance()
                return negated[tok.value.lower()]
            raise self._error("expected x, y or osre after '!'", tok)

        if (
            self._is_keyword("x", "y")
            and self._peek(1).type == TokenType.MINUS
            and self._peek(2).type == TokenType.MINUS
        ):
            register = self._advance().value.lower()
            self._advance()
            self._advance()
            return JmpCondition.X_DEC_NON_ZERO if register == "x" else JmpCondition.Y_DEC_NON_ZERO

        if (
            self._is_keyword("x")
            and self._peek(1).type == TokenType.NE
            and self._is_keyword("y", offset=2)
        ):
            self._advance()
            self._advance()
            self._advance()
            return JmpCondition.X_NOT_EQUAL_Y

        if self._match_keyword("pin"):
            return JmpCondition.PIN_HIGH

        return JmpCondition.ALWAYS

    def _parse_wait(self) -> ParsedWait:
        if self._is_keyword(*WAIT_SOURCES):
            polarity = ExprNode.number(1, self._location())
        else:
            polarity = self._parse_expression()

        source = self._parse_register(WAIT_SOURCES, "wait source")
        self._match(TokenType.COMMA)

        if source == WaitSource.JMPPIN:
            if self._match(TokenType.PLUS):
                index = self._parse_expression()
            else:
                index = ExprNode.number(0, self._location())
            return ParsedWait(polarity=polarity, source=source, index=index)

        index = self._parse_expression()
        relative = False
        if source == WaitSource.IRQ:
            relative = self._match_keyword("rel") is not None
        return ParsedWait(polarity=polarity, source=source, index=index, relative=relative)

    def _parse_in(self) -> ParsedIn:
        source = self._parse_register(IN_SOURCES, "IN source")
        self._match(TokenType.COMMA)
        return ParsedIn(source=source, bit_count=self._parse_expression())

    def _parse_out(self) -> ParsedOut:
        destination = self._parse_register(OUT_DESTINATIONS, "OUT destination")
        self._match(TokenType.COMMA)
        return ParsedOut(destination=destination, bit_count=self._parse_expression())

    def _parse_push(self) -> ParsedPush:
        if_full, block = self._parse_fifo_flags("iffull")
        return ParsedPush(if_full=if_full, block=block)

    def _parse_pull(self) -> ParsedPull:
        if_empty, block = self._parse_fifo_flags("ifempty")
        return ParsedPull(if_empty=if_empty, block=block)

    def _parse_fifo_flags(self, condition_keyword: str) -> tuple[bool, bool]:
        conditional = False
        block = True
        while True:
            keyword = self._match_keyword(condition_keyword, "block", "noblock")
            if keyword == condition_keyword:
                conditional = True
            elif keyword == "block":
                block = True
            elif keyword == "noblock":
                block = False
            else:
                return conditional, block

    def _parse_mov(self) -> ParsedMov:
        destination = self._parse_mov_operand(MOV_DESTINATIONS, 0, "MOV destination")
        self._match(TokenType.COMMA)

        op = MovOperation.NONE
        if self._match(TokenType.BANG, TokenType.TILDE):
            op = MovOperation.INVERT
        elif self._match(TokenType.DOUBLE_COLON):
            op = MovOperation.BIT_REVERSE

        source = self._parse_mov_operand(MOV_SOURCES, 1, "MOV source")
        return ParsedMov(destination=destination, op=op, source=source)

    def _parse_mov_operand(self, table: dict, side: int, what: str):
        """Parse a MOV register or an rxfifo[y] / rxfifo[0..3] lane."""
        if not self._is_keyword("rxfifo"):
            return self._parse_register(table, what)

        self._advance()
        self._expect(TokenType.LBRACKET, "expected '[' after rxfifo")
        tok = self._current()
        if tok.type == TokenType.IDENTIFIER and tok.value.lower() == "y":
            lane = "y"
        elif tok.type == TokenType.NUMBER and tok.value in RX_FIFO_LANES:
            lane = tok.value
        else:
            raise self._error("expected y or 0-3 as rxfifo index", tok)
        self._advance()
        self._expect(TokenType.RBRACKET, "expected ']' after rxfifo index")
        return RX_FIFO_LANES[lane][side]

    def _parse_irq(self) -> ParsedIrq:
        clear = False
        wait = False
        index_mode = IrqIndexMode.DIRECT

        while self._is_keyword(*IRQ_MODIFIERS):
            keyword_token = self._current()
            keyword = self._advance().value.lower()
            if keyword == "wait":
                wait = True
            elif keyword == "clear":
                clear = True
            elif keyword in ("prev", "next"):
                if index_mode != IrqIndexMode.DIRECT:
                    raise self._error("only one of prev/next may be given", keyword_token)
                index_mode = IrqIndexMode.PREV if keyword == "prev" else IrqIndexMode.NEXT

        self._match(TokenType.COMMA)
        index = self._parse_expression()

        rel_token = self._current()
        if self._match_keyword("rel"):
            if index_mode != IrqIndexMode.DIRECT:
                raise self._error("'rel' cannot be combined with prev/next", rel_token)
            index_mode = IrqIndexMode.REL

        return ParsedIrq(clear=clear, wait=wait, index=index, index_mode=index_mode)

    def _parse_set(self) -> ParsedSet:
        destination = self._parse_register(SET_DESTINATIONS, "SET destination")
        self._match(TokenType.COMMA)
        return ParsedSet(destination=destination, data=self._parse_expression())

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> ExprNode:
        """Parse addition and subtraction (lowest precedence)."""
        left = self._parse_multiplicative()

        while True:
            op = self._match(TokenType.PLUS, TokenType.MINUS)
            if op is None:
                return left
            right = self._parse_multiplicative()
            left = ExprNode.binary(op.value, left, right)

    def _parse_multiplicative(self) -> ExprNode:
        left = self._parse_unary()

        while True:
            op = self._match(TokenType.STAR, TokenType.SLASH)
            if op is None:
                return left
            right = self._parse_unary()
            left = ExprNode.binary(op.value, left, right)

    def _parse_unary(self) -> ExprNode:
        tok = self._current()
        if self._match(TokenType.MINUS):
            return ExprNode.unary("-", self._parse_unary(), tok.location)
        if self._match(TokenType.DOUBLE_COLON):
            return ExprNode.unary("::", self._parse_unary(), tok.location)
        if self._match(TokenType.PLUS):
            return self._parse_unary()
        return self._parse_primary()

    def _parse_primary(self) -> ExprNode:
        tok = self._current()

        if tok.type == TokenType.NUMBER:
            self._advance()
            return ExprNode.number(tok.value, tok.location)

        if tok.type == TokenType.IDENTIFIER:
            self._advance()
            return ExprNode.symbol(tok.value, tok.location)

        if tok.type == TokenType.LPAREN:
            self._advance()
            node = self._parse_expression()
            self._expect(TokenType.RPAREN, "expected ')' to close expression")
            return node

        found = tok.text or (tok.value if tok.value is not None else "end of line")
        raise self._error(f"expected expression, got '{found}'", tok)


# =============================================================================
# Helpers
# =============================================================================

def _join_tokens(tokens: list[Token]) -> str:
    """Rebuild source text from tokens, keeping the spacing between them."""
    parts = []
    previous: Optional[Token] = None
    for tok in tokens:
        if previous is not None and (
            tok.line != previous.line or tok.column > previous.column + len(previous.text)
        ):
            parts.append(" ")
        parts.append(tok.text)
        previous = tok
    return "".join(parts)


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_program_source(source: str, filename: str = "<input>") -> ParsedProgram:
    """
    Tokenize and parse a single program (no .program directive).

    Args:
        source: Assembly source text
        filename: Source filename for error messages

    Returns:
        The parsed program
    """
    tokens = list(Lexer(source, filename).tokenize())
    return Parser(tokens, filename, source).parse_program()


def parse_file_source(source: str, filename: str = "<input>") -> ParsedFile:
    """
    Tokenize and parse a file holding one or more .program blocks.

    Args:
        source: Assembly source text
        filename: Source filename for error messages

    Returns:
        The parsed file
    """
    tokens = list(Lexer(source, filename).tokenize())
    return Parser(tokens, filename, source).parse_file()
