"""
PIO Assembly Language Lexer
===========================

This module implements a lexer (tokenizer) for PIO assembly language.
It converts source text into a stream of tokens that the parser can process.

Token Types
-----------
- IDENTIFIER: Mnemonics, keywords, label and define names
- DIRECTIVE: Dot-prefixed directive names (.program, .wrap, ...)
- NUMBER: Decimal, hex (0xFF), binary (0b1010)
- STRING: Double-quoted strings (only meaningful in .lang_opt)
- CODE_BLOCK: A "% lang { ... %}" passthrough block
- Operators: + - * / ! ~ != :: =
- Delimiters: , : [ ] ( )
- NEWLINE: End of line
- EOF: End of file

Comments
--------
- Semicolon or double slash: "; comment", "// comment" (to end of line)
- Block comments: "/* ... */" (may span lines)

Example
-------
>>> from pio_sdk.assembler.lexer import Lexer
>>> for token in Lexer("loop: jmp x-- loop").tokenize():
...     print(token)
Token(IDENTIFIER, 'loop', 1:1)
Token(COLON, ':', 1:5)
Token(IDENTIFIER, 'jmp', 1:7)
Token(IDENTIFIER, 'x', 1:11)
Token(MINUS, '-', 1:12)
Token(MINUS, '-', 1:13)
Token(IDENTIFIER, 'loop', 1:15)
Token(EOF, 1:19)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from pio_sdk.errors import AssemblySyntaxError, SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for PIO assembly language."""

    # Structural tokens
    NEWLINE = auto()
    EOF = auto()

    # Values
    IDENTIFIER = auto()
    DIRECTIVE = auto()
    NUMBER = auto()
    STRING = auto()
    CODE_BLOCK = auto()

    # Operators
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /
    BANG = auto()           # !
    TILDE = auto()          # ~
    NE = auto()             # !=
    DOUBLE_COLON = auto()   # :: (bit reverse)
    EQUALS = auto()         # =

    # Delimiters
    COMMA = auto()          # ,
    COLON = auto()          # :
    LBRACKET = auto()       # [
    RBRACKET = auto()       # ]
    LPAREN = auto()         # (
    RPAREN = auto()         # )


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token from the source code.

    Attributes:
        type: The TokenType classification
        value: Identifier name, directive name (without the dot), integer
               value, string contents, or (language, body) for code blocks
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
        text: The raw source text of the token
    """
    type: TokenType
    value: str | int | tuple[str, str] | None
    line: int
    column: int
    filename: str
    text: str = ""

    def __repr__(self) -> str:
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes PIO assembly source code.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    SINGLE_CHAR_TOKENS = {
        "+": TokenType.PLUS,
        "-": TokenType.MINUS,
        "*": TokenType.STAR,
        "~": TokenType.TILDE,
        "=": TokenType.EQUALS,
        ",": TokenType.COMMA,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
    }

    def __init__(self, source: str, filename: str = "<input>", line_number: int = 1):
        """
        Initialize the lexer with source code.

        Args:
            source: The assembly source code to tokenize
            filename: Name of the source file (for error messages)
            line_number: Starting line number
        """
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = line_number
        self._column = 1
        self._at_line_start = True
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects representing each lexical element

        Raises:
            AssemblySyntaxError: If invalid syntax is encountered
        """
        while not self._at_end():
            if self._skip_whitespace():
                continue

            if self._skip_comment():
                continue

            token = self._scan_token()
            if token is not None:
                yield token

        yield self._make_token(TokenType.EOF, None)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset, '' past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, tracking line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._at_line_start = True
            self._line_start_pos = self._pos
        else:
            self._column += 1
            if char not in " \t\r":
                self._at_line_start = False

        return char

    def _match(self, expected: str) -> bool:
        """Consume next character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: str | int | tuple[str, str] | None,
        start_line: Optional[int] = None,
        start_column: Optional[int] = None,
        start_pos: Optional[int] = None,
    ) -> Token:
        text = self.source[start_pos:self._pos] if start_pos is not None else ""
        return Token(
            type=token_type,
            value=value,
            line=start_line or self._line,
            column=start_column or self._column,
            filename=self.filename,
            text=text,
        )

    def _error(self, message: str, token: Optional[str] = None) -> AssemblySyntaxError:
        """Create a syntax error at the current location."""
        location = SourceLocation(self.filename, self._line, self._column)
        return AssemblySyntaxError(
            message, location, source_line=self.get_current_line(), token=token
        )

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace(self) -> bool:
        """Skip spaces, tabs and carriage returns (not newlines)."""
        skipped = False
        # '' in ' \t\r' is True, so check for end of input first
        while self._peek() and self._peek() in " \t\r":
            self._advance()
            skipped = True
        return skipped

    def _skip_comment(self) -> bool:
        """Skip a ';', '//' or '/* */' comment."""
        char = self._peek()

        if char == ";" or (char == "/" and self._peek(1) == "/"):
            while not self._at_end() and self._peek() != "\n":
                self._advance()
            return True

        if char == "/" and self._peek(1) == "*":
            self._advance()
            self._advance()
            while not self._at_end():
                if self._peek() == "*" and self._peek(1) == "/":
                    self._advance()
                    self._advance()
                    return True
                self._advance()
            raise self._error("unterminated block comment")

        return False

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Optional[Token]:
        """Scan the next token from source."""
        start_line = self._line
        start_column = self._column
        start_pos = self._pos

        char = self._peek()

        if char == "\n":
            self._advance()
            return self._make_token(TokenType.NEWLINE, None, start_line, start_column, start_pos)

        if char == "%" and self._at_line_start:
            return self._scan_code_block(start_line, start_column, start_pos)

        if char in self.IDENT_START:
            return self._scan_identifier(start_line, start_column, start_pos)

        if char == ".":
            self._advance()
            if not (self._peek() and self._peek() in self.IDENT_START):
                raise self._error("expected directive name after '.'", token=".")
            name = self._scan_name()
            return self._make_token(TokenType.DIRECTIVE, name, start_line, start_column, start_pos)

        if char.isdigit():
            return self._scan_number(start_line, start_column, start_pos)

        if char == '"':
            return self._scan_string(start_line, start_column, start_pos)

        if char == ":":
            self._advance()
            if self._match(":"):
                return self._make_token(TokenType.DOUBLE_COLON, "::", start_line, start_column, start_pos)
            return self._make_token(TokenType.COLON, ":", start_line, start_column, start_pos)

        if char == "!":
            self._advance()
            if self._match("="):
                return self._make_token(TokenType.NE, "!=", start_line, start_column, start_pos)
            return self._make_token(TokenType.BANG, "!", start_line, start_column, start_pos)

        if char == "/":
            self._advance()
            return self._make_token(TokenType.SLASH, "/", start_line, start_column, start_pos)

        if char in self.SINGLE_CHAR_TOKENS:
            self._advance()
            return self._make_token(
                self.SINGLE_CHAR_TOKENS[char], char, start_line, start_column, start_pos
            )

        self._advance()
        raise self._error(f"unexpected character '{char}'", token=char)

    def _scan_name(self) -> str:
        chars = []
        # '' in IDENT_CHARS is True, so check for end of input first
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())
        return "".join(chars)

    def _scan_identifier(self, start_line: int, start_column: int, start_pos: int) -> Token:
        """Scan an identifier (mnemonic, keyword, label or define name)."""
        name = self._scan_name()
        return self._make_token(TokenType.IDENTIFIER, name, start_line, start_column, start_pos)

    def _scan_number(self, start_line: int, start_column: int, start_pos: int) -> Token:
        """Scan a decimal, 0x hexadecimal or 0b binary number."""
        base = 10
        digits = string.digits

        if self._peek() == "0" and self._peek(1).lower() in ("x", "b"):
            base = 16 if self._peek(1).lower() == "x" else 2
            digits = string.hexdigits if base == 16 else "01"
            self._advance()
            self._advance()

        chars = []
        while self._peek() and self._peek() in digits:
            chars.append(self._advance())

        if not chars:
            raise self._error("expected digits after number prefix")

        if self._peek() and self._peek() in self.IDENT_CHARS:
            bad = self.source[start_pos:self._pos + 1]
            raise self._error(f"invalid number '{bad}'", token=bad)

        value = int("".join(chars), base)
        return self._make_token(TokenType.NUMBER, value, start_line, start_column, start_pos)

    def _scan_string(self, start_line: int, start_column: int, start_pos: int) -> Token:
        """Scan a double-quoted string literal (no escapes)."""
        self._advance()

        chars = []
        while not self._at_end():
            char = self._peek()
            if char == '"':
                self._advance()
                return self._make_token(
                    TokenType.STRING, "".join(chars), start_line, start_column, start_pos
                )
            if char == "\n":
                break
            chars.append(self._advance())

        raise self._error("unterminated string literal")

    def _scan_code_block(self, start_line: int, start_column: int, start_pos: int) -> Token:
        """
        Scan a '% lang {' ... '%}' passthrough block.

        The block body is kept verbatim; the closing '%}' must start a line.
        """
        self._advance()  # consume %

        header = []
        while not self._at_end() and self._peek() not in "{\n":
            header.append(self._advance())
        if not self._match("{"):
            raise self._error("expected '{' to open code block")

        language = "".join(header).strip()
        if not language:
            raise self._error("expected language name in code block")

        # Rest of the opening line is ignored
        while not self._at_end() and self._peek() != "\n":
            self._advance()
        self._advance()

        body_start = self._pos
        while not self._at_end():
            line_end = self.source.find("\n", self._pos)
            if line_end == -1:
                line_end = len(self.source)
            if self.source[self._pos:line_end].strip().startswith("%}"):
                body = self.source[body_start:self._pos]
                while self._pos < line_end:
                    self._advance()
                return self._make_token(
                    TokenType.CODE_BLOCK, (language, body), start_line, start_column, start_pos
                )
            while self._pos <= line_end and not self._at_end():
                self._advance()

        raise AssemblySyntaxError(
            f"unterminated code block '% {language} {{'",
            SourceLocation(self.filename, start_line, start_column),
        )

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def get_current_line(self) -> str:
        """Get the current line of source text, for error reporting."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]
