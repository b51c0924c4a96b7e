"""
Token types for the chronobranch lexer.

Token type categories follow the diagnostic code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Execution errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    INT_LITERAL = auto()        # 42, 0xff
    FLOAT_LITERAL = auto()      # 3.14, 1e-9, 2.5E+10
    STRING_LITERAL = auto()     # "hello"
    BOOL_LITERAL = auto()       # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Statement keywords ---
    LET = auto()                # let
    BRANCH = auto()             # branch
    POTENTIAL = auto()          # potential
    MERGE = auto()              # merge
    SELECT = auto()             # select
    ABORT = auto()              # abort
    AS = auto()                 # as
    PRINT = auto()              # print
    INPUT = auto()              # input
    LISTPUSH = auto()           # listpush
    SETINSERT = auto()          # setinsert

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    DOUBLE_SLASH = auto()       # // (floor division)
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Delimiters ---
    LBRACE = auto()             # { (blocks and set literals)
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,

    # --- Special ---
    EOF = auto()                # end of file


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # The actual value (int, float, str, etc.)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL,
                         TokenType.STRING_LITERAL, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "branch": TokenType.BRANCH,
    "potential": TokenType.POTENTIAL,
    "merge": TokenType.MERGE,
    "select": TokenType.SELECT,
    "abort": TokenType.ABORT,
    "as": TokenType.AS,
    "print": TokenType.PRINT,
    "input": TokenType.INPUT,
    "listpush": TokenType.LISTPUSH,
    "setinsert": TokenType.SETINSERT,

    # Boolean literals
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
}

# Keywords that begin a statement
STATEMENT_KEYWORDS: frozenset = frozenset({
    TokenType.LET,
    TokenType.BRANCH,
    TokenType.MERGE,
    TokenType.ABORT,
    TokenType.PRINT,
    TokenType.INPUT,
    TokenType.LISTPUSH,
    TokenType.SETINSERT,
})


def is_statement_keyword(token_type: TokenType) -> bool:
    """Check if a token type starts a statement."""
    return token_type in STATEMENT_KEYWORDS
