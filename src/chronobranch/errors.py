"""
Exceptions and diagnostics for chronobranch.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Execution errors (timeline, branch/merge, I/O, values)
- E5xx: Configuration errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E401, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None   # None for errors raised below the parser
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        header = f"{self.severity.value}[{self.code}]: {self.message}"
        if self.span is not None:
            header = f"{self.span.start}: {header}"
        parts.append(header)

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class ChronoError(Exception):
    """Base exception for chronobranch errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(ChronoError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(ChronoError):
    """Error during parsing (E1xx)."""
    pass


class ConfigError(ChronoError):
    """Invalid run configuration (E5xx)."""
    pass


class ExecutionError(ChronoError):
    """
    Error raised while interpreting a program (E4xx).

    Every execution error names its kind and keeps the identifiers
    involved so callers can report them without parsing messages.
    """
    kind = "ExecutionError"
    code = "E400"

    def __init__(
        self,
        message: str,
        variable: Optional[str] = None,
        branch: Optional[str] = None,
        ordinal: Optional[int] = None,
        span: Optional[SourceSpan] = None,
        hints: Optional[List[str]] = None,
    ):
        self.variable = variable
        self.branch = branch
        self.ordinal = ordinal
        super().__init__(Diagnostic(
            code=self.code,
            message=message,
            severity=ErrorSeverity.ERROR,
            span=span,
            hints=list(hints or []),
        ))

    def attach_source(self, span: SourceSpan, source_line: Optional[str]) -> "ExecutionError":
        """Fill in the statement location if the raiser did not know it."""
        if self.diagnostic.span is None:
            self.diagnostic.span = span
            self.diagnostic.source_line = source_line
        return self


class UnboundVariableError(ExecutionError):
    """A variable was read before any write (E401)."""
    kind = "UnboundVariable"
    code = "E401"


class InvalidBranchArityError(ExecutionError):
    """A branch was requested with fewer than one potential (E402)."""
    kind = "InvalidBranchArity"
    code = "E402"


class UnknownPotentialError(ExecutionError):
    """A potential ordinal does not exist or cannot be resolved (E403)."""
    kind = "UnknownPotential"
    code = "E403"


class IncompletePotentialsError(ExecutionError):
    """Merge attempted before the needed potentials resolved (E404)."""
    kind = "IncompletePotentials"
    code = "E404"


class BranchAlreadyClosedError(ExecutionError):
    """Merge or abort attempted on a merged or aborted branch (E405)."""
    kind = "BranchAlreadyClosed"
    code = "E405"


class InputExhaustedError(ExecutionError):
    """Input requested with none available (E406)."""
    kind = "InputExhausted"
    code = "E406"


class TypeMismatchError(ExecutionError):
    """Operation applied to a value of the wrong kind (E407)."""
    kind = "TypeMismatch"
    code = "E407"


class NumericOverflowError(ExecutionError):
    """Numeric policy flagged an overflow or an undefined result (E408)."""
    kind = "NumericOverflow"
    code = "E408"


class UnknownBranchError(ExecutionError):
    """No branch carries the requested label (E409)."""
    kind = "UnknownBranch"
    code = "E409"


class DuplicateBranchError(ExecutionError):
    """A branch label is already used by an open branch (E410)."""
    kind = "DuplicateBranch"
    code = "E410"


class StaleBranchError(ExecutionError):
    """The branch target moved on after the fork and stale merges are rejected (E411)."""
    kind = "StaleBranch"
    code = "E411"


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with matching quotes"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated multi-line comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated multi-line comment (expected closing */)",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\\", \\\\, \\0"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_hex_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E007: Invalid hexadecimal literal."""
    diag = Diagnostic(
        code="E007",
        message=f"invalid hexadecimal literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["hex literals must contain at least one hex digit: 0x1, 0xFF, etc."],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of file."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of file, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_mixed_branch_body(span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Branch body mixes potential blocks with plain statements."""
    diag = Diagnostic(
        code="E104",
        message="branch body mixes 'potential' blocks with plain statements",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["wrap every statement in a 'potential { ... }' block, or use none"],
    )
    return ParserError(diag)


def error_invalid_ordinal(text: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E105: Select ordinal must be a positive integer literal."""
    diag = Diagnostic(
        code="E105",
        message=f"invalid potential ordinal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["potentials are numbered from 1 in the order they are written"],
    )
    return ParserError(diag)


# --- Execution warnings ---

def warning_potential_failed(branch: str, ordinal: int, error: ExecutionError) -> Diagnostic:
    """W401: A potential's block raised and was marked failed."""
    return Diagnostic(
        code="W401",
        message=f"potential {ordinal} of branch '{branch}' failed: {error.diagnostic.message}",
        severity=ErrorSeverity.WARNING,
        span=error.diagnostic.span,
        source_line=error.diagnostic.source_line,
        hints=[f"merging this potential raises IncompletePotentials; select another or abort '{branch}'"],
    )


def warning_branch_left_open(branch: str, span: Optional[SourceSpan] = None) -> Diagnostic:
    """W402: A branch was still open when the program ended."""
    return Diagnostic(
        code="W402",
        message=f"branch '{branch}' was never merged or aborted",
        severity=ErrorSeverity.WARNING,
        span=span,
    )


def warning_stale_merge(branch: str, variable: str, opened_at: int, latest: int,
                        scope: Optional[str] = None) -> Diagnostic:
    """
    W403: A branch merged after its target was rewritten.

    ``scope`` names the potential whose private copy was forked; the
    positions are then private write counts rather than timeline indices.
    """
    def point(n: int) -> str:
        return f"time {n}" if scope is None else f"private write {n} of {scope}"

    return Diagnostic(
        code="W403",
        message=(f"branch '{branch}' forked '{variable}' at {point(opened_at)} "
                 f"but '{variable}' was rewritten at {point(latest)} before the merge"),
        severity=ErrorSeverity.WARNING,
    )


def warning_error_after_close(branch: str, ordinal: int, error: ExecutionError) -> Diagnostic:
    """W404: A potential raised after closing its own branch."""
    return Diagnostic(
        code="W404",
        message=(f"potential {ordinal} of branch '{branch}' raised after the branch was "
                 f"closed: {error.diagnostic.message}"),
        severity=ErrorSeverity.WARNING,
        span=error.diagnostic.span,
        source_line=error.diagnostic.source_line,
    )


class DiagnosticCollector:
    """Collects diagnostics during compilation and execution."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: ChronoError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def has_warnings(self) -> bool:
        return self.warning_count > 0

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"\n{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
