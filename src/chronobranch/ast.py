"""
Abstract Syntax Tree (AST) node definitions for chronobranch.

The AST is the instruction stream the interpreter consumes. A program is a
flat list of statements; the only nested structure is a branch, whose body
holds one statement block per potential.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Union
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value (int, float, string, bool)."""
    value: Union[int, float, str, bool]
    literal_type: TokenType  # INT_LITERAL, FLOAT_LITERAL, STRING_LITERAL, BOOL_LITERAL
    text: str = ""  # Source text, needed to wrap out-of-range float literals exactly


@dataclass
class Identifier(Expression):
    """A variable reference."""
    name: str


@dataclass
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x == y)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class UnaryOp(Expression):
    """A unary operation (-n)."""
    operator: TokenType
    operand: Expression


@dataclass
class ListLiteral(Expression):
    """A list literal (e.g., [1, 2, 3] or [])."""
    elements: List[Expression]


@dataclass
class SetLiteral(Expression):
    """A set literal (e.g., {1, 2, 3} or {})."""
    elements: List[Expression]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class LetStatement(Statement):
    """Bind a new value to a variable: `let x = expr;` or `x = expr;`."""
    name: str
    initializer: Expression


@dataclass
class Block(AstNode):
    """A brace-delimited sequence of statements."""
    statements: List[Statement] = field(default_factory=list)


@dataclass
class BranchStatement(Statement):
    """
    Open a branch on a variable and explore each potential in order.

        branch x as b {
            potential { let x = 1; }
            potential { let x = 2; }
        }
    """
    target: str
    label: Optional[str]
    potentials: List[Block]

    @property
    def effective_label(self) -> str:
        """The label merge/abort refer to; defaults to the target name."""
        return self.label or self.target


@dataclass
class MergeStatement(Statement):
    """Collapse a branch: `merge b select 2;` (select may be omitted for N == 1)."""
    label: str
    ordinal: Optional[int] = None


@dataclass
class AbortStatement(Statement):
    """Discard a branch without writing: `abort b;`."""
    label: str


@dataclass
class PrintStatement(Statement):
    """Hand a value to the output collaborator: `print expr;`."""
    value: Expression


@dataclass
class InputStatement(Statement):
    """Read one value from the input collaborator: `input "prompt" name;`."""
    name: str
    prompt: Optional[str] = None


@dataclass
class ListPushStatement(Statement):
    """Append to a list variable: `listpush xs expr;`."""
    name: str
    value: Expression


@dataclass
class SetInsertStatement(Statement):
    """Insert into a set variable: `setinsert s expr;`."""
    name: str
    value: Expression


# =============================================================================
# Program
# =============================================================================

@dataclass
class Program(AstNode):
    """A complete parsed program."""
    statements: List[Statement] = field(default_factory=list)
    filename: Optional[str] = None

    def walk(self):
        """Yield every statement, descending into potential blocks."""
        yield from _walk_statements(self.statements)


def _walk_statements(statements: List[Statement]):
    for stmt in statements:
        yield stmt
        if isinstance(stmt, BranchStatement):
            for block in stmt.potentials:
                yield from _walk_statements(block.statements)
