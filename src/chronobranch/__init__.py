"""
chronobranch - a scripting language with explicit branch/merge control flow.

At a `branch` a variable's future is explored along several potentials; a
later `merge` picks exactly one of them as the variable's next value. Every
variable keeps its full history on an append-only timeline.

This package provides:
- Lexer / Parser: Source text to Program AST
- Runtime: Timeline store, branch manager, merge resolver and interpreter
- Config: RunConfig loaded from YAML, environment and CLI flags

Usage:
    from chronobranch import compile_and_run

    result = compile_and_run('''
        let x = 1;
        branch x {
            potential { x = x + 1; }
            potential { x = x * 10; }
        }
        merge x select 1;
        print x;
    ''')
    print(result.output_lines)    # ['2']
    print(result.timeline.entries("x"))
"""

__version__ = "0.1.0"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
    is_statement_keyword,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    Expression,
    Literal,
    Identifier,
    BinaryOp,
    UnaryOp,
    ListLiteral,
    SetLiteral,
    Statement,
    LetStatement,
    Block,
    BranchStatement,
    MergeStatement,
    AbortStatement,
    PrintStatement,
    InputStatement,
    ListPushStatement,
    SetInsertStatement,
    Program,
)

from .errors import (
    ChronoError,
    LexerError,
    ParserError,
    ConfigError,
    ExecutionError,
    UnboundVariableError,
    InvalidBranchArityError,
    UnknownPotentialError,
    IncompletePotentialsError,
    BranchAlreadyClosedError,
    InputExhaustedError,
    TypeMismatchError,
    NumericOverflowError,
    UnknownBranchError,
    DuplicateBranchError,
    StaleBranchError,
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
)

from .types import (
    Type,
    TypeCategory,
    PrimitiveType,
    CollectionType,
    PotentialMarkerType,
    INT, FLOAT, BOOL, STRING, LIST, SET, POTENTIAL,
    resolve_type_name,
)

from .runtime import (
    # Interpreter
    Interpreter,
    ExecutionResult,
    execute,
    compile_and_run,
    # Values
    Value,
    format_value,
    # Engine
    TimelineStore,
    TimelineEntry,
    BranchManager,
    MergeResolver,
    NumericPolicy,
    StaleMergePolicy,
    ExecutionContext,
    # Collaborators
    ConsoleInput,
    ScriptedInput,
    ConsoleOutput,
    CollectingOutput,
    # Provenance
    Provenance,
)

from .config import (
    RunConfig,
    load_config,
)

__all__ = [
    '__version__',

    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    'is_statement_keyword',

    # Lexer
    'Lexer',
    'tokenize',

    # Parser
    'Parser',
    'parse',

    # AST nodes
    'AstNode',
    'Expression',
    'Literal',
    'Identifier',
    'BinaryOp',
    'UnaryOp',
    'ListLiteral',
    'SetLiteral',
    'Statement',
    'LetStatement',
    'Block',
    'BranchStatement',
    'MergeStatement',
    'AbortStatement',
    'PrintStatement',
    'InputStatement',
    'ListPushStatement',
    'SetInsertStatement',
    'Program',

    # Errors
    'ChronoError',
    'LexerError',
    'ParserError',
    'ConfigError',
    'ExecutionError',
    'UnboundVariableError',
    'InvalidBranchArityError',
    'UnknownPotentialError',
    'IncompletePotentialsError',
    'BranchAlreadyClosedError',
    'InputExhaustedError',
    'TypeMismatchError',
    'NumericOverflowError',
    'UnknownBranchError',
    'DuplicateBranchError',
    'StaleBranchError',
    'Diagnostic',
    'DiagnosticCollector',
    'ErrorSeverity',

    # Types
    'Type',
    'TypeCategory',
    'PrimitiveType',
    'CollectionType',
    'PotentialMarkerType',
    'INT', 'FLOAT', 'BOOL', 'STRING', 'LIST', 'SET', 'POTENTIAL',
    'resolve_type_name',

    # Runtime
    'Interpreter',
    'ExecutionResult',
    'execute',
    'compile_and_run',
    'Value',
    'format_value',
    'TimelineStore',
    'TimelineEntry',
    'BranchManager',
    'MergeResolver',
    'NumericPolicy',
    'StaleMergePolicy',
    'ExecutionContext',
    'ConsoleInput',
    'ScriptedInput',
    'ConsoleOutput',
    'CollectingOutput',
    'Provenance',

    # Config
    'RunConfig',
    'load_config',
]
