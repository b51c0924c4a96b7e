"""
Statement-by-statement interpreter for chronobranch programs.

Walks the Program AST against an ExecutionContext: ordinary statements write
the shared timeline, `branch` explores each potential in order, and
`merge`/`abort` collapse branches through the merge resolver.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from .values import (
    Value, bool_val, string_val, list_val, set_val, list_push, set_insert, format_value,
)
from .numeric import Arithmetic
from .timeline import TimelineStore
from .branches import Branch
from .context import ExecutionContext, create_context
from .io import EXHAUSTED, InputSource, OutputSink, ScriptedInput, CollectingOutput
from .provenance import Provenance, create_provenance

from ..ast import (
    Program, Statement, LetStatement, BranchStatement, MergeStatement, AbortStatement,
    PrintStatement, InputStatement, ListPushStatement, SetInsertStatement, Block,
    Expression, Literal, Identifier, BinaryOp, UnaryOp, ListLiteral, SetLiteral,
)
from ..errors import (
    ChronoError, ExecutionError, DiagnosticCollector, TypeMismatchError, InputExhaustedError,
    warning_potential_failed, warning_branch_left_open, warning_error_after_close,
)
from ..types import INT, FLOAT, STRING, LIST, SET
from ..tokens import TokenType

logger = logging.getLogger(__name__)

_ARITHMETIC_SYMBOLS = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.DOUBLE_SLASH: "//",
    TokenType.PERCENT: "%",
}

_COMPARISON_SYMBOLS = {
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
}


@dataclass
class ExecutionResult:
    """Result of running a program."""
    success: bool
    error: Optional[ChronoError] = None
    outputs: List[Value] = field(default_factory=list)
    timeline: Optional[TimelineStore] = None
    branches: List[Branch] = field(default_factory=list)
    diagnostics: DiagnosticCollector = field(default_factory=DiagnosticCollector)
    provenance: Optional[Provenance] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return self.error.diagnostic.message

    @property
    def output_lines(self) -> List[str]:
        """Display form of every printed value."""
        return [format_value(v) for v in self.outputs]

    @property
    def state(self) -> Dict[str, Value]:
        """Final value of every bound variable."""
        if self.timeline is None:
            return {}
        return self.timeline.current_state()


class Interpreter:
    """
    Interpreter for chronobranch programs.

    Evaluates AST nodes by dispatching to type-specific methods. One
    interpreter can run many programs; each run gets a fresh context.
    """

    def __init__(self, config=None):
        """
        Initialize the interpreter.

        Args:
            config: RunConfig to run with (defaults to ``RunConfig()``)
        """
        from ..config import RunConfig

        self.config = config if config is not None else RunConfig()
        self.arithmetic = Arithmetic(self.config.numeric_policy, self.config.int_bits)
        self._statement_count = 0

    def execute(
        self,
        program: Program,
        input_source: Optional[InputSource] = None,
        output_sink: Optional[OutputSink] = None,
        source: str = "",
        store: Optional[TimelineStore] = None,
    ) -> ExecutionResult:
        """
        Run a program.

        Args:
            program: The parsed program
            input_source: Values for `input` statements (none by default)
            output_sink: Receiver for `print` (values are collected by default)
            source: Original source code for error messages and provenance
            store: Timeline to run against (a fresh one by default)

        Returns:
            ExecutionResult with outputs, the final timeline and diagnostics
        """
        ctx = create_context(
            source=source,
            stale_merge=self.config.stale_merge,
            store=store,
            input_source=input_source if input_source is not None else ScriptedInput(),
            output_sink=output_sink if output_sink is not None else CollectingOutput(),
        )
        self._statement_count = 0
        error = None

        try:
            for stmt in program.statements:
                self._execute_statement(stmt, ctx)
        except ExecutionError as e:
            logger.debug("run halted: %s", e.diagnostic.message)
            error = e
            ctx.diagnostics.add_error(e)

        if self.config.warn_open_branches:
            for branch in ctx.branches.open_branches():
                logger.warning("branch '%s' on '%s' left open at end of run",
                               branch.label, branch.target)
                ctx.diagnostics.add(warning_branch_left_open(branch.label))

        provenance = create_provenance(
            program=program.filename or "<string>",
            source=source,
            config=self.config.to_dict(),
            statements=self._statement_count,
            branches=len(ctx.branches.all()),
            writes=ctx.store.write_count,
        )

        return ExecutionResult(
            success=error is None,
            error=error,
            outputs=list(ctx.outputs),
            timeline=ctx.store,
            branches=ctx.branches.all(),
            diagnostics=ctx.diagnostics,
            provenance=provenance,
        )

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statement(self, stmt: Statement, ctx: ExecutionContext) -> None:
        """Execute a statement."""
        self._statement_count += 1
        try:
            if isinstance(stmt, LetStatement):
                self._execute_let(stmt, ctx)
            elif isinstance(stmt, BranchStatement):
                self._execute_branch(stmt, ctx)
            elif isinstance(stmt, MergeStatement):
                ctx.merge(stmt.label, stmt.ordinal)
            elif isinstance(stmt, AbortStatement):
                ctx.abort(stmt.label)
            elif isinstance(stmt, PrintStatement):
                self._execute_print(stmt, ctx)
            elif isinstance(stmt, InputStatement):
                self._execute_input(stmt, ctx)
            elif isinstance(stmt, ListPushStatement):
                self._execute_list_push(stmt, ctx)
            elif isinstance(stmt, SetInsertStatement):
                self._execute_set_insert(stmt, ctx)
            else:
                raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")
        except ExecutionError as e:
            e.attach_source(stmt.span, ctx.get_source_line(stmt.span.start.line))
            raise

    def _execute_let(self, stmt: LetStatement, ctx: ExecutionContext) -> None:
        value = self._evaluate(stmt.initializer, ctx)
        ctx.write(stmt.name, value)

    def _execute_branch(self, stmt: BranchStatement, ctx: ExecutionContext) -> None:
        """Open a branch and explore its potentials in ordinal order."""
        branch = ctx.open_branch(stmt.target, len(stmt.potentials), stmt.label)
        for ordinal, block in enumerate(stmt.potentials, start=1):
            if not branch.is_open:
                logger.debug("branch '%s' closed from inside potential %d; skipping the rest",
                             branch.label, ordinal - 1)
                break
            self._run_potential(branch, ordinal, block, ctx)

    def _run_potential(self, branch: Branch, ordinal: int, block: Block,
                       ctx: ExecutionContext) -> None:
        """
        Run one potential's block against its private copy of the target.

        An execution error fails this potential only; the branch goes on to
        the next one. If the block closed its own branch first, the error is
        reported as a warning instead.
        """
        failure = None
        with ctx.enter(branch, ordinal) as potential:
            try:
                for stmt in block.statements:
                    self._execute_statement(stmt, ctx)
            except ExecutionError as e:
                failure = e

        if not branch.is_open:
            if failure is not None:
                # The branch is gone, so there is no potential left to fail.
                logger.warning("branch '%s' potential %d raised after closing its branch: %s",
                               branch.label, ordinal, failure.diagnostic.message)
                ctx.diagnostics.add(warning_error_after_close(branch.label, ordinal, failure))
            return
        if failure is not None:
            ctx.branches.fail_potential(branch, ordinal, failure)
            ctx.diagnostics.add(warning_potential_failed(branch.label, ordinal, failure))
        else:
            ctx.branches.resolve_potential(branch, ordinal, potential.private_value)

    def _execute_print(self, stmt: PrintStatement, ctx: ExecutionContext) -> None:
        value = self._evaluate(stmt.value, ctx)
        ctx.outputs.append(value)
        ctx.output_sink.emit(value)

    def _execute_input(self, stmt: InputStatement, ctx: ExecutionContext) -> None:
        value = ctx.input_source.next(stmt.prompt)
        if value is EXHAUSTED:
            raise InputExhaustedError(
                f"no input left for '{stmt.name}'",
                variable=stmt.name,
                hints=["supply more values with --input, or end the input stream later"],
            )
        # Input numbers, including those inside collections, obey the same
        # width and overflow rules as literals.
        value = self.arithmetic.admit(value, what=f"input for '{stmt.name}'")
        ctx.write(stmt.name, value)

    def _execute_list_push(self, stmt: ListPushStatement, ctx: ExecutionContext) -> None:
        collection = self._read_collection(stmt.name, LIST, "listpush", ctx)
        element = self._evaluate(stmt.value, ctx)
        ctx.write(stmt.name, list_push(collection, element))

    def _execute_set_insert(self, stmt: SetInsertStatement, ctx: ExecutionContext) -> None:
        collection = self._read_collection(stmt.name, SET, "setinsert", ctx)
        element = self._evaluate(stmt.value, ctx)
        ctx.write(stmt.name, set_insert(collection, element))

    def _read_collection(self, name: str, expected, action: str, ctx: ExecutionContext) -> Value:
        collection = ctx.read(name)
        if collection.type != expected:
            raise TypeMismatchError(
                f"{action} needs a {expected} variable, but '{name}' holds a {collection.type}",
                variable=name,
            )
        return collection

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, ctx: ExecutionContext) -> Value:
        """Evaluate an expression to produce a Value."""
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, Identifier):
            return ctx.read(expr.name)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, ctx)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, ctx)
        elif isinstance(expr, ListLiteral):
            return list_val(self._evaluate(e, ctx) for e in expr.elements)
        elif isinstance(expr, SetLiteral):
            return set_val(self._evaluate(e, ctx) for e in expr.elements)
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_literal(self, lit: Literal) -> Value:
        """Evaluate a literal value."""
        if lit.literal_type == TokenType.INT_LITERAL:
            return self.arithmetic.make_int(lit.value, what="integer literal")
        elif lit.literal_type == TokenType.FLOAT_LITERAL:
            return self.arithmetic.float_literal(lit.value, lit.text)
        elif lit.literal_type == TokenType.BOOL_LITERAL:
            return bool_val(lit.value)
        elif lit.literal_type == TokenType.STRING_LITERAL:
            return string_val(lit.value)
        else:
            raise RuntimeError(f"Unknown literal type: {lit.literal_type}")

    def _eval_unary_op(self, op: UnaryOp, ctx: ExecutionContext) -> Value:
        """Evaluate unary minus."""
        operand = op.operand
        # -2147483648 is in range even though 2147483648 is not.
        if isinstance(operand, Literal) and operand.literal_type == TokenType.INT_LITERAL:
            return self.arithmetic.make_int(-operand.value, what="integer literal")
        return self.arithmetic.negate(self._evaluate(operand, ctx))

    def _eval_binary_op(self, op: BinaryOp, ctx: ExecutionContext) -> Value:
        """Evaluate a binary operation."""
        left = self._evaluate(op.left, ctx)
        right = self._evaluate(op.right, ctx)

        if op.operator == TokenType.PLUS:
            if left.type == STRING or right.type == STRING:
                return string_val(format_value(left) + format_value(right))
            if left.type == LIST and right.type == LIST:
                return list_val(left.data + right.data)

        if op.operator in _ARITHMETIC_SYMBOLS:
            return self.arithmetic.binary(_ARITHMETIC_SYMBOLS[op.operator], left, right)

        if op.operator in _COMPARISON_SYMBOLS:
            return bool_val(self._compare(_COMPARISON_SYMBOLS[op.operator], left, right))

        raise RuntimeError(f"Unknown binary operator: {op.operator}")

    @staticmethod
    def _compare(symbol: str, left: Value, right: Value) -> bool:
        numeric = left.type in (INT, FLOAT) and right.type in (INT, FLOAT)

        if symbol in ("==", "!="):
            if numeric:
                equal = left.data == right.data
            else:
                equal = left == right
            return equal if symbol == "==" else not equal

        if not numeric and not (left.type == STRING and right.type == STRING):
            raise TypeMismatchError(
                f"cannot order {left.type} and {right.type} with '{symbol}'"
            )
        a, b = left.data, right.data
        if symbol == "<":
            return a < b
        if symbol == ">":
            return a > b
        if symbol == "<=":
            return a <= b
        return a >= b


# Convenience function for simple execution
def execute(
    program: Program,
    input_source: Optional[InputSource] = None,
    output_sink: Optional[OutputSink] = None,
    source: str = "",
    config=None,
) -> ExecutionResult:
    """
    Run a parsed program.

    This is a convenience wrapper around Interpreter.execute().
    """
    interpreter = Interpreter(config)
    return interpreter.execute(program, input_source, output_sink, source)


def compile_and_run(
    source: str,
    inputs: Union[InputSource, Iterable[Any], None] = None,
    config=None,
    output_sink: Optional[OutputSink] = None,
    filename: Optional[str] = None,
) -> ExecutionResult:
    """
    High-level API to lex, parse and run chronobranch source in one call.

        from chronobranch import compile_and_run

        result = compile_and_run('''
            let x = 1;
            branch x {
                potential { x = x + 1; }
                potential { x = x * 10; }
            }
            merge x select 2;
            print x;
        ''')

        if result.success:
            print(result.output_lines)      # ['10']
        else:
            print(result.diagnostics.format_all())

    Args:
        source: Program source code
        inputs: An InputSource, or raw values fed to `input` in order
        config: RunConfig (defaults to ``RunConfig()``)
        output_sink: Receiver for `print` (values are always collected too)
        filename: Name used in diagnostics and provenance

    Returns:
        ExecutionResult; lexer and parser errors come back as failed results
    """
    from ..lexer import tokenize
    from ..parser import parse

    try:
        tokens = tokenize(source, filename)
        program = parse(tokens, filename=filename, source=source)
    except ChronoError as e:
        diagnostics = DiagnosticCollector()
        diagnostics.add_error(e)
        return ExecutionResult(success=False, error=e, diagnostics=diagnostics)

    if inputs is None or isinstance(inputs, InputSource):
        input_source = inputs
    else:
        input_source = ScriptedInput(inputs)

    interpreter = Interpreter(config)
    return interpreter.execute(program, input_source, output_sink, source)
