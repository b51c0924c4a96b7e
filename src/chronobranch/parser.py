"""
Recursive descent parser for chronobranch.

Converts a token stream into a Program AST.

Grammar (statement terminators are optional where unambiguous):

    program     := statement* EOF
    statement   := 'let' IDENT '=' expr ';'
                 | IDENT '=' expr ';'
                 | 'branch' IDENT ['as' IDENT] '{' body '}'
                 | 'merge' IDENT ['select' INT] ';'
                 | 'abort' IDENT ';'
                 | 'print' expr ';'
                 | 'input' [STRING] IDENT ';'
                 | 'listpush' IDENT [','] expr ';'
                 | 'setinsert' IDENT [','] expr ';'
    body        := ('potential' block)* | statement*
    block       := '{' statement* '}'
"""

from typing import List, Optional
from .tokens import Token, TokenType, SourceSpan, is_statement_keyword
from .ast import (
    Expression, Literal, Identifier, BinaryOp, UnaryOp,
    ListLiteral, SetLiteral,
    Statement, LetStatement, Block, BranchStatement, MergeStatement,
    AbortStatement, PrintStatement, InputStatement,
    ListPushStatement, SetInsertStatement,
    Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_mixed_branch_body,
    error_invalid_ordinal,
)


class Parser:
    """
    Recursive descent parser for chronobranch.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  == != < > <= >=
                 + -
                 * / // %
        Highest: unary -
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.EQ: 1,
        TokenType.NE: 1,
        TokenType.LT: 1,
        TokenType.GT: 1,
        TokenType.LE: 1,
        TokenType.GE: 1,
        TokenType.PLUS: 2,
        TokenType.MINUS: 2,
        TokenType.STAR: 3,
        TokenType.SLASH: 3,
        TokenType.DOUBLE_SLASH: 3,
        TokenType.PERCENT: 3,
    }

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source.splitlines() if source else []
        self.pos = 0

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _end_statement(self) -> None:
        """Consume an optional ';'; without one, the next token must start a statement."""
        if self._match(TokenType.SEMICOLON):
            return
        token = self._current()
        if (is_statement_keyword(token.type)
                or token.type in (TokenType.IDENTIFIER, TokenType.RBRACE,
                                  TokenType.POTENTIAL, TokenType.EOF)):
            return
        self._error("';'")

    def _source_line(self, token: Token) -> Optional[str]:
        line_num = token.span.start.line
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        found = token.lexeme if token.lexeme else token.type.name
        raise error_unexpected_token(
            expected, f"'{found}'", token.span, self._source_line(token)
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression."""
        return self._parse_binary_expr(0)

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary minus."""
        if self._check(TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        return self._parse_primary_expr()

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, identifiers, grouped, collections)."""
        token = self._current()

        if token.type in (TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL,
                          TokenType.STRING_LITERAL, TokenType.BOOL_LITERAL):
            self._advance()
            return Literal(
                span=token.span,
                value=token.value,
                literal_type=token.type,
                text=token.lexeme,
            )

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.LBRACKET:
            self._advance()
            elements = self._parse_elements(TokenType.RBRACKET, "']'")
            return ListLiteral(span=self._span_from(token), elements=elements)

        if token.type == TokenType.LBRACE:
            self._advance()
            elements = self._parse_elements(TokenType.RBRACE, "'}'")
            return SetLiteral(span=self._span_from(token), elements=elements)

        self._error("expression")

    def _parse_elements(self, closing: TokenType, expected: str) -> List[Expression]:
        """Parse a comma-separated element list up to the closing delimiter."""
        elements = []
        if not self._check(closing):
            elements.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                if self._check(closing):
                    break  # Allow trailing comma
                elements.append(self._parse_expression())
        self._consume(closing, expected)
        return elements

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        token = self._current()

        if token.type == TokenType.LET:
            return self._parse_let_statement()
        if token.type == TokenType.IDENTIFIER and self._peek(1).type == TokenType.ASSIGN:
            return self._parse_assignment()
        if token.type == TokenType.BRANCH:
            return self._parse_branch_statement()
        if token.type == TokenType.MERGE:
            return self._parse_merge_statement()
        if token.type == TokenType.ABORT:
            return self._parse_abort_statement()
        if token.type == TokenType.PRINT:
            return self._parse_print_statement()
        if token.type == TokenType.INPUT:
            return self._parse_input_statement()
        if token.type in (TokenType.LISTPUSH, TokenType.SETINSERT):
            return self._parse_collection_statement()

        self._error("statement")

    def _parse_let_statement(self) -> LetStatement:
        """Parse `let name = expr;`."""
        start = self._advance()  # consume 'let'
        name = self._consume(TokenType.IDENTIFIER, "variable name").value
        self._consume(TokenType.ASSIGN, "'='")
        initializer = self._parse_expression()
        self._end_statement()
        return LetStatement(span=self._span_from(start), name=name, initializer=initializer)

    def _parse_assignment(self) -> LetStatement:
        """Parse the bare form `name = expr;` (same meaning as let)."""
        start = self._advance()  # consume name
        self._advance()  # consume '='
        initializer = self._parse_expression()
        self._end_statement()
        return LetStatement(span=self._span_from(start), name=start.value, initializer=initializer)

    def _parse_branch_statement(self) -> BranchStatement:
        """Parse `branch name [as label] { ... }`."""
        start = self._advance()  # consume 'branch'
        target = self._consume(TokenType.IDENTIFIER, "variable name after 'branch'").value
        label = None
        if self._match(TokenType.AS):
            label = self._consume(TokenType.IDENTIFIER, "branch label after 'as'").value
        self._consume(TokenType.LBRACE, "'{'")

        potentials: List[Block] = []
        loose: List[Statement] = []
        body_start = self._current()
        while not self._check(TokenType.RBRACE):
            if self._is_at_end():
                self._error("'}'")
            if self._check(TokenType.SEMICOLON):
                self._advance()
                continue
            if self._check(TokenType.POTENTIAL):
                if loose:
                    raise error_mixed_branch_body(self._current().span, self._source_line(self._current()))
                self._advance()  # consume 'potential'
                potentials.append(self._parse_block())
            else:
                if potentials:
                    raise error_mixed_branch_body(self._current().span, self._source_line(self._current()))
                loose.append(self._parse_statement())
        self._consume(TokenType.RBRACE, "'}'")
        self._end_statement()

        if loose:
            # A body without potential blocks is a single potential
            potentials = [Block(span=SourceSpan(body_start.span.start, loose[-1].span.end), statements=loose)]

        return BranchStatement(
            span=self._span_from(start),
            target=target,
            label=label,
            potentials=potentials,
        )

    def _parse_block(self) -> Block:
        """Parse `{ statement* }`."""
        start = self._consume(TokenType.LBRACE, "'{'")
        statements = []
        while not self._check(TokenType.RBRACE):
            if self._is_at_end():
                self._error("'}'")
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())
        self._consume(TokenType.RBRACE, "'}'")
        return Block(span=self._span_from(start), statements=statements)

    def _parse_merge_statement(self) -> MergeStatement:
        """Parse `merge label [select k];`."""
        start = self._advance()  # consume 'merge'
        label = self._consume(TokenType.IDENTIFIER, "branch label after 'merge'").value
        ordinal = None
        if self._match(TokenType.SELECT):
            token = self._current()
            if token.type != TokenType.INT_LITERAL or token.value < 1:
                raise error_invalid_ordinal(token.lexeme or token.type.name, token.span,
                                            self._source_line(token))
            ordinal = self._advance().value
        self._end_statement()
        return MergeStatement(span=self._span_from(start), label=label, ordinal=ordinal)

    def _parse_abort_statement(self) -> AbortStatement:
        """Parse `abort label;`."""
        start = self._advance()  # consume 'abort'
        label = self._consume(TokenType.IDENTIFIER, "branch label after 'abort'").value
        self._end_statement()
        return AbortStatement(span=self._span_from(start), label=label)

    def _parse_print_statement(self) -> PrintStatement:
        """Parse `print expr;`."""
        start = self._advance()  # consume 'print'
        value = self._parse_expression()
        self._end_statement()
        return PrintStatement(span=self._span_from(start), value=value)

    def _parse_input_statement(self) -> InputStatement:
        """Parse `input ["prompt"] name;`."""
        start = self._advance()  # consume 'input'
        prompt = None
        if self._check(TokenType.STRING_LITERAL):
            prompt = self._advance().value
        name = self._consume(TokenType.IDENTIFIER, "variable name").value
        self._end_statement()
        return InputStatement(span=self._span_from(start), name=name, prompt=prompt)

    def _parse_collection_statement(self) -> Statement:
        """Parse `listpush name expr;` or `setinsert name expr;`."""
        start = self._advance()  # consume keyword
        name = self._consume(TokenType.IDENTIFIER, "variable name").value
        self._match(TokenType.COMMA)
        value = self._parse_expression()
        self._end_statement()
        if start.type == TokenType.LISTPUSH:
            return ListPushStatement(span=self._span_from(start), name=name, value=value)
        return SetInsertStatement(span=self._span_from(start), name=name, value=value)

    # =========================================================================
    # Program
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse a complete program."""
        start = self._current()
        statements = []
        while not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())
        return Program(
            span=SourceSpan(start.span.start, self._current().span.end),
            statements=statements,
            filename=self.filename,
        )


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source code for error context

    Returns:
        Parsed Program AST

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()
