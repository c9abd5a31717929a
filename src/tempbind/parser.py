"""Parser for the host JavaScript subset.

Transforms a token stream into an AST using a Pratt parser for binary
expressions and recursive descent for everything else. Temporary Binding
constructs are matched by :class:`~tempbind.recognizer.ConstructRecognizer`,
their step lists delimited by :func:`~tempbind.pipeline.split_steps`, and
each step is parsed here as an ordinary assignment expression, so nested
constructs are recognized recursively.
"""

from __future__ import annotations

from tempbind.ast_nodes import (
    ArrayLiteral,
    ArrowFunction,
    AssignExpr,
    BinaryExpr,
    BlockStmt,
    BooleanLit,
    BreakStmt,
    CallExpr,
    ConditionalExpr,
    ContinueStmt,
    Declarator,
    EmptyStmt,
    Expr,
    ExprStmt,
    ForOfStmt,
    ForStmt,
    FunctionDecl,
    FunctionExpr,
    IdentifierExpr,
    IfStmt,
    IndexExpr,
    MemberExpr,
    Module,
    NewExpr,
    NullLit,
    NumberLit,
    ObjectLiteral,
    ParenExpr,
    Property,
    RejectedConstruct,
    ReturnStmt,
    SequenceExpr,
    Stmt,
    StringLit,
    TempBindingDecl,
    TempBindingExpr,
    TemplateLit,
    ThisExpr,
    ThrowStmt,
    UnaryExpr,
    UpdateExpr,
    VarDecl,
    WhileStmt,
    construct_indices,
)
from tempbind.constructs import ConstructKind, ConstructLog, ConstructState
from tempbind.errors import (
    EMPTY_PIPELINE,
    LEX_ERROR,
    SYNTAX_ERROR,
    CompileError,
    Diagnostic,
    Severity,
    make_diagnostic,
)
from tempbind.pipeline import find_extent, split_steps
from tempbind.recognizer import ConstructRecognizer, is_marker
from tempbind.source import Span
from tempbind.tokens import ASSIGN_OPS, DECL_KEYWORDS, KEYWORDS, Token, TokenKind

# ── Binding powers for Pratt parser ─────────────────────────────

# (left_bp, right_bp) for infix operators
_INFIX_BP: dict[TokenKind, tuple[int, int]] = {
    TokenKind.OR: (1, 2),
    TokenKind.NULLISH: (1, 2),
    TokenKind.AND: (3, 4),
    TokenKind.EQUAL: (5, 6),
    TokenKind.NOT_EQUAL: (5, 6),
    TokenKind.STRICT_EQUAL: (5, 6),
    TokenKind.STRICT_NOT_EQUAL: (5, 6),
    TokenKind.LESS: (7, 8),
    TokenKind.GREATER: (7, 8),
    TokenKind.LESS_EQUAL: (7, 8),
    TokenKind.GREATER_EQUAL: (7, 8),
    TokenKind.PLUS: (9, 10),
    TokenKind.MINUS: (9, 10),
    TokenKind.STAR: (11, 12),
    TokenKind.SLASH: (11, 12),
    TokenKind.PERCENT: (11, 12),
}

_PREFIX_OPS: dict[TokenKind, str] = {
    TokenKind.BANG: '!',
    TokenKind.MINUS: '-',
    TokenKind.PLUS: '+',
    TokenKind.TYPEOF: 'typeof',
    TokenKind.VOID: 'void',
}

_ASSIGN_TARGETS = (IdentifierExpr, MemberExpr, IndexExpr)

# Keyword tokens usable as property names after '.' and as object keys
_KEYWORD_KINDS = frozenset(KEYWORDS.values())

_HOST_CODES = frozenset({LEX_ERROR, SYNTAX_ERROR})


class Parser:
    """Parses a list of tokens into a host-subset AST."""

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<stdin>",
        *,
        log: ConstructLog | None = None,
        diagnostics: list[Diagnostic] | None = None,
    ) -> None:
        self.tokens = tokens
        self.pos = 0
        self.filename = filename
        self.log = log if log is not None else ConstructLog()
        self.diagnostics: list[Diagnostic] = diagnostics if diagnostics is not None else []
        self._recognizer = ConstructRecognizer()
        # Syntax errors confined to a construct step; they reject only that construct
        self._contained: set[int] = set()
        self._last: Token = tokens[0]

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]

    def _at(self, kind: TokenKind) -> bool:
        return self._current().kind == kind

    def _at_any(self, *kinds: TokenKind) -> bool:
        return self._current().kind in kinds

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        self._last = tok
        return tok

    def _expect(self, kind: TokenKind, what: str | None = None) -> Token:
        if self._current().kind == kind:
            return self._advance()
        tok = self._current()
        expected = what or kind.name
        found = tok.value if tok.kind != TokenKind.EOF else "end of input"
        self._error(f"expected {expected}, found {found!r}", tok.span)
        raise _ParseError

    def _error(self, message: str, span: Span) -> None:
        self.diagnostics.append(make_diagnostic(Severity.ERROR, SYNTAX_ERROR, message, span))

    def _span_from(self, start: Span) -> Span:
        """Span from *start* to the end of the last consumed token."""
        return start.to(self._last.span)

    def _synchronize(self, start_pos: int) -> None:
        """Skip tokens until a statement boundary."""
        if self.pos == start_pos and not self._at(TokenKind.EOF):
            self._advance()
        while not self._at(TokenKind.EOF):
            if self._at(TokenKind.SEMICOLON):
                self._advance()
                return
            if self._at(TokenKind.RBRACE):
                return
            self._advance()

    def _consume_semicolon(self) -> None:
        if self._at(TokenKind.SEMICOLON):
            self._advance()
            return
        if self._at_any(TokenKind.RBRACE, TokenKind.EOF):
            return
        self._expect(TokenKind.SEMICOLON, "';'")

    def has_host_errors(self) -> bool:
        return any(
            d.code in _HOST_CODES and id(d) not in self._contained for d in self.diagnostics
        )

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Module:
        """Parse the entire token stream into a Module.

        Host syntax errors are raised together as a CompileError once the
        stream is exhausted. Construct-level errors are left in
        ``self.diagnostics`` and the construct becomes a RejectedConstruct.
        """
        body = self._parse_statement_list(until=TokenKind.EOF)
        end = self._current().span
        span = Span(self.filename, 1, 1, end.end_line, end.end_col)
        if self.has_host_errors():
            raise CompileError(self.diagnostics)
        return Module(body=body, span=span)

    def _parse_statement_list(self, until: TokenKind) -> list[Stmt]:
        stmts: list[Stmt] = []
        while not self._at(until) and not self._at(TokenKind.EOF):
            start_pos = self.pos
            try:
                stmts.append(self._parse_statement())
            except _ParseError:
                self._synchronize(start_pos)
                if until == TokenKind.EOF and self._at(TokenKind.RBRACE):
                    self._error("unexpected '}'", self._current().span)
                    self._advance()
        return stmts

    # ── Statements ───────────────────────────────────────────────

    def _parse_statement(self) -> Stmt:
        tok = self._current()

        if tok.kind in DECL_KEYWORDS:
            if is_marker(self.tokens, self.pos):
                return self._parse_construct_statement()
            decl = self._parse_var_decl()
            self._consume_semicolon()
            return decl

        match tok.kind:
            case TokenKind.FUNCTION:
                return self._parse_function_decl()
            case TokenKind.RETURN:
                return self._parse_return()
            case TokenKind.IF:
                return self._parse_if()
            case TokenKind.WHILE:
                return self._parse_while()
            case TokenKind.FOR:
                return self._parse_for()
            case TokenKind.BREAK:
                self._advance()
                self._consume_semicolon()
                return BreakStmt(tok.span)
            case TokenKind.CONTINUE:
                self._advance()
                self._consume_semicolon()
                return ContinueStmt(tok.span)
            case TokenKind.THROW:
                self._advance()
                value = self._parse_expression()
                self._consume_semicolon()
                return ThrowStmt(value, self._span_from(tok.span))
            case TokenKind.LBRACE:
                return self._parse_block()
            case TokenKind.SEMICOLON:
                self._advance()
                return EmptyStmt(tok.span)

        expr = self._parse_expression()
        self._consume_semicolon()
        return ExprStmt(expr, self._span_from(tok.span))

    def _parse_construct_statement(self) -> Stmt:
        node = self._parse_construct(expression_only=False)
        if isinstance(node, TempBindingExpr):
            self._consume_semicolon()
            return ExprStmt(node, node.span)
        if (isinstance(node, RejectedConstruct) and node.kind == ConstructKind.EXPRESSION
                and self._at(TokenKind.SEMICOLON)):
            self._advance()
        return node

    def _parse_var_decl(self) -> VarDecl:
        start = self._current().span
        kind_tok = self._advance()
        declarators: list[Declarator] = []
        while True:
            name_tok = self._expect(TokenKind.IDENTIFIER, "a variable name")
            init = None
            if self._at(TokenKind.ASSIGN):
                self._advance()
                init = self._parse_assignment()
            elif kind_tok.kind == TokenKind.CONST and not self._at(TokenKind.OF):
                self._error(
                    f"missing initializer in const declaration of '{name_tok.value}'",
                    name_tok.span,
                )
            declarators.append(Declarator(name_tok.value, init, self._span_from(name_tok.span)))
            if not self._at(TokenKind.COMMA):
                break
            self._advance()
        return VarDecl(kind_tok.value, declarators, self._span_from(start))

    def _parse_function_decl(self) -> FunctionDecl:
        start = self._advance().span  # 'function'
        name_tok = self._expect(TokenKind.IDENTIFIER, "a function name")
        params = self._parse_params()
        body = self._parse_function_body()
        return FunctionDecl(name_tok.value, params, body, self._span_from(start))

    def _parse_params(self) -> list[str]:
        self._expect(TokenKind.LPAREN, "'('")
        params: list[str] = []
        while not self._at(TokenKind.RPAREN) and not self._at(TokenKind.EOF):
            if params:
                self._expect(TokenKind.COMMA, "','")
            params.append(self._expect(TokenKind.IDENTIFIER, "a parameter name").value)
        self._expect(TokenKind.RPAREN, "')'")
        return params

    def _parse_function_body(self) -> list[Stmt]:
        self._expect(TokenKind.LBRACE, "'{'")
        body = self._parse_statement_list(until=TokenKind.RBRACE)
        self._expect(TokenKind.RBRACE, "'}'")
        return body

    def _parse_block(self) -> BlockStmt:
        start = self._advance().span  # {
        body = self._parse_statement_list(until=TokenKind.RBRACE)
        self._expect(TokenKind.RBRACE, "'}'")
        return BlockStmt(body, self._span_from(start))

    def _parse_return(self) -> ReturnStmt:
        start = self._advance().span  # 'return'
        value = None
        if not self._at_any(TokenKind.SEMICOLON, TokenKind.RBRACE, TokenKind.EOF):
            value = self._parse_expression()
        self._consume_semicolon()
        return ReturnStmt(value, self._span_from(start))

    def _parse_if(self) -> IfStmt:
        start = self._advance().span  # 'if'
        self._expect(TokenKind.LPAREN, "'('")
        test = self._parse_expression()
        self._expect(TokenKind.RPAREN, "')'")
        consequent = self._parse_statement()
        alternate = None
        if self._at(TokenKind.ELSE):
            self._advance()
            alternate = self._parse_statement()
        return IfStmt(test, consequent, alternate, self._span_from(start))

    def _parse_while(self) -> WhileStmt:
        start = self._advance().span  # 'while'
        self._expect(TokenKind.LPAREN, "'('")
        test = self._parse_expression()
        self._expect(TokenKind.RPAREN, "')'")
        body = self._parse_statement()
        return WhileStmt(test, body, self._span_from(start))

    def _parse_for(self) -> Stmt:
        start = self._advance().span  # 'for'
        self._expect(TokenKind.LPAREN, "'('")

        # for (const x of items)
        if (self._current().kind in DECL_KEYWORDS
                and self._peek(1).kind == TokenKind.IDENTIFIER
                and self._peek(2).kind == TokenKind.OF):
            kind = self._advance().value
            name = self._advance().value
            self._advance()  # 'of'
            iterable = self._parse_assignment()
            self._expect(TokenKind.RPAREN, "')'")
            body = self._parse_statement()
            return ForOfStmt(kind, name, iterable, body, self._span_from(start))

        init: VarDecl | Expr | None = None
        if self._at(TokenKind.SEMICOLON):
            pass
        elif self._current().kind in DECL_KEYWORDS and not is_marker(self.tokens, self.pos):
            init = self._parse_var_decl()
        else:
            init = self._parse_expression()
        self._expect(TokenKind.SEMICOLON, "';'")
        test = None if self._at(TokenKind.SEMICOLON) else self._parse_expression()
        self._expect(TokenKind.SEMICOLON, "';'")
        update = None if self._at(TokenKind.RPAREN) else self._parse_expression()
        self._expect(TokenKind.RPAREN, "')'")
        body = self._parse_statement()
        return ForStmt(init, test, update, body, self._span_from(start))

    # ── Temporary Binding constructs ─────────────────────────────

    def _parse_construct(self, *, expression_only: bool) -> Stmt | Expr:
        """Recognize, split and parse the construct starting at the current token."""
        match = self._recognizer.match(self.tokens, self.pos, expression_only=expression_only)
        record = self.log.open(match.kind, match.span)
        if match.binding is not None:
            record.binding = match.binding.value
        self.diagnostics.extend(match.errors)
        codes = [d.code for d in match.errors]

        if match.steps_start is None:
            self._skip_to(find_extent(self.tokens, match.resume))
            if match.kind == ConstructKind.DECLARATION and self._at(TokenKind.SEMICOLON):
                self._advance()
            return self._reject(match.kind, record.index, self._span_from(match.keyword.span), codes)

        split = split_steps(self.tokens, match.steps_start)
        steps: list[Expr] = []
        if split.is_empty:
            eq_tok = self.tokens[match.steps_start - 1]
            self.diagnostics.append(make_diagnostic(
                Severity.ERROR, EMPTY_PIPELINE,
                "temporary binding has no steps after '='", eq_tok.span,
                "expected at least one expression",
            ))
            codes.append(EMPTY_PIPELINE)
        else:
            for position in split.empty_steps():
                comma = self.tokens[max(split.steps[position][0] - 1, match.steps_start)]
                self.diagnostics.append(make_diagnostic(
                    Severity.ERROR, EMPTY_PIPELINE,
                    f"step {position + 1} of the temporary binding is empty", comma.span,
                ))
                codes.append(EMPTY_PIPELINE)
            for step_start, step_end in split.steps:
                if step_start == step_end:
                    continue
                step = self._parse_step(step_start, step_end)
                if step is None:
                    codes.append(SYNTAX_ERROR)
                else:
                    steps.append(step)

        self._skip_to(split.end)
        span = self._span_from(match.keyword.span)

        if codes:
            if match.kind == ConstructKind.DECLARATION:
                self._consume_semicolon()
            self.log.reject_all(construct_indices(steps), codes[0])
            return self._reject(match.kind, record.index, span, codes)

        self.log.advance(record.index, ConstructState.PARSED)
        if match.kind == ConstructKind.DECLARATION:
            self._consume_semicolon()
            return TempBindingDecl(
                qualifier=match.qualifier,
                binding=match.binding.value,
                result_name=match.result_name.value,
                steps=steps,
                index=record.index,
                span=span,
            )
        return TempBindingExpr(
            qualifier=match.qualifier,
            binding=match.binding.value,
            steps=steps,
            index=record.index,
            span=span,
        )

    def _parse_step(self, start: int, end: int) -> Expr | None:
        """Parse tokens ``[start, end)`` as a single assignment expression."""
        last = self.tokens[end - 1]
        tokens = self.tokens[start:end] + [Token(TokenKind.EOF, "", last.span)]
        sub = Parser(tokens, self.filename, log=self.log)
        expr: Expr | None = None
        try:
            expr = sub._parse_assignment()
            if not sub._at(TokenKind.EOF):
                tok = sub._current()
                sub._error(f"unexpected {tok.value!r} in temporary binding step", tok.span)
                expr = None
        except _ParseError:
            expr = None

        # Errors inside a nested construct already rejected that construct
        if sub.has_host_errors():
            expr = None
        self.diagnostics.extend(sub.diagnostics)
        self._contained.update(id(d) for d in sub.diagnostics)
        return expr

    def _skip_to(self, index: int) -> None:
        while self.pos < index and not self._at(TokenKind.EOF):
            self._advance()

    def _reject(
        self, kind: ConstructKind, index: int, span: Span, codes: list[str],
    ) -> RejectedConstruct:
        for code in codes:
            self.log.reject(index, code)
        return RejectedConstruct(kind, index, span)

    # ── Expressions ──────────────────────────────────────────────

    def _parse_expression(self) -> Expr:
        """Parse a comma sequence of assignment expressions."""
        first = self._parse_assignment()
        if not self._at(TokenKind.COMMA):
            return first
        exprs = [first]
        while self._at(TokenKind.COMMA):
            self._advance()
            exprs.append(self._parse_assignment())
        return SequenceExpr(exprs, first.span.to(exprs[-1].span))

    def _parse_assignment(self) -> Expr:
        if is_marker(self.tokens, self.pos):
            return self._parse_construct(expression_only=True)

        if self._is_arrow_start():
            return self._parse_arrow()

        left = self._parse_conditional()
        if self._current().kind in ASSIGN_OPS:
            op_tok = self._current()
            if not isinstance(left, _ASSIGN_TARGETS):
                self._error("invalid assignment target", left.span)
                raise _ParseError
            self._advance()
            value = self._parse_assignment()
            return AssignExpr(left, op_tok.value, value, left.span.to(value.span))
        return left

    def _parse_conditional(self) -> Expr:
        test = self._parse_binary(0)
        if not self._at(TokenKind.QUESTION):
            return test
        self._advance()
        consequent = self._parse_assignment()
        self._expect(TokenKind.COLON, "':'")
        alternate = self._parse_assignment()
        return ConditionalExpr(test, consequent, alternate, test.span.to(alternate.span))

    def _parse_binary(self, min_bp: int) -> Expr:
        """Parse a binary expression using Pratt parsing with binding powers."""
        left = self._parse_unary()
        while True:
            tok = self._current()
            if tok.kind not in _INFIX_BP:
                break
            left_bp, right_bp = _INFIX_BP[tok.kind]
            if left_bp < min_bp:
                break
            self._advance()
            right = self._parse_binary(right_bp)
            left = BinaryExpr(left, tok.value, right, left.span.to(right.span))
        return left

    def _parse_unary(self) -> Expr:
        tok = self._current()
        if tok.kind in _PREFIX_OPS:
            self._advance()
            operand = self._parse_unary()
            return UnaryExpr(_PREFIX_OPS[tok.kind], operand, tok.span.to(operand.span))
        if tok.kind in (TokenKind.PLUS_PLUS, TokenKind.MINUS_MINUS):
            self._advance()
            target = self._parse_unary()
            if not isinstance(target, _ASSIGN_TARGETS):
                self._error(f"invalid operand for prefix {tok.value}", target.span)
                raise _ParseError
            return UpdateExpr(tok.value, True, target, tok.span.to(target.span))
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        expr = self._parse_call_member()
        tok = self._current()
        if tok.kind in (TokenKind.PLUS_PLUS, TokenKind.MINUS_MINUS):
            if not isinstance(expr, _ASSIGN_TARGETS):
                self._error(f"invalid operand for postfix {tok.value}", expr.span)
                raise _ParseError
            self._advance()
            return UpdateExpr(tok.value, False, expr, expr.span.to(tok.span))
        return expr

    def _parse_call_member(self) -> Expr:
        if self._at(TokenKind.NEW):
            expr = self._parse_new()
        else:
            expr = self._parse_primary()
        while True:
            if self._at(TokenKind.DOT):
                expr = self._parse_member(expr)
            elif self._at(TokenKind.LBRACKET):
                expr = self._parse_index(expr)
            elif self._at(TokenKind.LPAREN):
                args = self._parse_args()
                expr = CallExpr(expr, args, self._span_from(expr.span))
            else:
                return expr

    def _parse_new(self) -> NewExpr:
        start = self._advance().span  # 'new'
        callee = self._parse_primary()
        while self._at_any(TokenKind.DOT, TokenKind.LBRACKET):
            if self._at(TokenKind.DOT):
                callee = self._parse_member(callee)
            else:
                callee = self._parse_index(callee)
        args = self._parse_args() if self._at(TokenKind.LPAREN) else []
        return NewExpr(callee, args, self._span_from(start))

    def _parse_member(self, obj: Expr) -> MemberExpr:
        self._advance()  # .
        tok = self._current()
        if tok.kind != TokenKind.IDENTIFIER and tok.kind not in _KEYWORD_KINDS:
            self._expect(TokenKind.IDENTIFIER, "a property name")
        self._advance()
        return MemberExpr(obj, tok.value, obj.span.to(tok.span))

    def _parse_index(self, obj: Expr) -> IndexExpr:
        self._advance()  # [
        index = self._parse_expression()
        end = self._expect(TokenKind.RBRACKET, "']'")
        return IndexExpr(obj, index, obj.span.to(end.span))

    def _parse_args(self) -> list[Expr]:
        self._advance()  # (
        args: list[Expr] = []
        while not self._at(TokenKind.RPAREN) and not self._at(TokenKind.EOF):
            if args:
                self._expect(TokenKind.COMMA, "','")
                if self._at(TokenKind.RPAREN):
                    break
            args.append(self._parse_assignment())
        self._expect(TokenKind.RPAREN, "')'")
        return args

    def _parse_primary(self) -> Expr:
        tok = self._current()

        match tok.kind:
            case TokenKind.NUMBER_LIT:
                self._advance()
                return NumberLit(tok.value, tok.span)
            case TokenKind.STRING_LIT:
                self._advance()
                return StringLit(tok.value, tok.span)
            case TokenKind.TEMPLATE_STRING:
                self._advance()
                return TemplateLit([tok.value], [], tok.span)
            case TokenKind.TEMPLATE_HEAD:
                return self._parse_template()
            case TokenKind.BOOLEAN_LIT:
                self._advance()
                return BooleanLit(tok.value == 'true', tok.span)
            case TokenKind.NULL_LIT:
                self._advance()
                return NullLit(tok.span)
            case TokenKind.THIS:
                self._advance()
                return ThisExpr(tok.span)
            case TokenKind.IDENTIFIER:
                self._advance()
                return IdentifierExpr(tok.value, tok.span)
            case TokenKind.LPAREN:
                self._advance()
                inner = self._parse_expression()
                self._expect(TokenKind.RPAREN, "')'")
                return ParenExpr(inner, self._span_from(tok.span))
            case TokenKind.LBRACKET:
                return self._parse_array()
            case TokenKind.LBRACE:
                return self._parse_object()
            case TokenKind.FUNCTION:
                return self._parse_function_expr()

        found = tok.value if tok.kind != TokenKind.EOF else "end of input"
        self._error(f"unexpected {found!r} in expression", tok.span)
        raise _ParseError

    def _parse_template(self) -> TemplateLit:
        start = self._advance()  # TEMPLATE_HEAD
        quasis = [start.value]
        exprs: list[Expr] = []
        while True:
            exprs.append(self._parse_expression())
            tok = self._current()
            if tok.kind == TokenKind.TEMPLATE_MIDDLE:
                self._advance()
                quasis.append(tok.value)
                continue
            if tok.kind == TokenKind.TEMPLATE_TAIL:
                self._advance()
                quasis.append(tok.value)
                break
            self._expect(TokenKind.TEMPLATE_TAIL, "'}' closing the template substitution")
        return TemplateLit(quasis, exprs, self._span_from(start.span))

    def _parse_array(self) -> ArrayLiteral:
        start = self._advance().span  # [
        elements: list[Expr] = []
        while not self._at(TokenKind.RBRACKET) and not self._at(TokenKind.EOF):
            if elements:
                self._expect(TokenKind.COMMA, "','")
                if self._at(TokenKind.RBRACKET):
                    break
            elements.append(self._parse_assignment())
        self._expect(TokenKind.RBRACKET, "']'")
        return ArrayLiteral(elements, self._span_from(start))

    def _parse_object(self) -> ObjectLiteral:
        start = self._advance().span  # {
        properties: list[Property] = []
        while not self._at(TokenKind.RBRACE) and not self._at(TokenKind.EOF):
            if properties:
                self._expect(TokenKind.COMMA, "','")
                if self._at(TokenKind.RBRACE):
                    break
            properties.append(self._parse_property())
        self._expect(TokenKind.RBRACE, "'}'")
        return ObjectLiteral(properties, self._span_from(start))

    def _parse_property(self) -> Property:
        tok = self._current()
        if tok.kind in (TokenKind.IDENTIFIER, TokenKind.STRING_LIT, TokenKind.NUMBER_LIT) \
                or tok.kind in _KEYWORD_KINDS:
            self._advance()
        else:
            self._expect(TokenKind.IDENTIFIER, "a property key")
        if tok.kind == TokenKind.IDENTIFIER and not self._at(TokenKind.COLON):
            value = IdentifierExpr(tok.value, tok.span)
            return Property(tok.value, value, True, tok.span)
        self._expect(TokenKind.COLON, "':'")
        value = self._parse_assignment()
        return Property(tok.value, value, False, tok.span.to(value.span))

    def _parse_function_expr(self) -> FunctionExpr:
        start = self._advance().span  # 'function'
        name = None
        if self._at(TokenKind.IDENTIFIER):
            name = self._advance().value
        params = self._parse_params()
        body = self._parse_function_body()
        return FunctionExpr(name, params, body, self._span_from(start))

    # ── Arrow functions ──────────────────────────────────────────

    def _is_arrow_start(self) -> bool:
        tok = self._current()
        if tok.kind == TokenKind.IDENTIFIER:
            return self._peek(1).kind == TokenKind.FAT_ARROW
        if tok.kind != TokenKind.LPAREN:
            return False
        depth = 0
        idx = self.pos
        while idx < len(self.tokens):
            kind = self.tokens[idx].kind
            if kind == TokenKind.LPAREN:
                depth += 1
            elif kind == TokenKind.RPAREN:
                depth -= 1
                if depth == 0:
                    nxt = self.tokens[idx + 1] if idx + 1 < len(self.tokens) else self.tokens[-1]
                    return nxt.kind == TokenKind.FAT_ARROW
            elif kind == TokenKind.EOF:
                return False
            idx += 1
        return False

    def _parse_arrow(self) -> ArrowFunction:
        start = self._current().span
        if self._at(TokenKind.IDENTIFIER):
            params = [self._advance().value]
        else:
            params = self._parse_params()
        self._expect(TokenKind.FAT_ARROW, "'=>'")
        if self._at(TokenKind.LBRACE):
            body: Expr | BlockStmt = self._parse_block()
        else:
            body = self._parse_assignment()
        return ArrowFunction(params, body, self._span_from(start))


class _ParseError(Exception):
    """Internal exception for parser error recovery."""
