"""Lexer for the host JavaScript subset.

Produces a flat token stream from source text. Template literals are
split into HEAD/MIDDLE/TAIL tokens around their ``${ ... }`` substitutions
so the substitution tokens appear inline in the stream.
"""

from __future__ import annotations

from tempbind.errors import LEX_ERROR, CompileError, Diagnostic, Severity, make_diagnostic
from tempbind.source import Span
from tempbind.tokens import KEYWORDS, OPERATORS, Token, TokenKind

_ESCAPES = {
    'n': '\n', 'r': '\r', 't': '\t', 'b': '\b', 'f': '\f', 'v': '\v',
    '0': '\0', '\\': '\\', '"': '"', "'": "'", '`': '`', '$': '$',
    '\n': '',
}


class Lexer:
    """Tokenizes host-subset source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []
        self.diagnostics: list[Diagnostic] = []
        self._brace_depth = 0
        # Brace depth at which each open template substitution started
        self._template_stack: list[int] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_line_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            elif ch in ('"', "'"):
                self._lex_string(ch)
            elif ch == '`':
                self._lex_template_start()
            elif ch.isdigit() or (ch == '.' and self._peek(1).isdigit()):
                self._lex_number()
            elif ch.isalpha() or ch in '_$':
                self._lex_identifier()
            elif ch == '}' and self._template_stack and self._template_stack[-1] == self._brace_depth:
                self._lex_template_continue()
            else:
                self._lex_operator_or_punct()

        if self._template_stack:
            self._error("unterminated template literal", self.line, self.col)

        self._emit(TokenKind.EOF, "", self.line, self.col)

        if self.diagnostics:
            raise CompileError(self.diagnostics)
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _emit(self, kind: TokenKind, value: str, start_line: int, start_col: int) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        span = Span(self.filename, start_line, start_col, self.line, end_col)
        tok = Token(kind, value, span)
        self.tokens.append(tok)
        return tok

    def _error(self, message: str, line: int, col: int) -> None:
        span = Span(self.filename, line, col, line, col)
        self.diagnostics.append(make_diagnostic(Severity.ERROR, LEX_ERROR, message, span))

    # ── Comments ─────────────────────────────────────────────────

    def _skip_line_comment(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] != '\n':
            self._advance()

    def _skip_block_comment(self) -> None:
        start_line, start_col = self.line, self.col
        self._advance()
        self._advance()
        while self.pos < len(self.source):
            if self.source[self.pos] == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                return
            self._advance()
        self._error("unterminated block comment", start_line, start_col)

    # ── Strings ──────────────────────────────────────────────────

    def _lex_string(self, quote: str) -> None:
        start_line = self.line
        start_col = self.col
        self._advance()  # opening quote
        text = []
        while self.pos < len(self.source) and self.source[self.pos] != quote:
            ch = self.source[self.pos]
            if ch == '\n':
                self._error("unterminated string literal", start_line, start_col)
                return
            if ch == '\\':
                text.append(self._lex_escape_sequence())
            else:
                text.append(self._advance())
        if self.pos >= len(self.source):
            self._error("unterminated string literal", start_line, start_col)
            return
        self._advance()  # closing quote
        self._emit(TokenKind.STRING_LIT, ''.join(text), start_line, start_col)

    def _lex_escape_sequence(self) -> str:
        self._advance()  # backslash
        if self.pos >= len(self.source):
            self._error("unexpected end of escape sequence", self.line, self.col)
            return ""
        ch = self._advance()
        if ch in _ESCAPES:
            return _ESCAPES[ch]
        if ch == 'u':
            digits = self.source[self.pos:self.pos + 4]
            if len(digits) == 4 and all(c in '0123456789abcdefABCDEF' for c in digits):
                for _ in range(4):
                    self._advance()
                return chr(int(digits, 16))
            self._error("invalid unicode escape sequence", self.line, self.col - 2)
            return ""
        # Non-special escapes stand for the character itself
        return ch

    # ── Template literals ────────────────────────────────────────

    def _lex_template_start(self) -> None:
        start_line = self.line
        start_col = self.col
        self._advance()  # `
        self._lex_template_chunk(
            start_line, start_col, TokenKind.TEMPLATE_STRING, TokenKind.TEMPLATE_HEAD,
        )

    def _lex_template_continue(self) -> None:
        start_line = self.line
        start_col = self.col
        self._advance()  # } closing the substitution
        self._template_stack.pop()
        self._lex_template_chunk(
            start_line, start_col, TokenKind.TEMPLATE_TAIL, TokenKind.TEMPLATE_MIDDLE,
        )

    def _lex_template_chunk(
        self, start_line: int, start_col: int,
        closed_kind: TokenKind, open_kind: TokenKind,
    ) -> None:
        """Read template text up to the closing backtick or the next ``${``."""
        text = []
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == '`':
                self._advance()
                self._emit(closed_kind, ''.join(text), start_line, start_col)
                return
            if ch == '$' and self._peek(1) == '{':
                self._advance()
                self._advance()
                self._emit(open_kind, ''.join(text), start_line, start_col)
                self._template_stack.append(self._brace_depth)
                return
            if ch == '\\':
                text.append(self._lex_escape_sequence())
            else:
                text.append(self._advance())
        self._error("unterminated template literal", start_line, start_col)

    # ── Numbers ──────────────────────────────────────────────────

    def _lex_number(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []

        if self.source[self.pos] == '0' and self._peek(1) in ('x', 'X'):
            text.append(self._advance())
            text.append(self._advance())
            while self.pos < len(self.source) and self.source[self.pos] in '0123456789abcdefABCDEF':
                text.append(self._advance())
            if len(text) == 2:
                self._error("hexadecimal literal has no digits", start_line, start_col)
            self._emit(TokenKind.NUMBER_LIT, ''.join(text), start_line, start_col)
            return

        while self.pos < len(self.source) and self.source[self.pos].isdigit():
            text.append(self._advance())
        if self._peek() == '.' and self._peek(1).isdigit():
            text.append(self._advance())
            while self.pos < len(self.source) and self.source[self.pos].isdigit():
                text.append(self._advance())
        if self._peek() in ('e', 'E'):
            sign = self._peek(1)
            if sign.isdigit() or (sign in '+-' and self._peek(2).isdigit()):
                text.append(self._advance())
                if sign in '+-':
                    text.append(self._advance())
                while self.pos < len(self.source) and self.source[self.pos].isdigit():
                    text.append(self._advance())

        if self.pos < len(self.source) and (self.source[self.pos].isalpha() or self.source[self.pos] in '_$'):
            self._error("identifier starts immediately after numeric literal", self.line, self.col)
        self._emit(TokenKind.NUMBER_LIT, ''.join(text), start_line, start_col)

    # ── Identifiers and Keywords ─────────────────────────────────

    def _lex_identifier(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if not (ch.isalnum() or ch in '_$'):
                break
            text.append(self._advance())
        word = ''.join(text)
        self._emit(KEYWORDS.get(word, TokenKind.IDENTIFIER), word, start_line, start_col)

    # ── Operators and Punctuation ────────────────────────────────

    def _lex_operator_or_punct(self) -> None:
        start_line = self.line
        start_col = self.col
        for text, kind in OPERATORS:
            if self.source.startswith(text, self.pos):
                for _ in text:
                    self._advance()
                if kind == TokenKind.LBRACE:
                    self._brace_depth += 1
                elif kind == TokenKind.RBRACE:
                    self._brace_depth = max(0, self._brace_depth - 1)
                self._emit(kind, text, start_line, start_col)
                return
        ch = self._advance()
        self._error(f"unexpected character: {ch!r}", start_line, start_col)
