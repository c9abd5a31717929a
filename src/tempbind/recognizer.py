"""Construct recognizer for Temporary Binding markers.

Recognizes the two surface forms at a declaration keyword followed by
``(``::

    const($) total = 10, $ + 2, $ * 2;     declaration form
    let(_) = items(), _.length             expression form

Only the marker and the declarator head are examined here. The step list
after ``=`` is delimited by :mod:`tempbind.pipeline` and parsed by the
host parser.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tempbind.constructs import ConstructKind
from tempbind.errors import (
    INCOMPLETE_CONSTRUCT,
    MALFORMED_BINDING_MARKER,
    Diagnostic,
    Severity,
    Suggestion,
    make_diagnostic,
)
from tempbind.source import Span
from tempbind.tokens import DECL_KEYWORDS, Token, TokenKind


@dataclass
class ConstructMatch:
    """The raw shape of one recognized construct."""

    kind: ConstructKind
    keyword: Token
    binding: Token | None
    result_name: Token | None
    # Index of the first step token, or None when no '=' follows the marker
    steps_start: int | None
    # Index of the first token not examined by the recognizer
    resume: int
    span: Span
    errors: list[Diagnostic] = field(default_factory=list)

    @property
    def qualifier(self) -> str:
        return self.keyword.value

    @property
    def ok(self) -> bool:
        return not self.errors


def is_marker(tokens: list[Token], pos: int) -> bool:
    """True when ``tokens[pos:]`` starts with a declaration keyword and ``(``."""
    if pos + 1 >= len(tokens):
        return False
    return tokens[pos].kind in DECL_KEYWORDS and tokens[pos + 1].kind == TokenKind.LPAREN


class ConstructRecognizer:
    """Matches binding markers in a token stream."""

    def match(self, tokens: list[Token], pos: int, *, expression_only: bool) -> ConstructMatch:
        """Match the construct whose declaration keyword is at *pos*.

        *expression_only* is set when the marker appears where only an
        expression is legal, in which case the declaration form is
        reported as incomplete.
        """
        keyword = tokens[pos]
        errors: list[Diagnostic] = []
        close = self._find_marker_close(tokens, pos + 1)

        if close is None:
            span = keyword.span.to(tokens[-1].span)
            errors.append(make_diagnostic(
                Severity.ERROR, MALFORMED_BINDING_MARKER,
                "unclosed binding marker", keyword.span,
                "this marker is never closed",
            ))
            kind = ConstructKind.EXPRESSION if expression_only else ConstructKind.DECLARATION
            return ConstructMatch(kind, keyword, None, None, None, len(tokens) - 1, span, errors)

        binding = self._check_marker_contents(tokens, pos + 1, close, errors)
        marker_span = keyword.span.to(tokens[close].span)
        after = tokens[close + 1] if close + 1 < len(tokens) else tokens[-1]

        if after.kind == TokenKind.IDENTIFIER and not expression_only:
            name_tok = after
            eq_pos = close + 2
            head_span = keyword.span.to(name_tok.span)
            if eq_pos < len(tokens) and tokens[eq_pos].kind == TokenKind.ASSIGN:
                return ConstructMatch(
                    ConstructKind.DECLARATION, keyword, binding, name_tok,
                    eq_pos + 1, eq_pos + 1, head_span, errors,
                )
            errors.append(self._incomplete(
                f"expected '=' after '{name_tok.value}' in temporary binding declaration",
                head_span, keyword, binding, name_tok.value,
            ))
            return ConstructMatch(
                ConstructKind.DECLARATION, keyword, binding, name_tok,
                None, close + 2, head_span, errors,
            )

        if after.kind == TokenKind.ASSIGN:
            return ConstructMatch(
                ConstructKind.EXPRESSION, keyword, binding, None,
                close + 2, close + 2, marker_span, errors,
            )

        if after.kind == TokenKind.IDENTIFIER:
            message = "a temporary binding declaration cannot appear in expression position"
        else:
            message = "binding marker must be followed by a declarator or '='"
        errors.append(self._incomplete(message, marker_span, keyword, binding, None))
        kind = ConstructKind.EXPRESSION if expression_only else ConstructKind.DECLARATION
        return ConstructMatch(kind, keyword, binding, None, None, close + 1, marker_span, errors)

    # ── Marker helpers ───────────────────────────────────────────

    def _find_marker_close(self, tokens: list[Token], lparen: int) -> int | None:
        """Return the index of the ')' matching the marker's '('."""
        depth = 0
        for idx in range(lparen, len(tokens)):
            kind = tokens[idx].kind
            if kind == TokenKind.LPAREN:
                depth += 1
            elif kind == TokenKind.RPAREN:
                depth -= 1
                if depth == 0:
                    return idx
            elif kind in (TokenKind.SEMICOLON, TokenKind.EOF):
                return None
        return None

    def _check_marker_contents(
        self, tokens: list[Token], lparen: int, rparen: int, errors: list[Diagnostic],
    ) -> Token | None:
        inner = tokens[lparen + 1:rparen]
        marker_span = tokens[lparen].span.to(tokens[rparen].span)
        if not inner:
            diag = make_diagnostic(
                Severity.ERROR, MALFORMED_BINDING_MARKER,
                "empty binding marker", marker_span,
                "expected an identifier between the parentheses",
            )
            diag.suggestions.append(Suggestion("name the binding", "($)"))
            errors.append(diag)
            return None
        if len(inner) == 1 and inner[0].kind == TokenKind.IDENTIFIER:
            return inner[0]
        identifiers = [t for t in inner if t.kind == TokenKind.IDENTIFIER]
        if len(identifiers) > 1:
            message = "binding marker must name exactly one identifier"
        else:
            shown = ' '.join(t.value for t in inner)
            message = f"binding marker expects an identifier, found '{shown}'"
        errors.append(make_diagnostic(
            Severity.ERROR, MALFORMED_BINDING_MARKER, message, marker_span,
        ))
        return None

    def _incomplete(
        self, message: str, span: Span, keyword: Token,
        binding: Token | None, name: str | None,
    ) -> Diagnostic:
        diag = make_diagnostic(Severity.ERROR, INCOMPLETE_CONSTRUCT, message, span)
        surface = binding.value if binding is not None else "$"
        if name is not None:
            replacement = f"{keyword.value}({surface}) {name} = <step>, <step>;"
        else:
            replacement = f"{keyword.value}({surface}) = <step>, <step>"
        diag.suggestions.append(Suggestion("complete the construct", replacement))
        return diag
