"""Pipeline splitting for Temporary Binding step lists.

Given the token index right after a construct's ``=``, finds where the
step list ends and the top-level commas that separate its steps. Commas
nested in parentheses, brackets, braces or template substitutions never
split a step. No step is parsed here; only token boundaries are found.
"""

from __future__ import annotations

from dataclasses import dataclass

from tempbind.tokens import CLOSERS, OPENERS, Token, TokenKind

_MATCHING: dict[TokenKind, TokenKind] = {
    TokenKind.RPAREN: TokenKind.LPAREN,
    TokenKind.RBRACKET: TokenKind.LBRACKET,
    TokenKind.RBRACE: TokenKind.LBRACE,
    TokenKind.TEMPLATE_TAIL: TokenKind.TEMPLATE_HEAD,
}


@dataclass(frozen=True)
class StepSplit:
    """Token ranges ``[start, end)`` of each step, in source order."""

    steps: list[tuple[int, int]]
    end: int  # index of the first token after the step list

    @property
    def is_empty(self) -> bool:
        return len(self.steps) == 1 and self.steps[0][0] == self.steps[0][1]

    def empty_steps(self) -> list[int]:
        """Positions (0-based) of steps that contain no tokens."""
        return [i for i, (start, end) in enumerate(self.steps) if start == end]


def find_extent(tokens: list[Token], start: int) -> int:
    """Return the index of the first token after the step list starting at *start*."""
    return split_steps(tokens, start).end


def split_steps(tokens: list[Token], start: int) -> StepSplit:
    """Split the step list beginning at *start* on top-level commas.

    The list ends at a ``;`` at depth 0, at a closing bracket or template
    continuation that was not opened inside the list, at a ``:`` that does
    not answer a ``?`` of the list itself, or at end of input.
    """
    stack: list[TokenKind] = []
    pending_questions = 0
    steps: list[tuple[int, int]] = []
    step_start = start
    idx = start

    while idx < len(tokens):
        kind = tokens[idx].kind
        if kind == TokenKind.EOF:
            break

        if not stack:
            if kind == TokenKind.SEMICOLON:
                break
            if kind in CLOSERS or kind == TokenKind.TEMPLATE_MIDDLE:
                break
            if kind == TokenKind.COMMA:
                steps.append((step_start, idx))
                step_start = idx + 1
                idx += 1
                continue
            if kind == TokenKind.QUESTION:
                pending_questions += 1
            elif kind == TokenKind.COLON:
                if pending_questions == 0:
                    break
                pending_questions -= 1

        if kind in OPENERS:
            stack.append(kind)
        elif kind in CLOSERS:
            if stack and stack[-1] == _MATCHING[kind]:
                stack.pop()
            else:
                # Mismatched closer inside the list; let the host parser report it
                break
        idx += 1

    steps.append((step_start, idx))
    return StepSplit(steps=steps, end=idx)
