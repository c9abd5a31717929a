"""Lowering of resolved Temporary Binding constructs into plain host code.

With steps ``s1..sn`` and synthetic name ``B``::

    const($) x = s1, s2, s3;    =>   let B = s1;
                                     const x = (B = s2, B = s3);

    let(_) = s1, s2             =>   (() => { let B = s1; return (B = s2); })()

The ``es5`` target declares ``B`` with ``var`` and wraps the expression
form in ``(function () { ... }).call(this)`` instead of an arrow.
"""

from __future__ import annotations

from tempbind.ast_nodes import (
    ArrowFunction,
    AssignExpr,
    BlockStmt,
    CallExpr,
    Declarator,
    Expr,
    FunctionExpr,
    IdentifierExpr,
    MemberExpr,
    ParenExpr,
    ReturnStmt,
    SequenceExpr,
    Stmt,
    TempBindingDecl,
    TempBindingExpr,
    ThisExpr,
    VarDecl,
)
from tempbind.source import Span

TARGETS = ("es2015", "es5")


class Lowerer:
    """Builds the replacement nodes for one construct at a time.

    Steps handed to the lowerer must already be free of nested constructs.
    """

    def __init__(self, target: str = "es2015") -> None:
        if target not in TARGETS:
            raise ValueError(f"unknown target {target!r}; expected one of {', '.join(TARGETS)}")
        self.target = target

    def lower_decl(self, node: TempBindingDecl) -> list[Stmt]:
        span = node.span
        kind = "var" if node.qualifier == "var" or self.target == "es5" else "let"
        init = self._init(node.synthetic, node.steps[0], kind, span)
        value = self._value(node.synthetic, node.steps[1:], span)
        result = VarDecl(node.qualifier, [Declarator(node.result_name, value, span)], span)
        return [init, result]

    def lower_expr(self, node: TempBindingExpr) -> Expr:
        span = node.span
        if self.target == "es5":
            body = [
                self._init(node.synthetic, node.steps[0], "var", span),
                ReturnStmt(self._value(node.synthetic, node.steps[1:], span), span),
            ]
            fn = ParenExpr(FunctionExpr(None, [], body, span), span)
            return CallExpr(MemberExpr(fn, "call", span), [ThisExpr(span)], span)

        body = [
            self._init(node.synthetic, node.steps[0], "let", span),
            ReturnStmt(self._value(node.synthetic, node.steps[1:], span), span),
        ]
        arrow = ParenExpr(ArrowFunction([], BlockStmt(body, span), span), span)
        return CallExpr(arrow, [], span)

    def _init(self, name: str, first: Expr, kind: str, span: Span) -> VarDecl:
        return VarDecl(kind, [Declarator(name, first, span)], span)

    def _value(self, name: str, rest: list[Expr], span: Span) -> Expr:
        """``B`` alone, or the parenthesized assignment chain ``(B = s2, ..., B = sn)``."""
        if not rest:
            return IdentifierExpr(name, span)
        chain: list[Expr] = [
            AssignExpr(IdentifierExpr(name, span), "=", step, span) for step in rest
        ]
        return ParenExpr(SequenceExpr(chain, span), span)
