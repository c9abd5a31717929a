"""Splices lowered constructs back into the host tree.

The splicer walks post-order, so the steps of a construct are already
plain host code when the construct itself is lowered. A declaration
construct becomes two statements in its enclosing statement list (or a
block where only one statement fits); an expression construct becomes a
single expression in place. Rejected constructs in statement position
are dropped, and in expression position become ``undefined``.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from tempbind.ast_nodes import (
    BlockStmt,
    EmptyStmt,
    ExprStmt,
    ForOfStmt,
    ForStmt,
    FunctionDecl,
    FunctionExpr,
    IdentifierExpr,
    IfStmt,
    Module,
    RejectedConstruct,
    Stmt,
    TempBindingDecl,
    TempBindingExpr,
    WhileStmt,
    map_children,
)
from tempbind.constructs import ConstructLog, ConstructState
from tempbind.lowering import Lowerer


class Splicer:
    """Lowers every resolved construct in a module and splices the result in place."""

    def __init__(self, log: ConstructLog, lowerer: Lowerer | None = None) -> None:
        self.log = log
        self.lowerer = lowerer if lowerer is not None else Lowerer()

    def splice(self, module: Module) -> Module:
        return replace(module, body=self._splice_stmts(module.body))

    # ── Statement positions ──────────────────────────────────────

    def _splice_stmts(self, stmts: list[Stmt]) -> list[Stmt]:
        out: list[Stmt] = []
        for stmt in stmts:
            if _is_rejected_stmt(stmt):
                continue
            if isinstance(stmt, TempBindingDecl):
                out.extend(self._lower_decl(stmt))
            else:
                out.append(self._visit(stmt))
        return out

    def _slot(self, stmt: Stmt) -> Stmt:
        """Lower a statement that sits where exactly one statement is allowed."""
        if _is_rejected_stmt(stmt):
            return EmptyStmt(stmt.span)
        if isinstance(stmt, TempBindingDecl):
            return BlockStmt(self._lower_decl(stmt), stmt.span)
        return self._visit(stmt)

    def _lower_decl(self, node: TempBindingDecl) -> list[Stmt]:
        node = replace(node, steps=[self._visit(step) for step in node.steps])
        lowered = self.lowerer.lower_decl(node)
        self._done(node.index)
        return lowered

    def _done(self, index: int) -> None:
        self.log.advance(index, ConstructState.LOWERED)
        self.log.advance(index, ConstructState.SPLICED)

    # ── Generic traversal ────────────────────────────────────────

    def _visit(self, node: Any) -> Any:
        if isinstance(node, TempBindingExpr):
            node = replace(node, steps=[self._visit(step) for step in node.steps])
            lowered = self.lowerer.lower_expr(node)
            self._done(node.index)
            return lowered

        if isinstance(node, RejectedConstruct):
            return IdentifierExpr("undefined", node.span)

        if isinstance(node, (BlockStmt, FunctionDecl, FunctionExpr)):
            return replace(node, body=self._splice_stmts(node.body))

        if isinstance(node, IfStmt):
            alternate = self._slot(node.alternate) if node.alternate is not None else None
            return replace(
                node,
                test=self._visit(node.test),
                consequent=self._slot(node.consequent),
                alternate=alternate,
            )

        if isinstance(node, WhileStmt):
            return replace(node, test=self._visit(node.test), body=self._slot(node.body))

        if isinstance(node, ForStmt):
            return replace(
                node,
                init=self._visit(node.init) if node.init is not None else None,
                test=self._visit(node.test) if node.test is not None else None,
                update=self._visit(node.update) if node.update is not None else None,
                body=self._slot(node.body),
            )

        if isinstance(node, ForOfStmt):
            return replace(node, iterable=self._visit(node.iterable), body=self._slot(node.body))

        return map_children(node, self._visit)


def _is_rejected_stmt(stmt: Stmt) -> bool:
    if isinstance(stmt, RejectedConstruct):
        return True
    return isinstance(stmt, ExprStmt) and isinstance(stmt.expr, RejectedConstruct)
