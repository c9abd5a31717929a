"""Hygiene resolution for Temporary Binding constructs.

Walks the parsed module pre-order with a chain of lexical scopes. Each
construct gets a fresh synthetic name from :class:`SyntheticNames`
before its steps are visited, so names are handed out in discovery
order, outer to inner. References to the surface identifier in steps
2..n, including inside closures, are rewritten to the synthetic name;
an inner construct or an ordinary host binding with the same spelling
shadows it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from tempbind.ast_nodes import (
    ArrowFunction,
    BlockStmt,
    ForOfStmt,
    ForStmt,
    FunctionDecl,
    FunctionExpr,
    IdentifierExpr,
    Module,
    RejectedConstruct,
    Stmt,
    TempBindingDecl,
    TempBindingExpr,
    VarDecl,
    construct_indices,
    map_children,
    var_names,
    walk,
)
from tempbind.constructs import ConstructKind, ConstructLog, ConstructState
from tempbind.errors import (
    SHADOW_WARNING,
    UNRESOLVED_BINDING_REFERENCE,
    Diagnostic,
    DiagnosticLabel,
    Severity,
    make_diagnostic,
)
from tempbind.scope import Binding, BindingKind, Scope, SyntheticNames

_SHADOWED_WHAT = {
    BindingKind.VARIABLE: "a variable",
    BindingKind.PARAMETER: "a parameter",
    BindingKind.FUNCTION: "a function",
    BindingKind.TEMP: "the binding of an enclosing construct",
    BindingKind.GLOBAL: "a declared global",
}


@dataclass
class _Watch:
    """A construct whose first step is being visited."""

    name: str
    index: int
    unresolved: list[IdentifierExpr]


class HygieneResolver:
    """Allocates synthetic names and renames binding references."""

    def __init__(
        self,
        log: ConstructLog,
        names: SyntheticNames | None = None,
        *,
        shadow_warnings: bool = True,
        host_globals: Iterable[str] = (),
    ) -> None:
        self.log = log
        self.names = names if names is not None else SyntheticNames()
        self.shadow_warnings = shadow_warnings
        self.host_globals = list(host_globals)
        self.diagnostics: list[Diagnostic] = []
        self._watches: list[_Watch] = []

    def resolve(self, module: Module) -> Module:
        self.names.reserve(_spelled_names(module))
        globals_scope = Scope(name="globals")
        for name in self.host_globals:
            globals_scope.define(Binding(name, BindingKind.GLOBAL))
        scope = Scope(globals_scope, "module")
        self._hoist_vars(module.body, scope)
        body = self._visit_block_body(module.body, scope)
        return replace(module, body=body)

    # ── Scopes ───────────────────────────────────────────────────

    def _hoist_vars(self, stmts: list[Stmt], scope: Scope) -> None:
        """Define every ``var`` name of a function body in its function scope."""
        for name in var_names(stmts):
            scope.define(Binding(name, BindingKind.VARIABLE))

    def _hoist_block(self, stmts: list[Stmt], scope: Scope) -> None:
        for stmt in stmts:
            if isinstance(stmt, VarDecl) and stmt.kind != "var":
                for decl in stmt.declarators:
                    scope.define(Binding(decl.name, BindingKind.VARIABLE, span=decl.span))
            elif isinstance(stmt, FunctionDecl):
                scope.define(Binding(stmt.name, BindingKind.FUNCTION, span=stmt.span))
            elif isinstance(stmt, TempBindingDecl) and stmt.qualifier != "var":
                scope.define(Binding(stmt.result_name, BindingKind.VARIABLE, span=stmt.span))

    def _visit_block_body(self, stmts: list[Stmt], scope: Scope) -> list[Stmt]:
        self._hoist_block(stmts, scope)
        return [self._visit(stmt, scope) for stmt in stmts]

    def _visit_function(self, params: list[str], body: list[Stmt], scope: Scope) -> list[Stmt]:
        fn_scope = Scope(scope, "function")
        for param in params:
            fn_scope.define(Binding(param, BindingKind.PARAMETER))
        self._hoist_vars(body, fn_scope)
        return self._visit_block_body(body, fn_scope)

    # ── Traversal ────────────────────────────────────────────────

    def _visit(self, node: Any, scope: Scope) -> Any:
        if isinstance(node, (TempBindingDecl, TempBindingExpr)):
            return self._visit_construct(node, scope)

        if isinstance(node, IdentifierExpr):
            return self._visit_identifier(node, scope)

        if isinstance(node, FunctionDecl):
            return replace(node, body=self._visit_function(node.params, node.body, scope))

        if isinstance(node, FunctionExpr):
            if node.name is not None:
                scope = Scope(scope, "function-name")
                scope.define(Binding(node.name, BindingKind.FUNCTION))
            return replace(node, body=self._visit_function(node.params, node.body, scope))

        if isinstance(node, ArrowFunction):
            if isinstance(node.body, BlockStmt):
                body = replace(
                    node.body, body=self._visit_function(node.params, node.body.body, scope),
                )
                return replace(node, body=body)
            fn_scope = Scope(scope, "arrow")
            for param in node.params:
                fn_scope.define(Binding(param, BindingKind.PARAMETER))
            return replace(node, body=self._visit(node.body, fn_scope))

        if isinstance(node, BlockStmt):
            return replace(node, body=self._visit_block_body(node.body, Scope(scope, "block")))

        if isinstance(node, ForStmt):
            loop_scope = Scope(scope, "for")
            if isinstance(node.init, VarDecl) and node.init.kind != "var":
                for decl in node.init.declarators:
                    loop_scope.define(Binding(decl.name, BindingKind.VARIABLE, span=decl.span))
            return map_children(node, lambda child: self._visit(child, loop_scope))

        if isinstance(node, ForOfStmt):
            iterable = self._visit(node.iterable, scope)
            loop_scope = Scope(scope, "for-of")
            loop_scope.define(Binding(node.name, BindingKind.VARIABLE))
            body = self._visit(node.body, loop_scope)
            return replace(node, iterable=iterable, body=body)

        if isinstance(node, RejectedConstruct):
            return node

        return map_children(node, lambda child: self._visit(child, scope))

    def _visit_identifier(self, node: IdentifierExpr, scope: Scope) -> IdentifierExpr:
        binding = scope.lookup(node.name)
        if binding is None:
            for watch in reversed(self._watches):
                if watch.name == node.name:
                    watch.unresolved.append(node)
                    break
            return node
        if binding.kind == BindingKind.TEMP:
            return replace(node, name=binding.synthetic)
        return node

    def _visit_construct(self, node: TempBindingDecl | TempBindingExpr, scope: Scope) -> Any:
        record = self.log.get(node.index)
        synthetic = self.names.fresh()

        shadowed = scope.lookup(node.binding)
        if shadowed is not None and self.shadow_warnings:
            self._warn_shadow(node, shadowed)

        # Step 1 runs before the binding holds a value: enclosing meaning applies.
        watch = _Watch(node.binding, node.index, [])
        self._watches.append(watch)
        try:
            first = self._visit(node.steps[0], scope)
        finally:
            self._watches.pop()

        step_scope = Scope(scope, "construct")
        step_scope.define(Binding(
            node.binding, BindingKind.TEMP,
            synthetic=synthetic, construct=node.index, span=node.span,
        ))
        rest = [self._visit(step, step_scope) for step in node.steps[1:]]
        steps = [first, *rest]

        if watch.unresolved:
            for ref in watch.unresolved:
                self.diagnostics.append(make_diagnostic(
                    Severity.ERROR, UNRESOLVED_BINDING_REFERENCE,
                    f"'{ref.name}' is used in the first step of its own temporary binding",
                    ref.span,
                    "the binding has no value until the first step completes",
                ))
            self.log.reject(node.index, UNRESOLVED_BINDING_REFERENCE)
            self.log.reject_all(construct_indices(steps), UNRESOLVED_BINDING_REFERENCE)
            kind = (ConstructKind.DECLARATION if isinstance(node, TempBindingDecl)
                    else ConstructKind.EXPRESSION)
            return RejectedConstruct(kind, node.index, node.span)

        record.synthetic = synthetic
        self.log.advance(node.index, ConstructState.RESOLVED)
        return replace(node, steps=steps, synthetic=synthetic)

    def _warn_shadow(self, node: TempBindingDecl | TempBindingExpr, shadowed: Binding) -> None:
        what = _SHADOWED_WHAT[shadowed.kind]
        diag = make_diagnostic(
            Severity.WARNING, SHADOW_WARNING,
            f"temporary binding '{node.binding}' shadows {what}",
            node.span,
            f"'{node.binding}' is already bound here",
        )
        if shadowed.span is not None:
            diag.labels.append(DiagnosticLabel(shadowed.span, "previous binding", style="secondary"))
        diag.notes.append("references inside the steps are renamed; the outer binding is unaffected")
        self.diagnostics.append(diag)
        self.log.get(node.index).codes.append(SHADOW_WARNING)


def _spelled_names(module: Module) -> set[str]:
    """Every identifier spelled anywhere in *module*."""
    names: set[str] = set()
    for node in walk(module):
        if isinstance(node, IdentifierExpr):
            names.add(node.name)
        elif isinstance(node, (FunctionDecl, FunctionExpr)):
            if node.name:
                names.add(node.name)
            names.update(node.params)
        elif isinstance(node, ArrowFunction):
            names.update(node.params)
        elif isinstance(node, VarDecl):
            names.update(d.name for d in node.declarators)
        elif isinstance(node, ForOfStmt):
            names.add(node.name)
        elif isinstance(node, TempBindingDecl):
            names.update((node.binding, node.result_name))
        elif isinstance(node, TempBindingExpr):
            names.add(node.binding)
    return names
