"""AST node definitions for the host subset and Temporary Binding constructs."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, fields, replace
from typing import Any, Union

from tempbind.constructs import ConstructKind
from tempbind.source import Span

# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class NumberLit:
    value: str  # raw source text, e.g. "10", "0x1f", "2.5e3"
    span: Span


@dataclass(frozen=True)
class StringLit:
    value: str
    span: Span


@dataclass(frozen=True)
class TemplateLit:
    quasis: list[str]  # len(quasis) == len(exprs) + 1
    exprs: list[Expr]
    span: Span


@dataclass(frozen=True)
class BooleanLit:
    value: bool
    span: Span


@dataclass(frozen=True)
class NullLit:
    span: Span


@dataclass(frozen=True)
class ThisExpr:
    span: Span


@dataclass(frozen=True)
class IdentifierExpr:
    name: str
    span: Span


@dataclass(frozen=True)
class ArrayLiteral:
    elements: list[Expr]
    span: Span


@dataclass(frozen=True)
class Property:
    key: str
    value: Expr
    shorthand: bool
    span: Span


@dataclass(frozen=True)
class ObjectLiteral:
    properties: list[Property]
    span: Span


@dataclass(frozen=True)
class FunctionExpr:
    name: str | None
    params: list[str]
    body: list[Stmt]
    span: Span


@dataclass(frozen=True)
class ArrowFunction:
    params: list[str]
    body: Expr | BlockStmt
    span: Span


@dataclass(frozen=True)
class CallExpr:
    callee: Expr
    args: list[Expr]
    span: Span


@dataclass(frozen=True)
class NewExpr:
    callee: Expr
    args: list[Expr]
    span: Span


@dataclass(frozen=True)
class MemberExpr:
    obj: Expr
    name: str
    span: Span


@dataclass(frozen=True)
class IndexExpr:
    obj: Expr
    index: Expr
    span: Span


@dataclass(frozen=True)
class UnaryExpr:
    op: str  # '!', '-', '+', 'typeof', 'void'
    operand: Expr
    span: Span


@dataclass(frozen=True)
class UpdateExpr:
    op: str  # '++' or '--'
    prefix: bool
    target: Expr
    span: Span


@dataclass(frozen=True)
class BinaryExpr:
    left: Expr
    op: str
    right: Expr
    span: Span


@dataclass(frozen=True)
class ConditionalExpr:
    test: Expr
    consequent: Expr
    alternate: Expr
    span: Span


@dataclass(frozen=True)
class AssignExpr:
    target: Expr
    op: str  # '=', '+=', ...
    value: Expr
    span: Span


@dataclass(frozen=True)
class SequenceExpr:
    exprs: list[Expr]
    span: Span


@dataclass(frozen=True)
class ParenExpr:
    expr: Expr
    span: Span


@dataclass(frozen=True)
class TempBindingExpr:
    """``let(_) = s1, s2, ..., sn`` in expression position."""

    qualifier: str
    binding: str
    steps: list[Expr]
    index: int
    span: Span
    synthetic: str | None = None


@dataclass(frozen=True)
class RejectedConstruct:
    """Placeholder for a construct that failed recognition or resolution."""

    kind: ConstructKind
    index: int
    span: Span


Expr = Union[
    NumberLit, StringLit, TemplateLit, BooleanLit, NullLit, ThisExpr,
    IdentifierExpr, ArrayLiteral, ObjectLiteral, FunctionExpr, ArrowFunction,
    CallExpr, NewExpr, MemberExpr, IndexExpr, UnaryExpr, UpdateExpr,
    BinaryExpr, ConditionalExpr, AssignExpr, SequenceExpr, ParenExpr,
    TempBindingExpr, RejectedConstruct,
]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Declarator:
    name: str
    init: Expr | None
    span: Span


@dataclass(frozen=True)
class VarDecl:
    kind: str  # 'var', 'let' or 'const'
    declarators: list[Declarator]
    span: Span


@dataclass(frozen=True)
class TempBindingDecl:
    """``const($) name = s1, s2, ..., sn;``"""

    qualifier: str
    binding: str
    result_name: str
    steps: list[Expr]
    index: int
    span: Span
    synthetic: str | None = None


@dataclass(frozen=True)
class FunctionDecl:
    name: str
    params: list[str]
    body: list[Stmt]
    span: Span


@dataclass(frozen=True)
class ReturnStmt:
    value: Expr | None
    span: Span


@dataclass(frozen=True)
class IfStmt:
    test: Expr
    consequent: Stmt
    alternate: Stmt | None
    span: Span


@dataclass(frozen=True)
class WhileStmt:
    test: Expr
    body: Stmt
    span: Span


@dataclass(frozen=True)
class ForStmt:
    init: VarDecl | Expr | None
    test: Expr | None
    update: Expr | None
    body: Stmt
    span: Span


@dataclass(frozen=True)
class ForOfStmt:
    kind: str
    name: str
    iterable: Expr
    body: Stmt
    span: Span


@dataclass(frozen=True)
class BreakStmt:
    span: Span


@dataclass(frozen=True)
class ContinueStmt:
    span: Span


@dataclass(frozen=True)
class ThrowStmt:
    value: Expr
    span: Span


@dataclass(frozen=True)
class BlockStmt:
    body: list[Stmt]
    span: Span


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    span: Span


@dataclass(frozen=True)
class EmptyStmt:
    span: Span


Stmt = Union[
    VarDecl, TempBindingDecl, FunctionDecl, ReturnStmt, IfStmt, WhileStmt,
    ForStmt, ForOfStmt, BreakStmt, ContinueStmt, ThrowStmt, BlockStmt,
    ExprStmt, EmptyStmt, RejectedConstruct,
]


@dataclass(frozen=True)
class Module:
    body: list[Stmt]
    span: Span


# ── Generic traversal ────────────────────────────────────────────


def is_node(value: object) -> bool:
    return hasattr(value, "__dataclass_fields__") and not isinstance(value, Span)


def iter_children(node: object) -> Iterator[Any]:
    """Yield the direct child nodes of *node* in field order."""
    for f in fields(node):  # type: ignore[arg-type]
        value = getattr(node, f.name)
        if isinstance(value, list):
            for item in value:
                if is_node(item):
                    yield item
        elif is_node(value):
            yield value


def map_children(node: Any, fn: Callable[[Any], Any]) -> Any:
    """Return *node* with every direct child replaced by ``fn(child)``.

    The original node is returned when no child changed.
    """
    changes: dict[str, Any] = {}
    for f in fields(node):
        value = getattr(node, f.name)
        if isinstance(value, list):
            new_list = [fn(item) if is_node(item) else item for item in value]
            if any(a is not b for a, b in zip(new_list, value)):
                changes[f.name] = new_list
        elif is_node(value):
            new_value = fn(value)
            if new_value is not value:
                changes[f.name] = new_value
    if not changes:
        return node
    return replace(node, **changes)


def walk(node: object) -> Iterator[Any]:
    """Yield *node* and all of its descendants, pre-order."""
    yield node
    for child in iter_children(node):
        yield from walk(child)


def construct_indices(nodes) -> list[int]:
    """Log indices of every unrejected construct in *nodes* and below."""
    found: list[int] = []
    for node in nodes:
        for sub in walk(node):
            if isinstance(sub, (TempBindingExpr, TempBindingDecl)):
                found.append(sub.index)
    return found


def var_names(stmts: list[Stmt]) -> list[str]:
    """Names declared with ``var`` in *stmts*, not descending into functions."""
    names: list[str] = []
    for stmt in stmts:
        if isinstance(stmt, VarDecl) and stmt.kind == "var":
            names.extend(d.name for d in stmt.declarators)
        elif isinstance(stmt, TempBindingDecl) and stmt.qualifier == "var":
            names.append(stmt.result_name)
        elif isinstance(stmt, BlockStmt):
            names.extend(var_names(stmt.body))
        elif isinstance(stmt, IfStmt):
            names.extend(var_names([stmt.consequent]))
            if stmt.alternate is not None:
                names.extend(var_names([stmt.alternate]))
        elif isinstance(stmt, WhileStmt):
            names.extend(var_names([stmt.body]))
        elif isinstance(stmt, ForStmt):
            if isinstance(stmt.init, VarDecl):
                names.extend(var_names([stmt.init]))
            names.extend(var_names([stmt.body]))
        elif isinstance(stmt, ForOfStmt):
            if stmt.kind == "var":
                names.append(stmt.name)
            names.extend(var_names([stmt.body]))
    return names
