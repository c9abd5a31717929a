"""AST-walking printer for the host subset.

Walks a (usually lowered) Module and emits source text with a fixed
layout: two-space indentation, one statement per line, double-quoted
strings. Parentheses come from ``ParenExpr`` nodes and from the
precedence table below, so printing a tree, parsing the text and
printing again yields the same text.
"""

from __future__ import annotations

import re

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
    EmptyStmt,
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
    RejectedConstruct,
    ReturnStmt,
    SequenceExpr,
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
)

# Binary operator precedence (higher binds tighter)
_PRECEDENCE: dict[str, int] = {
    "||": 3, "??": 3,
    "&&": 4,
    "==": 5, "!=": 5, "===": 5, "!==": 5,
    "<": 6, ">": 6, "<=": 6, ">=": 6,
    "+": 7, "-": 7,
    "*": 8, "/": 8, "%": 8,
}

_SEQUENCE = 0
_ASSIGN = 1
_CONDITIONAL = 2
_UNARY = 9
_POSTFIX = 10
_CALL = 11
_PRIMARY = 12

_IDENT_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_NUMBER_RE = re.compile(r"^[0-9]+$")

_STRING_ESCAPES = {
    "\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t",
    "\b": "\\b", "\f": "\\f", "\v": "\\v", "\0": "\\0",
}


class Printer:
    """Print a host-subset Module back to source text."""

    def __init__(self, indent: str = "  ") -> None:
        self.indent = indent
        self._level = 0

    def print(self, module: Module) -> str:
        lines = self._stmt_list(module.body, 0)
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def print_expr(self, expr: object) -> str:
        return self._expr(expr)

    # ── Statements ─────────────────────────────────────────────

    def _stmt_list(self, stmts: list, level: int) -> list[str]:
        lines: list[str] = []
        for stmt in stmts:
            lines.extend(self._stmt(stmt, level))
        return lines

    def _stmt(self, stmt: object, level: int) -> list[str]:
        saved = self._level
        self._level = level
        try:
            return self._stmt_at(stmt, level)
        finally:
            self._level = saved

    def _stmt_at(self, stmt: object, level: int) -> list[str]:
        pad = self.indent * level

        if isinstance(stmt, VarDecl):
            return [f"{pad}{self._var_decl(stmt)};"]
        if isinstance(stmt, ExprStmt):
            text = self._expr(stmt.expr, _SEQUENCE)
            if text.startswith(("{", "function")):
                text = f"({text})"
            return [f"{pad}{text};"]
        if isinstance(stmt, ReturnStmt):
            if stmt.value is None:
                return [f"{pad}return;"]
            return [f"{pad}return {self._expr(stmt.value, _SEQUENCE)};"]
        if isinstance(stmt, FunctionDecl):
            header = f"function {stmt.name}({', '.join(stmt.params)})"
            return self._block(header, BlockStmt(stmt.body, stmt.span), level)
        if isinstance(stmt, IfStmt):
            return self._if(stmt, level)
        if isinstance(stmt, WhileStmt):
            return self._block(f"while ({self._expr(stmt.test)})", stmt.body, level)
        if isinstance(stmt, ForStmt):
            return self._block(self._for_header(stmt), stmt.body, level)
        if isinstance(stmt, ForOfStmt):
            header = f"for ({stmt.kind} {stmt.name} of {self._expr(stmt.iterable, _ASSIGN)})"
            return self._block(header, stmt.body, level)
        if isinstance(stmt, BlockStmt):
            if not stmt.body:
                return [f"{pad}{{}}"]
            return [f"{pad}{{", *self._stmt_list(stmt.body, level + 1), f"{pad}}}"]
        if isinstance(stmt, BreakStmt):
            return [f"{pad}break;"]
        if isinstance(stmt, ContinueStmt):
            return [f"{pad}continue;"]
        if isinstance(stmt, ThrowStmt):
            return [f"{pad}throw {self._expr(stmt.value, _SEQUENCE)};"]
        if isinstance(stmt, EmptyStmt):
            return [f"{pad};"]
        if isinstance(stmt, TempBindingDecl):
            steps = ", ".join(self._expr(s, _ASSIGN) for s in stmt.steps)
            return [f"{pad}{stmt.qualifier}({stmt.binding}) {stmt.result_name} = {steps};"]
        if isinstance(stmt, RejectedConstruct):
            return []
        raise TypeError(f"cannot print statement {type(stmt).__name__}")

    def _var_decl(self, decl: VarDecl) -> str:
        parts = []
        for d in decl.declarators:
            if d.init is None:
                parts.append(d.name)
            else:
                parts.append(f"{d.name} = {self._expr(d.init, _ASSIGN)}")
        return f"{decl.kind} {', '.join(parts)}"

    def _block(self, header: str, body: object, level: int) -> list[str]:
        """``header {`` ... ``}``, or the header then an indented single statement."""
        pad = self.indent * level
        if isinstance(body, BlockStmt):
            if not body.body:
                return [f"{pad}{header} {{}}"]
            return [f"{pad}{header} {{", *self._stmt_list(body.body, level + 1), f"{pad}}}"]
        return [f"{pad}{header}", *self._stmt(body, level + 1)]

    def _if(self, stmt: IfStmt, level: int) -> list[str]:
        pad = self.indent * level
        consequent = stmt.consequent
        # Keep a trailing else from attaching to a nested if
        if stmt.alternate is not None and isinstance(consequent, IfStmt):
            consequent = BlockStmt([consequent], consequent.span)
        lines = self._block(f"if ({self._expr(stmt.test)})", consequent, level)
        if stmt.alternate is None:
            return lines

        if isinstance(stmt.alternate, IfStmt):
            alt = self._if(stmt.alternate, level)
            alt[0] = f"{pad}else {alt[0].lstrip()}"
        else:
            alt = self._block("else", stmt.alternate, level)

        if lines[-1] == f"{pad}}}":
            lines.pop()
            alt[0] = f"{pad}}} {alt[0].lstrip()}"
        return lines + alt

    def _for_header(self, stmt: ForStmt) -> str:
        if stmt.init is None:
            init = ""
        elif isinstance(stmt.init, VarDecl):
            init = self._var_decl(stmt.init)
        else:
            init = self._expr(stmt.init, _SEQUENCE)
        test = f" {self._expr(stmt.test)}" if stmt.test is not None else ""
        update = f" {self._expr(stmt.update)}" if stmt.update is not None else ""
        return f"for ({init};{test};{update})"

    # ── Expressions ────────────────────────────────────────────

    def _expr(self, expr: object, min_prec: int = _SEQUENCE) -> str:
        text, prec = self._expr_prec(expr)
        if prec < min_prec:
            return f"({text})"
        return text

    def _expr_prec(self, expr: object) -> tuple[str, int]:
        if isinstance(expr, NumberLit):
            return expr.value, _PRIMARY
        if isinstance(expr, StringLit):
            return _quote(expr.value), _PRIMARY
        if isinstance(expr, TemplateLit):
            return self._template(expr), _PRIMARY
        if isinstance(expr, BooleanLit):
            return ("true" if expr.value else "false"), _PRIMARY
        if isinstance(expr, NullLit):
            return "null", _PRIMARY
        if isinstance(expr, ThisExpr):
            return "this", _PRIMARY
        if isinstance(expr, IdentifierExpr):
            return expr.name, _PRIMARY
        if isinstance(expr, ParenExpr):
            return f"({self._expr(expr.expr, _SEQUENCE)})", _PRIMARY
        if isinstance(expr, ArrayLiteral):
            elems = ", ".join(self._expr(e, _ASSIGN) for e in expr.elements)
            return f"[{elems}]", _PRIMARY
        if isinstance(expr, ObjectLiteral):
            return self._object(expr), _PRIMARY
        if isinstance(expr, FunctionExpr):
            name = f" {expr.name}" if expr.name else " "
            header = f"function{name}({', '.join(expr.params)})"
            return self._inline_block(header, expr.body), _ASSIGN
        if isinstance(expr, ArrowFunction):
            return self._arrow(expr), _ASSIGN
        if isinstance(expr, CallExpr):
            callee = self._expr(expr.callee, _CALL)
            return f"{callee}({self._args(expr.args)})", _CALL
        if isinstance(expr, NewExpr):
            callee_prec = _PRIMARY if isinstance(expr.callee, CallExpr) else _CALL
            callee = self._expr(expr.callee, callee_prec)
            return f"new {callee}({self._args(expr.args)})", _CALL
        if isinstance(expr, MemberExpr):
            return f"{self._expr(expr.obj, _CALL)}.{expr.name}", _CALL
        if isinstance(expr, IndexExpr):
            return f"{self._expr(expr.obj, _CALL)}[{self._expr(expr.index)}]", _CALL
        if isinstance(expr, UnaryExpr):
            return self._unary(expr), _UNARY
        if isinstance(expr, UpdateExpr):
            if expr.prefix:
                return f"{expr.op}{self._expr(expr.target, _UNARY)}", _UNARY
            return f"{self._expr(expr.target, _CALL)}{expr.op}", _POSTFIX
        if isinstance(expr, BinaryExpr):
            prec = _PRECEDENCE[expr.op]
            left = self._expr(expr.left, prec)
            right = self._expr(expr.right, prec + 1)
            return f"{left} {expr.op} {right}", prec
        if isinstance(expr, ConditionalExpr):
            test = self._expr(expr.test, _CONDITIONAL + 1)
            consequent = self._expr(expr.consequent, _ASSIGN)
            alternate = self._expr(expr.alternate, _ASSIGN)
            return f"{test} ? {consequent} : {alternate}", _CONDITIONAL
        if isinstance(expr, AssignExpr):
            target = self._expr(expr.target, _CALL)
            return f"{target} {expr.op} {self._expr(expr.value, _ASSIGN)}", _ASSIGN
        if isinstance(expr, SequenceExpr):
            return ", ".join(self._expr(e, _ASSIGN) for e in expr.exprs), _SEQUENCE
        if isinstance(expr, TempBindingExpr):
            steps = ", ".join(self._expr(s, _ASSIGN) for s in expr.steps)
            return f"{expr.qualifier}({expr.binding}) = {steps}", _ASSIGN
        if isinstance(expr, RejectedConstruct):
            return "undefined", _PRIMARY
        raise TypeError(f"cannot print expression {type(expr).__name__}")

    def _args(self, args: list) -> str:
        return ", ".join(self._expr(a, _ASSIGN) for a in args)

    def _unary(self, expr: UnaryExpr) -> str:
        operand = self._expr(expr.operand, _UNARY)
        if expr.op in ("typeof", "void"):
            return f"{expr.op} {operand}"
        # '- -x' must not become '--x'
        if operand.startswith(expr.op) and expr.op in "+-":
            return f"{expr.op} {operand}"
        return f"{expr.op}{operand}"

    def _arrow(self, expr: ArrowFunction) -> str:
        if len(expr.params) == 1:
            params = expr.params[0]
        else:
            params = f"({', '.join(expr.params)})"
        if isinstance(expr.body, BlockStmt):
            return self._inline_block(f"{params} =>", expr.body.body)
        body = self._expr(expr.body, _ASSIGN)
        if body.startswith("{"):
            body = f"({body})"
        return f"{params} => {body}"

    def _inline_block(self, header: str, body: list) -> str:
        """A function body that opens inline and closes at the current indent."""
        if not body:
            return f"{header} {{}}"
        inner = self._stmt_list(body, self._level + 1)
        pad = self.indent * self._level
        return "\n".join([f"{header} {{", *inner, f"{pad}}}"])

    def _object(self, expr: ObjectLiteral) -> str:
        if not expr.properties:
            return "{}"
        parts = []
        for prop in expr.properties:
            key = prop.key if _IDENT_RE.match(prop.key) or _NUMBER_RE.match(prop.key) else _quote(prop.key)
            # Shorthand survives only while the value still spells the key
            if isinstance(prop.value, IdentifierExpr) and prop.value.name == prop.key:
                parts.append(key)
            else:
                parts.append(f"{key}: {self._expr(prop.value, _ASSIGN)}")
        return "{ " + ", ".join(parts) + " }"

    def _template(self, expr: TemplateLit) -> str:
        out = ["`"]
        for i, quasi in enumerate(expr.quasis):
            out.append(_escape_template(quasi))
            if i < len(expr.exprs):
                out.append("${" + self._expr(expr.exprs[i]) + "}")
        out.append("`")
        return "".join(out)


def _quote(value: str) -> str:
    out = []
    for ch in value:
        if ch in _STRING_ESCAPES:
            out.append(_STRING_ESCAPES[ch])
        elif ord(ch) < 0x20:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _escape_template(text: str) -> str:
    return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
