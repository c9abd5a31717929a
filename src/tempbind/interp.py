"""Reference evaluator for lowered host-subset programs.

Runs a Module that contains no Temporary Binding syntax and records
``console.log`` output. It exists to observe what emitted code does
(call counts, evaluation order, final values), so it models just enough
JavaScript for that: lexical environments, closures with ``this``,
arrays, plain objects, strings and a handful of globals.
"""

from __future__ import annotations

import functools
import json
import math
import sys
from collections.abc import Callable
from dataclasses import dataclass, field

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
    var_names,
)


class _Undefined:
    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


class EvalError(Exception):
    """A runtime error raised by the evaluated program (TypeError, ReferenceError)."""

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(f"{kind}: {message}")


class ThrowSignal(Exception):
    """A value thrown by ``throw`` and never caught."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Uncaught {to_display(value)}")


class ReturnSignal(Exception):
    def __init__(self, value: object) -> None:
        self.value = value


class BreakSignal(Exception):
    pass


class ContinueSignal(Exception):
    pass


class Environment:
    def __init__(self, parent: Environment | None = None) -> None:
        self.parent = parent
        self.values: dict[str, object] = {}

    def define(self, name: str, value: object) -> None:
        self.values[name] = value

    def set(self, name: str, value: object) -> None:
        if name in self.values:
            self.values[name] = value
            return
        if self.parent:
            self.parent.set(name, value)
            return
        raise EvalError("ReferenceError", f"{name} is not defined")

    def get(self, name: str) -> object:
        if name in self.values:
            return self.values[name]
        if self.parent:
            return self.parent.get(name)
        raise EvalError("ReferenceError", f"{name} is not defined")

    def has(self, name: str) -> bool:
        if name in self.values:
            return True
        return self.parent.has(name) if self.parent else False


@dataclass
class Closure:
    name: str
    params: list[str]
    body: list | object  # statement list, or an expression for concise arrows
    env: Environment
    arrow: bool = False


@dataclass
class NativeFunction:
    name: str
    fn: Callable[[object, list[object]], object]
    constructor: bool = False


@dataclass
class JSObject:
    """A plain object; property order is insertion order."""

    props: dict[str, object] = field(default_factory=dict)


# ── Conversions ─────────────────────────────────────────────────


def _norm(value: float | int) -> float | int:
    if isinstance(value, float) and value.is_integer() and abs(value) < 2**53:
        return int(value)
    return value


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def truthy(value: object) -> bool:
    if value is None or value is UNDEFINED:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def to_number(value: object) -> float | int:
    if isinstance(value, bool):
        return 1 if value else 0
    if is_number(value):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0
        try:
            if text.lower().startswith("0x"):
                return int(text, 16)
            return _norm(float(text))
        except ValueError:
            return math.nan
    if isinstance(value, list):
        return to_number(to_string(value))
    return math.nan


def _format_number(value: float | int) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    value = _norm(value)
    return str(value)


def to_string(value: object) -> str:
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return _format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ",".join("" if v is None or v is UNDEFINED else to_string(v) for v in value)
    if isinstance(value, JSObject):
        if "message" in value.props and "name" in value.props:
            return f"{to_string(value.props['name'])}: {to_string(value.props['message'])}"
        return "[object Object]"
    if isinstance(value, (Closure, NativeFunction)):
        return f"function {value.name}() {{ [code] }}"
    return str(value)


def _inspect(value: object) -> str:
    """Nested rendering used by console.log for values inside containers."""
    if isinstance(value, str):
        return "'" + value.replace("'", "\\'") + "'"
    return to_display(value)


def to_display(value: object) -> str:
    if isinstance(value, list):
        if not value:
            return "[]"
        return "[ " + ", ".join(_inspect(v) for v in value) + " ]"
    if isinstance(value, JSObject):
        if not value.props:
            return "{}"
        parts = [f"{k}: {_inspect(v)}" for k, v in value.props.items()]
        return "{ " + ", ".join(parts) + " }"
    if isinstance(value, (Closure, NativeFunction)):
        return f"[Function: {value.name or '(anonymous)'}]"
    return to_string(value)


def type_of(value: object) -> str:
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (Closure, NativeFunction)):
        return "function"
    return "object"


def strict_equals(a: object, b: object) -> bool:
    if is_number(a) and is_number(b):
        return a == b
    if type_of(a) != type_of(b):
        return False
    if isinstance(a, (str, bool)) or a is None or a is UNDEFINED:
        return a == b
    return a is b


def loose_equals(a: object, b: object) -> bool:
    nullish = (None, UNDEFINED)
    if a in nullish or b in nullish:
        return a in nullish and b in nullish
    if type_of(a) == type_of(b):
        return strict_equals(a, b)
    if type_of(a) in ("object", "function") or type_of(b) in ("object", "function"):
        return to_string(a) == to_string(b)
    return to_number(a) == to_number(b)


def json_stringify(value: object) -> str | _Undefined:
    if value is UNDEFINED or isinstance(value, (Closure, NativeFunction)):
        return UNDEFINED
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return "null"
        return _format_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, list):
        items = []
        for item in value:
            text = json_stringify(item)
            items.append("null" if text is UNDEFINED else text)
        return "[" + ",".join(items) + "]"
    if isinstance(value, JSObject):
        parts = []
        for key, item in value.props.items():
            text = json_stringify(item)
            if text is not UNDEFINED:
                parts.append(f"{json.dumps(key, ensure_ascii=False)}:{text}")
        return "{" + ",".join(parts) + "}"
    return UNDEFINED


def _arg(args: list[object], i: int) -> object:
    return args[i] if i < len(args) else UNDEFINED


def _int_arg(args: list[object], i: int, default: int = 0) -> int:
    number = to_number(_arg(args, i))
    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return default
    return int(number)


def _slice_bounds(length: int, args: list[object]) -> tuple[int, int]:
    def clamp(raw: object, default: int) -> int:
        if raw is UNDEFINED:
            return default
        n = _int_arg([raw], 0)
        if n < 0:
            n += length
        return max(0, min(n, length))
    return clamp(_arg(args, 0), 0), clamp(_arg(args, 1), length)


# ── Interpreter ─────────────────────────────────────────────────


class Interpreter:
    """Executes a plain (fully lowered) host-subset module."""

    def __init__(self, stdout=None) -> None:
        self.stdout = stdout
        self.output: list[str] = []
        self.global_env = Environment()
        self._install_globals()

    def run(self, module: Module) -> object:
        """Execute *module* in the global environment.

        Returns the value of the last expression statement executed at top
        level, or ``UNDEFINED``.
        """
        self._hoist(module.body, self.global_env, function_scope=True)
        result: object = UNDEFINED
        for stmt in module.body:
            if isinstance(stmt, ExprStmt):
                result = self._eval(stmt.expr, self.global_env)
            else:
                self._exec(stmt, self.global_env)
        return result

    def call(self, name: str, *args: object) -> object:
        return self._call(self.global_env.get(name), UNDEFINED, list(args))

    # ── Globals ───────────────────────────────────────────────

    def _install_globals(self) -> None:
        env = self.global_env
        env.define("undefined", UNDEFINED)
        env.define("NaN", math.nan)
        env.define("Infinity", math.inf)
        env.define("this", UNDEFINED)

        def native(name: str, fn: Callable[[list[object]], object]) -> NativeFunction:
            return NativeFunction(name, lambda this, args: fn(args))

        env.define("console", JSObject({"log": native("log", self._console_log)}))
        env.define("Math", JSObject({
            "PI": math.pi,
            "max": native("max", lambda a: _norm(max((to_number(x) for x in a), default=-math.inf))),
            "min": native("min", lambda a: _norm(min((to_number(x) for x in a), default=math.inf))),
            "floor": native("floor", lambda a: _round_with(math.floor, _arg(a, 0))),
            "ceil": native("ceil", lambda a: _round_with(math.ceil, _arg(a, 0))),
            "round": native("round", lambda a: _round_with(lambda x: math.floor(x + 0.5), _arg(a, 0))),
            "abs": native("abs", lambda a: abs(to_number(_arg(a, 0)))),
            "sqrt": native("sqrt", lambda a: _sqrt(to_number(_arg(a, 0)))),
            "pow": native("pow", lambda a: _norm(float(to_number(_arg(a, 0))) ** to_number(_arg(a, 1)))),
        }))
        env.define("JSON", JSObject({
            "stringify": native("stringify", lambda a: json_stringify(_arg(a, 0))),
        }))
        env.define("Object", JSObject({
            "keys": native("keys", lambda a: list(_arg(a, 0).props) if isinstance(_arg(a, 0), JSObject) else []),
        }))
        env.define("Array", JSObject({
            "isArray": native("isArray", lambda a: isinstance(_arg(a, 0), list)),
        }))
        env.define("String", native("String", lambda a: to_string(_arg(a, 0)) if a else ""))
        env.define("Number", native("Number", lambda a: to_number(_arg(a, 0)) if a else 0))
        env.define("Boolean", native("Boolean", lambda a: truthy(_arg(a, 0))))
        env.define("isNaN", native("isNaN", lambda a: math.isnan(to_number(_arg(a, 0)))))
        env.define("parseInt", native("parseInt", lambda a: _parse_int(to_string(_arg(a, 0)))))
        for error_name in ("Error", "TypeError", "RangeError"):
            env.define(error_name, self._error_constructor(error_name))

    def _error_constructor(self, name: str) -> NativeFunction:
        def construct(this: object, args: list[object]) -> JSObject:
            message = _arg(args, 0)
            return JSObject({
                "name": name,
                "message": "" if message is UNDEFINED else to_string(message),
            })
        return NativeFunction(name, construct, constructor=True)

    def _console_log(self, args: list[object]) -> object:
        line = " ".join(v if isinstance(v, str) else to_display(v) for v in args)
        self.output.append(line)
        if self.stdout is not None:
            self.stdout.write(line + "\n")
        return UNDEFINED

    # ── Statements ────────────────────────────────────────────

    def _hoist(self, stmts: list, env: Environment, *, function_scope: bool) -> None:
        if function_scope:
            for name in var_names(stmts):
                if name not in env.values:
                    env.define(name, UNDEFINED)
        for stmt in stmts:
            if isinstance(stmt, FunctionDecl):
                env.define(stmt.name, Closure(stmt.name, stmt.params, stmt.body, env))

    def _exec_block(self, stmts: list, env: Environment) -> None:
        self._hoist(stmts, env, function_scope=False)
        for stmt in stmts:
            self._exec(stmt, env)

    def _exec(self, stmt: object, env: Environment) -> None:
        if isinstance(stmt, ExprStmt):
            self._eval(stmt.expr, env)
        elif isinstance(stmt, VarDecl):
            self._exec_var_decl(stmt, env)
        elif isinstance(stmt, FunctionDecl):
            pass  # hoisted
        elif isinstance(stmt, ReturnStmt):
            value = self._eval(stmt.value, env) if stmt.value is not None else UNDEFINED
            raise ReturnSignal(value)
        elif isinstance(stmt, IfStmt):
            if truthy(self._eval(stmt.test, env)):
                self._exec(stmt.consequent, env)
            elif stmt.alternate is not None:
                self._exec(stmt.alternate, env)
        elif isinstance(stmt, WhileStmt):
            while truthy(self._eval(stmt.test, env)):
                try:
                    self._exec(stmt.body, env)
                except BreakSignal:
                    break
                except ContinueSignal:
                    continue
        elif isinstance(stmt, ForStmt):
            self._exec_for(stmt, env)
        elif isinstance(stmt, ForOfStmt):
            self._exec_for_of(stmt, env)
        elif isinstance(stmt, BlockStmt):
            self._exec_block(stmt.body, Environment(env))
        elif isinstance(stmt, BreakStmt):
            raise BreakSignal()
        elif isinstance(stmt, ContinueStmt):
            raise ContinueSignal()
        elif isinstance(stmt, ThrowStmt):
            raise ThrowSignal(self._eval(stmt.value, env))
        elif isinstance(stmt, EmptyStmt):
            pass
        elif isinstance(stmt, (TempBindingDecl, RejectedConstruct)):
            raise EvalError("SyntaxError", "temporary binding was not lowered")
        else:
            raise EvalError("SyntaxError", f"cannot execute {type(stmt).__name__}")

    def _exec_var_decl(self, stmt: VarDecl, env: Environment) -> None:
        for decl in stmt.declarators:
            if decl.init is None:
                if stmt.kind == "var":
                    continue
                value: object = UNDEFINED
            else:
                value = self._eval(decl.init, env)
            if stmt.kind == "var":
                env.set(decl.name, value)
            else:
                env.define(decl.name, value)

    def _exec_for(self, stmt: ForStmt, env: Environment) -> None:
        loop_env = Environment(env)
        per_iteration: list[str] = []
        if isinstance(stmt.init, VarDecl):
            self._exec_var_decl(stmt.init, loop_env)
            if stmt.init.kind != "var":
                per_iteration = [d.name for d in stmt.init.declarators]
        elif stmt.init is not None:
            self._eval(stmt.init, loop_env)

        while True:
            if stmt.test is not None and not truthy(self._eval(stmt.test, loop_env)):
                break
            try:
                self._exec(stmt.body, loop_env)
            except BreakSignal:
                break
            except ContinueSignal:
                pass
            # Closures keep the binding of their own iteration
            if per_iteration:
                next_env = Environment(env)
                for name in per_iteration:
                    next_env.define(name, loop_env.values[name])
                loop_env = next_env
            if stmt.update is not None:
                self._eval(stmt.update, loop_env)

    def _exec_for_of(self, stmt: ForOfStmt, env: Environment) -> None:
        iterable = self._eval(stmt.iterable, env)
        if isinstance(iterable, str):
            iterable = list(iterable)
        if not isinstance(iterable, list):
            raise EvalError("TypeError", f"{to_display(iterable)} is not iterable")
        i = 0
        while i < len(iterable):
            item = iterable[i]
            i += 1
            if stmt.kind == "var":
                env.set(stmt.name, item)
                body_env = env
            else:
                body_env = Environment(env)
                body_env.define(stmt.name, item)
            try:
                self._exec(stmt.body, body_env)
            except BreakSignal:
                break
            except ContinueSignal:
                continue

    # ── Expressions ───────────────────────────────────────────

    def _eval(self, expr: object, env: Environment) -> object:
        if isinstance(expr, NumberLit):
            return _parse_number(expr.value)
        if isinstance(expr, StringLit):
            return expr.value
        if isinstance(expr, TemplateLit):
            parts = [expr.quasis[0]]
            for sub, quasi in zip(expr.exprs, expr.quasis[1:]):
                parts.append(to_string(self._eval(sub, env)))
                parts.append(quasi)
            return "".join(parts)
        if isinstance(expr, BooleanLit):
            return expr.value
        if isinstance(expr, NullLit):
            return None
        if isinstance(expr, ThisExpr):
            return env.get("this")
        if isinstance(expr, IdentifierExpr):
            return env.get(expr.name)
        if isinstance(expr, ParenExpr):
            return self._eval(expr.expr, env)
        if isinstance(expr, ArrayLiteral):
            return [self._eval(e, env) for e in expr.elements]
        if isinstance(expr, ObjectLiteral):
            return JSObject({p.key: self._eval(p.value, env) for p in expr.properties})
        if isinstance(expr, FunctionExpr):
            fn_env = env
            closure = Closure(expr.name or "", expr.params, expr.body, fn_env)
            if expr.name:
                fn_env = Environment(env)
                fn_env.define(expr.name, closure)
                closure.env = fn_env
            return closure
        if isinstance(expr, ArrowFunction):
            body = expr.body.body if isinstance(expr.body, BlockStmt) else expr.body
            return Closure("", expr.params, body, env, arrow=True)
        if isinstance(expr, CallExpr):
            return self._eval_call(expr, env)
        if isinstance(expr, NewExpr):
            return self._eval_new(expr, env)
        if isinstance(expr, MemberExpr):
            return self._get(self._eval(expr.obj, env), expr.name)
        if isinstance(expr, IndexExpr):
            obj = self._eval(expr.obj, env)
            return self._get(obj, self._eval(expr.index, env))
        if isinstance(expr, UnaryExpr):
            return self._eval_unary(expr, env)
        if isinstance(expr, UpdateExpr):
            old = to_number(self._eval(expr.target, env))
            new = _norm(old + 1 if expr.op == "++" else old - 1)
            self._assign(expr.target, new, env)
            return new if expr.prefix else old
        if isinstance(expr, BinaryExpr):
            return self._eval_binary(expr, env)
        if isinstance(expr, ConditionalExpr):
            if truthy(self._eval(expr.test, env)):
                return self._eval(expr.consequent, env)
            return self._eval(expr.alternate, env)
        if isinstance(expr, AssignExpr):
            if expr.op == "=":
                value = self._eval(expr.value, env)
            else:
                current = self._eval(expr.target, env)
                value = _binary_op(expr.op[:-1], current, self._eval(expr.value, env))
            self._assign(expr.target, value, env)
            return value
        if isinstance(expr, SequenceExpr):
            result: object = UNDEFINED
            for sub in expr.exprs:
                result = self._eval(sub, env)
            return result
        if isinstance(expr, (TempBindingExpr, RejectedConstruct)):
            raise EvalError("SyntaxError", "temporary binding was not lowered")
        raise EvalError("SyntaxError", f"cannot evaluate {type(expr).__name__}")

    def _eval_unary(self, expr: UnaryExpr, env: Environment) -> object:
        if expr.op == "typeof":
            if isinstance(expr.operand, IdentifierExpr) and not env.has(expr.operand.name):
                return "undefined"
            return type_of(self._eval(expr.operand, env))
        value = self._eval(expr.operand, env)
        if expr.op == "!":
            return not truthy(value)
        if expr.op == "-":
            return _norm(-to_number(value))
        if expr.op == "+":
            return to_number(value)
        return UNDEFINED  # void

    def _eval_binary(self, expr: BinaryExpr, env: Environment) -> object:
        left = self._eval(expr.left, env)
        if expr.op == "&&":
            return self._eval(expr.right, env) if truthy(left) else left
        if expr.op == "||":
            return left if truthy(left) else self._eval(expr.right, env)
        if expr.op == "??":
            return self._eval(expr.right, env) if left is None or left is UNDEFINED else left
        return _binary_op(expr.op, left, self._eval(expr.right, env))

    def _eval_call(self, expr: CallExpr, env: Environment) -> object:
        this: object = UNDEFINED
        if isinstance(expr.callee, MemberExpr):
            this = self._eval(expr.callee.obj, env)
            fn = self._get(this, expr.callee.name)
        elif isinstance(expr.callee, IndexExpr):
            this = self._eval(expr.callee.obj, env)
            fn = self._get(this, self._eval(expr.callee.index, env))
        else:
            fn = self._eval(expr.callee, env)
        args = [self._eval(a, env) for a in expr.args]
        return self._call(fn, this, args)

    def _eval_new(self, expr: NewExpr, env: Environment) -> object:
        fn = self._eval(expr.callee, env)
        args = [self._eval(a, env) for a in expr.args]
        if isinstance(fn, NativeFunction) and fn.constructor:
            return fn.fn(UNDEFINED, args)
        if isinstance(fn, Closure) and not fn.arrow:
            obj = JSObject()
            result = self._call(fn, obj, args)
            return result if isinstance(result, (JSObject, list)) else obj
        raise EvalError("TypeError", f"{to_display(fn)} is not a constructor")

    def _call(self, fn: object, this: object, args: list[object]) -> object:
        if isinstance(fn, NativeFunction):
            return fn.fn(this, args)
        if not isinstance(fn, Closure):
            raise EvalError("TypeError", f"{to_display(fn)} is not a function")
        env = Environment(fn.env)
        if not fn.arrow:
            env.define("this", this)
        for i, param in enumerate(fn.params):
            env.define(param, _arg(args, i))
        if not isinstance(fn.body, list):
            return self._eval(fn.body, env)
        self._hoist(fn.body, env, function_scope=True)
        try:
            for stmt in fn.body:
                self._exec(stmt, env)
        except ReturnSignal as signal:
            return signal.value
        return UNDEFINED

    def _assign(self, target: object, value: object, env: Environment) -> None:
        if isinstance(target, IdentifierExpr):
            env.set(target.name, value)
        elif isinstance(target, MemberExpr):
            self._set(self._eval(target.obj, env), target.name, value)
        elif isinstance(target, IndexExpr):
            obj = self._eval(target.obj, env)
            self._set(obj, self._eval(target.index, env), value)
        else:
            raise EvalError("SyntaxError", "invalid assignment target")

    # ── Property access ───────────────────────────────────────

    def _get(self, obj: object, key: object) -> object:
        if obj is None or obj is UNDEFINED:
            raise EvalError(
                "TypeError",
                f"Cannot read properties of {to_string(obj)} (reading '{to_string(key)}')",
            )
        if isinstance(obj, list):
            if is_number(key):
                idx = key
                if isinstance(idx, float) and not idx.is_integer():
                    return UNDEFINED
                idx = int(idx)
                return obj[idx] if 0 <= idx < len(obj) else UNDEFINED
            name = to_string(key)
            if name == "length":
                return len(obj)
            method = _ARRAY_METHODS.get(name)
            if method is not None:
                return NativeFunction(name, lambda this, args: method(self, obj, args))
            return UNDEFINED
        if isinstance(obj, str):
            if is_number(key):
                idx = int(key)
                return obj[idx] if 0 <= idx < len(obj) else UNDEFINED
            name = to_string(key)
            if name == "length":
                return len(obj)
            method = _STRING_METHODS.get(name)
            if method is not None:
                return NativeFunction(name, lambda this, args: method(obj, args))
            return UNDEFINED
        if isinstance(obj, JSObject):
            return obj.props.get(to_string(key), UNDEFINED)
        if isinstance(obj, (Closure, NativeFunction)):
            name = to_string(key)
            if name == "call":
                return NativeFunction("call", lambda this, args: self._call(obj, _arg(args, 0), args[1:]))
            if name == "apply":
                return NativeFunction(
                    "apply",
                    lambda this, args: self._call(obj, _arg(args, 0), list(_arg(args, 1) or [])),
                )
            if name == "name":
                return obj.name
            return UNDEFINED
        if is_number(obj):
            name = to_string(key)
            if name == "toFixed":
                return NativeFunction(
                    "toFixed",
                    lambda this, args: f"{obj:.{_int_arg(args, 0)}f}",
                )
            if name == "toString":
                return NativeFunction("toString", lambda this, args: to_string(obj))
            return UNDEFINED
        return UNDEFINED

    def _set(self, obj: object, key: object, value: object) -> None:
        if isinstance(obj, JSObject):
            obj.props[to_string(key)] = value
        elif isinstance(obj, list) and is_number(key):
            idx = int(key)
            while len(obj) <= idx:
                obj.append(UNDEFINED)
            obj[idx] = value
        elif isinstance(obj, list) and to_string(key) == "length":
            del obj[int(to_number(value)):]
        else:
            raise EvalError(
                "TypeError",
                f"Cannot set properties of {to_display(obj)} (setting '{to_string(key)}')",
            )


# ── Operators ───────────────────────────────────────────────────


def _binary_op(op: str, left: object, right: object) -> object:
    if op == "+":
        if isinstance(left, (list, JSObject)):
            left = to_string(left)
        if isinstance(right, (list, JSObject)):
            right = to_string(right)
        if isinstance(left, str) or isinstance(right, str):
            return to_string(left) + to_string(right)
        return _norm(to_number(left) + to_number(right))
    if op == "-":
        return _norm(to_number(left) - to_number(right))
    if op == "*":
        return _norm(to_number(left) * to_number(right))
    if op == "/":
        return _divide(to_number(left), to_number(right))
    if op == "%":
        a, b = to_number(left), to_number(right)
        if b == 0 or math.isnan(a) or math.isnan(b) or math.isinf(a):
            return math.nan
        return _norm(math.fmod(a, b))
    if op == "===":
        return strict_equals(left, right)
    if op == "!==":
        return not strict_equals(left, right)
    if op == "==":
        return loose_equals(left, right)
    if op == "!=":
        return not loose_equals(left, right)
    if op in ("<", ">", "<=", ">="):
        return _compare(op, left, right)
    raise EvalError("SyntaxError", f"unknown operator {op}")


def _divide(a: float | int, b: float | int) -> float | int:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1, b)
    return _norm(a / b)


def _compare(op: str, left: object, right: object) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a, b = left, right
    else:
        a, b = to_number(left), to_number(right)
        if math.isnan(a) or math.isnan(b):
            return False
    if op == "<":
        return a < b
    if op == ">":
        return a > b
    if op == "<=":
        return a <= b
    return a >= b


def _parse_number(text: str) -> float | int:
    if text[:2] in ("0x", "0X"):
        return int(text, 16)
    if any(c in text for c in ".eE"):
        return _norm(float(text))
    return int(text)


def _parse_int(text: str) -> float | int:
    text = text.strip()
    sign = -1 if text.startswith("-") else 1
    digits = ""
    for ch in text.lstrip("+-"):
        if not ch.isdigit():
            break
        digits += ch
    return sign * int(digits) if digits else math.nan


def _round_with(fn: Callable[[float], int], value: object) -> float | int:
    number = to_number(value)
    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return number
    return fn(number)


def _sqrt(value: float | int) -> float | int:
    if value < 0 or math.isnan(value):
        return math.nan
    return _norm(math.sqrt(value))


# ── Array and string methods ────────────────────────────────────


def _callback(args: list[object]) -> object:
    fn = _arg(args, 0)
    if not isinstance(fn, (Closure, NativeFunction)):
        raise EvalError("TypeError", f"{to_display(fn)} is not a function")
    return fn


def _array_map(interp: Interpreter, arr: list, args: list[object]) -> list:
    fn = _callback(args)
    return [interp._call(fn, UNDEFINED, [v, i, arr]) for i, v in enumerate(list(arr))]


def _array_filter(interp: Interpreter, arr: list, args: list[object]) -> list:
    fn = _callback(args)
    return [v for i, v in enumerate(list(arr)) if truthy(interp._call(fn, UNDEFINED, [v, i, arr]))]


def _array_for_each(interp: Interpreter, arr: list, args: list[object]) -> object:
    fn = _callback(args)
    for i, v in enumerate(list(arr)):
        interp._call(fn, UNDEFINED, [v, i, arr])
    return UNDEFINED


def _array_reduce(interp: Interpreter, arr: list, args: list[object]) -> object:
    fn = _callback(args)
    items = list(arr)
    if len(args) >= 2:
        acc, start = args[1], 0
    elif items:
        acc, start = items[0], 1
    else:
        raise EvalError("TypeError", "Reduce of empty array with no initial value")
    for i in range(start, len(items)):
        acc = interp._call(fn, UNDEFINED, [acc, items[i], i, arr])
    return acc


def _array_find(interp: Interpreter, arr: list, args: list[object]) -> object:
    fn = _callback(args)
    for i, v in enumerate(list(arr)):
        if truthy(interp._call(fn, UNDEFINED, [v, i, arr])):
            return v
    return UNDEFINED


def _array_find_index(interp: Interpreter, arr: list, args: list[object]) -> object:
    fn = _callback(args)
    for i, v in enumerate(list(arr)):
        if truthy(interp._call(fn, UNDEFINED, [v, i, arr])):
            return i
    return -1


def _array_some(interp: Interpreter, arr: list, args: list[object]) -> bool:
    fn = _callback(args)
    return any(truthy(interp._call(fn, UNDEFINED, [v, i, arr])) for i, v in enumerate(list(arr)))


def _array_every(interp: Interpreter, arr: list, args: list[object]) -> bool:
    fn = _callback(args)
    return all(truthy(interp._call(fn, UNDEFINED, [v, i, arr])) for i, v in enumerate(list(arr)))


def _array_sort(interp: Interpreter, arr: list, args: list[object]) -> list:
    cmp = _arg(args, 0)
    if cmp is UNDEFINED:
        arr[:] = sorted(arr, key=to_string)
        return arr

    def compare(a: object, b: object) -> int:
        result = to_number(interp._call(cmp, UNDEFINED, [a, b]))
        if math.isnan(result) or result == 0:
            return 0
        return -1 if result < 0 else 1

    arr[:] = sorted(arr, key=functools.cmp_to_key(compare))
    return arr


def _array_push(interp: Interpreter, arr: list, args: list[object]) -> int:
    arr.extend(args)
    return len(arr)


def _array_pop(interp: Interpreter, arr: list, args: list[object]) -> object:
    return arr.pop() if arr else UNDEFINED


def _array_shift(interp: Interpreter, arr: list, args: list[object]) -> object:
    return arr.pop(0) if arr else UNDEFINED


def _array_unshift(interp: Interpreter, arr: list, args: list[object]) -> int:
    arr[:0] = args
    return len(arr)


def _array_index_of(interp: Interpreter, arr: list, args: list[object]) -> int:
    target = _arg(args, 0)
    for i, v in enumerate(arr):
        if strict_equals(v, target):
            return i
    return -1


def _array_includes(interp: Interpreter, arr: list, args: list[object]) -> bool:
    return _array_index_of(interp, arr, args) != -1


def _array_join(interp: Interpreter, arr: list, args: list[object]) -> str:
    sep = _arg(args, 0)
    sep = "," if sep is UNDEFINED else to_string(sep)
    return sep.join("" if v is None or v is UNDEFINED else to_string(v) for v in arr)


def _array_slice(interp: Interpreter, arr: list, args: list[object]) -> list:
    start, end = _slice_bounds(len(arr), args)
    return arr[start:end]


def _array_concat(interp: Interpreter, arr: list, args: list[object]) -> list:
    out = list(arr)
    for item in args:
        if isinstance(item, list):
            out.extend(item)
        else:
            out.append(item)
    return out


def _array_reverse(interp: Interpreter, arr: list, args: list[object]) -> list:
    arr.reverse()
    return arr


_ARRAY_METHODS: dict[str, Callable[[Interpreter, list, list[object]], object]] = {
    "map": _array_map,
    "filter": _array_filter,
    "forEach": _array_for_each,
    "reduce": _array_reduce,
    "find": _array_find,
    "findIndex": _array_find_index,
    "some": _array_some,
    "every": _array_every,
    "sort": _array_sort,
    "push": _array_push,
    "pop": _array_pop,
    "shift": _array_shift,
    "unshift": _array_unshift,
    "indexOf": _array_index_of,
    "includes": _array_includes,
    "join": _array_join,
    "slice": _array_slice,
    "concat": _array_concat,
    "reverse": _array_reverse,
}


def _string_split(s: str, args: list[object]) -> list:
    sep = _arg(args, 0)
    if sep is UNDEFINED:
        return [s]
    sep = to_string(sep)
    if sep == "":
        return list(s)
    return s.split(sep)


def _string_index_of(s: str, args: list[object]) -> int:
    return s.find(to_string(_arg(args, 0)))


def _string_slice(s: str, args: list[object]) -> str:
    start, end = _slice_bounds(len(s), args)
    return s[start:end]


_STRING_METHODS: dict[str, Callable[[str, list[object]], object]] = {
    "toUpperCase": lambda s, a: s.upper(),
    "toLowerCase": lambda s, a: s.lower(),
    "trim": lambda s, a: s.strip(),
    "split": _string_split,
    "slice": _string_slice,
    "includes": lambda s, a: to_string(_arg(a, 0)) in s,
    "indexOf": _string_index_of,
    "startsWith": lambda s, a: s.startswith(to_string(_arg(a, 0))),
    "endsWith": lambda s, a: s.endswith(to_string(_arg(a, 0))),
    "charAt": lambda s, a: _string_slice(s, [_int_arg(a, 0), _int_arg(a, 0) + 1]),
    "repeat": lambda s, a: s * max(0, _int_arg(a, 0)),
}


def run_module(module: Module, stdout=None) -> Interpreter:
    """Execute *module* in a fresh interpreter and return it."""
    interp = Interpreter(stdout=stdout if stdout is not None else sys.stdout)
    interp.run(module)
    return interp
