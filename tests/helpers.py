"""Shared test helpers for the tempbind test suite."""

from __future__ import annotations

from tempbind.compiler import TransformResult, transform
from tempbind.config import LowerConfig
from tempbind.constructs import ConstructLog
from tempbind.hygiene import HygieneResolver
from tempbind.interp import Interpreter
from tempbind.lexer import Lexer
from tempbind.parser import Parser
from tempbind.printer import Printer


def parse(source: str, log: ConstructLog | None = None):
    """Lex and parse source; returns (module, parser)."""
    tokens = Lexer(source, "<test>").lex()
    parser = Parser(tokens, "<test>", log=log)
    module = parser.parse()
    return module, parser


def roundtrip(source: str) -> str:
    """Parse and print plain host source."""
    module, _ = parse(source)
    return Printer().print(module)


def lower(source: str, **config) -> str:
    """Lower source, asserting no errors. Returns the emitted code."""
    result = transform(source, "<test>", LowerConfig(**config))
    errors = result.errors
    assert not errors, f"Unexpected errors: {[f'{d.code}: {d.message}' for d in errors]}"
    return result.code


def lower_result(source: str, **config) -> TransformResult:
    return transform(source, "<test>", LowerConfig(**config))


def lower_fails(source: str, error_code: str) -> list:
    """Lower source, asserting the given error code appears."""
    result = transform(source, "<test>")
    matching = [d for d in result.diagnostics if d.code == error_code]
    assert matching, (
        f"Expected error {error_code} but got: "
        f"{[f'{d.code}: {d.message}' for d in result.diagnostics] or 'no diagnostics'}"
    )
    return matching


def lower_warns(source: str, warning_code: str) -> list:
    """Lower source, asserting the given warning code appears and no errors."""
    result = transform(source, "<test>")
    assert result.ok, [f"{d.code}: {d.message}" for d in result.errors]
    matching = [d for d in result.diagnostics if d.code == warning_code]
    assert matching, (
        f"Expected warning {warning_code} but got: "
        f"{[f'{d.code}: {d.message}' for d in result.diagnostics] or 'no diagnostics'}"
    )
    return matching


def resolve(source: str, **kwargs):
    """Parse and hygiene-resolve source; returns (module, resolver)."""
    log = ConstructLog()
    module, _ = parse(source, log)
    resolver = HygieneResolver(log, **kwargs)
    return resolver.resolve(module), resolver


def run(source: str, **config) -> Interpreter:
    """Lower source and execute it; returns the interpreter."""
    result = transform(source, "<test>", LowerConfig(**config))
    assert result.ok, [f"{d.code}: {d.message}" for d in result.errors]
    interp = Interpreter()
    interp.run(result.module)
    return interp


def run_plain(source: str) -> Interpreter:
    """Execute plain host source without lowering."""
    module, _ = parse(source)
    interp = Interpreter()
    interp.run(module)
    return interp
