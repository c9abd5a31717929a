"""Driver that runs the full lowering pipeline on one compilation unit."""

from __future__ import annotations

from dataclasses import dataclass, field

from tempbind.ast_nodes import Module
from tempbind.config import LowerConfig, TempbindConfig
from tempbind.constructs import ConstructLog, ConstructRecord
from tempbind.errors import CompileError, Diagnostic, Severity
from tempbind.hygiene import HygieneResolver
from tempbind.lexer import Lexer
from tempbind.lowering import Lowerer
from tempbind.parser import Parser
from tempbind.printer import Printer
from tempbind.scope import SyntheticNames
from tempbind.splice import Splicer


@dataclass
class TransformResult:
    code: str | None
    module: Module | None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    constructs: list[ConstructRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]


class Transformer:
    """Owns the per-unit state: the construct log and the synthetic-name counter."""

    def __init__(self, config: LowerConfig | None = None) -> None:
        self.config = config or LowerConfig()
        self.names = SyntheticNames(self.config.prefix)

    def parse(self, source: str, filename: str = "<stdin>") -> tuple[Module, ConstructLog, list[Diagnostic]]:
        """Lex and parse *source*; raises CompileError on host syntax errors."""
        log = ConstructLog()
        tokens = Lexer(source, filename).lex()
        parser = Parser(tokens, filename, log=log)
        module = parser.parse()
        return module, log, parser.diagnostics

    def transform(self, source: str, filename: str = "<stdin>") -> TransformResult:
        self.names.reset()
        try:
            module, log, diagnostics = self.parse(source, filename)
        except CompileError as e:
            return TransformResult(code=None, module=None, diagnostics=list(e.diagnostics))

        resolver = HygieneResolver(
            log, self.names,
            shadow_warnings=self.config.shadow_warnings,
            host_globals=self.config.globals,
        )
        module = resolver.resolve(module)
        diagnostics = diagnostics + resolver.diagnostics

        splicer = Splicer(log, Lowerer(self.config.target))
        module = splicer.splice(module)

        code = Printer().print(module)
        return TransformResult(
            code=code,
            module=module,
            diagnostics=_in_source_order(diagnostics),
            constructs=log.records(),
        )


def _in_source_order(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    def key(diag: Diagnostic) -> tuple[int, int]:
        span = diag.span
        return (span.start_line, span.start_col) if span is not None else (0, 0)
    return sorted(diagnostics, key=key)


def _lower_config(config: TempbindConfig | LowerConfig | None) -> LowerConfig | None:
    if isinstance(config, TempbindConfig):
        return config.lower
    return config


def transform(
    source: str,
    filename: str = "<stdin>",
    config: TempbindConfig | LowerConfig | None = None,
) -> TransformResult:
    """Lower every Temporary Binding in *source*.

    Construct errors leave the rest of the unit intact: the emitted code
    omits the rejected constructs and ``result.ok`` is False. Host lexing
    or parsing errors yield no code at all.
    """
    return Transformer(_lower_config(config)).transform(source, filename)


def lower_source(
    source: str,
    filename: str = "<stdin>",
    config: TempbindConfig | LowerConfig | None = None,
) -> str:
    """Lower *source* and return the emitted code; raises CompileError on any error."""
    result = transform(source, filename, config)
    if not result.ok or result.code is None:
        raise CompileError(result.errors)
    return result.code
