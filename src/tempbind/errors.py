"""Diagnostics for the lowering engine and their Rust-style rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tempbind.source import Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# Diagnostic codes
LEX_ERROR = "E100"
SYNTAX_ERROR = "E200"
MALFORMED_BINDING_MARKER = "E301"
INCOMPLETE_CONSTRUCT = "E302"
EMPTY_PIPELINE = "E303"
UNRESOLVED_BINDING_REFERENCE = "E304"
SHADOW_WARNING = "W310"

CODE_NAMES: dict[str, str] = {
    LEX_ERROR: "LexError",
    SYNTAX_ERROR: "SyntaxError",
    MALFORMED_BINDING_MARKER: "MalformedBindingMarker",
    INCOMPLETE_CONSTRUCT: "IncompleteConstruct",
    EMPTY_PIPELINE: "EmptyPipeline",
    UNRESOLVED_BINDING_REFERENCE: "UnresolvedBindingReference",
    SHADOW_WARNING: "ShadowWarning",
}

# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str
    style: str = "primary"  # "primary" or "secondary"


@dataclass(frozen=True)
class Suggestion:
    """A suggested fix."""

    message: str
    replacement: str


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and suggestions."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def span(self) -> Span | None:
        """The primary source span, if the diagnostic has one."""
        return self.labels[0].span if self.labels else None

    @property
    def name(self) -> str:
        return CODE_NAMES.get(self.code, self.code)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


def make_diagnostic(
    severity: Severity, code: str, message: str, span: Span, label: str = "",
) -> Diagnostic:
    return Diagnostic(
        severity=severity,
        code=code,
        message=message,
        labels=[DiagnosticLabel(span=span, message=label)],
    )


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors.

    The header names the diagnostic kind (``error[E301] MalformedBindingMarker``).
    A construct often spans several lines; its first and last lines are
    shown with ``...`` between them. Secondary labels, such as the
    binding a construct shadows, are underlined with ``-``.

    Source lines come from *sources* (filename -> text) when given,
    otherwise from the file on disk.
    """

    def __init__(self, *, color: bool = True, sources: dict[str, str] | None = None) -> None:
        self.color = color
        self._file_cache: dict[str, list[str]] = {
            name: text.splitlines() for name, text in (sources or {}).items()
        }

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        """Load and cache source file, return the 1-indexed line."""
        if filename not in self._file_cache:
            try:
                path = Path(filename)
                if path.is_file():
                    self._file_cache[filename] = path.read_text().splitlines()
                else:
                    self._file_cache[filename] = []
            except OSError:
                self._file_cache[filename] = []
        lines = self._file_cache[filename]
        if 1 <= line_num <= len(lines):
            return lines[line_num - 1]
        return None

    def _gutter(self, text: str = "") -> str:
        return f"  {self._c(_BLUE)}{text:>4} |{self._c(_RESET)}"

    def render(self, diag: Diagnostic) -> str:
        sev = diag.severity
        color = _COLORS[sev]
        name = f" {diag.name}" if diag.code in CODE_NAMES else ""
        lines = [
            f"{self._c(color)}{sev.value}[{diag.code}]{name}{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        ]

        for label in diag.labels:
            lines.extend(self._render_label(label, color))

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        for suggestion in diag.suggestions:
            lines.append(
                f"  {self._c(_BLUE)}help:{self._c(_RESET)} {suggestion.message}: "
                f"{suggestion.replacement}"
            )

        return "\n".join(lines)

    def _render_label(self, label: DiagnosticLabel, color: str) -> list[str]:
        span = label.span
        primary = label.style == "primary"
        mark_color = color if primary else _BLUE
        mark = "^" if primary else "-"
        arrow = "-->" if primary else ":::"
        lines = [
            f"  {self._c(_BLUE)}{arrow}{self._c(_RESET)} {span}",
            self._gutter(),
        ]

        first = self._get_source_line(span.file, span.start_line)
        if first is None:
            return lines

        lines.append(f"{self._gutter(str(span.start_line))} {first}")
        if span.start_line == span.end_line:
            width = max(1, span.end_col - span.start_col + 1)
        else:
            width = max(1, len(first) - span.start_col + 1)
        lines.append(
            f"{self._gutter()} {' ' * (span.start_col - 1)}"
            f"{self._c(mark_color)}{mark * width}{self._c(_RESET)}"
        )

        if span.end_line > span.start_line:
            last = self._get_source_line(span.file, span.end_line)
            if span.end_line > span.start_line + 1:
                lines.append(f"  {self._c(_BLUE)}...{self._c(_RESET)}")
            if last is not None:
                lines.append(f"{self._gutter(str(span.end_line))} {last}")
                lines.append(
                    f"{self._gutter()} {self._c(mark_color)}{mark * max(1, span.end_col)}"
                    f"{self._c(_RESET)}"
                )

        if label.message:
            lines.append(
                f"{self._gutter()}   {self._c(mark_color)}{label.message}{self._c(_RESET)}"
            )
        return lines


class CompileError(Exception):
    """Batch compilation error carrying multiple diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")
