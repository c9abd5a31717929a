"""Pygments lexer for host-subset source with Temporary Binding markers."""

from __future__ import annotations

from pygments import highlight as _pygments_highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import RegexLexer, bygroups, words
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
)


class TempbindLexer(RegexLexer):
    """Pygments lexer for tempbind sources and their lowered output."""

    name = "Tempbind"
    aliases = ["tempbind", "tbjs"]
    filenames = ["*.tbjs"]
    mimetypes = ["text/x-tempbind"]

    tokens = {
        "root": [
            (r"\s+", Text),
            (r"//.*$", Comment.Single),
            (r"/\*[\s\S]*?\*/", Comment.Multiline),
            # Binding marker: const($), let(_)
            (
                r"\b(const|let|var)(\s*)(\()(\s*)([A-Za-z_$][\w$]*)(\s*)(\))",
                bygroups(
                    Keyword.Declaration, Text, Punctuation, Text,
                    Name.Variable.Magic, Text, Punctuation,
                ),
            ),
            (r'"', String.Double, "dstring"),
            (r"'", String.Single, "sstring"),
            (r"`", String.Backtick, "template"),
            (r"0[xX][0-9a-fA-F]+", Number.Hex),
            (r"[0-9]*\.[0-9]+([eE][+-]?[0-9]+)?", Number.Float),
            (r"[0-9]+([eE][+-]?[0-9]+)?", Number.Integer),
            (words(("const", "let", "var", "function"), suffix=r"\b"), Keyword.Declaration),
            (
                words(
                    (
                        "return", "if", "else", "while", "for", "of", "break",
                        "continue", "throw", "new", "typeof", "void",
                    ),
                    suffix=r"\b",
                ),
                Keyword,
            ),
            (r"\b(true|false|null|undefined)\b", Keyword.Constant),
            (r"\bthis\b", Name.Builtin.Pseudo),
            (r"\b(console|Math|JSON|Object|Array)\b", Name.Builtin),
            (r"=>", Punctuation),
            (r"===|!==|==|!=|<=|>=|&&|\|\||\?\?|\+\+|--|[+\-*/%]=", Operator),
            (r"[+\-*/%<>!?=]", Operator),
            (r"\.", Operator),
            (r"[A-Za-z_$][\w$]*", Name),
            (r"[(),;\[\]{}:]", Punctuation),
        ],
        "dstring": [
            (r"\\.", String.Escape),
            (r'[^"\\]+', String.Double),
            (r'"', String.Double, "#pop"),
        ],
        "sstring": [
            (r"\\.", String.Escape),
            (r"[^'\\]+", String.Single),
            (r"'", String.Single, "#pop"),
        ],
        "template": [
            (r"\\.", String.Escape),
            (r"\$\{", String.Interpol, "template_interp"),
            (r"[^`\\$]+", String.Backtick),
            (r"\$", String.Backtick),
            (r"`", String.Backtick, "#pop"),
        ],
        "template_interp": [
            (r"\}", String.Interpol, "#pop"),
            (r"[^}]+", Name),
        ],
    }


def highlight(code: str, *, color: bool = True) -> str:
    """Return *code* with ANSI colors, or unchanged when *color* is False."""
    if not color:
        return code
    return _pygments_highlight(code, TempbindLexer(), TerminalFormatter())
