"""Token kinds and token representation for the host-subset lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tempbind.source import Span


class TokenKind(Enum):
    # Declaration keywords
    VAR = auto()
    LET = auto()
    CONST = auto()

    # Keywords
    FUNCTION = auto()
    RETURN = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    OF = auto()
    BREAK = auto()
    CONTINUE = auto()
    THROW = auto()
    NEW = auto()
    TYPEOF = auto()
    VOID = auto()
    THIS = auto()

    # Literals
    NUMBER_LIT = auto()
    STRING_LIT = auto()
    BOOLEAN_LIT = auto()
    NULL_LIT = auto()

    # Template literals: `text` or `head${ ... }middle${ ... }tail`
    TEMPLATE_STRING = auto()
    TEMPLATE_HEAD = auto()
    TEMPLATE_MIDDLE = auto()
    TEMPLATE_TAIL = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    PLUS_PLUS = auto()
    MINUS_MINUS = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    STRICT_EQUAL = auto()
    STRICT_NOT_EQUAL = auto()
    LESS = auto()
    GREATER = auto()
    LESS_EQUAL = auto()
    GREATER_EQUAL = auto()
    AND = auto()
    OR = auto()
    NULLISH = auto()
    BANG = auto()
    QUESTION = auto()
    FAT_ARROW = auto()
    DOT = auto()
    ASSIGN = auto()
    PLUS_ASSIGN = auto()
    MINUS_ASSIGN = auto()
    STAR_ASSIGN = auto()
    SLASH_ASSIGN = auto()
    PERCENT_ASSIGN = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    SEMICOLON = auto()
    COLON = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Special
    EOF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span


KEYWORDS: dict[str, TokenKind] = {
    "var": TokenKind.VAR,
    "let": TokenKind.LET,
    "const": TokenKind.CONST,
    "function": TokenKind.FUNCTION,
    "return": TokenKind.RETURN,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "while": TokenKind.WHILE,
    "for": TokenKind.FOR,
    "of": TokenKind.OF,
    "break": TokenKind.BREAK,
    "continue": TokenKind.CONTINUE,
    "throw": TokenKind.THROW,
    "new": TokenKind.NEW,
    "typeof": TokenKind.TYPEOF,
    "void": TokenKind.VOID,
    "this": TokenKind.THIS,
    "true": TokenKind.BOOLEAN_LIT,
    "false": TokenKind.BOOLEAN_LIT,
    "null": TokenKind.NULL_LIT,
}

# Keywords that introduce a declaration; also the keywords a binding marker follows.
DECL_KEYWORDS: frozenset[TokenKind] = frozenset({
    TokenKind.VAR,
    TokenKind.LET,
    TokenKind.CONST,
})

# Longest match first.
OPERATORS: list[tuple[str, TokenKind]] = [
    ("===", TokenKind.STRICT_EQUAL),
    ("!==", TokenKind.STRICT_NOT_EQUAL),
    ("=>", TokenKind.FAT_ARROW),
    ("==", TokenKind.EQUAL),
    ("!=", TokenKind.NOT_EQUAL),
    ("<=", TokenKind.LESS_EQUAL),
    (">=", TokenKind.GREATER_EQUAL),
    ("&&", TokenKind.AND),
    ("||", TokenKind.OR),
    ("??", TokenKind.NULLISH),
    ("++", TokenKind.PLUS_PLUS),
    ("--", TokenKind.MINUS_MINUS),
    ("+=", TokenKind.PLUS_ASSIGN),
    ("-=", TokenKind.MINUS_ASSIGN),
    ("*=", TokenKind.STAR_ASSIGN),
    ("/=", TokenKind.SLASH_ASSIGN),
    ("%=", TokenKind.PERCENT_ASSIGN),
    ("+", TokenKind.PLUS),
    ("-", TokenKind.MINUS),
    ("*", TokenKind.STAR),
    ("/", TokenKind.SLASH),
    ("%", TokenKind.PERCENT),
    ("<", TokenKind.LESS),
    (">", TokenKind.GREATER),
    ("!", TokenKind.BANG),
    ("?", TokenKind.QUESTION),
    (".", TokenKind.DOT),
    ("=", TokenKind.ASSIGN),
    ("(", TokenKind.LPAREN),
    (")", TokenKind.RPAREN),
    ("[", TokenKind.LBRACKET),
    ("]", TokenKind.RBRACKET),
    ("{", TokenKind.LBRACE),
    ("}", TokenKind.RBRACE),
    (",", TokenKind.COMMA),
    (";", TokenKind.SEMICOLON),
    (":", TokenKind.COLON),
]

ASSIGN_OPS: frozenset[TokenKind] = frozenset({
    TokenKind.ASSIGN,
    TokenKind.PLUS_ASSIGN,
    TokenKind.MINUS_ASSIGN,
    TokenKind.STAR_ASSIGN,
    TokenKind.SLASH_ASSIGN,
    TokenKind.PERCENT_ASSIGN,
})

# Tokens that open / close a nesting level for step-list splitting.
OPENERS: frozenset[TokenKind] = frozenset({
    TokenKind.LPAREN,
    TokenKind.LBRACKET,
    TokenKind.LBRACE,
    TokenKind.TEMPLATE_HEAD,
})

CLOSERS: frozenset[TokenKind] = frozenset({
    TokenKind.RPAREN,
    TokenKind.RBRACKET,
    TokenKind.RBRACE,
    TokenKind.TEMPLATE_TAIL,
})
