"""Lexical scopes and synthetic-name allocation for hygiene resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tempbind.source import Span


class BindingKind(Enum):
    VARIABLE = auto()
    PARAMETER = auto()
    FUNCTION = auto()
    TEMP = auto()  # the surface identifier of a Temporary Binding
    GLOBAL = auto()  # declared in config, defined outside the unit


@dataclass
class Binding:
    name: str
    kind: BindingKind
    # For TEMP bindings: the synthetic name and owning construct index
    synthetic: str | None = None
    construct: int | None = None
    # Where the name is declared, when the declaration has its own span
    span: Span | None = None


class Scope:
    """A single lexical scope level."""

    def __init__(self, parent: Scope | None = None, name: str = "") -> None:
        self.parent = parent
        self.name = name
        self._bindings: dict[str, Binding] = {}

    def define(self, binding: Binding) -> Binding | None:
        """Define a binding in this scope. Returns the existing one if duplicate."""
        existing = self._bindings.get(binding.name)
        if existing is not None:
            return existing
        self._bindings[binding.name] = binding
        return None

    def lookup(self, name: str) -> Binding | None:
        """Look up a name in this scope and all parent scopes."""
        binding = self._bindings.get(name)
        if binding is not None:
            return binding
        if self.parent is not None:
            return self.parent.lookup(name)
        return None

    def lookup_local(self, name: str) -> Binding | None:
        """Look up a name in this scope only (not parents)."""
        return self._bindings.get(name)


class SyntheticNames:
    """Per-unit allocator of fresh, collision-free binding names.

    Candidates are ``prefix + counter``. Any candidate found in *reserved*
    (every identifier spelled in the unit) is skipped.
    """

    def __init__(self, prefix: str = "_tb") -> None:
        self.prefix = prefix
        self._counter = 0
        self._reserved: set[str] = set()

    def reserve(self, names) -> None:
        self._reserved.update(names)

    def fresh(self) -> str:
        while True:
            self._counter += 1
            candidate = f"{self.prefix}{self._counter}"
            if candidate not in self._reserved:
                self._reserved.add(candidate)
                return candidate

    def reset(self) -> None:
        self._counter = 0
        self._reserved.clear()
