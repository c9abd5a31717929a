"""Per-construct bookkeeping: kinds, lifecycle states and the construct log.

Every Temporary Binding occurrence moves through

    UNRECOGNIZED -> MATCHED -> PARSED -> RESOLVED -> LOWERED -> SPLICED

or ends in REJECTED after a fatal diagnostic. The log is append-only and
indexed by discovery order, which is also the order synthetic names are
handed out in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tempbind.source import Span


class ConstructKind(Enum):
    DECLARATION = "declaration"
    EXPRESSION = "expression"


class ConstructState(Enum):
    UNRECOGNIZED = auto()
    MATCHED = auto()
    PARSED = auto()
    RESOLVED = auto()
    LOWERED = auto()
    SPLICED = auto()
    REJECTED = auto()


# Allowed forward transitions; REJECTED is reachable from any non-terminal state.
_NEXT: dict[ConstructState, ConstructState] = {
    ConstructState.UNRECOGNIZED: ConstructState.MATCHED,
    ConstructState.MATCHED: ConstructState.PARSED,
    ConstructState.PARSED: ConstructState.RESOLVED,
    ConstructState.RESOLVED: ConstructState.LOWERED,
    ConstructState.LOWERED: ConstructState.SPLICED,
}

_TERMINAL = frozenset({ConstructState.SPLICED, ConstructState.REJECTED})


@dataclass
class ConstructRecord:
    index: int
    kind: ConstructKind
    span: Span
    binding: str | None = None
    synthetic: str | None = None
    state: ConstructState = ConstructState.UNRECOGNIZED
    codes: list[str] = field(default_factory=list)


class ConstructLog:
    """Ordered registry of every construct seen in one compilation unit."""

    def __init__(self) -> None:
        self._records: list[ConstructRecord] = []

    def open(self, kind: ConstructKind, span: Span) -> ConstructRecord:
        """Register a newly matched construct and return its record."""
        record = ConstructRecord(index=len(self._records), kind=kind, span=span)
        self._records.append(record)
        self.advance(record.index, ConstructState.MATCHED)
        return record

    def get(self, index: int) -> ConstructRecord:
        return self._records[index]

    def advance(self, index: int, state: ConstructState) -> None:
        record = self._records[index]
        if record.state in _TERMINAL:
            raise ValueError(
                f"construct #{index} is already {record.state.name}; cannot move to {state.name}"
            )
        if state != ConstructState.REJECTED and _NEXT.get(record.state) != state:
            raise ValueError(
                f"construct #{index}: illegal transition {record.state.name} -> {state.name}"
            )
        record.state = state

    def reject(self, index: int, code: str) -> None:
        record = self._records[index]
        record.codes.append(code)
        if record.state != ConstructState.REJECTED:
            self.advance(index, ConstructState.REJECTED)

    def reject_all(self, indices, code: str) -> None:
        """Reject every still-open construct in *indices* along with its parent."""
        for index in indices:
            if self._records[index].state not in _TERMINAL:
                self.reject(index, code)

    def __iter__(self):
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[ConstructRecord]:
        return list(self._records)
