"""Mapping from program counters to source line numbers."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field

from classreader.positions import LineNumber, ProgramCounter


@dataclass(frozen=True)
class LineNumberTableEntry:
    """The instructions from ``program_counter`` onward belong to ``line_number``."""

    program_counter: ProgramCounter
    line_number: LineNumber


@dataclass(frozen=True)
class LineNumberTable:
    """Entries sorted by program counter.

    An entry applies from its program counter up to the next entry's.
    """

    entries: tuple[LineNumberTableEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.entries, key=lambda entry: entry.program_counter))
        object.__setattr__(self, "entries", ordered)

    def lookup_pc(self, pc: ProgramCounter) -> LineNumber:
        """Return the line of the instruction at ``pc``.

        Raises LookupError when ``pc`` precedes every entry.
        """
        index = bisect.bisect_right(
            self.entries, pc, key=lambda entry: entry.program_counter
        ) if _BISECT_HAS_KEY else _bisect_right(self.entries, pc)
        if index == 0:
            raise LookupError(f"no line number for program counter {pc}")
        return self.entries[index - 1].line_number


_BISECT_HAS_KEY = False


def _bisect_right(entries: tuple[LineNumberTableEntry, ...], pc: ProgramCounter) -> int:
    counters = [entry.program_counter for entry in entries]
    return bisect.bisect_right(counters, pc)