"""Exception handler tables of method code."""

from __future__ import annotations

from dataclasses import dataclass, field

from classreader.positions import ProgramCounter


@dataclass(frozen=True)
class ExceptionTableEntry:
    """A handler covering program counters in ``[start_pc, end_pc)``.

    ``catch_class`` is None for a handler that catches everything.
    """

    start_pc: ProgramCounter
    end_pc: ProgramCounter
    handler_pc: ProgramCounter
    catch_class: str | None = None

    def covers(self, pc: ProgramCounter) -> bool:
        return self.start_pc <= pc < self.end_pc


@dataclass(frozen=True)
class ExceptionTable:
    """Exception table of a method's code, in declaration order."""

    entries: tuple[ExceptionTableEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))

    def lookup(self, pc: ProgramCounter) -> list[ExceptionTableEntry]:
        """Return the entries whose range contains ``pc``, in table order."""
        return [entry for entry in self.entries if entry.covers(pc)]