"""Positions in bytecode and in source code."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class ProgramCounter:
    """Address of an instruction in a method's bytecode."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, order=True)
class LineNumber:
    """Line number in the source file."""

    value: int

    def __str__(self) -> str:
        return str(self.value)