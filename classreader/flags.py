"""Access flags of classes, fields and methods."""

from __future__ import annotations

import enum
from typing import TypeVar


class _FlagSet(enum.IntFlag):
    """Flag set that prints as the names of its set members."""

    def __str__(self) -> str:
        names = [
            member.name
            for member in type(self).__members__.values()
            if member.value and (self.value & member.value) == member.value
        ]
        return " | ".join(names) if names else "(empty)"

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


class ClassAccessFlags(_FlagSet):
    PUBLIC = 0x0001
    FINAL = 0x0010
    SUPER = 0x0020
    INTERFACE = 0x0200
    ABSTRACT = 0x0400
    SYNTHETIC = 0x1000
    ANNOTATION = 0x2000
    ENUM = 0x4000


class FieldFlags(_FlagSet):
    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    VOLATILE = 0x0040
    TRANSIENT = 0x0080
    SYNTHETIC = 0x1000
    ENUM = 0x4000


class MethodFlags(_FlagSet):
    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    SYNCHRONIZED = 0x0020
    BRIDGE = 0x0040
    VARARGS = 0x0080
    NATIVE = 0x0100
    ABSTRACT = 0x0400
    STRICT = 0x0800
    SYNTHETIC = 0x1000


_F = TypeVar("_F", bound=enum.IntFlag)


def checked_flags(flag_type: type[_F], bits: int) -> _F:
    """Build a flag set from raw bits, raising ValueError on unknown bits."""
    known = 0
    for member in flag_type.__members__.values():
        known |= member.value
    unknown = bits & ~known
    if bits < 0 or unknown:
        raise ValueError(f"unknown bits {unknown:#x} for {flag_type.__name__}")
    return flag_type(bits)