"""The constant pool of a class file."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from decimal import Decimal
from typing import Union


class InvalidConstantPoolIndexError(Exception):
    """An index does not refer to a usable constant pool entry."""

    def __init__(self, index: int) -> None:
        super().__init__(f"invalid constant pool index: {index}")
        self.index = index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InvalidConstantPoolIndexError):
            return NotImplemented
        return self.index == other.index

    def __hash__(self) -> int:
        return hash(self.index)


@dataclass(frozen=True)
class Utf8:
    value: str


@dataclass(frozen=True)
class Integer:
    value: int


@dataclass(frozen=True)
class Float:
    value: float


@dataclass(frozen=True)
class Long:
    value: int


@dataclass(frozen=True)
class Double:
    value: float


@dataclass(frozen=True)
class ClassReference:
    name_index: int


@dataclass(frozen=True)
class StringReference:
    string_index: int


@dataclass(frozen=True)
class FieldReference:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class MethodReference:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class InterfaceMethodReference:
    class_index: int
    name_and_type_index: int


@dataclass(frozen=True)
class NameAndTypeDescriptor:
    name_index: int
    descriptor_index: int


ConstantPoolEntry = Union[
    Utf8,
    Integer,
    Float,
    Long,
    Double,
    ClassReference,
    StringReference,
    FieldReference,
    MethodReference,
    InterfaceMethodReference,
    NameAndTypeDescriptor,
]

_F32 = struct.Struct(">f")


def _to_f32(value: float) -> float:
    return _F32.unpack(_F32.pack(value))[0]


def _special(value: float) -> str | None:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return None


def _plain_decimal(text: str) -> str:
    plain = format(Decimal(text), "f")
    if "." in plain:
        plain = plain.rstrip("0").rstrip(".")
    return plain


def format_float32(value: float) -> str:
    """Shortest plain decimal text that reads back as the same 32-bit float."""
    special = _special(value)
    if special is not None:
        return special
    target = _to_f32(value)
    text = repr(target)
    for precision in range(1, 10):
        candidate = f"{target:.{precision}g}"
        if _to_f32(float(candidate)) == target:
            text = candidate
            break
    return _plain_decimal(text)


def _format_float64(value: float) -> str:
    special = _special(value)
    if special is not None:
        return special
    return _plain_decimal(repr(value))


class ConstantPool:
    """Constant pool with 1-based indexes; long and double use two slots."""

    def __init__(self) -> None:
        # None marks the unusable second slot of a long or double.
        self._entries: list[ConstantPoolEntry | None] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: ConstantPoolEntry) -> None:
        """Append an entry, reserving a second slot for longs and doubles."""
        self._entries.append(entry)
        if isinstance(entry, (Long, Double)):
            self._entries.append(None)

    def get(self, index: int) -> ConstantPoolEntry:
        """Return the entry at a 1-based index."""
        if index < 1 or index > len(self._entries):
            raise InvalidConstantPoolIndexError(index)
        entry = self._entries[index - 1]
        if entry is None:
            raise InvalidConstantPoolIndexError(index)
        return entry

    def text_of(self, index: int) -> str:
        """Resolve an entry, following references, into plain text."""
        match self.get(index):
            case Utf8(value):
                return value
            case Integer(value) | Long(value):
                return str(value)
            case Float(value):
                return format_float32(value)
            case Double(value):
                return _format_float64(value)
            case ClassReference(target) | StringReference(target):
                return self.text_of(target)
            case (
                FieldReference(first, second)
                | MethodReference(first, second)
                | InterfaceMethodReference(first, second)
            ):
                return f"{self.text_of(first)}.{self.text_of(second)}"
            case NameAndTypeDescriptor(first, second):
                return f"{self.text_of(first)}: {self.text_of(second)}"
        raise AssertionError("unreachable")

    def _describe(self, index: int) -> str:
        entry = self.get(index)
        match entry:
            case Utf8(value):
                return f'String: "{value}"'
            case Integer(value):
                return f"Integer: {value}"
            case Float(value):
                return f"Float: {format_float32(value)}"
            case Long(value):
                return f"Long: {value}"
            case Double(value):
                return f"Double: {_format_float64(value)}"
            case ClassReference(target):
                return f"ClassReference: {target} => ({self._describe(target)})"
            case StringReference(target):
                return f"StringReference: {target} => ({self._describe(target)})"
            case (
                FieldReference(first, second)
                | MethodReference(first, second)
                | InterfaceMethodReference(first, second)
                | NameAndTypeDescriptor(first, second)
            ):
                return (
                    f"{type(entry).__name__}: {first}, {second} => "
                    f"({self._describe(first)}), ({self._describe(second)})"
                )
        raise AssertionError("unreachable")

    def __str__(self) -> str:
        lines = [f"Constant pool: (size: {len(self._entries)})"]
        lines.extend(
            f"    {index}, {self._describe(index)}"
            for index, entry in enumerate(self._entries, start=1)
            if entry is not None
        )
        return "\n".join(lines) + "\n"