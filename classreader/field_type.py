"""Type descriptors of fields and method parameters."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from classreader.errors import InvalidTypeDescriptorError


class BaseType(enum.Enum):
    """Primitive types."""

    BYTE = "B"
    CHAR = "C"
    DOUBLE = "D"
    FLOAT = "F"
    INT = "I"
    LONG = "J"
    SHORT = "S"
    BOOLEAN = "Z"

    def __str__(self) -> str:
        return self.name.capitalize()


class FieldType:
    """Type of one field, or of one parameter or return value of a method."""

    __slots__ = ()


@dataclass(frozen=True)
class PrimitiveType(FieldType):
    """A primitive type such as int or double."""

    base: BaseType

    def __str__(self) -> str:
        return str(self.base)


@dataclass(frozen=True)
class ObjectType(FieldType):
    """An instance of a class, named in internal form (java/lang/String)."""

    class_name: str

    def __str__(self) -> str:
        return self.class_name


@dataclass(frozen=True)
class ArrayType(FieldType):
    """An array of some component type."""

    component: FieldType

    def __str__(self) -> str:
        return f"{self.component}[]"


_BASE_TYPES = {base.value: base for base in BaseType}


def parse_field_type_prefix(descriptor: str, position: int) -> tuple[FieldType, int]:
    """Parse one field type starting at ``position``.

    Returns the type and the position just after it. Errors name the whole
    descriptor.
    """
    if position < 0 or position >= len(descriptor):
        raise InvalidTypeDescriptorError(descriptor)
    first = descriptor[position]
    position += 1

    base = _BASE_TYPES.get(first)
    if base is not None:
        return PrimitiveType(base), position
    if first == "L":
        end = descriptor.find(";", position)
        if end < 0:
            raise InvalidTypeDescriptorError(descriptor)
        return ObjectType(descriptor[position:end]), end + 1
    if first == "[":
        component, position = parse_field_type_prefix(descriptor, position)
        return ArrayType(component), position
    raise InvalidTypeDescriptorError(descriptor)


def parse_field_type(descriptor: str) -> FieldType:
    """Parse a complete field type descriptor such as ``[Ljava/lang/String;``."""
    field_type, end = parse_field_type_prefix(descriptor, 0)
    if end != len(descriptor):
        raise InvalidTypeDescriptorError(descriptor)
    return field_type