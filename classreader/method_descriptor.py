"""Method descriptors: parameter types and return type."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from classreader.errors import InvalidTypeDescriptorError
from classreader.field_type import FieldType, parse_field_type_prefix


@dataclass(frozen=True)
class MethodDescriptor:
    """Signature of a method; ``return_type`` is None for void."""

    parameters: tuple[FieldType, ...] = field(default_factory=tuple)
    return_type: FieldType | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", tuple(self.parameters))

    def num_arguments(self) -> int:
        return len(self.parameters)

    def __str__(self) -> str:
        params = ", ".join(str(param) for param in self.parameters)
        result = "void" if self.return_type is None else str(self.return_type)
        return f"({params}) -> {result}"


def _parse_parameters(descriptor: str, position: int) -> tuple[list[FieldType], int]:
    parameters: list[FieldType] = []
    while True:
        if position >= len(descriptor):
            raise InvalidTypeDescriptorError(descriptor)
        if descriptor[position] == ")":
            return parameters, position
        param, position = parse_field_type_prefix(descriptor, position)
        parameters.append(param)


def _parse_return_type(descriptor: str, position: int) -> FieldType | None:
    if position >= len(descriptor):
        raise InvalidTypeDescriptorError(descriptor)
    if descriptor[position] == "V":
        return None
    return_type, end = parse_field_type_prefix(descriptor, position)
    if end != len(descriptor):
        raise InvalidTypeDescriptorError(descriptor)
    return return_type


def parse_method_descriptor(descriptor: str) -> MethodDescriptor:
    """Parse a descriptor such as ``(Ljava/lang/String;I)[J``."""
    if not descriptor.startswith("("):
        raise InvalidTypeDescriptorError(descriptor)
    parameters, position = _parse_parameters(descriptor, 1)
    # _parse_parameters stops on the closing parenthesis.
    return_type = _parse_return_type(descriptor, position + 1)
    return MethodDescriptor(_as_tuple(parameters), return_type)


def _as_tuple(items: Iterable[FieldType]) -> tuple[FieldType, ...]:
    return tuple(items)