"""In-memory model of a parsed class file: the class, its fields and methods."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field

from classreader.attribute import Attribute
from classreader.constant_pool import ConstantPool, format_float32
from classreader.errors import ClassReaderError
from classreader.exception_table import ExceptionTable
from classreader.field_type import BaseType, FieldType, PrimitiveType
from classreader.flags import ClassAccessFlags, FieldFlags, MethodFlags
from classreader.instruction import parse_instructions
from classreader.line_number_table import LineNumberTable
from classreader.method_descriptor import MethodDescriptor
from classreader.version import ClassFileVersion

_F32 = struct.Struct(">f")

_INT_LIKE = frozenset(
    {BaseType.INT, BaseType.SHORT, BaseType.CHAR, BaseType.BYTE, BaseType.BOOLEAN}
)


class ConstantValueKind(enum.Enum):
    """Types a field's constant value can have."""

    INT = "Int"
    FLOAT = "Float"
    LONG = "Long"
    DOUBLE = "Double"
    STRING = "String"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FieldConstantValue:
    """Value of a constant (final) field, taken from its ConstantValue attribute.

    Float values are stored with 32-bit precision.
    """

    kind: ConstantValueKind
    value: int | float | str

    def __post_init__(self) -> None:
        if self.kind is ConstantValueKind.FLOAT:
            rounded = _F32.unpack(_F32.pack(float(self.value)))[0]
            object.__setattr__(self, "value", rounded)

    def __str__(self) -> str:
        if self.kind is ConstantValueKind.FLOAT:
            text = format_float32(float(self.value))
        elif self.kind is ConstantValueKind.STRING:
            text = f'"{self.value}"'
        else:
            text = str(self.value)
        return f"{self.kind}({text})"


@dataclass(frozen=True)
class ClassFileField:
    """A field declared in a class."""

    flags: FieldFlags
    name: str
    type_descriptor: FieldType
    constant_value: FieldConstantValue | None = None
    deprecated: bool = False

    def __str__(self) -> str:
        constant = "None" if self.constant_value is None else str(self.constant_value)
        suffix = " (deprecated)" if self.deprecated else ""
        return (
            f"{self.flags} {self.name}: {self.type_descriptor} "
            f"constant {constant}{suffix}"
        )


@dataclass(frozen=True)
class ClassFileMethodCode:
    """The Code attribute of a method."""

    max_stack: int = 0
    max_locals: int = 0
    code: bytes = b""
    exception_table: ExceptionTable = field(default_factory=ExceptionTable)
    line_number_table: LineNumberTable | None = None
    attributes: tuple[Attribute, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", bytes(self.code))
        object.__setattr__(self, "attributes", tuple(self.attributes))

    def __str__(self) -> str:
        attributes = "[" + ", ".join(str(attr) for attr in self.attributes) + "]"
        lines = [
            f"max_stack = {self.max_stack}, max_locals = {self.max_locals}, "
            f"exception_table = {self.exception_table}, "
            f"line_number_table: {self.line_number_table}, "
            f"attributes = {attributes}, instructions:"
        ]
        try:
            instructions = parse_instructions(self.code)
        except ClassReaderError:
            lines.append(f"    unparseable code: {list(self.code)}")
        else:
            lines.extend(
                f"    {address:3} {instruction}" for address, instruction in instructions
            )
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class ClassFileMethod:
    """A method declared in a class.

    ``type_descriptor`` is the raw descriptor text, such as ``(I)V``;
    ``parsed_type_descriptor`` is its parsed form.
    """

    flags: MethodFlags
    name: str
    type_descriptor: str
    parsed_type_descriptor: MethodDescriptor
    attributes: tuple[Attribute, ...] = field(default_factory=tuple)
    code: ClassFileMethodCode | None = None
    deprecated: bool = False
    thrown_exceptions: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "thrown_exceptions", tuple(self.thrown_exceptions))

    def is_static(self) -> bool:
        return bool(self.flags & MethodFlags.STATIC)

    def is_native(self) -> bool:
        return bool(self.flags & MethodFlags.NATIVE)

    def is_void(self) -> bool:
        return self.parsed_type_descriptor.return_type is None

    def returns(self, expected_type: FieldType) -> bool:
        """Whether the method returns ``expected_type``.

        Boolean, byte, char and short results count as int, as on the operand stack.
        """
        return_type = self.parsed_type_descriptor.return_type
        if isinstance(return_type, PrimitiveType) and return_type.base in _INT_LIKE:
            return expected_type == PrimitiveType(BaseType.INT)
        return return_type == expected_type

    def __str__(self) -> str:
        suffix = " (deprecated)" if self.deprecated else ""
        lines = [
            f"{self.flags} {self.name}: {self.parsed_type_descriptor}{suffix} "
            f"throws {list(self.thrown_exceptions)}"
        ]
        if self.code is not None:
            lines.append(f"  code: {self.code}")
        attributes = "[" + ", ".join(str(attr) for attr in self.attributes) + "]"
        lines.append(f"  raw_attributes: {attributes}")
        return "\n".join(lines)


@dataclass(eq=False)
class ClassFile:
    """The content of a .class file."""

    version: ClassFileVersion = ClassFileVersion.JDK8
    constants: ConstantPool = field(default_factory=ConstantPool)
    flags: ClassAccessFlags = ClassAccessFlags(0)
    name: str = ""
    superclass: str | None = None
    interfaces: list[str] = field(default_factory=list)
    fields: list[ClassFileField] = field(default_factory=list)
    methods: list[ClassFileMethod] = field(default_factory=list)
    deprecated: bool = False
    source_file: str | None = None

    def __str__(self) -> str:
        header = f"Class {self.name} "
        if self.superclass is not None:
            header += f"(extends {self.superclass}) "
        header += f"version: {self.version}\n"
        lines = [
            f"flags: {self.flags}, deprecated: {self.deprecated}",
            f"interfaces: {self.interfaces}",
            "fields:",
            *(f"  - {item}" for item in self.fields),
            "methods:",
            *(f"  - {item}" for item in self.methods),
        ]
        return header + str(self.constants) + "\n".join(lines) + "\n"