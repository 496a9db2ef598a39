"""Parsing of .class files into :class:`ClassFile` objects."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar

from classreader.attribute import Attribute
from classreader.buffer import Buffer, InvalidCesu8StringError, UnexpectedEndOfDataError
from classreader.class_file import (
    ClassFile,
    ClassFileField,
    ClassFileMethod,
    ClassFileMethodCode,
    ConstantValueKind,
    FieldConstantValue,
)
from classreader.constant_pool import (
    ClassReference,
    ConstantPool,
    ConstantPoolEntry,
    Double,
    FieldReference,
    Float,
    Integer,
    InterfaceMethodReference,
    InvalidConstantPoolIndexError,
    Long,
    MethodReference,
    NameAndTypeDescriptor,
    StringReference,
    Utf8,
)
from classreader.errors import InvalidClassDataError
from classreader.exception_table import ExceptionTable, ExceptionTableEntry
from classreader.field_type import parse_field_type
from classreader.flags import ClassAccessFlags, FieldFlags, MethodFlags, checked_flags
from classreader.line_number_table import LineNumberTable, LineNumberTableEntry
from classreader.method_descriptor import parse_method_descriptor
from classreader.positions import LineNumber, ProgramCounter
from classreader.version import ClassFileVersion, parse_version

_log = logging.getLogger(__name__)

_MAGIC = 0xCAFEBABE

_T = TypeVar("_T")


def _first_named(attributes: Iterable[Attribute], name: str) -> Attribute | None:
    return next((attr for attr in attributes if attr.name == name), None)


def _has_named(attributes: Iterable[Attribute], name: str) -> bool:
    return any(attr.name == name for attr in attributes)


def _read_u16_index(data: bytes, what: str) -> int:
    if len(data) != 2:
        raise InvalidClassDataError(what)
    return int.from_bytes(data, "big")


class _ClassFileReader:
    """Reads one class file; supports the class format without generics."""

    def __init__(self, data: bytes) -> None:
        self._buffer = Buffer(data)
        self._constants = ConstantPool()

    def read(self) -> ClassFile:
        self._check_magic_number()
        version = self._read_version()
        self._read_constants()
        flags = self._read_flags(ClassAccessFlags, "invalid class flags: {bits}")
        name = self._read_class_reference()
        superclass = self._read_class_reference_optional()
        interfaces = self._read_repeated(self._read_class_reference)
        fields = self._read_repeated(self._read_field)
        methods = self._read_repeated(self._read_method)
        attributes = self._read_raw_attributes(self._buffer)
        return ClassFile(
            version=version,
            constants=self._constants,
            flags=flags,
            name=name,
            superclass=superclass,
            interfaces=interfaces,
            fields=fields,
            methods=methods,
            deprecated=_has_named(attributes, "Deprecated"),
            source_file=self._source_file(attributes),
        )

    # Header

    def _check_magic_number(self) -> None:
        if self._buffer.read_u32() != _MAGIC:
            raise InvalidClassDataError("invalid magic number")

    def _read_version(self) -> ClassFileVersion:
        minor = self._buffer.read_u16()
        major = self._buffer.read_u16()
        return parse_version(major, minor)

    def _read_constants(self) -> None:
        buf = self._buffer
        count = buf.read_u16() - 1
        index = 0
        while index < count:
            tag = buf.read_u8()
            entry: ConstantPoolEntry
            if tag == 1:
                entry = Utf8(buf.read_utf8(buf.read_u16()))
            elif tag == 3:
                entry = Integer(buf.read_i32())
            elif tag == 4:
                entry = Float(buf.read_f32())
            elif tag == 5:
                entry = Long(buf.read_i64())
                index += 1  # longs take two slots
            elif tag == 6:
                entry = Double(buf.read_f64())
                index += 1  # doubles take two slots
            elif tag == 7:
                entry = ClassReference(buf.read_u16())
            elif tag == 8:
                entry = StringReference(buf.read_u16())
            elif tag == 9:
                entry = FieldReference(buf.read_u16(), buf.read_u16())
            elif tag == 10:
                entry = MethodReference(buf.read_u16(), buf.read_u16())
            elif tag == 11:
                entry = InterfaceMethodReference(buf.read_u16(), buf.read_u16())
            elif tag == 12:
                entry = NameAndTypeDescriptor(buf.read_u16(), buf.read_u16())
            else:
                _log.warning("invalid entry in constant pool at index %d tag %d", index, tag)
                raise InvalidClassDataError(f"Unknown constant type: 0x{tag:X}")
            self._constants.add(entry)
            index += 1

    # Helpers

    def _read_flags(self, flag_type: type[_T], message: str) -> _T:
        bits = self._buffer.read_u16()
        try:
            return checked_flags(flag_type, bits)  # type: ignore[type-var]
        except ValueError:
            raise InvalidClassDataError(message.format(bits=bits)) from None

    def _read_repeated(self, read_one: Callable[[], _T]) -> list[_T]:
        count = self._buffer.read_u16()
        return [read_one() for _ in range(count)]

    def _text_of(self, index: int) -> str:
        return self._constants.text_of(index)

    def _read_class_reference(self) -> str:
        return self._text_of(self._buffer.read_u16())

    def _read_class_reference_optional(self) -> str | None:
        index = self._buffer.read_u16()
        return None if index == 0 else self._text_of(index)

    def _read_raw_attributes(self, buffer: Buffer) -> list[Attribute]:
        count = buffer.read_u16()
        attributes = []
        for _ in range(count):
            name = self._text_of(buffer.read_u16())
            length = buffer.read_u32()
            attributes.append(Attribute(name, buffer.read_bytes(length)))
        return attributes

    # Fields

    def _read_field(self) -> ClassFileField:
        flags = self._read_flags(FieldFlags, "invalid field flags: {bits:#x}")
        name = self._text_of(self._buffer.read_u16())
        type_descriptor = parse_field_type(self._text_of(self._buffer.read_u16()))
        attributes = self._read_raw_attributes(self._buffer)
        return ClassFileField(
            flags=flags,
            name=name,
            type_descriptor=type_descriptor,
            constant_value=self._constant_value(attributes),
            deprecated=_has_named(attributes, "Deprecated"),
        )

    def _constant_value(self, attributes: list[Attribute]) -> FieldConstantValue | None:
        attr = _first_named(attributes, "ConstantValue")
        if attr is None:
            return None
        index = _read_u16_index(attr.data, "invalid attribute of type ConstantValue")
        entry = self._constants.get(index)
        match entry:
            case StringReference(target):
                return FieldConstantValue(ConstantValueKind.STRING, self._text_of(target))
            case Integer(value):
                return FieldConstantValue(ConstantValueKind.INT, value)
            case Float(value):
                return FieldConstantValue(ConstantValueKind.FLOAT, value)
            case Long(value):
                return FieldConstantValue(ConstantValueKind.LONG, value)
            case Double(value):
                return FieldConstantValue(ConstantValueKind.DOUBLE, value)
        raise InvalidClassDataError(f"invalid type for ConstantValue: {entry!r}")

    # Methods

    def _read_method(self) -> ClassFileMethod:
        flags = self._read_flags(MethodFlags, "invalid method flags: {bits:#x}")
        name = self._text_of(self._buffer.read_u16())
        type_descriptor = self._text_of(self._buffer.read_u16())
        parsed = parse_method_descriptor(type_descriptor)
        attributes = self._read_raw_attributes(self._buffer)
        if flags & (MethodFlags.NATIVE | MethodFlags.ABSTRACT):
            code = None
        else:
            code = self._extract_code(attributes, name)
        return ClassFileMethod(
            flags=flags,
            name=name,
            type_descriptor=type_descriptor,
            parsed_type_descriptor=parsed,
            attributes=tuple(attributes),
            code=code,
            deprecated=_has_named(attributes, "Deprecated"),
            thrown_exceptions=tuple(self._thrown_exceptions(attributes)),
        )

    def _extract_code(self, attributes: list[Attribute], name: str) -> ClassFileMethodCode:
        attr = _first_named(attributes, "Code")
        if attr is None:
            raise InvalidClassDataError(f"method {name} is missing code attribute")
        buf = Buffer(attr.data)
        max_stack = buf.read_u16()
        max_locals = buf.read_u16()
        code = buf.read_bytes(buf.read_u32())
        exception_table = self._read_exception_table(buf)
        code_attributes = self._read_raw_attributes(buf)
        return ClassFileMethodCode(
            max_stack=max_stack,
            max_locals=max_locals,
            code=code,
            exception_table=exception_table,
            line_number_table=self._line_number_table(code_attributes),
            attributes=tuple(code_attributes),
        )

    def _read_exception_table(self, buf: Buffer) -> ExceptionTable:
        entries = []
        for _ in range(buf.read_u16()):
            start_pc = buf.read_u16()
            end_pc = buf.read_u16()
            handler_pc = buf.read_u16()
            catch_index = buf.read_u16()
            entries.append(
                ExceptionTableEntry(
                    start_pc=ProgramCounter(start_pc),
                    end_pc=ProgramCounter(end_pc),
                    handler_pc=ProgramCounter(handler_pc),
                    catch_class=None if catch_index == 0 else self._text_of(catch_index),
                )
            )
        return ExceptionTable(tuple(entries))

    def _line_number_table(self, attributes: list[Attribute]) -> LineNumberTable | None:
        attr = _first_named(attributes, "LineNumberTable")
        if attr is None:
            return None
        buf = Buffer(attr.data)
        entries = []
        for _ in range(buf.read_u16()):
            program_counter = buf.read_u16()
            line_number = buf.read_u16()
            entries.append(
                LineNumberTableEntry(ProgramCounter(program_counter), LineNumber(line_number))
            )
        return LineNumberTable(tuple(entries))

    def _thrown_exceptions(self, attributes: list[Attribute]) -> list[str]:
        attr = _first_named(attributes, "Exceptions")
        if attr is None:
            return []
        buf = Buffer(attr.data)
        return [self._text_of(buf.read_u16()) for _ in range(buf.read_u16())]

    # Class attributes

    def _source_file(self, attributes: list[Attribute]) -> str | None:
        attr = _first_named(attributes, "SourceFile")
        if attr is None:
            return None
        index = _read_u16_index(attr.data, "invalid SourceFile attribute")
        entry = self._constants.get(index)
        if isinstance(entry, Utf8):
            return entry.value
        raise InvalidClassDataError("invalid SourceFile attribute")


def read_buffer(data: bytes) -> ClassFile:
    """Parse the bytes of a .class file."""
    try:
        return _ClassFileReader(bytes(data)).read()
    except UnexpectedEndOfDataError as exc:
        raise InvalidClassDataError("unexpected end of class file") from exc
    except InvalidCesu8StringError as exc:
        raise InvalidClassDataError("invalid cesu8 string") from exc
    except InvalidConstantPoolIndexError as exc:
        raise InvalidClassDataError(str(exc), source=exc) from exc