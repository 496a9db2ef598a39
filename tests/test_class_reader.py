import struct

import pytest

from classreader.class_file import ClassFileField, ConstantValueKind, FieldConstantValue
from classreader.class_reader import read_buffer
from classreader.constant_pool import InvalidConstantPoolIndexError
from classreader.errors import (
    InvalidClassDataError,
    InvalidTypeDescriptorError,
    UnsupportedVersionError,
)
from classreader.exception_table import ExceptionTable, ExceptionTableEntry
from classreader.field_type import BaseType, ObjectType, PrimitiveType
from classreader.flags import ClassAccessFlags, FieldFlags, MethodFlags
from classreader.line_number_table import LineNumberTable, LineNumberTableEntry
from classreader.positions import LineNumber, ProgramCounter
from classreader.version import ClassFileVersion


class _ClassBuilder:
    """Assembles class file bytes for tests."""

    def __init__(
        self,
        name="rjvm/Test",
        superclass="java/lang/Object",
        major=50,
        flags=0x0021,
        interfaces=(),
    ):
        self.name = name
        self.superclass = superclass
        self.major = major
        self.flags = flags
        self.interfaces = list(interfaces)
        self._pool = []
        self._slots = 0
        self._utf8 = {}
        self._fields = []
        self._methods = []

    def _add(self, data, slots=1):
        self._pool.append(data)
        index = self._slots + 1
        self._slots += slots
        return index

    def raw_constant(self, data, slots=1):
        return self._add(data, slots)

    def utf8(self, text):
        if text not in self._utf8:
            encoded = text.encode("utf-8")
            self._utf8[text] = self._add(b"\x01" + struct.pack(">H", len(encoded)) + encoded)
        return self._utf8[text]

    def class_ref(self, name):
        return self._add(b"\x07" + struct.pack(">H", self.utf8(name)))

    def string(self, text):
        return self._add(b"\x08" + struct.pack(">H", self.utf8(text)))

    def integer(self, value):
        return self._add(b"\x03" + struct.pack(">i", value))

    def float32(self, value):
        return self._add(b"\x04" + struct.pack(">f", value))

    def long(self, value):
        return self._add(b"\x05" + struct.pack(">q", value), slots=2)

    def double(self, value):
        return self._add(b"\x06" + struct.pack(">d", value), slots=2)

    def attribute(self, name, payload):
        return struct.pack(">HI", self.utf8(name), len(payload)) + payload

    def code_attribute(self, code=b"\xb1", max_stack=2, max_locals=1,
                       exception_table=(), attributes=()):
        payload = struct.pack(">HHI", max_stack, max_locals, len(code)) + code
        payload += struct.pack(">H", len(exception_table))
        payload += b"".join(struct.pack(">HHHH", *entry) for entry in exception_table)
        payload += struct.pack(">H", len(attributes)) + b"".join(attributes)
        return self.attribute("Code", payload)

    def line_numbers(self, *pairs):
        payload = struct.pack(">H", len(pairs))
        payload += b"".join(struct.pack(">HH", pc, line) for pc, line in pairs)
        return self.attribute("LineNumberTable", payload)

    def exceptions(self, *names):
        indexes = [self.class_ref(name) for name in names]
        payload = struct.pack(">H", len(indexes))
        payload += b"".join(struct.pack(">H", index) for index in indexes)
        return self.attribute("Exceptions", payload)

    def _member(self, flags, name, descriptor, attributes):
        return (
            struct.pack(">HHHH", flags, self.utf8(name), self.utf8(descriptor), len(attributes))
            + b"".join(attributes)
        )

    def add_field(self, flags, name, descriptor, attributes=()):
        self._fields.append(self._member(flags, name, descriptor, attributes))

    def add_method(self, flags, name, descriptor, attributes=None):
        if attributes is None:
            attributes = [self.code_attribute()]
        self._methods.append(self._member(flags, name, descriptor, attributes))

    def build(self, class_attributes=()):
        this_index = self.class_ref(self.name)
        super_index = 0 if self.superclass is None else self.class_ref(self.superclass)
        interface_indexes = [self.class_ref(name) for name in self.interfaces]
        data = struct.pack(">IHHH", 0xCAFEBABE, 0, self.major, self._slots + 1)
        data += b"".join(self._pool)
        data += struct.pack(">HHH", self.flags, this_index, super_index)
        data += struct.pack(">H", len(interface_indexes))
        data += b"".join(struct.pack(">H", index) for index in interface_indexes)
        data += struct.pack(">H", len(self._fields)) + b"".join(self._fields)
        data += struct.pack(">H", len(self._methods)) + b"".join(self._methods)
        data += struct.pack(">H", len(class_attributes)) + b"".join(class_attributes)
        return data


def _check_method(method, flags, name, type_descriptor):
    assert method.flags == flags
    assert method.name == name
    assert method.type_descriptor == type_descriptor


def _complex_class():
    builder = _ClassBuilder(
        name="rjvm/Complex",
        interfaces=["java/lang/Cloneable", "java/io/Serializable"],
    )
    builder.add_field(0x0012, "real", "D")
    builder.add_field(0x0012, "imag", "D")
    builder.add_method(0x0001, "<init>", "(D)V", [builder.code_attribute(
        code=b"\x00" * 20,
        attributes=[builder.line_numbers((0, 9), (4, 10), (9, 11), (14, 12))],
    )])
    builder.add_method(0x0001, "<init>", "(DD)V")
    builder.add_method(0x0001, "getReal", "()D")
    builder.add_method(0x0001, "getImag", "()D")
    builder.add_method(0x0001, "abs", "()D", [builder.code_attribute(
        attributes=[builder.line_numbers((0, 28))],
    )])
    source = builder.attribute("SourceFile", struct.pack(">H", builder.utf8("Complex.java")))
    return builder.build([source])


def test_magic_number_is_required():
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(bytes([0x00, 0x01, 0x02, 0x03]))
    assert info.value.message == "invalid magic number"
    assert info.value.source is None


def test_truncated_data_is_reported():
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(b"\xca\xfe\xba\xbe\x00")
    assert info.value.message == "unexpected end of class file"


def test_unsupported_version():
    data = _ClassBuilder(major=99).build()
    with pytest.raises(UnsupportedVersionError) as info:
        read_buffer(data)
    assert info.value == UnsupportedVersionError(99, 0)


def test_can_read_pojo_class_file():
    class_file = read_buffer(_complex_class())
    assert class_file.version == ClassFileVersion.JDK6
    assert class_file.flags == ClassAccessFlags.PUBLIC | ClassAccessFlags.SUPER
    assert class_file.name == "rjvm/Complex"
    assert class_file.superclass == "java/lang/Object"
    assert class_file.interfaces == ["java/lang/Cloneable", "java/io/Serializable"]
    assert class_file.source_file == "Complex.java"

    double = PrimitiveType(BaseType.DOUBLE)
    assert class_file.fields == [
        ClassFileField(FieldFlags.PRIVATE | FieldFlags.FINAL, "real", double, None, False),
        ClassFileField(FieldFlags.PRIVATE | FieldFlags.FINAL, "imag", double, None, False),
    ]

    methods = class_file.methods
    assert len(methods) == 5
    _check_method(methods[0], MethodFlags.PUBLIC, "<init>", "(D)V")
    assert methods[0].code.line_number_table == LineNumberTable((
        LineNumberTableEntry(ProgramCounter(0), LineNumber(9)),
        LineNumberTableEntry(ProgramCounter(4), LineNumber(10)),
        LineNumberTableEntry(ProgramCounter(9), LineNumber(11)),
        LineNumberTableEntry(ProgramCounter(14), LineNumber(12)),
    ))
    _check_method(methods[1], MethodFlags.PUBLIC, "<init>", "(DD)V")
    _check_method(methods[2], MethodFlags.PUBLIC, "getReal", "()D")
    _check_method(methods[3], MethodFlags.PUBLIC, "getImag", "()D")
    _check_method(methods[4], MethodFlags.PUBLIC, "abs", "()D")
    assert methods[4].code.line_number_table == LineNumberTable((
        LineNumberTableEntry(ProgramCounter(0), LineNumber(28)),
    ))
    assert methods[1].code.line_number_table is None


def test_class_file_text_starts_with_header():
    class_file = read_buffer(_complex_class())
    assert str(class_file).startswith(
        "Class rjvm/Complex (extends java/lang/Object) version: Jdk6\n"
    )


def test_can_read_constants():
    builder = _ClassBuilder(name="rjvm/Constants")
    builder.add_field(0x0019, "AN_INT", "I", [
        builder.attribute("ConstantValue", struct.pack(">H", builder.integer(2023)))])
    builder.add_field(0x001C, "A_FLOAT", "F", [
        builder.attribute("ConstantValue", struct.pack(">H", builder.float32(20.23)))])
    builder.add_field(0x001A, "A_LONG", "J", [
        builder.attribute("ConstantValue", struct.pack(">H", builder.long(2023)))])
    builder.add_field(0x0019, "A_DOUBLE", "D", [
        builder.attribute("ConstantValue", struct.pack(">H", builder.double(20.23)))])
    builder.add_field(0x0019, "A_STRING", "Ljava/lang/String;", [
        builder.attribute("ConstantValue", struct.pack(">H", builder.string("2023")))])
    class_file = read_buffer(builder.build())

    public_static_final = FieldFlags.PUBLIC | FieldFlags.STATIC | FieldFlags.FINAL
    assert class_file.fields == [
        ClassFileField(public_static_final, "AN_INT", PrimitiveType(BaseType.INT),
                       FieldConstantValue(ConstantValueKind.INT, 2023), False),
        ClassFileField(FieldFlags.PROTECTED | FieldFlags.STATIC | FieldFlags.FINAL,
                       "A_FLOAT", PrimitiveType(BaseType.FLOAT),
                       FieldConstantValue(ConstantValueKind.FLOAT, 20.23), False),
        ClassFileField(FieldFlags.PRIVATE | FieldFlags.STATIC | FieldFlags.FINAL,
                       "A_LONG", PrimitiveType(BaseType.LONG),
                       FieldConstantValue(ConstantValueKind.LONG, 2023), False),
        ClassFileField(public_static_final, "A_DOUBLE", PrimitiveType(BaseType.DOUBLE),
                       FieldConstantValue(ConstantValueKind.DOUBLE, 20.23), False),
        ClassFileField(public_static_final, "A_STRING", ObjectType("java/lang/String"),
                       FieldConstantValue(ConstantValueKind.STRING, "2023"), False),
    ]


def test_can_read_deprecated_attribute():
    builder = _ClassBuilder(name="rjvm/DeprecatedClass")
    deprecated = builder.attribute("Deprecated", b"")
    builder.add_field(0x0002, "normalField", "I")
    builder.add_field(0x0002, "deprecatedField", "I", [deprecated])
    builder.add_method(0x0001, "normalMethod", "()V")
    builder.add_method(0x0001, "deprecatedMethod", "()V", [builder.code_attribute(), deprecated])
    class_file = read_buffer(builder.build([deprecated]))

    assert class_file.deprecated is True
    fields = {field.name: field.deprecated for field in class_file.fields}
    assert fields == {"normalField": False, "deprecatedField": True}
    methods = {method.name: method.deprecated for method in class_file.methods}
    assert methods == {"normalMethod": False, "deprecatedMethod": True}


def test_class_without_deprecated_attribute():
    class_file = read_buffer(_ClassBuilder().build())
    assert class_file.deprecated is False
    assert class_file.source_file is None


def test_can_read_class_with_exception_handler_and_throws():
    builder = _ClassBuilder(name="rjvm/ExceptionsHandlers")
    builder.add_method(0, "<init>", "()V")
    builder.add_method(0, "foo", "()V")
    builder.add_method(0, "bar", "()V", [
        builder.code_attribute(),
        builder.exceptions("java/lang/IllegalArgumentException",
                           "java/lang/IllegalStateException"),
    ])
    catch_index = builder.class_ref("java/lang/IllegalStateException")
    builder.add_method(0, "test", "()V", [builder.code_attribute(
        code=b"\x00" * 30,
        exception_table=[(0, 4, 11, 0), (18, 22, 25, catch_index)],
    )])
    class_file = read_buffer(builder.build())

    assert class_file.name == "rjvm/ExceptionsHandlers"
    methods = class_file.methods
    assert len(methods) == 4
    _check_method(methods[0], MethodFlags(0), "<init>", "()V")
    _check_method(methods[1], MethodFlags(0), "foo", "()V")
    _check_method(methods[2], MethodFlags(0), "bar", "()V")
    assert methods[2].thrown_exceptions == (
        "java/lang/IllegalArgumentException",
        "java/lang/IllegalStateException",
    )
    _check_method(methods[3], MethodFlags(0), "test", "()V")
    assert methods[3].code.exception_table == ExceptionTable((
        ExceptionTableEntry(ProgramCounter(0), ProgramCounter(4), ProgramCounter(11), None),
        ExceptionTableEntry(ProgramCounter(18), ProgramCounter(22), ProgramCounter(25),
                            "java/lang/IllegalStateException"),
    ))
    assert methods[1].thrown_exceptions == ()


def test_code_attribute_content_is_kept():
    builder = _ClassBuilder()
    builder.add_method(0x0009, "run", "(I)I", [
        builder.code_attribute(code=b"\x1a\xac", max_stack=3, max_locals=4)])
    method = read_buffer(builder.build()).methods[0]
    assert method.code.max_stack == 3
    assert method.code.max_locals == 4
    assert method.code.code == b"\x1a\xac"
    assert [attr.name for attr in method.attributes] == ["Code"]
    assert method.is_static()


def test_abstract_and_native_methods_have_no_code():
    builder = _ClassBuilder()
    builder.add_method(0x0401, "abstractOne", "()V", [])
    builder.add_method(0x0101, "nativeOne", "()V", [])
    methods = read_buffer(builder.build()).methods
    assert [method.code for method in methods] == [None, None]


def test_missing_code_attribute():
    builder = _ClassBuilder()
    builder.add_method(0x0001, "run", "()V", [])
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build())
    assert info.value.message == "method run is missing code attribute"


def test_unknown_constant_tag():
    builder = _ClassBuilder()
    builder.raw_constant(b"\x0f\x01\x00\x01")
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build())
    assert info.value.message == "Unknown constant type: 0xF"


def test_invalid_cesu8_constant():
    builder = _ClassBuilder()
    builder.raw_constant(b"\x01\x00\x01\xff")
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build())
    assert info.value.message == "invalid cesu8 string"


def test_invalid_class_flags():
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(_ClassBuilder(flags=0x8000).build())
    assert info.value.message == "invalid class flags: 32768"


def test_invalid_field_flags():
    builder = _ClassBuilder()
    builder.add_field(0x0100, "x", "I")
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build())
    assert info.value.message == "invalid field flags: 0x100"


def test_invalid_method_flags():
    builder = _ClassBuilder()
    builder.add_method(0x8000, "x", "()V")
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build())
    assert info.value.message == "invalid method flags: 0x8000"


def test_invalid_field_descriptor():
    builder = _ClassBuilder()
    builder.add_field(0x0001, "x", "W")
    with pytest.raises(InvalidTypeDescriptorError) as info:
        read_buffer(builder.build())
    assert info.value.descriptor == "W"


def test_invalid_constant_pool_index_is_reported_with_source():
    builder = _ClassBuilder()
    source = builder.attribute("SourceFile", struct.pack(">H", 999))
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build([source]))
    assert info.value.message == "invalid constant pool index: 999"
    assert info.value.source == InvalidConstantPoolIndexError(999)


def test_source_file_must_point_to_utf8():
    builder = _ClassBuilder()
    source = builder.attribute("SourceFile", struct.pack(">H", builder.integer(7)))
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build([source]))
    assert info.value.message == "invalid SourceFile attribute"


def test_constant_value_of_wrong_type():
    builder = _ClassBuilder()
    builder.add_field(0x0019, "X", "I", [
        builder.attribute("ConstantValue", struct.pack(">H", builder.class_ref("a/B")))])
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build())
    assert info.value.message.startswith("invalid type for ConstantValue: ClassReference")


def test_constant_value_with_wrong_length():
    builder = _ClassBuilder()
    builder.add_field(0x0019, "X", "I", [builder.attribute("ConstantValue", b"\x00")])
    with pytest.raises(InvalidClassDataError) as info:
        read_buffer(builder.build())
    assert info.value.message == "invalid attribute of type ConstantValue"


def test_class_without_superclass():
    class_file = read_buffer(_ClassBuilder(name="java/lang/Object", superclass=None).build())
    assert class_file.name == "java/lang/Object"
    assert class_file.superclass is None