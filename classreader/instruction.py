"""Decoding of method bytecode into instructions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from classreader.errors import ClassReaderError, InvalidClassDataError


class Opcode(enum.IntEnum):
    """Bytecode operation codes, valued by their byte."""

    NOP = 0x00
    ACONST_NULL = 0x01
    ICONST_M1 = 0x02
    ICONST_0 = 0x03
    ICONST_1 = 0x04
    ICONST_2 = 0x05
    ICONST_3 = 0x06
    ICONST_4 = 0x07
    ICONST_5 = 0x08
    LCONST_0 = 0x09
    LCONST_1 = 0x0A
    FCONST_0 = 0x0B
    FCONST_1 = 0x0C
    FCONST_2 = 0x0D
    DCONST_0 = 0x0E
    DCONST_1 = 0x0F
    BIPUSH = 0x10
    SIPUSH = 0x11
    LDC = 0x12
    LDC_W = 0x13
    LDC2_W = 0x14
    ILOAD = 0x15
    LLOAD = 0x16
    FLOAD = 0x17
    DLOAD = 0x18
    ALOAD = 0x19
    ILOAD_0 = 0x1A
    ILOAD_1 = 0x1B
    ILOAD_2 = 0x1C
    ILOAD_3 = 0x1D
    LLOAD_0 = 0x1E
    LLOAD_1 = 0x1F
    LLOAD_2 = 0x20
    LLOAD_3 = 0x21
    FLOAD_0 = 0x22
    FLOAD_1 = 0x23
    FLOAD_2 = 0x24
    FLOAD_3 = 0x25
    DLOAD_0 = 0x26
    DLOAD_1 = 0x27
    DLOAD_2 = 0x28
    DLOAD_3 = 0x29
    ALOAD_0 = 0x2A
    ALOAD_1 = 0x2B
    ALOAD_2 = 0x2C
    ALOAD_3 = 0x2D
    IALOAD = 0x2E
    LALOAD = 0x2F
    FALOAD = 0x30
    DALOAD = 0x31
    AALOAD = 0x32
    BALOAD = 0x33
    CALOAD = 0x34
    SALOAD = 0x35
    ISTORE = 0x36
    LSTORE = 0x37
    FSTORE = 0x38
    DSTORE = 0x39
    ASTORE = 0x3A
    ISTORE_0 = 0x3B
    ISTORE_1 = 0x3C
    ISTORE_2 = 0x3D
    ISTORE_3 = 0x3E
    LSTORE_0 = 0x3F
    LSTORE_1 = 0x40
    LSTORE_2 = 0x41
    LSTORE_3 = 0x42
    FSTORE_0 = 0x43
    FSTORE_1 = 0x44
    FSTORE_2 = 0x45
    FSTORE_3 = 0x46
    DSTORE_0 = 0x47
    DSTORE_1 = 0x48
    DSTORE_2 = 0x49
    DSTORE_3 = 0x4A
    ASTORE_0 = 0x4B
    ASTORE_1 = 0x4C
    ASTORE_2 = 0x4D
    ASTORE_3 = 0x4E
    IASTORE = 0x4F
    LASTORE = 0x50
    FASTORE = 0x51
    DASTORE = 0x52
    AASTORE = 0x53
    BASTORE = 0x54
    CASTORE = 0x55
    SASTORE = 0x56
    POP = 0x57
    POP2 = 0x58
    DUP = 0x59
    DUP_X1 = 0x5A
    DUP_X2 = 0x5B
    DUP2 = 0x5C
    DUP2_X1 = 0x5D
    DUP2_X2 = 0x5E
    SWAP = 0x5F
    IADD = 0x60
    LADD = 0x61
    FADD = 0x62
    DADD = 0x63
    ISUB = 0x64
    LSUB = 0x65
    FSUB = 0x66
    DSUB = 0x67
    IMUL = 0x68
    LMUL = 0x69
    FMUL = 0x6A
    DMUL = 0x6B
    IDIV = 0x6C
    LDIV = 0x6D
    FDIV = 0x6E
    DDIV = 0x6F
    IREM = 0x70
    LREM = 0x71
    FREM = 0x72
    DREM = 0x73
    INEG = 0x74
    LNEG = 0x75
    FNEG = 0x76
    DNEG = 0x77
    ISHL = 0x78
    LSHL = 0x79
    ISHR = 0x7A
    LSHR = 0x7B
    IUSHR = 0x7C
    LUSHR = 0x7D
    IAND = 0x7E
    LAND = 0x7F
    IOR = 0x80
    LOR = 0x81
    IXOR = 0x82
    LXOR = 0x83
    IINC = 0x84
    I2L = 0x85
    I2F = 0x86
    I2D = 0x87
    L2I = 0x88
    L2F = 0x89
    L2D = 0x8A
    F2I = 0x8B
    F2L = 0x8C
    F2D = 0x8D
    D2I = 0x8E
    D2L = 0x8F
    D2F = 0x90
    I2B = 0x91
    I2C = 0x92
    I2S = 0x93
    LCMP = 0x94
    FCMPL = 0x95
    FCMPG = 0x96
    DCMPL = 0x97
    DCMPG = 0x98
    IFEQ = 0x99
    IFNE = 0x9A
    IFLT = 0x9B
    IFGE = 0x9C
    IFGT = 0x9D
    IFLE = 0x9E
    IF_ICMPEQ = 0x9F
    IF_ICMPNE = 0xA0
    IF_ICMPLT = 0xA1
    IF_ICMPGE = 0xA2
    IF_ICMPGT = 0xA3
    IF_ICMPLE = 0xA4
    IF_ACMPEQ = 0xA5
    IF_ACMPNE = 0xA6
    GOTO = 0xA7
    JSR = 0xA8
    RET = 0xA9
    TABLESWITCH = 0xAA
    LOOKUPSWITCH = 0xAB
    IRETURN = 0xAC
    LRETURN = 0xAD
    FRETURN = 0xAE
    DRETURN = 0xAF
    ARETURN = 0xB0
    RETURN = 0xB1
    GETSTATIC = 0xB2
    PUTSTATIC = 0xB3
    GETFIELD = 0xB4
    PUTFIELD = 0xB5
    INVOKEVIRTUAL = 0xB6
    INVOKESPECIAL = 0xB7
    INVOKESTATIC = 0xB8
    INVOKEINTERFACE = 0xB9
    INVOKEDYNAMIC = 0xBA
    NEW = 0xBB
    NEWARRAY = 0xBC
    ANEWARRAY = 0xBD
    ARRAYLENGTH = 0xBE
    ATHROW = 0xBF
    CHECKCAST = 0xC0
    INSTANCEOF = 0xC1
    MONITORENTER = 0xC2
    MONITOREXIT = 0xC3
    WIDE = 0xC4
    MULTIANEWARRAY = 0xC5
    IFNULL = 0xC6
    IFNONNULL = 0xC7
    GOTO_W = 0xC8
    JSR_W = 0xC9

    @property
    def display_name(self) -> str:
        """Mnemonic in the form ``Aload_0``."""
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.display_name


class NewArrayType(enum.Enum):
    """Element types accepted by ``newarray``, valued by their operand byte."""

    BOOLEAN = 4
    CHAR = 5
    FLOAT = 6
    DOUBLE = 7
    BYTE = 8
    SHORT = 9
    INT = 10
    LONG = 11

    def __str__(self) -> str:
        return self.name.capitalize()


Operand = Union[int, NewArrayType]


@dataclass(frozen=True)
class Instruction:
    """One decoded instruction; jump operands hold absolute target addresses."""

    opcode: Opcode
    operands: tuple[Operand, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "operands", tuple(self.operands))

    def __str__(self) -> str:
        if not self.operands:
            return self.opcode.display_name
        args = ", ".join(str(operand) for operand in self.operands)
        return f"{self.opcode.display_name}({args})"


class UnsupportedInstructionError(ClassReaderError):
    """The instruction is valid bytecode but cannot be decoded by this reader."""

    def __init__(self, opcode: Opcode, address: int) -> None:
        super().__init__(
            f"unsupported instruction {opcode.display_name} at address {address}"
        )
        self.opcode = opcode
        self.address = address


_U8 = "u8"
_I8 = "i8"
_U16 = "u16"
_I16 = "i16"
_OFFSET = "offset"

_LAYOUTS: dict[Opcode, tuple[str, ...]] = {}
for _op in (
    Opcode.ALOAD, Opcode.ASTORE, Opcode.BIPUSH, Opcode.DLOAD, Opcode.DSTORE,
    Opcode.FLOAD, Opcode.FSTORE, Opcode.ILOAD, Opcode.ISTORE, Opcode.LDC,
    Opcode.LLOAD, Opcode.LSTORE, Opcode.RET,
):
    _LAYOUTS[_op] = (_U8,)
for _op in (
    Opcode.ANEWARRAY, Opcode.CHECKCAST, Opcode.GETFIELD, Opcode.GETSTATIC,
    Opcode.INSTANCEOF, Opcode.INVOKESPECIAL, Opcode.INVOKESTATIC,
    Opcode.INVOKEVIRTUAL, Opcode.LDC_W, Opcode.LDC2_W, Opcode.NEW,
    Opcode.PUTFIELD, Opcode.PUTSTATIC,
):
    _LAYOUTS[_op] = (_U16,)
for _op in (
    Opcode.GOTO, Opcode.JSR, Opcode.IFEQ, Opcode.IFNE, Opcode.IFLT, Opcode.IFGE,
    Opcode.IFGT, Opcode.IFLE, Opcode.IF_ICMPEQ, Opcode.IF_ICMPNE,
    Opcode.IF_ICMPLT, Opcode.IF_ICMPGE, Opcode.IF_ICMPGT, Opcode.IF_ICMPLE,
    Opcode.IF_ACMPEQ, Opcode.IF_ACMPNE, Opcode.IFNULL, Opcode.IFNONNULL,
):
    _LAYOUTS[_op] = (_OFFSET,)
_LAYOUTS[Opcode.IINC] = (_U8, _I8)
_LAYOUTS[Opcode.MULTIANEWARRAY] = (_U16, _U8)
_LAYOUTS[Opcode.SIPUSH] = (_I16,)
del _op

_UNSUPPORTED = frozenset(
    {Opcode.GOTO_W, Opcode.JSR_W, Opcode.LOOKUPSWITCH, Opcode.TABLESWITCH, Opcode.WIDE}
)


def _signed(value: int, bits: int) -> int:
    return value - (1 << bits) if value >= 1 << (bits - 1) else value


class _Cursor:
    """Reads operands following an instruction's op code."""

    def __init__(self, code: bytes, instruction_address: int) -> None:
        self.code = code
        self.instruction_address = instruction_address
        self.position = instruction_address + 1

    def u8(self) -> int:
        if self.position >= len(self.code):
            raise InvalidClassDataError(
                f"cannot find arguments for instruction at address {self.position}"
            )
        value = self.code[self.position]
        self.position += 1
        return value

    def i8(self) -> int:
        return _signed(self.u8(), 8)

    def u16(self) -> int:
        high = self.u8()
        low = self.u8()
        return (high << 8) | low

    def i16(self) -> int:
        return _signed(self.u16(), 16)

    def offset(self) -> int:
        target = self.instruction_address + self.i16()
        if not 0 <= target <= 0xFFFF:
            raise InvalidClassDataError(
                f"invalid jump offset at address {self.position}"
            )
        return target

    def read(self, kind: str) -> int:
        return getattr(self, kind)()


def parse_instruction(code: bytes, address: int) -> tuple[Instruction, int]:
    """Decode the instruction at ``address``.

    Returns the instruction and the address of the next one.
    """
    if address < 0 or address >= len(code):
        raise InvalidClassDataError(f"cannot read instruction at address {address}")
    op_byte = code[address]
    cursor = _Cursor(code, address)
    try:
        opcode = Opcode(op_byte)
    except ValueError:
        raise InvalidClassDataError(
            f"invalid op code: {op_byte:#04x} at address {cursor.position}"
        ) from None

    if opcode in _UNSUPPORTED:
        raise UnsupportedInstructionError(opcode, address)

    operands: tuple[Operand, ...]
    if opcode is Opcode.INVOKEDYNAMIC:
        index = cursor.u16()
        if cursor.u16() != 0:
            raise InvalidClassDataError(
                "expected two zero bytes after invokedynamic and the index "
                f"at address {cursor.position}"
            )
        operands = (index,)
    elif opcode is Opcode.INVOKEINTERFACE:
        index = cursor.u16()
        count = cursor.u8()
        if cursor.u8() != 0:
            raise InvalidClassDataError(
                "expected a zero byte after invokeinterface and the index "
                f"at address {cursor.position}"
            )
        operands = (index, count)
    elif opcode is Opcode.NEWARRAY:
        type_byte = cursor.u8()
        try:
            array_type = NewArrayType(type_byte)
        except ValueError:
            raise InvalidClassDataError(
                f"invalid type for newarray: {type_byte:#04x} "
                f"at address {cursor.position}"
            ) from None
        operands = (array_type,)
    else:
        operands = tuple(cursor.read(kind) for kind in _LAYOUTS.get(opcode, ()))

    return Instruction(opcode, operands), cursor.position


def parse_instructions(code: bytes) -> list[tuple[int, Instruction]]:
    """Decode all of ``code`` into (address, instruction) pairs."""
    code = bytes(code)
    instructions: list[tuple[int, Instruction]] = []
    address = 0
    while address < len(code):
        instruction, following = parse_instruction(code, address)
        instructions.append((address, instruction))
        address = following
    return instructions