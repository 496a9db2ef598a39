"""Big-endian reader over a byte sequence."""

from __future__ import annotations

import struct


class BufferError(Exception):  # noqa: A001
    """Base class of errors raised while reading from a :class:`Buffer`."""


class UnexpectedEndOfDataError(BufferError):
    """A read went past the end of the data."""

    def __init__(self) -> None:
        super().__init__("unexpected end of data")


class InvalidCesu8StringError(BufferError):
    """The bytes are not a valid modified UTF-8 string."""

    def __init__(self) -> None:
        super().__init__("invalid cesu8 string")


def decode_cesu8(data: bytes) -> str:
    """Decode Java's modified UTF-8 (CESU-8 with NUL as C0 80)."""
    raw = bytes(data)
    if any(byte >= 0xF0 for byte in raw):
        raise InvalidCesu8StringError()
    try:
        text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
        # Recombine surrogate pairs into real code points; lone halves fail here.
        return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le")
    except UnicodeError as exc:
        raise InvalidCesu8StringError() from exc


_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_I32 = struct.Struct(">i")
_I64 = struct.Struct(">q")
_F32 = struct.Struct(">f")
_F64 = struct.Struct(">d")


class Buffer:
    """Reads big-endian values sequentially from a byte sequence."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._position = 0

    def _advance(self, size: int) -> bytes:
        end = self._position + size
        if size < 0 or end > len(self._data):
            raise UnexpectedEndOfDataError()
        chunk = self._data[self._position:end]
        self._position = end
        return chunk

    def _unpack(self, layout: struct.Struct):
        return layout.unpack(self._advance(layout.size))[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_i64(self) -> int:
        return self._unpack(_I64)

    def read_f32(self) -> float:
        return self._unpack(_F32)

    def read_f64(self) -> float:
        return self._unpack(_F64)

    def read_utf8(self, length: int) -> str:
        return decode_cesu8(self._advance(length))

    def read_bytes(self, length: int) -> bytes:
        return self._advance(length)

    def has_more_data(self) -> bool:
        return self._position < len(self._data)