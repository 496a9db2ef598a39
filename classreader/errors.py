"""Errors raised while reading a class file."""

from __future__ import annotations


class ClassReaderError(Exception):
    """Base class of every error reported while reading a class file."""

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.args == other.args  # type: ignore[union-attr]

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class InvalidClassDataError(ClassReaderError):
    """The class file is malformed."""

    def __init__(self, message: str, source: BaseException | None = None) -> None:
        super().__init__(f"invalid class file: {message}")
        self.message = message
        self.source = source
        self.__cause__ = source


class UnsupportedVersionError(ClassReaderError):
    """The class file declares a version this reader does not know."""

    def __init__(self, major: int, minor: int) -> None:
        super().__init__(f"unsupported class file version {major}.{minor}")
        self.major = major
        self.minor = minor


class InvalidTypeDescriptorError(ClassReaderError):
    """A field or method type descriptor could not be parsed."""

    def __init__(self, descriptor: str) -> None:
        super().__init__(f"invalid type descriptor: {descriptor}")
        self.descriptor = descriptor