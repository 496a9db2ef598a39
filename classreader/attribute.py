"""Raw attributes of classes, fields, methods and code."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Attribute:
    """A named attribute with its undecoded payload."""

    name: str
    data: bytes = b""

    def __str__(self) -> str:
        return f"{self.name} (data = {len(self.data)} bytes)"