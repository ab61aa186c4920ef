from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class InputKind(StrEnum):
    __slots__ = ()

    CHARACTER = "character"
    BACKSPACE = "backspace"


@dataclass(frozen=True, slots=True)
class DecodedInput:
    """One unit of composer input produced by a tactile decoder."""

    kind: InputKind
    char: str = ""

    @classmethod
    def character(cls, char: str) -> DecodedInput:
        return cls(InputKind.CHARACTER, char)

    @classmethod
    def backspace(cls) -> DecodedInput:
        return cls(InputKind.BACKSPACE)
