"""Six-dot braille codec.

Maps a 6-dot cell to a Grade-1 English character and back.  Cells are
modelled as :class:`DotVector` (dot 1 first).  The little-endian mask
(dot 1 = bit 0 ... dot 6 = bit 5) is also the offset into the Unicode
braille block, so ``chr(0x2800 + mask)`` renders the cell visually.

The all-dots cell is reserved as the backspace signal and never decodes to
a printable character.  Unmapped cells decode to ``None``; callers decide
what feedback (if any) to give.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

BRAILLE_BASE: Final[int] = 0x2800
DOT_COUNT: Final[int] = 6


@dataclass(frozen=True, slots=True)
class DotVector:
    """Immutable six-dot braille cell."""

    dots: tuple[bool, bool, bool, bool, bool, bool] = (False,) * DOT_COUNT

    def __post_init__(self) -> None:
        if len(self.dots) != DOT_COUNT:
            raise ValueError(f"a braille cell has exactly {DOT_COUNT} dots, got {len(self.dots)}")

    # -- constructors --------------------------------------------------------

    @classmethod
    def from_key(cls, key: str) -> DotVector:
        """Build a cell from a ``"100110"`` style key (dot 1 first)."""
        if len(key) != DOT_COUNT or set(key) - {"0", "1"}:
            raise ValueError(f"invalid braille key: {key!r}")
        return cls(tuple(c == "1" for c in key))  # type: ignore[arg-type]

    @classmethod
    def from_mask(cls, mask: int) -> DotVector:
        if not 0 <= mask < 1 << DOT_COUNT:
            raise ValueError(f"braille mask out of range: {mask}")
        return cls(tuple(bool(mask >> i & 1) for i in range(DOT_COUNT)))  # type: ignore[arg-type]

    @classmethod
    def from_dots(cls, *numbers: int) -> DotVector:
        """Build a cell from 1-based dot numbers, e.g. ``from_dots(1, 4, 5)``."""
        mask = 0
        for n in numbers:
            if not 1 <= n <= DOT_COUNT:
                raise ValueError(f"dot number must be 1..{DOT_COUNT}, got {n}")
            mask |= 1 << (n - 1)
        return cls.from_mask(mask)

    # -- derived views -------------------------------------------------------

    def with_dot(self, index: int) -> DotVector:
        """Return a copy with the 0-based dot *index* raised."""
        if not 0 <= index < DOT_COUNT:
            raise ValueError(f"dot index must be 0..{DOT_COUNT - 1}, got {index}")
        dots = list(self.dots)
        dots[index] = True
        return DotVector(tuple(dots))  # type: ignore[arg-type]

    @property
    def key(self) -> str:
        return "".join("1" if d else "0" for d in self.dots)

    @property
    def mask(self) -> int:
        return sum(1 << i for i, d in enumerate(self.dots) if d)

    @property
    def active(self) -> list[int]:
        """0-based indices of raised dots."""
        return [i for i, d in enumerate(self.dots) if d]

    @property
    def is_empty(self) -> bool:
        return not any(self.dots)

    @property
    def unicode(self) -> str:
        return chr(BRAILLE_BASE + self.mask)


EMPTY_CELL: Final[DotVector] = DotVector()
BACKSPACE_CELL: Final[DotVector] = DotVector.from_key("111111")

# Grade-1 English, keyed by dot-1-first key.
_KEY_TO_CHAR: Final[dict[str, str]] = {
    "100000": "a",
    "110000": "b",
    "100100": "c",
    "100110": "d",
    "100010": "e",
    "110100": "f",
    "110110": "g",
    "110010": "h",
    "010100": "i",
    "010110": "j",
    "101000": "k",
    "111000": "l",
    "101100": "m",
    "101110": "n",
    "101010": "o",
    "111100": "p",
    "111110": "q",
    "111010": "r",
    "011100": "s",
    "011110": "t",
    "101001": "u",
    "111001": "v",
    "010111": "w",
    "101101": "x",
    "101111": "y",
    "101011": "z",
    "000000": " ",
    "001000": ",",
    "010000": ".",
    "010010": "?",
    "010011": "!",
}

_CHAR_TO_KEY: Final[dict[str, str]] = {v: k for k, v in _KEY_TO_CHAR.items()}


def is_backspace(cell: DotVector) -> bool:
    return cell == BACKSPACE_CELL


def decode(cell: DotVector) -> str | None:
    """Return the character for *cell*, or ``None`` if it is unmapped.

    The backspace cell is not a character and also yields ``None``; use
    :func:`is_backspace` to detect it.
    """
    if is_backspace(cell):
        return None
    return _KEY_TO_CHAR.get(cell.key)


def encode_char(char: str) -> DotVector | None:
    """Return the cell for a single character (case-folded), or ``None``."""
    key = _CHAR_TO_KEY.get(char.lower())
    return DotVector.from_key(key) if key is not None else None


def text_to_cells(text: str) -> list[DotVector]:
    """Encode *text* for a braille display, dropping characters with no cell."""
    cells: list[DotVector] = []
    for char in text:
        cell = encode_char(char)
        if cell is not None:
            cells.append(cell)
    return cells


def to_unicode(cells: list[DotVector]) -> str:
    return "".join(cell.unicode for cell in cells)


def text_to_unicode(text: str) -> str:
    """Render *text* as Unicode braille patterns."""
    return to_unicode(text_to_cells(text))
