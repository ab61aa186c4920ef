"""Morse codec for press-duration tapping.

Symbols travel as ASCII ``.`` (dot) and ``-`` (dash).  Letters and digits
use International Morse; a literal space maps to itself and marks a word
boundary.  Character boundaries are not encoded here: the tap decoder
commits a symbol string after its silence timeout.
"""

from __future__ import annotations

from typing import Final

from src.models.enums import MorseSymbol

MAX_SYMBOLS: Final[int] = 6
DEFAULT_DOT_THRESHOLD_MS: Final[int] = 200

MORSE_TABLE: Final[dict[str, str]] = {
    ".-": "a", "-...": "b", "-.-.": "c", "-..": "d", ".": "e",
    "..-.": "f", "--.": "g", "....": "h", "..": "i", ".---": "j",
    "-.-": "k", ".-..": "l", "--": "m", "-.": "n", "---": "o",
    ".--.": "p", "--.-": "q", ".-.": "r", "...": "s", "-": "t",
    "..-": "u", "...-": "v", ".--": "w", "-..-": "x", "-.--": "y",
    "--..": "z",
    "-----": "0", ".----": "1", "..---": "2", "...--": "3",
    "....-": "4", ".....": "5", "-....": "6", "--...": "7",
    "---..": "8", "----.": "9",
    " ": " ",
}

CHAR_TO_MORSE: Final[dict[str, str]] = {v: k for k, v in MORSE_TABLE.items()}

# Quick-insert phrases offered next to the tap pad.  They bypass per-symbol
# decoding and are emitted as their literal expansion.
PHRASES: Final[dict[str, str]] = {
    "sos": "SOS",
    "ok": "OK",
    "help": "HELP",
    "yes": "YES",
    "no": "NO",
}

# Glyphs the on-screen pad displays; folded to ASCII on input.
_GLYPHS: Final[dict[str, str]] = {"•": ".", "·": ".", "—": "-", "–": "-", "_": "-"}


def classify_press(duration_ms: float, threshold_ms: int = DEFAULT_DOT_THRESHOLD_MS) -> MorseSymbol:
    """Classify a press: shorter than *threshold_ms* is a dot, otherwise a dash."""
    if duration_ms < 0:
        raise ValueError(f"press duration cannot be negative: {duration_ms}")
    return MorseSymbol.DOT if duration_ms < threshold_ms else MorseSymbol.DASH


def normalize(code: str) -> str:
    return "".join(_GLYPHS.get(c, c) for c in code)


def decode(code: str) -> str | None:
    """Return the character for *code*, or ``None`` if unmapped."""
    return MORSE_TABLE.get(normalize(code))


def encode_char(char: str) -> str | None:
    return CHAR_TO_MORSE.get(char.lower())


def encode_text(text: str) -> str:
    """Encode *text*; letters are separated by a space and words by ``" / "``.

    Characters without a code are skipped.
    """
    words = []
    for word in text.split():
        codes = [code for code in (encode_char(c) for c in word) if code]
        if codes:
            words.append(" ".join(codes))
    return " / ".join(words)


def symbols_to_code(symbols: list[MorseSymbol]) -> str:
    return "".join(s.value for s in symbols)
