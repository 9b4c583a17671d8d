# src/keyscope/common/hexcodec.py

from enum import Enum

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class DecodeFailure(str, Enum):
    ODD_LENGTH = "odd-length"
    INVALID_DIGIT = "invalid-digit"


class HexDecodeError(ValueError):
    """Raised when a string cannot be read back as hexadecimal bytes."""

    def __init__(self, reason: DecodeFailure, message: str):
        super().__init__(message)
        self.reason = reason


def encode(data: bytes) -> str:
    """Lowercase hex, two digits per byte, in input order."""
    return "".join(f"{b:02x}" for b in data)


def decode(text: str) -> bytes:
    """
    Reads the string two characters at a time and returns the bytes.

    Upper and lower case digits are both accepted. Anything else, including
    whitespace or a '0x' prefix, is rejected rather than skipped.
    """
    if len(text) % 2:
        raise HexDecodeError(
            DecodeFailure.ODD_LENGTH,
            f"Hex input has odd length ({len(text)} characters)",
        )

    out = bytearray()
    for pos in range(0, len(text), 2):
        pair = text[pos:pos + 2]
        # int(x, 16) tolerates '+', '_' and surrounding spaces, so check digits first
        if not (pair[0] in _HEX_DIGITS and pair[1] in _HEX_DIGITS):
            raise HexDecodeError(
                DecodeFailure.INVALID_DIGIT,
                f"Invalid hex digit pair {pair!r} at offset {pos}",
            )
        out.append(int(pair, 16))
    return bytes(out)
