# src/keyscope/keychain/editor.py

from enum import Enum
from typing import Optional

from keyscope.common import hexcodec
from keyscope.common.hexcodec import HexDecodeError
from keyscope.common.models import CredentialRecord

DECODE_PLACEHOLDER = "Cannot display as UTF-8 text. Switch back to hex mode."


class EditMode(str, Enum):
    TEXT = "text"
    HEX = "hex"


class CommitError(ValueError):
    """The buffer cannot be turned into bytes. The editing session stays open."""

    def __init__(self, message: str = "Cannot save: fix the hex input first",
                 reason: str = "invalid-hex"):
        super().__init__(message)
        self.reason = reason


def _to_bytes(text: str) -> bytes:
    # Undecodable input read under a C/POSIX locale arrives as lone surrogates
    try:
        return text.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        # Surrogates outside U+DC80..U+DCFF were not produced by surrogateescape
        return text.encode("utf-8", errors="surrogatepass")


class PayloadEditor:
    """
    Editable text view of a record payload, shown either as UTF-8 text or as hex.

    The presentation layer writes user input straight into ``buffer`` and calls
    ``switch_mode`` when the user flips the toggle. ``commit`` yields the bytes
    to hand to the store.
    """

    def __init__(self, buffer: str = "", mode: EditMode = EditMode.TEXT):
        self.buffer = buffer
        self.mode = mode
        self._failed = False
        # Hex text displaced by the failure placeholder
        self._stashed_hex: Optional[str] = None

    @classmethod
    def from_record(cls, record: CredentialRecord) -> "PayloadEditor":
        if record.is_text_representable:
            return cls(record.payload.decode("utf-8"), EditMode.TEXT)
        return cls(hexcodec.encode(record.payload), EditMode.HEX)

    @property
    def display_failed(self) -> bool:
        """True while the failure placeholder is shown and untouched."""
        return self._failed and self.buffer == DECODE_PLACEHOLDER

    def switch_mode(self, new_mode: EditMode) -> bool:
        """Transcodes the buffer into ``new_mode``. Returns False if the text view failed."""
        new_mode = EditMode(new_mode)
        if new_mode is self.mode:
            return True

        if new_mode is EditMode.HEX:
            self._text_to_hex()
            ok = True
        else:
            ok = self._hex_to_text()

        self.mode = new_mode
        return ok

    def _text_to_hex(self):
        if self.display_failed:
            self.buffer = self._stashed_hex
        else:
            self.buffer = hexcodec.encode(_to_bytes(self.buffer))
        self._failed = False
        self._stashed_hex = None

    def _hex_to_text(self) -> bool:
        try:
            self.buffer = hexcodec.decode(self.buffer).decode("utf-8")
        except (HexDecodeError, UnicodeDecodeError):
            self._stashed_hex = self.buffer
            self.buffer = DECODE_PLACEHOLDER
            self._failed = True
            return False
        return True

    def commit(self) -> bytes:
        if self.display_failed:
            raise CommitError("Nothing to save in this view: switch back to hex", reason="placeholder")
        if self.mode is EditMode.TEXT:
            return _to_bytes(self.buffer)
        try:
            return hexcodec.decode(self.buffer)
        except HexDecodeError as e:
            raise CommitError(f"Cannot save: fix the hex input first ({e})") from e
