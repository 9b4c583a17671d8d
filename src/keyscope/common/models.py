# src/keyscope/common/models.py
import uuid
from types import MappingProxyType
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Mapping, Optional

from keyscope.common import hexcodec


class RecordClass(str, Enum):
    # Values are the keychain class tags
    GENERIC = "genp"
    INTERNET = "inet"

    @property
    def label(self) -> str:
        return "Internet" if self is RecordClass.INTERNET else "Generic"

    @property
    def title_attribute(self) -> str:
        """Attribute that names the record: server for internet, service otherwise."""
        return "srvr" if self is RecordClass.INTERNET else "svce"


@dataclass(frozen=True, eq=False)
class CredentialRecord:
    # Natural key used against the store
    record_class: RecordClass
    title: str               # service (genp) or server (inet)
    account: str = ""        # empty is a valid account
    access_group: str = ""

    # Secret content and the raw attribute bag (display only)
    payload: bytes = b""
    attributes: Mapping[str, str] = field(default_factory=dict)

    # Derived from payload, never passed in
    is_text_representable: bool = field(init=False)
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        try:
            self.payload.decode("utf-8")
            text_ok = True
        except UnicodeDecodeError:
            text_ok = False
        object.__setattr__(self, "is_text_representable", text_ok)
        # Read-only snapshot, detached from the caller's dict
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    # Identity is the local id, not the store fields
    def __eq__(self, other):
        if not isinstance(other, CredentialRecord):
            return NotImplemented
        return self.record_id == other.record_id

    def __hash__(self):
        return hash(self.record_id)

    @property
    def text(self) -> Optional[str]:
        return self.payload.decode("utf-8") if self.is_text_representable else None

    @property
    def account_label(self) -> str:
        return self.account or "(no account)"

    def preview(self, width: int = 12) -> str:
        """Short payload teaser for list views."""
        if not self.is_text_representable:
            return "HEX"
        text = self.text.replace("\n", " ")
        return text if len(text) <= width else text[:width - 1] + "…"

    def to_dict(self, include_payload: bool = False) -> Dict[str, Any]:
        base: Dict[str, Any] = {
            "class": self.record_class.label,
            "title": self.title,
            "account": self.account,
            "access_group": self.access_group,
            "encoding": "utf-8" if self.is_text_representable else "hex",
        }
        if include_payload:
            base["payload"] = self.text if self.is_text_representable else hexcodec.encode(self.payload)
        for k, v in self.attributes.items():
            # Modeled fields win over raw attributes; raw data only goes out as "payload"
            if k not in base and k != "v_Data":
                base[k] = v
        return base
