# src/keyscope/keychain/normalizer.py

from typing import Any, Dict, Iterable, List, Mapping, Tuple

from keyscope.common.models import CredentialRecord, RecordClass

# --- Keychain attribute keys ---
ATTR_CLASS = "class"
ATTR_SERVICE = "svce"
ATTR_SERVER = "srvr"
ATTR_ACCOUNT = "acct"
ATTR_ACCESS_GROUP = "agrp"
ATTR_DATA = "v_Data"
ATTR_CREATED = "cdat"
ATTR_MODIFIED = "mdat"

# --- Sentinels for attributes the store left out ---
UNKNOWN_SERVICE = "unknown-service"
UNKNOWN_SERVER = "unknown-server"
UNKNOWN_GROUP = "unknown-group"


def stringify(value: Any) -> str:
    """Best-effort text form of any store value. Never raises."""
    try:
        return str(value)
    except Exception:
        # Broken __str__ on a foreign object: fall back to type and identity
        return f"<{type(value).__name__} at 0x{id(value):x}>"


def _string_attr(raw: Mapping, key: str) -> str:
    value = raw.get(key)
    return value if isinstance(value, str) else ""


def _resolve_title(raw: Mapping, record_class: RecordClass) -> str:
    if record_class is RecordClass.INTERNET:
        return _string_attr(raw, ATTR_SERVER) or UNKNOWN_SERVER
    return _string_attr(raw, ATTR_SERVICE) or UNKNOWN_SERVICE


def normalize(raw_attributes: Mapping, record_class: RecordClass) -> CredentialRecord:
    """
    Projects one raw keychain attribute bag onto a CredentialRecord.

    Missing or wrongly typed attributes degrade to sentinels so that anything
    the store hands back can still be listed.
    """
    # 1. Keep every attribute for the detail view
    attributes: Dict[str, str] = {}
    for k, v in raw_attributes.items():
        name = stringify(k)
        if name in attributes:
            # Keys such as 7 and "7" render alike; tag the later one with its type
            tagged = name = f"{name} ({type(k).__name__})"
            n = 2
            while name in attributes:
                name = f"{tagged} #{n}"
                n += 1
        attributes[name] = stringify(v)

    # 2. Key fields
    account = _string_attr(raw_attributes, ATTR_ACCOUNT)
    group = _string_attr(raw_attributes, ATTR_ACCESS_GROUP) or UNKNOWN_GROUP

    data = raw_attributes.get(ATTR_DATA)
    payload = bytes(data) if isinstance(data, (bytes, bytearray, memoryview)) else b""

    # 3. Title depends on the record class; text classification happens in the model
    return CredentialRecord(
        record_class=record_class,
        title=_resolve_title(raw_attributes, record_class),
        account=account,
        access_group=group,
        payload=payload,
        attributes=attributes,
    )


def normalize_all(rows: Iterable[Tuple[Mapping, RecordClass]]) -> List[CredentialRecord]:
    """Normalizes a whole query result, keeping the store's order."""
    return [normalize(raw, record_class) for raw, record_class in rows]
