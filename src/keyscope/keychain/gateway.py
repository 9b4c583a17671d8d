# src/keyscope/keychain/gateway.py

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from keyscope.common import hexcodec
from keyscope.common.models import RecordClass
from keyscope.keychain.normalizer import (
    ATTR_ACCESS_GROUP,
    ATTR_ACCOUNT,
    ATTR_CLASS,
    ATTR_CREATED,
    ATTR_DATA,
    ATTR_MODIFIED,
)

logger = logging.getLogger(__name__)

QueryRow = Tuple[Dict[str, Any], RecordClass]


class StoreStatus(str, Enum):
    SUCCESS = "success"
    ALREADY_EXISTS = "already-exists"
    NOT_FOUND = "not-found"
    DENIED = "denied"

    @property
    def ok(self) -> bool:
        return self is StoreStatus.SUCCESS


class KeyscopeStoreError(Exception):
    """The credential store could not be reached or read."""


class QueryFailed(KeyscopeStoreError):
    """The query itself failed, as opposed to matching nothing."""


class CredentialStoreGateway(Protocol):
    def query(self, access_group: str) -> List[QueryRow]: ...

    def insert(self, record_class: RecordClass, title: str, account: str,
               payload: bytes, access_group: str) -> StoreStatus: ...

    def update(self, record_class: RecordClass, title: str, account: str,
               access_group: str, new_payload: bytes) -> StoreStatus: ...

    def delete(self, record_class: RecordClass, title: str, account: str,
               access_group: str) -> StoreStatus: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore:
    """
    In-process keychain: records of both classes, each an attribute bag keyed
    like the platform store (svce/srvr, acct, agrp, v_Data, cdat, mdat).

    ``entitlements`` lists the access-group patterns this process may write to.
    Writes to a wildcard group, or to a group no entitlement covers, are DENIED.
    """

    def __init__(self, entitlements: Sequence[str] = ("*",)):
        self.entitlements = tuple(entitlements)
        self._items: List[Dict[str, Any]] = []

    # --- Lookup helpers ---

    def _find(self, record_class: RecordClass, title: str, account: str,
              access_group: str) -> Optional[Dict[str, Any]]:
        for item in self._items:
            if (item[ATTR_CLASS] == record_class.value
                    and item.get(record_class.title_attribute) == title
                    and item.get(ATTR_ACCOUNT, "") == account
                    and item.get(ATTR_ACCESS_GROUP) == access_group):
                return item
        return None

    def _may_write(self, access_group: str) -> bool:
        if not access_group or "*" in access_group:
            return False
        return any(fnmatchcase(access_group, p) for p in self.entitlements)

    # --- Gateway operations ---

    def query(self, access_group: str) -> List[QueryRow]:
        if not access_group:
            logger.debug("Query skipped: no access group given")
            return []

        rows: List[QueryRow] = []
        for record_class in (RecordClass.GENERIC, RecordClass.INTERNET):
            for item in self._items:
                if item[ATTR_CLASS] != record_class.value:
                    continue
                if fnmatchcase(item.get(ATTR_ACCESS_GROUP, ""), access_group):
                    rows.append((dict(item), record_class))
        logger.debug("Query %r matched %d items", access_group, len(rows))
        return rows

    def insert(self, record_class: RecordClass, title: str, account: str,
               payload: bytes, access_group: str) -> StoreStatus:
        if not self._may_write(access_group):
            logger.warning("Insert denied for access group %r", access_group)
            return StoreStatus.DENIED
        if self._find(record_class, title, account, access_group) is not None:
            return StoreStatus.ALREADY_EXISTS

        stamp = _now()
        self._items.append({
            ATTR_CLASS: record_class.value,
            record_class.title_attribute: title,
            ATTR_ACCOUNT: account,
            ATTR_ACCESS_GROUP: access_group,
            ATTR_DATA: bytes(payload),
            ATTR_CREATED: stamp,
            ATTR_MODIFIED: stamp,
        })
        logger.info("Inserted %s item %r (account %r)", record_class.label, title, account)
        return StoreStatus.SUCCESS

    def update(self, record_class: RecordClass, title: str, account: str,
               access_group: str, new_payload: bytes) -> StoreStatus:
        if not self._may_write(access_group):
            logger.warning("Update denied for access group %r", access_group)
            return StoreStatus.DENIED
        item = self._find(record_class, title, account, access_group)
        if item is None:
            return StoreStatus.NOT_FOUND

        item[ATTR_DATA] = bytes(new_payload)
        item[ATTR_MODIFIED] = _now()
        logger.info("Updated %s item %r (account %r)", record_class.label, title, account)
        return StoreStatus.SUCCESS

    def delete(self, record_class: RecordClass, title: str, account: str,
               access_group: str) -> StoreStatus:
        item = self._find(record_class, title, account, access_group)
        if item is None:
            return StoreStatus.NOT_FOUND
        self._items.remove(item)
        logger.info("Deleted %s item %r (account %r)", record_class.label, title, account)
        return StoreStatus.SUCCESS


class FileStore(MemoryStore):
    """MemoryStore persisted to a JSON document; the file is re-read on every call."""

    FORMAT_VERSION = 1

    def __init__(self, path: Path, entitlements: Sequence[str] = ("*",)):
        super().__init__(entitlements)
        self.path = Path(path)

    def _load(self):
        if not self.path.exists():
            self._items = []
            return
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            self._items = [self._decode_item(raw) for raw in document.get("items", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise QueryFailed(f"Cannot read keychain file {self.path}: {e}") from e

    def _save(self):
        document = {
            "version": self.FORMAT_VERSION,
            "items": [self._encode_item(item) for item in self._items],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(document, indent=4, ensure_ascii=False), encoding="utf-8")

    @staticmethod
    def _encode_item(item: Dict[str, Any]) -> Dict[str, Any]:
        attributes = {}
        for k, v in item.items():
            if k == ATTR_DATA:
                continue
            attributes[k] = v.isoformat() if isinstance(v, datetime) else v
        return {"attributes": attributes, "data": hexcodec.encode(item.get(ATTR_DATA, b""))}

    @staticmethod
    def _decode_item(raw: Dict[str, Any]) -> Dict[str, Any]:
        item = dict(raw["attributes"])
        RecordClass(item[ATTR_CLASS])
        for key in (ATTR_CREATED, ATTR_MODIFIED):
            if isinstance(item.get(key), str):
                item[key] = datetime.fromisoformat(item[key])
        item[ATTR_DATA] = hexcodec.decode(raw.get("data", ""))
        return item

    def query(self, access_group: str) -> List[QueryRow]:
        self._load()
        return super().query(access_group)

    def insert(self, record_class, title, account, payload, access_group) -> StoreStatus:
        self._load()
        status = super().insert(record_class, title, account, payload, access_group)
        if status.ok:
            self._save()
        return status

    def update(self, record_class, title, account, access_group, new_payload) -> StoreStatus:
        self._load()
        status = super().update(record_class, title, account, access_group, new_payload)
        if status.ok:
            self._save()
        return status

    def delete(self, record_class, title, account, access_group) -> StoreStatus:
        self._load()
        status = super().delete(record_class, title, account, access_group)
        if status.ok:
            self._save()
        return status
