# src/keyscope/keychain/session.py

import logging
from typing import List

from keyscope.common.models import CredentialRecord, RecordClass
from keyscope.keychain.editor import PayloadEditor
from keyscope.keychain.gateway import CredentialStoreGateway, QueryFailed, StoreStatus
from keyscope.keychain.normalizer import UNKNOWN_GROUP, normalize_all

logger = logging.getLogger(__name__)

PROMPT_FOR_GROUP = "Enter a target access group (e.g. TEAMID.* or TEAMID.com.example)"

_STATUS_MESSAGES = {
    StoreStatus.SUCCESS: "{action} succeeded",
    StoreStatus.ALREADY_EXISTS: "{action} failed: an item with this key already exists",
    StoreStatus.NOT_FOUND: "{action}: item no longer exists in the store",
    StoreStatus.DENIED: "{action} denied: access group {group!r} is not writable",
}


class KeychainSession:
    """
    One browsing session over the records of a single access group.

    Holds the current listing and a one-line status message, and routes every
    store call through the gateway with the configured group.
    """

    def __init__(self, gateway: CredentialStoreGateway, access_group: str):
        self.gateway = gateway
        self.access_group = access_group.strip()
        self.records: List[CredentialRecord] = []
        self.status_message = PROMPT_FOR_GROUP

    def _report(self, status: StoreStatus, action: str, group: str) -> StoreStatus:
        self.status_message = _STATUS_MESSAGES[status].format(action=action, group=group)
        return status

    def _key_group(self, record: CredentialRecord) -> str:
        # A record whose group the store did not report is addressed via the configured one
        if record.access_group == UNKNOWN_GROUP:
            return self.access_group
        return record.access_group

    def refresh(self) -> List[CredentialRecord]:
        """Re-queries the store. Raises QueryFailed after recording the status."""
        if not self.access_group:
            self.status_message = PROMPT_FOR_GROUP
            return self.records

        try:
            rows = self.gateway.query(self.access_group)
        except QueryFailed as e:
            self.status_message = f"Query failed: {e}"
            raise

        self.records = normalize_all(rows)
        self.status_message = f"Found {len(self.records)} items"
        return self.records

    def get(self, position: int) -> CredentialRecord:
        """Returns the record at a 1-based list position."""
        if not 1 <= position <= len(self.records):
            raise IndexError(f"No item #{position} (listing has {len(self.records)} items)")
        return self.records[position - 1]

    def add(self, record_class: RecordClass, title: str, account: str,
            payload: bytes) -> StoreStatus:
        status = self.gateway.insert(record_class, title, account, payload, self.access_group)
        self._report(status, "Add", self.access_group)
        if status.ok:
            self.refresh()
        return status

    def save(self, record: CredentialRecord, editor: PayloadEditor) -> StoreStatus:
        """
        Writes the editor's content back. A CommitError propagates before the
        store is touched, leaving the editor as it was.
        """
        data = editor.commit()
        group = self._key_group(record)
        status = self.gateway.update(record.record_class, record.title, record.account, group, data)
        self._report(status, "Save", group)
        if status.ok:
            self.refresh()
        return status

    def delete(self, record: CredentialRecord) -> StoreStatus:
        group = self._key_group(record)
        status = self.gateway.delete(record.record_class, record.title, record.account, group)
        self._report(status, "Delete", group)
        # Gone either way: drop it from the listing without a re-query
        self.records = [r for r in self.records if r.record_id != record.record_id]
        return status
