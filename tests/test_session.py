# tests/test_session.py

import pytest
from keyscope.common.models import RecordClass
from keyscope.keychain.editor import CommitError, EditMode, PayloadEditor
from keyscope.keychain.gateway import MemoryStore, QueryFailed, StoreStatus
from keyscope.keychain.session import KeychainSession, PROMPT_FOR_GROUP

GROUP = "TEAMID.com.example"


@pytest.fixture
def store():
    s = MemoryStore(entitlements=["TEAMID.*"])
    s.insert(RecordClass.GENERIC, "com.example.app", "u1", b"secret", GROUP)
    s.insert(RecordClass.INTERNET, "example.com", "", b"\xff\xfe", GROUP)
    return s


def test_empty_group_prompts_instead_of_querying(mocker):
    """No group selected: nothing is queried and the user is asked for one."""
    gateway = mocker.Mock()
    session = KeychainSession(gateway, "  ")
    assert session.refresh() == []
    assert session.status_message == PROMPT_FOR_GROUP
    gateway.query.assert_not_called()


def test_refresh_normalizes_and_counts(store):
    session = KeychainSession(store, GROUP)
    records = session.refresh()
    assert [r.title for r in records] == ["com.example.app", "example.com"]
    assert records[1].is_text_representable is False
    assert session.status_message == "Found 2 items"


def test_query_failure_is_distinct_from_empty(mocker):
    gateway = mocker.Mock()
    gateway.query.side_effect = QueryFailed("disk on fire")
    session = KeychainSession(gateway, GROUP)
    with pytest.raises(QueryFailed):
        session.refresh()
    assert session.status_message == "Query failed: disk on fire"
    assert session.records == []


def test_add_refreshes_on_success(store):
    session = KeychainSession(store, GROUP)
    assert session.add(RecordClass.GENERIC, "new.app", "me", b"pw") is StoreStatus.SUCCESS
    assert "new.app" in [r.title for r in session.records]
    assert session.status_message == "Found 3 items"


def test_add_duplicate_reports_status(store):
    session = KeychainSession(store, GROUP)
    status = session.add(RecordClass.GENERIC, "com.example.app", "u1", b"x")
    assert status is StoreStatus.ALREADY_EXISTS
    assert "already exists" in session.status_message


def test_add_with_wildcard_group_is_denied(store):
    session = KeychainSession(store, "TEAMID.*")
    assert session.add(RecordClass.GENERIC, "x", "", b"") is StoreStatus.DENIED
    assert "denied" in session.status_message


def test_save_writes_editor_bytes_to_record_group(store):
    """Saving under a wildcard listing addresses the record's own group."""
    session = KeychainSession(store, "TEAMID.*")
    session.refresh()
    record = session.get(1)
    editor = PayloadEditor.from_record(record)
    editor.switch_mode(EditMode.HEX)
    editor.buffer = "6e6577"

    assert session.save(record, editor) is StoreStatus.SUCCESS
    assert session.get(1).payload == b"new"


def test_save_with_invalid_hex_never_reaches_store(store, mocker):
    session = KeychainSession(store, GROUP)
    session.refresh()
    spy = mocker.spy(store, "update")
    editor = PayloadEditor("zz", EditMode.HEX)
    with pytest.raises(CommitError):
        session.save(session.get(1), editor)
    spy.assert_not_called()
    assert editor.buffer == "zz"


def test_delete_removes_locally_even_when_not_found(store):
    session = KeychainSession(store, GROUP)
    session.refresh()
    record = session.get(2)
    assert session.delete(record) is StoreStatus.SUCCESS
    assert [r.title for r in session.records] == ["com.example.app"]

    stale = session.get(1)
    store.delete(RecordClass.GENERIC, "com.example.app", "u1", GROUP)
    assert session.delete(stale) is StoreStatus.NOT_FOUND
    assert session.records == []
    assert "no longer exists" in session.status_message


def test_unknown_group_record_is_addressed_with_configured_group(mocker):
    gateway = mocker.Mock()
    gateway.query.return_value = [({"svce": "svc", "acct": "a"}, RecordClass.GENERIC)]
    gateway.delete.return_value = StoreStatus.SUCCESS
    session = KeychainSession(gateway, GROUP)
    session.refresh()
    session.delete(session.get(1))
    gateway.delete.assert_called_once_with(RecordClass.GENERIC, "svc", "a", GROUP)


def test_get_out_of_range(store):
    session = KeychainSession(store, GROUP)
    session.refresh()
    with pytest.raises(IndexError, match="No item #3"):
        session.get(3)
