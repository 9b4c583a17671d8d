# tests/test_normalizer.py

from datetime import datetime, timezone

import pytest

from keyscope.common.models import RecordClass
from keyscope.keychain.normalizer import (
    normalize,
    normalize_all,
    stringify,
    UNKNOWN_GROUP,
    UNKNOWN_SERVER,
    UNKNOWN_SERVICE,
)


def test_generic_record_uses_service_as_title():
    """A complete generic attribute bag maps field for field."""
    raw = {"svce": "com.example.app", "acct": "u1", "agrp": "TEAMID.*", "v_Data": b"secret"}
    record = normalize(raw, RecordClass.GENERIC)

    assert record.record_class is RecordClass.GENERIC
    assert record.title == "com.example.app"
    assert record.account == "u1"
    assert record.access_group == "TEAMID.*"
    assert record.payload == b"secret"
    assert record.is_text_representable is True


def test_internet_record_uses_server_even_when_service_present():
    raw = {"srvr": "example.com", "svce": "ignored", "acct": "me"}
    record = normalize(raw, RecordClass.INTERNET)
    assert record.title == "example.com"


def test_missing_title_attributes_fall_back_to_sentinels():
    assert normalize({}, RecordClass.GENERIC).title == UNKNOWN_SERVICE
    assert normalize({"svce": "svc"}, RecordClass.INTERNET).title == UNKNOWN_SERVER
    # Wrong type or empty string count as missing
    assert normalize({"svce": 42}, RecordClass.GENERIC).title == UNKNOWN_SERVICE
    assert normalize({"srvr": ""}, RecordClass.INTERNET).title == UNKNOWN_SERVER


def test_defaults_for_account_group_and_payload():
    """Absent account is empty (not unknown); absent group gets the sentinel."""
    record = normalize({"svce": "svc"}, RecordClass.GENERIC)
    assert record.account == ""
    assert record.access_group == UNKNOWN_GROUP
    assert record.payload == b""
    assert record.is_text_representable is True


def test_invalid_utf8_payload_is_binary():
    record = normalize({"v_Data": bytes([0xFF, 0xFE])}, RecordClass.GENERIC)
    assert record.is_text_representable is False
    assert record.text is None
    assert record.preview() == "HEX"


def test_every_attribute_is_stringified():
    """Keys the model does not know about still show up, as strings."""
    created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    raw = {"svce": "svc", "cdat": created, "pdmn": "ak", 7: None, "sync": False}
    record = normalize(raw, RecordClass.GENERIC)

    assert record.attributes["cdat"] == str(created)
    assert record.attributes["pdmn"] == "ak"
    assert record.attributes["7"] == "None"
    assert record.attributes["sync"] == "False"
    assert set(record.attributes) == {"svce", "cdat", "pdmn", "7", "sync"}


def test_stringify_survives_broken_str():
    class Hostile:
        def __str__(self):
            raise RuntimeError("no")

    text = stringify(Hostile())
    assert text.startswith("<Hostile at 0x")


def test_normalize_all_keeps_order_and_fresh_ids():
    rows = [
        ({"svce": "a"}, RecordClass.GENERIC),
        ({"srvr": "b"}, RecordClass.INTERNET),
    ]
    records = normalize_all(rows)
    assert [r.title for r in records] == ["a", "b"]
    # Identity is local: re-normalizing the same bag yields a distinct record
    again = normalize_all(rows)
    assert records[0] != again[0]
    assert records[0].record_id != again[0].record_id


def test_keys_that_stringify_alike_are_all_kept():
    record = normalize({7: "int", "7": "str"}, RecordClass.GENERIC)
    assert record.attributes["7"] == "int"
    assert record.attributes["7 (str)"] == "str"
    assert len(record.attributes) == 2


def test_attributes_are_read_only_and_detached():
    raw = {"svce": "svc"}
    record = normalize(raw, RecordClass.GENERIC)
    with pytest.raises(TypeError):
        record.attributes["svce"] = "changed"
    raw["extra"] = "late"
    assert "extra" not in record.attributes
