import json

from record_util import invite_record, message_record

from dmbot import InviteEvent, Message, decode_invite, decode_message
from dmbot.records import extract_resource_name, load_record


def test_decode_invite_reads_resource_and_uid() -> None:
    event = decode_invite(invite_record(name="dm--zod", ship="bus", uid="0v9.xyz"))
    assert event == InviteEvent(resource_name="dm--zod", resource_ship="bus", uid="0v9.xyz")


def test_decode_invite_accepts_json_text() -> None:
    event = decode_invite(json.dumps(invite_record()))
    assert event is not None
    assert event.resource_name == "dm--zod"


def test_decode_invite_rejects_other_shapes() -> None:
    assert decode_invite({"invite-update": {"initial": {}}}) is None
    assert decode_invite(message_record()) is None
    assert decode_invite("{not json") is None
    assert decode_invite(None) is None
    assert decode_invite([1, 2]) is None


def test_decode_invite_requires_uid() -> None:
    record = invite_record()
    del record["invite-update"]["invite"]["uid"]
    assert decode_invite(record) is None


def test_decode_message_reads_first_node() -> None:
    event = decode_message(message_record(host="bus", author="nec", text="hello"))
    assert event is not None
    assert event.resource_name == "dm--zod"
    assert event.resource_ship == "bus"
    assert event.author == "nec"
    assert event.contents == Message().add_text("hello")
    assert event.index == "/170141184505284780937839282213473878016"
    assert event.time_sent == 1_622_000_000_000


def test_decode_message_rejects_bad_contents() -> None:
    record = message_record()
    node = next(iter(record["graph-update"]["add-nodes"]["nodes"].values()))
    node["post"]["contents"] = "not a list"
    assert decode_message(record) is None


def test_decode_message_rejects_missing_nodes() -> None:
    record = message_record()
    record["graph-update"]["add-nodes"]["nodes"] = {}
    assert decode_message(record) is None
    assert decode_message({"graph-update": {"remove-posts": {}}}) is None
    assert decode_message(b"\xff\xfe") is None


def test_extract_resource_name_handles_both_stores() -> None:
    assert extract_resource_name(invite_record(name="dm--a")) == "dm--a"
    assert extract_resource_name(message_record(name="dm--b")) == "dm--b"
    assert extract_resource_name({"other": 1}) is None


def test_load_record_only_returns_objects() -> None:
    assert load_record('{"a": 1}') == {"a": 1}
    assert load_record(b'{"a": 1}') == {"a": 1}
    assert load_record("[1]") is None
    assert load_record(42) is None
