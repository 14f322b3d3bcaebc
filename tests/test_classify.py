from record_util import invite_record, message_record

from dmbot import (
    InviteEvent,
    MessageDisposition,
    classify_message,
    decode_invite,
    decode_message,
    derive_conversation_identity,
    is_invite_relevant,
)

IDENTITY = derive_conversation_identity("zod")


def test_invite_for_tracked_conversation_is_relevant() -> None:
    assert is_invite_relevant(decode_invite(invite_record(name="dm--zod")), IDENTITY)


def test_invite_for_other_resource_is_not_relevant() -> None:
    assert not is_invite_relevant(decode_invite(invite_record(name="dm--nec")), IDENTITY)
    assert not is_invite_relevant(decode_invite(invite_record(name="DM--zod")), IDENTITY)
    assert not is_invite_relevant(None, IDENTITY)


def test_invite_with_empty_resource_name_is_not_relevant() -> None:
    event = InviteEvent(resource_name="", resource_ship="bus", uid="0v1.u")
    assert not is_invite_relevant(event, IDENTITY)


def test_message_from_peer_is_accepted() -> None:
    event = decode_message(message_record(author="bus"))
    assert classify_message(event, IDENTITY, "zod") is MessageDisposition.ACCEPT


def test_self_authored_message_is_ignored() -> None:
    event = decode_message(message_record(author="zod"))
    assert (
        classify_message(event, IDENTITY, "zod")
        is MessageDisposition.IGNORE_SELF_AUTHORED
    )
    assert (
        classify_message(event, IDENTITY, "~zod")
        is MessageDisposition.IGNORE_SELF_AUTHORED
    )


def test_message_in_other_conversation_is_ignored() -> None:
    event = decode_message(message_record(name="dm--other", author="zod"))
    assert (
        classify_message(event, IDENTITY, "zod")
        is MessageDisposition.IGNORE_WRONG_CONVERSATION
    )
    assert (
        classify_message(None, IDENTITY, "zod")
        is MessageDisposition.IGNORE_WRONG_CONVERSATION
    )
