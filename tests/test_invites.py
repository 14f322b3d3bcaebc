from dmbot import CommandKind, InviteEvent, derive_conversation_identity, reconcile_invite


def test_reconcile_invite_emits_join_accept_seen_in_order() -> None:
    identity = derive_conversation_identity("zod")
    event = InviteEvent(resource_name="dm--zod", resource_ship="bus", uid="0v1.u")

    commands = reconcile_invite(event, identity)

    assert [c.kind for c in commands] == [
        CommandKind.JOIN_RESOURCE,
        CommandKind.ACCEPT_INVITE,
        CommandKind.CLEAR_NOTIFICATION,
    ]
    join, accept, seen = commands
    assert (join.app, join.mark) == ("group-view", "group-view-action")
    assert join.payload == {
        "join": {"resource": {"ship": "~bus", "name": "dm--zod"}, "ship": "~bus"}
    }
    assert (accept.app, accept.mark) == ("invite-store", "invite-action")
    assert accept.payload == {"accept": {"term": "graph", "uid": "0v1.u"}}
    assert (seen.app, seen.mark) == ("hark-store", "hark-action")
    assert seen.payload == {"seen": None}


def test_reconcile_invite_keeps_sigil_single() -> None:
    identity = derive_conversation_identity("zod")
    event = InviteEvent(resource_name="dm--zod", resource_ship="~bus", uid="0v1.u")
    join = reconcile_invite(event, identity)[0]
    assert join.payload["join"]["ship"] == "~bus"
