"""Invite acceptance: one accepted invite -> three pokes.

The pokes are independent at the protocol level; none consumes the result
of another. They are always produced together and in this order:

1. `group-view` join of the resource hosted by the inviting ship
2. `invite-store` accept of the invite uid under the `graph` term
3. `hark-store` seen, clearing the invite notification
"""

from __future__ import annotations

from typing import Final

from .entities import CommandKind, InviteEvent, OutboundCommand
from .identity import ConversationIdentity, with_sig

_INVITE_TERM: Final[str] = "graph"


def join_resource_command(peer: str, resource_name: str) -> OutboundCommand:
    return OutboundCommand(
        kind=CommandKind.JOIN_RESOURCE,
        app="group-view",
        mark="group-view-action",
        payload={
            "join": {
                "resource": {"ship": peer, "name": resource_name},
                "ship": peer,
            }
        },
    )


def accept_invite_command(uid: str) -> OutboundCommand:
    return OutboundCommand(
        kind=CommandKind.ACCEPT_INVITE,
        app="invite-store",
        mark="invite-action",
        payload={"accept": {"term": _INVITE_TERM, "uid": uid}},
    )


def clear_notification_command() -> OutboundCommand:
    return OutboundCommand(
        kind=CommandKind.CLEAR_NOTIFICATION,
        app="hark-store",
        mark="hark-action",
        payload={"seen": None},
    )


def reconcile_invite(
    event: InviteEvent, identity: ConversationIdentity
) -> list[OutboundCommand]:
    """Build the ordered commands that resolve one relevant invite.

    The caller is responsible for checking relevance first; the join is
    scoped to `identity.name`, not to whatever the invite names.
    """

    peer = with_sig(event.resource_ship)
    return [
        join_resource_command(peer, identity.name),
        accept_invite_command(event.uid),
        clear_notification_command(),
    ]
