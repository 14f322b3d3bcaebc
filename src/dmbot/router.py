"""Route accepted DM messages through the user's response function."""

from __future__ import annotations

from typing import Protocol

from .entities import AuthoredMessage, Message, MessageEvent, OutboundMessage
from .identity import with_sig


class Responder(Protocol):
    """User-supplied response function.

    Called synchronously on the session loop, once per accepted message.
    Returning `None` means "do not reply". Plain functions, closures and
    objects with `__call__` all satisfy this protocol.
    """

    def __call__(self, message: AuthoredMessage, /) -> Message | None: ...


def route_message(event: MessageEvent, responder: Responder) -> OutboundMessage | None:
    """Invoke `responder` for `event` and address any reply.

    Replies go to the resource host (`event.resource_ship`), which for DMs is
    the ship that opened the conversation, not necessarily the author.
    """

    authored = AuthoredMessage(author=event.author, contents=event.contents)
    reply = responder(authored)
    if reply is None:
        return None
    return OutboundMessage(destination=with_sig(event.resource_ship), message=reply)
