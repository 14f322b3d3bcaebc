"""Relevance filters for decoded invite and message events."""

from __future__ import annotations

from enum import StrEnum

from .entities import InviteEvent, MessageEvent
from .identity import ConversationIdentity, without_sig


class MessageDisposition(StrEnum):
    IGNORE_WRONG_CONVERSATION = "ignore-wrong-conversation"
    IGNORE_SELF_AUTHORED = "ignore-self-authored"
    ACCEPT = "accept"


def is_invite_relevant(
    event: InviteEvent | None, identity: ConversationIdentity
) -> bool:
    """Return true iff the invite targets the tracked DM resource."""

    if event is None:
        return False
    return event.resource_name == identity.name


def classify_message(
    event: MessageEvent | None,
    identity: ConversationIdentity,
    self_ship: str,
) -> MessageDisposition:
    """Decide whether a message should reach the response function.

    Self-authored posts must never be accepted: the bot's own replies come
    back through the same feed and would otherwise be answered forever.
    """

    if event is None or event.resource_name != identity.name:
        return MessageDisposition.IGNORE_WRONG_CONVERSATION
    if without_sig(event.author) == without_sig(self_ship):
        return MessageDisposition.IGNORE_SELF_AUTHORED
    return MessageDisposition.ACCEPT
