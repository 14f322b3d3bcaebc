"""DM chatbot framework for Urbit ships.

A `DMBot` watches a ship for DM invites, accepts them, and passes every
message posted in the DM conversation (`dm--<ship>`) to a user-supplied
response function. A returned `Message` is posted back to the conversation;
`None` means no reply.

Design notes / boundaries:
- Exactly one conversation is tracked per session; every filter compares
  against its name.
- The bot's own posts are never answered.
- Each cycle computes all outbound work first, then dispatches it; dispatch
  failures are logged and dropped.
- Nothing is persisted; state is rebuilt from the ship's feed.

Example:

    from dmbot import AuthoredMessage, DMBot, Message

    def respond_to_message(authored_message: AuthoredMessage) -> Message | None:
        return Message().add_text("Calm Computing ~")

    anyio.run(DMBot.from_local_config(respond_to_message).run)
"""

from __future__ import annotations

from .api import ShipApi, ShipChannel
from .classify import MessageDisposition, classify_message, is_invite_relevant
from .config import Config, ConfigBootstrapError, load_local_config
from .entities import (
    AuthoredMessage,
    CommandKind,
    InviteEvent,
    Message,
    MessageEvent,
    OutboundCommand,
    OutboundMessage,
)
from .identity import (
    ConversationIdentity,
    derive_conversation_identity,
    with_sig,
    without_sig,
)
from .invites import reconcile_invite
from .records import decode_invite, decode_message
from .router import Responder, route_message
from .session import CycleBatch, DMBot
from .transport import (
    Channel,
    CommandError,
    ShipApiError,
    ShipConnectionError,
    ShipInterface,
    SubscriptionError,
)

__all__ = [
    "AuthoredMessage",
    "Channel",
    "CommandError",
    "CommandKind",
    "Config",
    "ConfigBootstrapError",
    "ConversationIdentity",
    "CycleBatch",
    "DMBot",
    "InviteEvent",
    "Message",
    "MessageDisposition",
    "MessageEvent",
    "OutboundCommand",
    "OutboundMessage",
    "Responder",
    "ShipApi",
    "ShipApiError",
    "ShipChannel",
    "ShipConnectionError",
    "ShipInterface",
    "SubscriptionError",
    "classify_message",
    "decode_invite",
    "decode_message",
    "derive_conversation_identity",
    "is_invite_relevant",
    "load_local_config",
    "reconcile_invite",
    "route_message",
    "with_sig",
    "without_sig",
]
