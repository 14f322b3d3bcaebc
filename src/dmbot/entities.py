"""Shared Pydantic models for the DM bot.

Keep these types free of transport and session wiring so they can be
imported by records decoding, the router, and user callbacks without
creating import cycles.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Chat message contents as an ordered list of content items.

    Each item is a single-key dict in the graph-store post format, e.g.
    `{"text": "hi"}`, `{"url": "https://..."}`, `{"mention": "~zod"}`,
    `{"code": {"expression": "(add 1 2)", "output": []}}`.

    Builder methods mutate and return `self` so replies can be chained:
    `Message().add_text("hello ").add_mention("~zod")`.
    """

    contents: list[dict[str, Any]] = Field(default_factory=list)

    def add_text(self, text: str) -> Message:
        self.contents.append({"text": text})
        return self

    def add_url(self, url: str) -> Message:
        self.contents.append({"url": url})
        return self

    def add_mention(self, ship: str) -> Message:
        self.contents.append({"mention": ship})
        return self

    def add_code(self, expression: str) -> Message:
        self.contents.append({"code": {"expression": expression, "output": []}})
        return self

    def add_reference(self, reference: dict[str, Any]) -> Message:
        self.contents.append({"reference": reference})
        return self

    def to_formatted_string(self) -> str:
        """Render a plain-text view; unknown item kinds are skipped."""

        parts: list[str] = []
        for item in self.contents:
            if not isinstance(item, dict):
                continue
            if isinstance(item.get("text"), str):
                parts.append(item["text"])
            elif isinstance(item.get("url"), str):
                parts.append(item["url"])
            elif isinstance(item.get("mention"), str):
                parts.append(item["mention"])
            elif isinstance(item.get("code"), dict):
                expression = item["code"].get("expression")
                if isinstance(expression, str):
                    parts.append(expression)
        return "".join(parts)


class AuthoredMessage(BaseModel):
    """The value handed to the user's response function."""

    author: str
    contents: Message


class InviteEvent(BaseModel):
    """A pending invite to a resource hosted by `resource_ship`."""

    model_config = ConfigDict(frozen=True)

    resource_name: str
    resource_ship: str
    uid: str


class MessageEvent(BaseModel):
    """A post appended to a resource's message graph.

    `resource_ship` is the host of the resource, which for DMs is the peer
    that started the conversation; replies are addressed there.
    """

    model_config = ConfigDict(frozen=True)

    resource_name: str
    resource_ship: str
    author: str
    contents: Message
    index: str | None = None
    time_sent: int | None = None


class CommandKind(StrEnum):
    JOIN_RESOURCE = "join-resource"
    ACCEPT_INVITE = "accept-invite"
    CLEAR_NOTIFICATION = "clear-notification"


class OutboundCommand(BaseModel):
    """A poke to send over the command channel."""

    kind: CommandKind
    app: str
    mark: str
    payload: dict[str, Any]


class OutboundMessage(BaseModel):
    """A reply queued for the flush phase; `destination` carries the `~`."""

    destination: str
    message: Message
