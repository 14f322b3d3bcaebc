"""DM bot session loop.

One session tracks exactly one conversation, `dm--<ship>`, and cycles
forever (or until `DMBot.stop()`):

1. sleep for the poll interval (the only suspension point of the cycle)
2. drain buffered `invite-store` records; each relevant invite yields the
   join / accept / seen poke triple
3. drain buffered `graph-store` records; each accepted message is passed to
   the response function, and a returned `Message` becomes a reply
4. flush the pokes, then the replies, in the order they were produced

Steps 2-3 only compute: they fill a `CycleBatch` and perform no I/O beyond
draining the already-buffered records. Step 4 acts on the batch. Dispatch
is fire-and-forget: a failed poke or reply is logged and dropped, and the
next item is still attempted. Only start-up failures (login, channel,
subscription) escape `run()`.

The response function runs inline and blocks the loop while it runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import Final

import anyio
from rich import print

from .api import ShipApi
from .classify import MessageDisposition, classify_message, is_invite_relevant
from .config import DEFAULT_CONFIG_PATH, load_local_config
from .entities import OutboundCommand, OutboundMessage
from .identity import ConversationIdentity, derive_conversation_identity, with_sig
from .invites import reconcile_invite
from .records import decode_invite, decode_message
from .router import Responder, route_message
from .transport import Channel, ShipApiError, ShipInterface

logger = getLogger(__name__)

GRAPH_STORE: Final[tuple[str, str]] = ("graph-store", "/updates")
INVITE_STORE: Final[tuple[str, str]] = ("invite-store", "/updates")

_BANNER: Final[str] = (
    "=======================================\n"
    "Powered By The Urbit Chatbot Framework\n"
    "======================================="
)


@dataclass(slots=True)
class CycleBatch:
    """Outbound work computed during one cycle, flushed at its end."""

    commands: list[OutboundCommand] = field(default_factory=list)
    messages: list[OutboundMessage] = field(default_factory=list)
    invites_accepted: int = 0
    messages_accepted: int = 0
    records_skipped: int = 0
    dispatch_failures: int = 0

    def is_empty(self) -> bool:
        return not self.commands and not self.messages


def collect_invites(
    records: list[object], identity: ConversationIdentity, batch: CycleBatch
) -> CycleBatch:
    for record in records:
        event = decode_invite(record)
        if event is None or not is_invite_relevant(event, identity):
            batch.records_skipped += 1
            continue
        batch.commands.extend(reconcile_invite(event, identity))
        batch.invites_accepted += 1
    return batch


def collect_messages(
    records: list[object],
    identity: ConversationIdentity,
    self_ship: str,
    responder: Responder,
    batch: CycleBatch,
) -> CycleBatch:
    for record in records:
        event = decode_message(record)
        disposition = classify_message(event, identity, self_ship)
        if event is None or disposition is not MessageDisposition.ACCEPT:
            batch.records_skipped += 1
            continue
        batch.messages_accepted += 1
        outbound = route_message(event, responder)
        if outbound is not None:
            print("Replied to message.")
            batch.messages.append(outbound)
    return batch


async def flush_batch(
    commands: Channel, identity: ConversationIdentity, batch: CycleBatch
) -> CycleBatch:
    """Dispatch pokes, then replies; one failure never stops the rest."""

    for command in batch.commands:
        try:
            await commands.poke(command.app, command.mark, command.payload)
        except ShipApiError as e:
            batch.dispatch_failures += 1
            logger.warning(
                "%s poke to %s failed: %s: %s",
                command.kind,
                command.app,
                type(e).__name__,
                e,
            )

    for outbound in batch.messages:
        try:
            await commands.send_message(
                outbound.destination, identity.name, outbound.message
            )
        except ShipApiError as e:
            batch.dispatch_failures += 1
            logger.warning(
                "reply to %s failed: %s: %s",
                outbound.destination,
                type(e).__name__,
                e,
            )
    return batch


class DMBot:
    """A chatbot that accepts DM invites to `ship` and answers its DMs.

    `respond_to_message` receives every accepted DM message; if it returns a
    `Message`, that message is posted back to the conversation.
    """

    def __init__(
        self,
        respond_to_message: Responder,
        ship: ShipInterface,
        *,
        poll_interval_seconds: float = 1.0,
    ) -> None:
        if poll_interval_seconds < 0:
            raise ValueError(
                f"poll_interval_seconds must be >= 0; got {poll_interval_seconds}"
            )
        self.respond_to_message = respond_to_message
        self.ship = ship
        self.poll_interval_seconds = poll_interval_seconds
        self._stop_requested = False

    @classmethod
    def from_local_config(
        cls, respond_to_message: Responder, path: Path | str | None = None
    ) -> DMBot:
        """Build a bot from the local ship config file.

        Raises `ConfigBootstrapError` after writing a template when the file
        does not exist yet.
        """

        config = load_local_config(
            Path(path) if path is not None else DEFAULT_CONFIG_PATH
        )
        return cls(
            respond_to_message,
            ShipApi(url=config.ship_url, code=config.ship_code),
            poll_interval_seconds=config.poll_interval_seconds,
        )

    def stop(self) -> None:
        """Ask `run()` to return before its next cycle."""

        self._stop_requested = True

    def collect(self, events: Channel, identity: ConversationIdentity) -> CycleBatch:
        """Drain buffered records and compute this cycle's outbound work."""

        batch = CycleBatch()
        collect_invites(events.poll_records(*INVITE_STORE), identity, batch)
        collect_messages(
            events.poll_records(*GRAPH_STORE),
            identity,
            self.ship.ship_name,
            self.respond_to_message,
            batch,
        )
        return batch

    async def run_cycle(
        self, events: Channel, commands: Channel, identity: ConversationIdentity
    ) -> CycleBatch:
        batch = self.collect(events, identity)
        if batch.is_empty():
            return batch
        await flush_batch(commands, identity, batch)
        logger.info(
            "cycle flushed invites=%d messages=%d replies=%d failures=%d skipped=%d",
            batch.invites_accepted,
            batch.messages_accepted,
            len(batch.messages),
            batch.dispatch_failures,
            batch.records_skipped,
        )
        return batch

    async def run(self) -> None:
        """Open both channels and cycle until `stop()` is called.

        Start-up errors propagate to the caller; nothing is retried here.
        """

        print(_BANNER)
        events = await self.ship.open_channel()
        try:
            await events.subscribe(*GRAPH_STORE)
            await events.subscribe(*INVITE_STORE)
            commands = await self.ship.open_channel()
            try:
                identity = derive_conversation_identity(self.ship.ship_name)
                print(
                    "\n".join(
                        [
                            "DM bot running (polling subscriptions).",
                            f"- ship: {with_sig(self.ship.ship_name)}",
                            f"- conversation: {identity.name}",
                            f"- poll_interval_seconds: {self.poll_interval_seconds}",
                        ]
                    )
                )
                while not self._stop_requested:
                    await anyio.sleep(self.poll_interval_seconds)
                    await self.run_cycle(events, commands, identity)
            finally:
                await commands.aclose()
        finally:
            await events.aclose()
