"""Transport contracts the session loop depends on.

`dmbot.api` implements these against a live ship; tests use in-memory
fakes. Only `poll_records` is synchronous: it drains whatever the channel
has buffered and never waits for more.
"""

from __future__ import annotations

from typing import Any, Protocol

from .entities import Message


class ShipApiError(RuntimeError):
    """Base class for transport failures."""


class ShipConnectionError(ShipApiError):
    """Raised when logging in or opening a channel fails."""


class SubscriptionError(ShipApiError):
    """Raised when a subscription cannot be established."""


class CommandError(ShipApiError):
    """Raised when a poke or message send is rejected or cannot be delivered."""


class Channel(Protocol):
    async def subscribe(self, app: str, path: str) -> None: ...

    def poll_records(self, app: str, path: str) -> list[Any]: ...

    async def poke(self, app: str, mark: str, payload: dict[str, Any]) -> None: ...

    async def send_message(
        self, destination: str, resource_name: str, message: Message
    ) -> None: ...

    async def aclose(self) -> None: ...


class ShipInterface(Protocol):
    @property
    def ship_name(self) -> str: ...

    async def open_channel(self) -> Channel: ...
