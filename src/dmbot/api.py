"""Ship HTTP API client used by the DM bot.

Talks to a ship's HTTP server (Eyre) with the stdlib `urllib`:

- `POST /~/login` with the ship's `+code` yields an `urbauth-~<ship>` cookie.
- A channel is created by `PUT /~/channel/<uid>` with a JSON list of actions
  (`poke`, `subscribe`, `ack`, `delete`); each action carries an increasing
  request id.
- Subscription updates stream back on `GET /~/channel/<uid>` as
  server-sent events whose `data:` line is `{"id": <request id>,
  "response": "diff", "json": {...}}`.

Each `ShipChannel` reads its event stream on a daemon thread and buffers the
`json` bodies per subscription, so `poll_records` can drain without
blocking. The thread acks every event it reads and reconnects with
`Last-Event-ID` after a stream error, backing off up to 30 seconds.

Never log the `+code` or the auth cookie.
"""

from __future__ import annotations

import http.client
import json
import secrets
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from collections import deque
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Final

import anyio.to_thread as to_thread

from .entities import Message
from .identity import with_sig, without_sig
from .transport import (
    CommandError,
    ShipApiError,
    ShipConnectionError,
    SubscriptionError,
)

logger = getLogger(__name__)

_COOKIE_PREFIX: Final[str] = "urbauth-"
_REQUEST_TIMEOUT_SECONDS: Final[float] = 10.0
_MAX_BACKOFF_SECONDS: Final[float] = 30.0
_READER_JOIN_TIMEOUT_SECONDS: Final[float] = 1.0

# `@da` for the unix epoch and one second in `@da` units.
_DA_UNIX_EPOCH: Final[int] = 170141184475152167957503069145530368000
_DA_SECOND: Final[int] = 18446744073709551616


def unix_ms_to_da(unix_ms: int) -> int:
    return _DA_UNIX_EPOCH + (unix_ms * _DA_SECOND) // 1000


def new_channel_uid() -> str:
    return f"{int(time.time())}-{secrets.token_hex(3)}"


def parse_auth_cookie(set_cookie: str) -> tuple[str, str] | None:
    """Return `(cookie, ship_name)` from a login `Set-Cookie` header value.

    `cookie` is the `name=value` pair to echo back; `ship_name` has no `~`.
    """

    pair = set_cookie.split(";", 1)[0].strip()
    name, sep, value = pair.partition("=")
    if not sep or not value or not name.startswith(_COOKIE_PREFIX):
        return None
    ship = without_sig(name.removeprefix(_COOKIE_PREFIX))
    if not ship:
        return None
    return pair, ship


@dataclass(slots=True)
class SseEvent:
    event_id: int | None
    data: str


@dataclass(slots=True)
class SseDecoder:
    """Incremental server-sent-events decoder (one line at a time)."""

    _event_id: int | None = None
    _data: list[str] = field(default_factory=list)

    def feed_line(self, line: str) -> SseEvent | None:
        line = line.rstrip("\r\n")
        if not line:
            if not self._data:
                self._event_id = None
                return None
            event = SseEvent(event_id=self._event_id, data="\n".join(self._data))
            self._event_id = None
            self._data = []
            return event
        if line.startswith(":"):
            return None

        key, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if key == "data":
            self._data.append(value)
        elif key == "id":
            try:
                self._event_id = int(value)
            except ValueError:
                self._event_id = None
        return None


@dataclass(slots=True)
class ShipApi:
    """Minimal ship client: login plus channel factory."""

    url: str
    code: str
    _cookie: str | None = None
    _ship_name: str | None = None

    @property
    def ship_name(self) -> str:
        """Sigil-less name of the logged-in ship."""

        if self._ship_name is None:
            raise ShipConnectionError("Not logged in: ship name is unknown")
        return self._ship_name

    @property
    def cookie(self) -> str:
        if self._cookie is None:
            raise ShipConnectionError("Not logged in: no auth cookie")
        return self._cookie

    def _login_sync(self) -> None:
        data = urllib.parse.urlencode({"password": self.code}).encode("utf-8")
        request = urllib.request.Request(
            f"{self.url}/~/login", data=data, method="POST"
        )
        request.add_header("Content-Type", "application/x-www-form-urlencoded")
        try:
            with urllib.request.urlopen(
                request, timeout=_REQUEST_TIMEOUT_SECONDS
            ) as resp:
                set_cookies = resp.headers.get_all("Set-Cookie") or []
        except urllib.error.HTTPError as e:
            raise ShipConnectionError(f"Ship login failed: HTTP {e.code}") from e
        except urllib.error.URLError as e:  # pragma: no cover (network dependent)
            raise ShipConnectionError("Ship login failed: network error") from e
        except (OSError, http.client.HTTPException) as e:
            raise ShipConnectionError(
                f"Ship login failed: {type(e).__name__}"
            ) from e

        for header in set_cookies:
            parsed = parse_auth_cookie(header)
            if parsed is not None:
                self._cookie, self._ship_name = parsed
                return
        raise ShipConnectionError("Ship login failed: missing auth cookie")

    async def login(self) -> None:
        await to_thread.run_sync(self._login_sync)

    def _channel_url(self, uid: str) -> str:
        return f"{self.url}/~/channel/{uid}"

    def _put_actions_sync(self, uid: str, actions: list[dict[str, Any]]) -> None:
        body = json.dumps(actions).encode("utf-8")
        request = urllib.request.Request(
            self._channel_url(uid), data=body, method="PUT"
        )
        request.add_header("Content-Type", "application/json")
        request.add_header("Cookie", self.cookie)
        try:
            with urllib.request.urlopen(
                request, timeout=_REQUEST_TIMEOUT_SECONDS
            ) as resp:
                resp.read()
        except urllib.error.HTTPError as e:
            raise ShipApiError(f"Channel PUT failed: HTTP {e.code}") from e
        except urllib.error.URLError as e:  # pragma: no cover (network dependent)
            raise ShipApiError("Channel PUT failed: network error") from e
        except (OSError, http.client.HTTPException) as e:
            raise ShipApiError(f"Channel PUT failed: {type(e).__name__}") from e

    def _open_stream_sync(self, uid: str, last_event_id: int | None) -> Any:
        request = urllib.request.Request(self._channel_url(uid), method="GET")
        request.add_header("Accept", "text/event-stream")
        request.add_header("Cookie", self.cookie)
        if last_event_id is not None:
            request.add_header("Last-Event-ID", str(last_event_id))
        try:
            return urllib.request.urlopen(request)
        except urllib.error.HTTPError as e:
            raise ShipApiError(f"Channel stream failed: HTTP {e.code}") from e
        except urllib.error.URLError as e:  # pragma: no cover (network dependent)
            raise ShipApiError("Channel stream failed: network error") from e
        except (OSError, http.client.HTTPException) as e:
            raise ShipApiError(f"Channel stream failed: {type(e).__name__}") from e

    async def open_channel(self) -> ShipChannel:
        """Log in if needed, then create a channel and start its reader."""

        if self._cookie is None:
            await self.login()
        channel = ShipChannel(api=self, uid=new_channel_uid())
        await channel.open()
        return channel


class ShipChannel:
    """One Eyre channel: outbound actions plus a buffered event stream."""

    def __init__(self, *, api: ShipApi, uid: str) -> None:
        self.api = api
        self.uid = uid
        self._lock = threading.Lock()
        self._last_request_id = 0
        self._last_event_id: int | None = None
        self._subscriptions: dict[int, tuple[str, str]] = {}
        self._buffers: dict[tuple[str, str], deque[Any]] = {}
        self._closed = threading.Event()
        self._reader: threading.Thread | None = None

    def _next_request_id(self) -> int:
        with self._lock:
            self._last_request_id += 1
            return self._last_request_id

    def _poke_action(self, app: str, mark: str, payload: Any) -> dict[str, Any]:
        return {
            "id": self._next_request_id(),
            "action": "poke",
            "ship": self.api.ship_name,
            "app": app,
            "mark": mark,
            "json": payload,
        }

    def _open_sync(self) -> None:
        # Eyre creates the channel on its first action.
        try:
            self.api._put_actions_sync(
                self.uid, [self._poke_action("hood", "helm-hi", "Opening channel")]
            )
            stream = self.api._open_stream_sync(self.uid, None)
        except ShipApiError as e:
            raise ShipConnectionError(f"Channel open failed: {e}") from e
        self._reader = threading.Thread(
            target=self._read_events_forever,
            args=(stream,),
            name=f"dmbot-channel-{self.uid}",
            daemon=True,
        )
        self._reader.start()

    async def open(self) -> None:
        await to_thread.run_sync(self._open_sync)

    def _subscribe_sync(self, app: str, path: str) -> None:
        request_id = self._next_request_id()
        key = (app, path)
        self._buffers.setdefault(key, deque())
        self._subscriptions[request_id] = key
        action = {
            "id": request_id,
            "action": "subscribe",
            "ship": self.api.ship_name,
            "app": app,
            "path": path,
        }
        try:
            self.api._put_actions_sync(self.uid, [action])
        except ShipApiError as e:
            self._subscriptions.pop(request_id, None)
            raise SubscriptionError(f"Subscribe to {app}{path} failed: {e}") from e

    async def subscribe(self, app: str, path: str) -> None:
        await to_thread.run_sync(self._subscribe_sync, app, path)

    def poll_records(self, app: str, path: str) -> list[Any]:
        """Pop every record buffered so far for `app`/`path`."""

        buffer = self._buffers.get((app, path))
        records: list[Any] = []
        while buffer:
            records.append(buffer.popleft())
        return records

    def _poke_sync(self, app: str, mark: str, payload: dict[str, Any]) -> None:
        try:
            self.api._put_actions_sync(
                self.uid, [self._poke_action(app, mark, payload)]
            )
        except ShipApiError as e:
            raise CommandError(f"Poke {app} ({mark}) failed: {e}") from e

    async def poke(self, app: str, mark: str, payload: dict[str, Any]) -> None:
        await to_thread.run_sync(self._poke_sync, app, mark, payload)

    def message_payload(
        self, destination: str, resource_name: str, message: Message
    ) -> dict[str, Any]:
        """Build the `add-nodes` graph update posting `message`."""

        now_ms = int(time.time() * 1000)
        index = f"/{unix_ms_to_da(now_ms)}"
        return {
            "add-nodes": {
                "resource": {"ship": with_sig(destination), "name": resource_name},
                "nodes": {
                    index: {
                        "post": {
                            "author": with_sig(self.api.ship_name),
                            "index": index,
                            "time-sent": now_ms,
                            "contents": list(message.contents),
                            "hash": None,
                            "signatures": [],
                        },
                        "children": None,
                    }
                },
            }
        }

    async def send_message(
        self, destination: str, resource_name: str, message: Message
    ) -> None:
        payload = self.message_payload(destination, resource_name, message)
        await self.poke("graph-push-hook", "graph-update-3", payload)

    def handle_event(self, event: SseEvent) -> None:
        """Route one decoded SSE event into its subscription buffer."""

        if event.event_id is not None:
            self._last_event_id = event.event_id
        try:
            body = json.loads(event.data)
        except json.JSONDecodeError:
            logger.debug("channel %s: dropping non-JSON event", self.uid)
            return
        if not isinstance(body, dict):
            return

        response = body.get("response")
        request_id = body.get("id")
        if request_id is not None and not isinstance(request_id, int):
            logger.warning(
                "channel %s: dropping event with bad request id %r",
                self.uid,
                request_id,
            )
            return
        if response == "diff":
            key = self._subscriptions.get(request_id)
            if key is None:
                return
            self._buffers[key].append(body.get("json"))
        elif response in {"poke", "subscribe"} and "err" in body:
            logger.warning(
                "channel %s: %s request %s failed: %s",
                self.uid,
                response,
                request_id,
                body.get("err"),
            )
        elif response == "quit":
            key = self._subscriptions.get(request_id)
            logger.warning("channel %s: subscription %s was closed", self.uid, key)

    def _ack_sync(self, event_id: int) -> None:
        action = {"id": self._next_request_id(), "action": "ack", "event-id": event_id}
        try:
            self.api._put_actions_sync(self.uid, [action])
        except ShipApiError as e:
            logger.debug("channel %s: ack %s failed: %s", self.uid, event_id, e)

    def _read_events_forever(self, stream: Any | None) -> None:
        backoff_seconds = 1.0
        while not self._closed.is_set():
            if stream is None:
                try:
                    stream = self.api._open_stream_sync(self.uid, self._last_event_id)
                except ShipApiError as e:
                    logger.warning("channel %s: reconnect failed: %s", self.uid, e)
                    if self._closed.wait(backoff_seconds):
                        return
                    backoff_seconds = min(backoff_seconds * 2, _MAX_BACKOFF_SECONDS)
                    continue

            decoder = SseDecoder()
            try:
                with stream:
                    for raw in stream:
                        if self._closed.is_set():
                            return
                        event = decoder.feed_line(raw.decode("utf-8", "replace"))
                        if event is None:
                            continue
                        self.handle_event(event)
                        if event.event_id is not None:
                            self._ack_sync(event.event_id)
                        backoff_seconds = 1.0
            except (OSError, http.client.HTTPException) as e:
                if self._closed.is_set():
                    return
                logger.warning(
                    "channel %s: event stream error: %s: %s",
                    self.uid,
                    type(e).__name__,
                    e,
                )

            stream = None
            if self._closed.wait(backoff_seconds):
                return
            backoff_seconds = min(backoff_seconds * 2, _MAX_BACKOFF_SECONDS)

    def _close_sync(self) -> None:
        self._closed.set()
        action = {"id": self._next_request_id(), "action": "delete"}
        try:
            self.api._put_actions_sync(self.uid, [action])
        except ShipApiError as e:
            logger.debug("channel %s: delete failed: %s", self.uid, e)
        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=_READER_JOIN_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        await to_thread.run_sync(self._close_sync)

