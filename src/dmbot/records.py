"""Decode raw subscription records into typed events.

Records arrive as the `json` body of subscription diffs: either already
parsed dicts or raw JSON text. Decoders are total: anything that is not
valid JSON or does not have the expected shape yields `None` and is
treated by the session as "not relevant", never as an error.

Shapes handled:
- `{"invite-update": {"invite": {"uid": ..., "invite": {"resource": {"ship", "name"}}}}}`
- `{"graph-update": {"add-nodes": {"resource": {"ship", "name"}, "nodes": {<index>: {"post": {...}}}}}}`
"""

from __future__ import annotations

import json
from typing import Any, Final

from pydantic import ValidationError

from .entities import InviteEvent, Message, MessageEvent

_INVITE_PATH: Final[tuple[str, ...]] = ("invite-update", "invite")
_ADD_NODES_PATH: Final[tuple[str, ...]] = ("graph-update", "add-nodes")


def load_record(record: Any) -> dict[str, Any] | None:
    """Return `record` as a dict, parsing JSON text when needed."""

    if isinstance(record, dict):
        return record
    if isinstance(record, bytes):
        try:
            record = record.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(record, str):
        return None
    try:
        parsed = json.loads(record)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _extract_nested(obj: Any, path: tuple[str, ...]) -> Any:
    cur: Any = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _extract_str(obj: Any, path: tuple[str, ...]) -> str | None:
    value = _extract_nested(obj, path)
    return value if isinstance(value, str) else None


def extract_resource_name(record: Any) -> str | None:
    """Return the resource name an invite or graph record targets."""

    data = load_record(record)
    if data is None:
        return None
    return _extract_str(
        data, (*_INVITE_PATH, "invite", "resource", "name")
    ) or _extract_str(data, (*_ADD_NODES_PATH, "resource", "name"))


def decode_invite(record: Any) -> InviteEvent | None:
    data = load_record(record)
    if data is None:
        return None
    invite = _extract_nested(data, _INVITE_PATH)
    if not isinstance(invite, dict):
        return None

    name = _extract_str(invite, ("invite", "resource", "name"))
    ship = _extract_str(invite, ("invite", "resource", "ship"))
    uid = invite.get("uid")
    if name is None or ship is None or not isinstance(uid, str):
        return None
    return InviteEvent(resource_name=name, resource_ship=ship, uid=uid)


def decode_message(record: Any) -> MessageEvent | None:
    """Decode the first node of an `add-nodes` graph update.

    DM posts arrive one node per update; additional nodes in the same update
    are ignored.
    """

    data = load_record(record)
    if data is None:
        return None
    add_nodes = _extract_nested(data, _ADD_NODES_PATH)
    if not isinstance(add_nodes, dict):
        return None

    name = _extract_str(add_nodes, ("resource", "name"))
    ship = _extract_str(add_nodes, ("resource", "ship"))
    nodes = add_nodes.get("nodes")
    if name is None or ship is None or not isinstance(nodes, dict) or not nodes:
        return None

    node = next(iter(nodes.values()))
    post = _extract_nested(node, ("post",))
    if not isinstance(post, dict):
        return None
    author = post.get("author")
    if not isinstance(author, str):
        return None

    try:
        contents = Message.model_validate({"contents": post.get("contents")})
    except ValidationError:
        return None

    index = post.get("index")
    time_sent = post.get("time-sent")
    return MessageEvent(
        resource_name=name,
        resource_ship=ship,
        author=author,
        contents=contents,
        index=index if isinstance(index, str) else None,
        time_sent=time_sent if isinstance(time_sent, int) else None,
    )
